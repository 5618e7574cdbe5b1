# catalog/api/v1/routers/health.py
import time
import subprocess
from fastapi import APIRouter, Depends, Request
from redis.exceptions import RedisError

from catalog.api.deps import catalog_dep, redis_dep
from catalog.domain.services.catalog_svc import CatalogService

router = APIRouter(tags=["health"])
START_TIME = time.time()


def _git_sha(short: bool = True) -> str:
    try:
        cmd = ["git", "rev-parse", "--short" if short else "HEAD"]
        return subprocess.check_output(cmd, stderr=subprocess.DEVNULL).decode().strip()
    except (OSError, subprocess.CalledProcessError):
        return "unknown"


@router.get("/health")
async def health(request: Request, catalog: CatalogService = Depends(catalog_dep), redis=Depends(redis_dep)):
    """
    Tolerant health check:
    - static dataset must hold at least one record (it is the last line of fallback)
    - live source is only reported (configured or not); it is allowed to be down
    - Redis 'skipped' when not configured
    """
    settings = request.app.state.settings
    checks: dict[str, object] = {
        "app_name": settings.APP_NAME,
        "env": settings.APP_ENV,
        "debug": settings.DEBUG,
        "version": settings.GIT_SHA if settings.GIT_SHA != "unknown" else _git_sha(),
        "uptime_seconds": int(time.time() - START_TIME),
        "live_source": catalog.live.base_url if catalog.live is not None else "disabled",
        "static_records": len(catalog.static),
    }

    checks["static_dataset"] = "ok" if len(catalog.static) > 0 else "error: empty"

    # --- Redis (tolérant) ---
    try:
        if redis:
            await redis.ping()
            checks["redis"] = "ok"
        else:
            checks["redis"] = "skipped"
    except (RedisError, OSError) as e:
        checks["redis"] = f"error: {e}"

    health_keys = ("static_dataset", "redis")
    status = "ok" if all(checks.get(k) in ("ok", "skipped") for k in health_keys) else "error"

    return {"status": status, "checks": checks, "timestamp": int(time.time())}
