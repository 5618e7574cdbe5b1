# catalog/core/lifespan.py
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI

from catalog.core.config import Settings, get_settings
from catalog.db import redis as r
from catalog.domain.repositories.live_catalog_repo import LiveCatalogRepo
from catalog.domain.repositories.recently_viewed_repo import RecentlyViewedRepo
from catalog.domain.repositories.static_catalog_repo import StaticCatalogRepo
from catalog.domain.services.catalog_svc import CatalogService
from catalog.domain.services.recently_viewed_svc import RecentlyViewedRegistry

logger = logging.getLogger(__name__)


def build_catalog_service(settings: Settings) -> CatalogService:
    """Wire the orchestrator from settings. DatasetError propagates: no static dataset, no service."""
    static = StaticCatalogRepo.from_file(settings.STATIC_DATASET_PATH)
    live = None
    if settings.live_enabled:
        live = LiveCatalogRepo(
            settings.LIVE_API_BASE_URL,
            timeout_s=settings.live_timeout_s,
            page_size=settings.live_page_size,
            max_pages=settings.live_max_pages,
        )
        logger.info("Live catalog source: %s (timeout %.1fs)", live.base_url, settings.live_timeout_s)
    else:
        logger.warning("No LIVE_API_BASE_URL configured, serving the static dataset only")
    return CatalogService(static, live, new_arrival_days=settings.new_arrival_days)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = getattr(app.state, "settings", None) or get_settings()

    # --- Startup ---
    # Components injected by create_app() (tests, embedding apps) are kept as-is
    if getattr(app.state, "catalog", None) is None:
        app.state.catalog = build_catalog_service(settings)
        logger.info("Catalog service ready (static records=%d)", len(app.state.catalog.static))

    # Redis optionnel
    if getattr(app.state, "recently_viewed", None) is None:
        client = await r.connect(settings.REDIS_URL)
        repo = (
            RecentlyViewedRepo(client, prefix=settings.recently_viewed_prefix, ttl=settings.recently_viewed_ttl)
            if client is not None else None
        )
        app.state.recently_viewed = RecentlyViewedRegistry(
            settings.recently_viewed_capacity, repo=repo, max_users=settings.recently_viewed_max_users
        )

    # Application runs
    yield

    # --- Shutdown ---
    await r.disconnect()
