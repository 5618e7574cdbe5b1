# catalog/api/deps.py
from fastapi import Request
from catalog.db.redis import get_redis
from catalog.domain.services.catalog_svc import CatalogService
from catalog.domain.services.recently_viewed_svc import RecentlyViewedRegistry

# Dependency for injecting the orchestrator built at startup
def catalog_dep(request: Request) -> CatalogService:
    return request.app.state.catalog

# Dependency for injecting the per-user recently-viewed registry
def recently_viewed_dep(request: Request) -> RecentlyViewedRegistry:
    return request.app.state.recently_viewed

# Dependency for injecting the Redis client (None when not configured)
def redis_dep():
    return get_redis()
