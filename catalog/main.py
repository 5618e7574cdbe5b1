from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging

from catalog.core.config import Settings, get_settings
from catalog.core.lifespan import lifespan
from catalog.core.logging import configure_logging
from catalog.api.v1.routers.health import router as health_router
from catalog.api.v1.routers.products import router as products_router
from catalog.api.v1.routers.recently_viewed import router as recently_viewed_router
from catalog.domain.services.catalog_svc import CatalogService
from catalog.domain.services.recently_viewed_svc import RecentlyViewedRegistry


def create_app(
    settings: Optional[Settings] = None,
    catalog: Optional[CatalogService] = None,
    recently_viewed: Optional[RecentlyViewedRegistry] = None,
) -> FastAPI:
    """
    Build the API. Components passed in are used as-is; anything missing is
    wired from settings during startup (see core.lifespan).
    """
    settings = settings or get_settings()
    configure_logging(level=logging.DEBUG if settings.DEBUG else logging.INFO)

    app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)
    app.state.settings = settings
    app.state.catalog = catalog
    app.state.recently_viewed = recently_viewed

    # ------- CORS -------
    # The storefront is served from a different origin in development
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["GET", "DELETE", "OPTIONS"],
        allow_headers=["*"],
        max_age=86400,
    )

    # ------- Routes -------
    app.include_router(health_router)
    app.include_router(products_router, prefix=settings.api_prefix)          # catalog pages + lookups
    app.include_router(recently_viewed_router, prefix=settings.api_prefix)   # per-user history
    return app


app = create_app()
