from functools import lru_cache
from typing import Literal, Optional
import os
from pydantic_settings import BaseSettings, SettingsConfigDict

EnvName = Literal["development", "production"]

def _env_file_for(app_env: EnvName) -> str:
    return ".env.development" if app_env == "development" else ".env.production"

class Settings(BaseSettings):

    # Core
    APP_ENV: EnvName = "development"
    APP_NAME: str = "CatalogEngine"
    DEBUG: bool = False
    GIT_SHA: str = "unknown"

    # Live backend (empty disables the live source entirely)
    LIVE_API_BASE_URL: Optional[str] = "http://localhost:3001/api"
    live_timeout_s: float = 10.0               # bound on every live call
    live_page_size: int = 100                  # backend caps limit at 100
    live_max_pages: int = 50                   # upper bound on pages walked per list query

    # Static dataset (None = bundled catalog/data/static_catalog.json)
    STATIC_DATASET_PATH: Optional[str] = None

    # Redis (optional, recently-viewed persistence only)
    REDIS_URL: Optional[str] = None

    # Recently viewed
    recently_viewed_capacity: int = 10
    recently_viewed_ttl: int = 30 * 24 * 3600  # 30 days
    recently_viewed_prefix: str = "rv"         # redis key namespace
    recently_viewed_max_users: int = 10_000    # in-process caches kept, least recently used evicted

    # Snapshot flags
    new_arrival_days: int = 30

    # API
    api_prefix: str = "/api"

    # pydantic-settings config will be set dynamically in the factory below
    model_config = SettingsConfigDict(env_file=None, case_sensitive=True)

    @property
    def live_enabled(self) -> bool:
        return bool(self.LIVE_API_BASE_URL and self.LIVE_API_BASE_URL.strip())

@lru_cache
def get_settings() -> Settings:
    """
    Factory that chooses the right .env file based on APP_ENV.
    Cache makes it cheap to inject via FastAPI dependencies.
    """
    app_env: EnvName = os.getenv("APP_ENV", "development")  # earliest switch
    env_file = _env_file_for(app_env)
    return Settings(
                _env_file=env_file,  # load .env.development or .env.production
                _env_file_encoding="utf-8"
    )
