# app/core/config.py
# All application settings loaded from environment variables / .env file
# In production: values are injected into the container environment
# In development: loaded from .env file via pydantic-settings

from functools import lru_cache
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Single source of truth for all FreeTutor configuration.
    pydantic-settings automatically reads from environment variables.
    Variable names are case-insensitive.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # App
    app_env: str = "development"
    app_name: str = "FreeTutor"
    app_version: str = "1.0.0"
    debug: bool = False
    log_level: str = "INFO"
    auto_migrate_on_startup: bool = False

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    allowed_origins: str = "http://localhost:3000,http://localhost:8000"
    site_url: str = "http://localhost:3000"

    # Database
    database_url: str

    # JWT
    jwt_secret_key: str
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60

    # GCS -- verification documents live in a private bucket
    gcs_private_bucket: str = ""
    signed_url_expire_seconds: int = 3600
    max_upload_bytes: int = 10 * 1024 * 1024

    # SendGrid
    sendgrid_api_key: str = ""
    email_from: str = "noreply@freetutor.hk"
    email_from_name: str = "FreeTutor"

    # Admin seed (python -m app.db.init_db)
    admin_email: str = "admin@freetutor.hk"
    admin_password: str = ""

    # Browse limit for public request listing
    browse_limit: int = 50

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    @property
    def cors_origins(self) -> List[str]:
        """Parse comma-separated ALLOWED_ORIGINS into a list."""
        return [o.strip() for o in self.allowed_origins.split(",") if o.strip()]


@lru_cache
def get_settings() -> Settings:
    """
    Returns a cached Settings instance.
    Use as a FastAPI dependency: settings = Depends(get_settings)
    Or import directly:         from app.core.config import settings
    """
    return Settings()


# Module-level singleton -- import this directly in most places
settings = get_settings()
