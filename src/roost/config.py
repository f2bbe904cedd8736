"""Configuration and environment loading for Roost."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Supabase (identity provider + data store)
    supabase_url: str
    supabase_key: str

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False

    # Origin used to build email confirmation and OAuth redirect targets
    site_url: str = "http://localhost:8000"

    # Session cookies
    access_cookie_name: str = "sb-access-token"
    refresh_cookie_name: str = "sb-refresh-token"
    cookie_secure: bool = False
    cookie_samesite: str = "lax"
    refresh_cookie_max_age: int = 60 * 60 * 24 * 30  # 30 days

    # Route gate
    public_api_prefix: str = "/api/public"

    # Role assumed when neither the request nor the identity names one
    default_role: str = "tenant"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
