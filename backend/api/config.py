"""
API configuration using Pydantic Settings.

Loads configuration from environment variables with sensible defaults.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class APISettings(BaseSettings):
    """API configuration settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="ALUMNIVERSE_",
        case_sensitive=False,
    )

    # Server settings
    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False
    reload: bool = False

    # CORS settings
    cors_origins: list[str] = ["http://localhost:3000"]
    cors_allow_credentials: bool = True
    cors_allow_methods: list[str] = ["*"]
    cors_allow_headers: list[str] = ["*"]

    # Supabase settings (for token validation)
    supabase_jwt_secret: str = ""

    # Session bridge cookies
    access_cookie_name: str = "sb-access-token"
    refresh_cookie_name: str = "sb-refresh-token"
    cookie_secure: bool = False
    access_cookie_max_age: int = 60 * 60 * 24 * 7
    refresh_cookie_max_age: int = 60 * 60 * 24 * 30


def get_settings() -> APISettings:
    """Get cached settings instance."""
    return APISettings()
