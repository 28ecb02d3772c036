"""
Centralized configuration for the AlumniVerse auth backend.

All settings are loaded from environment variables with sensible defaults.
Settings are namespaced by concern (SUPABASE_*, OTP_*, SYNC_*, ...).
"""

from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "AlumniVerse Auth"
    app_version: str = "0.1.0"
    debug: bool = False
    log_level: str = "INFO"

    # Supabase
    supabase_url: str = ""
    supabase_anon_key: str = ""
    supabase_service_role_key: str = ""
    supabase_jwt_secret: str = ""
    profiles_table: str = "users"

    # Frontend URLs (for redirects)
    frontend_url: str = "http://localhost:3000"
    auth_route: str = "/auth"
    default_redirect: str = "/dashboard"

    # Institutional e-mail domain accepted at sign-up
    allowed_email_domain: str = "sit.ac.in"

    # OTP challenge
    otp_code_length: int = 6
    otp_resend_cooldown_seconds: int = 60
    otp_rate_limit_cooldown_seconds: int = 12
    otp_min_resend_interval_seconds: int = 12
    otp_max_verify_attempts: int = 3
    otp_lockout_seconds: int = 60
    otp_lifetime_seconds: int = 3600

    # Session visibility polling after a successful verify
    session_visibility_attempts: int = 5
    session_visibility_interval_seconds: float = 0.8

    # Server Session Bridge
    session_bridge_url: str = "http://localhost:8000/api/auth/session"
    sync_settle_delay_seconds: float = 0.5
    sync_readback: bool = False
    sync_timeout_seconds: float = 10.0

    # Flow-scoped storage (pending e-mail, pending redirect target)
    flow_storage_ttl_seconds: int = 1800


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()
