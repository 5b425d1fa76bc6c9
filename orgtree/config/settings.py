"""Configuration Settings for OrgTree

Manages environment variables and application configuration.
"""

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings"""

    # Service info
    service_name: str = "orgtree"
    service_version: str = "1.0.0"
    environment: str = "development"

    # Server configuration
    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False

    # Database configuration
    database_url: str = "sqlite+aiosqlite:///./orgtree.db"
    sql_echo: bool = False

    # JWT configuration (identity collaborator)
    jwt_secret_key: str = "change-me-in-production"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 1440  # 24 hours

    # CSRF double-submit tokens
    csrf_secret: Optional[str] = None  # Falls back to jwt_secret_key
    csrf_token_ttl_seconds: int = 24 * 60 * 60
    csrf_cookie_name: str = "csrf-token"
    csrf_header_name: str = "X-CSRF-Token"

    # Ownership transfers
    transfer_expiry_days: int = 7

    # CORS configuration
    cors_origins: list[str] = ["http://localhost:5173"]
    cors_allow_credentials: bool = True
    cors_allow_methods: list[str] = ["*"]
    cors_allow_headers: list[str] = ["*"]

    # Logging
    log_level: str = "INFO"

    # Monitoring and observability
    sentry_dsn: Optional[str] = None
    sentry_traces_sample_rate: float = 0.0

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        env_prefix = "ORGTREE_"

    @property
    def is_production(self) -> bool:
        """Whether the service runs in production (secure cookies, no detail leaks)"""
        return self.environment.lower() == "production"

    @property
    def effective_csrf_secret(self) -> str:
        """Secret used to sign CSRF tokens"""
        return self.csrf_secret or self.jwt_secret_key


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance

    Returns:
        Settings instance
    """
    return Settings()
