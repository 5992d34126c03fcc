"""Application settings loaded from environment variables."""

from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class SessionCookieConfig(BaseModel):
    """Cookie attributes used by the HTTP surface for session ids."""

    name: str = "tenantgate_session"
    http_only: bool = True
    secure: bool = True
    same_site: Literal["lax", "strict", "none"] = "lax"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_nested_delimiter="__",
    )

    # Tenancy
    central_domain: str = "localhost"
    central_domains: list[str] = Field(default_factory=list)
    """Additional hostnames that serve the central (non-tenant) context."""

    url_scheme: Literal["http", "https"] = "https"

    # Panels
    panel: str = "app"
    """Panel served on tenant domains."""

    admin_panel: str = "admin"
    """Panel served on the central domain."""

    # Impersonation
    allow_impersonate: bool = False
    impersonation_ttl_seconds: int = 60
    impersonation_login_path: str = "login/url"
    impersonation_redirect_path: str = "/app"

    # Login throttling
    login_max_attempts: int = 5
    login_window_seconds: int = 60

    # Sessions
    session_ttl_seconds: int = 28800
    session_cookie: SessionCookieConfig = SessionCookieConfig()

    # Passwords
    bcrypt_rounds: int = 12
    password_min_length: int = 8

    # Application Configuration
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    ENVIRONMENT: Literal["development", "staging", "production", "test"] = "development"
    DEBUG: bool = False

    # Infrastructure
    DATABASE_URL: str = "sqlite+aiosqlite:///./tenantgate.db"
    DATABASE_POOL_SIZE: int = 5
    DATABASE_MAX_OVERFLOW: int = 10
    REDIS_URL: str | None = None
    REDIS_MAX_CONNECTIONS: int = 20

    @field_validator("central_domain")
    @classmethod
    def normalize_central_domain(cls, value: str) -> str:
        """Store the central domain lowercased without a trailing dot."""
        return value.strip().lower().rstrip(".")

    @field_validator("central_domains")
    @classmethod
    def normalize_central_domains(cls, value: list[str]) -> list[str]:
        return [v.strip().lower().rstrip(".") for v in value if v.strip()]

    def is_central_host(self, host: str) -> bool:
        """Return True when the normalized host serves the central context."""
        return host == self.central_domain or host in self.central_domains


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
