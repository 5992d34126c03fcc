"""Security configuration types and defaults."""

from dataclasses import dataclass
from typing import Literal

from tenantgate.config.settings import Settings


@dataclass(frozen=True, slots=True)
class RateLimitConfig:
    """Configuration for login throttling.

    Attributes:
        enabled: Whether throttling is active
        max_attempts: Attempts allowed per identity and address in one window
        window_size_seconds: Sliding window size for attempt counting
        reset_on_success: Clear the counter after a successful login
    """

    enabled: bool = True
    max_attempts: int = 5
    window_size_seconds: int = 60
    reset_on_success: bool = True

    @classmethod
    def from_settings(cls, settings: Settings) -> "RateLimitConfig":
        return cls(
            max_attempts=settings.login_max_attempts,
            window_size_seconds=settings.login_window_seconds,
        )


@dataclass(frozen=True, slots=True)
class SecurityConfig:
    """Master security configuration.

    Attributes:
        rate_limit: Login throttling configuration
        trust_forwarded_for: Read the client address from X-Forwarded-For
        trusted_proxies: Proxies whose X-Forwarded-For header is believed
    """

    rate_limit: RateLimitConfig = RateLimitConfig()
    trust_forwarded_for: bool = False
    trusted_proxies: frozenset[str] = frozenset({"127.0.0.1", "::1"})


def create_default_security_config(
    environment: Literal["development", "staging", "production", "test"] = "development",
    settings: Settings | None = None,
) -> SecurityConfig:
    """Create security configuration appropriate for the environment.

    Args:
        environment: The deployment environment
        settings: Settings supplying attempt limits (defaults used if None)
    """
    rate_limit = RateLimitConfig.from_settings(settings) if settings else RateLimitConfig()

    if environment in ("production", "staging"):
        return SecurityConfig(rate_limit=rate_limit, trust_forwarded_for=True)
    return SecurityConfig(rate_limit=rate_limit)
