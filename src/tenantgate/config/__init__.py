"""Configuration for tenantgate."""

from .settings import SessionCookieConfig, Settings, get_settings
from .validation import (
    ValidationResult,
    ValidationSeverity,
    validate_configuration,
    validate_or_raise,
)

__all__ = [
    "SessionCookieConfig",
    "Settings",
    "ValidationResult",
    "ValidationSeverity",
    "get_settings",
    "validate_configuration",
    "validate_or_raise",
]
