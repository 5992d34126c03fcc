"""Configuration validation for startup checks.

Validates that tenancy, impersonation and security settings are coherent
before the application starts accepting requests.

Usage:
    from tenantgate.config.validation import validate_or_raise

    # During startup
    validate_or_raise(settings)
"""

import re
from dataclasses import dataclass
from enum import Enum

import structlog

from tenantgate.config.settings import Settings, get_settings
from tenantgate.utils.exceptions import ConfigurationError

logger = structlog.get_logger("tenantgate.config")

HOSTNAME_PATTERN = re.compile(r"^(?=.{1,253}$)([a-z0-9]([a-z0-9-]{0,61}[a-z0-9])?)(\.[a-z0-9]([a-z0-9-]{0,61}[a-z0-9])?)*$")


class ValidationSeverity(str, Enum):
    """Severity of configuration validation issues."""

    ERROR = "error"  # Must be fixed, app cannot start
    WARNING = "warning"  # Should be fixed, app can start but may misbehave


@dataclass
class ValidationResult:
    """Result of a configuration validation check."""

    field: str
    severity: ValidationSeverity
    message: str
    suggestion: str | None = None

    def __str__(self) -> str:
        prefix = "ERROR" if self.severity == ValidationSeverity.ERROR else "WARNING"
        result = f"[{prefix}] {self.field}: {self.message}"
        if self.suggestion:
            result += f"\n  Suggestion: {self.suggestion}"
        return result


def validate_configuration(settings: Settings | None = None) -> list[ValidationResult]:
    """Validate application configuration.

    Args:
        settings: Settings to validate (default: global settings)

    Returns:
        List of validation results (empty if all checks pass)
    """
    if settings is None:
        settings = get_settings()

    results: list[ValidationResult] = []
    results.extend(_validate_tenancy(settings))
    results.extend(_validate_impersonation(settings))
    results.extend(_validate_security(settings))
    return results


def validate_or_raise(settings: Settings | None = None) -> None:
    """Validate configuration and raise if errors are found.

    Warnings are logged and do not stop startup.

    Raises:
        ConfigurationError: If any validation errors are found
    """
    results = validate_configuration(settings)
    errors = [r for r in results if r.severity == ValidationSeverity.ERROR]

    if errors:
        error_messages = "\n".join(str(e) for e in errors)
        raise ConfigurationError(f"Configuration validation failed:\n{error_messages}")

    for warning in (r for r in results if r.severity == ValidationSeverity.WARNING):
        logger.warning("configuration_warning", field=warning.field, detail=warning.message)


# =============================================================================
# Validators
# =============================================================================


def _validate_tenancy(settings: Settings) -> list[ValidationResult]:
    results: list[ValidationResult] = []

    for field, host in [("central_domain", settings.central_domain)] + [
        ("central_domains", h) for h in settings.central_domains
    ]:
        if not HOSTNAME_PATTERN.match(host):
            results.append(
                ValidationResult(
                    field=field,
                    severity=ValidationSeverity.ERROR,
                    message=f"'{host}' is not a valid hostname",
                    suggestion="Use a bare hostname without scheme, port or path",
                )
            )

    if settings.ENVIRONMENT == "production" and settings.central_domain == "localhost":
        results.append(
            ValidationResult(
                field="central_domain",
                severity=ValidationSeverity.ERROR,
                message="central_domain must be set in production",
                suggestion="Set CENTRAL_DOMAIN to the administrative hostname",
            )
        )

    if settings.panel == settings.admin_panel:
        results.append(
            ValidationResult(
                field="panel",
                severity=ValidationSeverity.WARNING,
                message="Tenant panel and admin panel share the same identifier",
            )
        )

    return results


def _validate_impersonation(settings: Settings) -> list[ValidationResult]:
    results: list[ValidationResult] = []

    if settings.impersonation_ttl_seconds <= 0:
        results.append(
            ValidationResult(
                field="impersonation_ttl_seconds",
                severity=ValidationSeverity.ERROR,
                message="Token lifetime must be positive",
            )
        )
    elif settings.impersonation_ttl_seconds > 600:
        results.append(
            ValidationResult(
                field="impersonation_ttl_seconds",
                severity=ValidationSeverity.WARNING,
                message="Impersonation tokens live longer than 10 minutes",
                suggestion="Keep the redemption window short",
            )
        )

    if not settings.impersonation_redirect_path.startswith("/"):
        results.append(
            ValidationResult(
                field="impersonation_redirect_path",
                severity=ValidationSeverity.ERROR,
                message="Redirect path must be absolute (start with '/')",
            )
        )

    return results


def _validate_security(settings: Settings) -> list[ValidationResult]:
    results: list[ValidationResult] = []

    if settings.login_max_attempts < 1 or settings.login_window_seconds < 1:
        results.append(
            ValidationResult(
                field="login_max_attempts",
                severity=ValidationSeverity.ERROR,
                message="Login throttling needs at least one attempt per positive window",
            )
        )

    if not 4 <= settings.bcrypt_rounds <= 31:
        results.append(
            ValidationResult(
                field="bcrypt_rounds",
                severity=ValidationSeverity.ERROR,
                message="bcrypt cost factor must be between 4 and 31",
            )
        )

    if settings.ENVIRONMENT == "production":
        if settings.bcrypt_rounds < 12:
            results.append(
                ValidationResult(
                    field="bcrypt_rounds",
                    severity=ValidationSeverity.WARNING,
                    message="bcrypt cost factor below 12 in production",
                )
            )
        if settings.url_scheme != "https":
            results.append(
                ValidationResult(
                    field="url_scheme",
                    severity=ValidationSeverity.ERROR,
                    message="Impersonation links must use https in production",
                )
            )
        if settings.REDIS_URL is None:
            results.append(
                ValidationResult(
                    field="REDIS_URL",
                    severity=ValidationSeverity.WARNING,
                    message="Sessions and login throttling fall back to process memory",
                    suggestion="Configure REDIS_URL when running more than one worker",
                )
            )
        if settings.DEBUG:
            results.append(
                ValidationResult(
                    field="DEBUG",
                    severity=ValidationSeverity.ERROR,
                    message="DEBUG must be disabled in production",
                )
            )

    return results
