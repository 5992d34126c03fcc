"""Custom exceptions for tenantgate."""


class TenantGateError(Exception):
    """Base exception for all tenantgate errors.

    Every error raised by the core is recoverable: callers report it and
    carry on serving other requests.
    """

    pass


class ConfigurationError(TenantGateError):
    """Error in configuration or settings."""

    pass
