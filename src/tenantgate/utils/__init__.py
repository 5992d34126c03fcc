"""Shared utilities for tenantgate."""

from .exceptions import ConfigurationError, TenantGateError

__all__ = ["ConfigurationError", "TenantGateError"]
