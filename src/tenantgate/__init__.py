"""Tenant identity, domain resolution and impersonation for multi-tenant admin panels."""

__version__ = "0.1.0"
