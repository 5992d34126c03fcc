"""Database models for tenantgate."""

from .account import Account
from .base import Base, PortableJSON, PortableUUID, UTCDateTime
from .tenant import Domain, Tenant
from .token import ImpersonationTokenModel

__all__ = [
    "Account",
    "Base",
    "Domain",
    "ImpersonationTokenModel",
    "PortableJSON",
    "PortableUUID",
    "Tenant",
    "UTCDateTime",
]
