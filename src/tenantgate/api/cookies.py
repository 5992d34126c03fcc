"""Session cookie helpers."""

from fastapi import Response

from tenantgate.config.settings import Settings
from tenantgate.core.types import AuthSession


def set_session_cookie(response: Response, session: AuthSession, settings: Settings) -> None:
    """Attach the session id as a host-only cookie."""
    cookie = settings.session_cookie
    response.set_cookie(
        cookie.name,
        session.session_id,
        max_age=settings.session_ttl_seconds,
        httponly=cookie.http_only,
        secure=cookie.secure,
        samesite=cookie.same_site,
    )


def clear_session_cookie(response: Response, settings: Settings) -> None:
    cookie = settings.session_cookie
    response.delete_cookie(
        cookie.name,
        httponly=cookie.http_only,
        secure=cookie.secure,
        samesite=cookie.same_site,
    )
