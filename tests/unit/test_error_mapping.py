"""Tests for mapping core exceptions to HTTP errors."""

from datetime import datetime

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from pydantic import BaseModel, ValidationError

from tenantgate.api.middleware.errors import ErrorHandlingMiddleware, map_exception
from tenantgate.api.schemas.errors import ErrorCode
from tenantgate.core.exceptions import (
    GENERIC_LOGIN_FAILURE,
    ContextNotSetError,
    ImpersonationDisabledError,
    InvalidCredentialsError,
    NotAuthenticatedError,
    PanelAccessDeniedError,
    TenantNotFoundError,
    TenantValidationError,
    TokenAlreadyUsedError,
    TokenExpiredError,
    TokenNotFoundError,
    TooManyAttemptsError,
    UnknownDomainError,
)


class _Model(BaseModel):
    count: int


class TestMapException:
    """Tests for map_exception()."""

    @pytest.mark.parametrize(
        "exc,status,code",
        [
            (UnknownDomainError("x.example.com"), 404, ErrorCode.NOT_FOUND),
            (TenantNotFoundError("acme"), 404, ErrorCode.TENANT_NOT_FOUND),
            (TenantValidationError({"name": ["required"]}), 422, ErrorCode.VALIDATION_ERROR),
            (TooManyAttemptsError(retry_after=42), 429, ErrorCode.RATE_LIMITED),
            (InvalidCredentialsError(), 401, ErrorCode.UNAUTHORIZED),
            (PanelAccessDeniedError("admin"), 403, ErrorCode.FORBIDDEN),
            (NotAuthenticatedError(), 401, ErrorCode.UNAUTHORIZED),
            (ImpersonationDisabledError(), 403, ErrorCode.IMPERSONATION_DISABLED),
            (TokenNotFoundError(), 400, ErrorCode.TOKEN_NOT_FOUND),
            (TokenExpiredError(datetime(2026, 1, 1)), 400, ErrorCode.TOKEN_EXPIRED),
            (TokenAlreadyUsedError(), 400, ErrorCode.TOKEN_ALREADY_USED),
            (ContextNotSetError(), 500, ErrorCode.INTERNAL_ERROR),
            (RuntimeError("boom"), 500, ErrorCode.INTERNAL_ERROR),
        ],
    )
    def test_status_and_code(self, exc, status, code):
        status_code, error_code, _, _ = map_exception(exc)

        assert status_code == status
        assert error_code == code.value

    def test_unknown_domain_does_not_echo_host(self):
        _, _, message, details = map_exception(UnknownDomainError("secret.example.com"))

        assert "secret" not in message
        assert details is None

    def test_login_failures_share_message(self):
        assert map_exception(InvalidCredentialsError())[2] == GENERIC_LOGIN_FAILURE
        assert map_exception(PanelAccessDeniedError("admin"))[2] == GENERIC_LOGIN_FAILURE

    def test_validation_details(self):
        _, _, _, details = map_exception(TenantValidationError({"email": ["email"], "name": ["unique"]}))
        assert details == {"errors": {"email": ["email"], "name": ["unique"]}}

    def test_pydantic_validation_error(self):
        with pytest.raises(ValidationError) as exc_info:
            _Model(count="many")

        status_code, error_code, _, details = map_exception(exc_info.value)
        assert status_code == 422
        assert error_code == ErrorCode.VALIDATION_ERROR.value
        assert details["errors"][0]["loc"] == ("count",)

    def test_throttle_details(self):
        assert map_exception(TooManyAttemptsError(retry_after=42))[3] == {"retry_after": 42}

    def test_internal_error_details_only_in_debug(self):
        assert map_exception(RuntimeError("boom"))[3] is None
        assert map_exception(RuntimeError("boom"), debug=True)[3] == {"type": "RuntimeError"}


class TestErrorHandlingMiddleware:
    """ErrorHandlingMiddleware renders mapped errors as APIError bodies."""

    @pytest.fixture
    def app(self) -> FastAPI:
        app = FastAPI()
        app.add_middleware(ErrorHandlingMiddleware)

        @app.get("/throttled")
        async def throttled():
            raise TooManyAttemptsError(retry_after=17)

        @app.get("/crash")
        async def crash():
            raise RuntimeError("boom")

        return app

    @pytest.mark.asyncio
    async def test_retry_after_header(self, app):
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            response = await client.get("/throttled")

        assert response.status_code == 429
        assert response.headers["Retry-After"] == "17"
        body = response.json()
        assert body["error_code"] == "rate_limited"
        assert body["details"] == {"retry_after": 17}
        assert body["request_id"] == "unknown"

    @pytest.mark.asyncio
    async def test_unhandled_exception(self, app):
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            response = await client.get("/crash")

        assert response.status_code == 500
        assert response.json()["message"] == "Internal server error"
