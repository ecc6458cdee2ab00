"""
Test suite for exception handlers.

Run tests:
    pytest tests/core/exceptions/test_handlers.py -v
"""

import json
from unittest.mock import MagicMock, patch

import pytest
from fastapi import status

from nextsub.core.config import settings
from nextsub.core.exceptions.handlers import (
    admin_session_exception_handler,
    bad_request_exception_handler,
    database_exception_handler,
    exception_schema,
    forbidden_exception_handler,
    general_exception_handler,
    notification_exception_handler,
    rate_limit_exception_handler,
)
from nextsub.core.exceptions.types import (
    AdminSessionException,
    AppException,
    DatabaseException,
    IdentityMismatchException,
    InvalidOrExpiredCodeException,
    NotificationException,
    RateLimitExceededException,
)


def _body(response) -> dict:
    return json.loads(response.body)


class TestGeneralExceptionHandler:
    @pytest.mark.asyncio
    async def test_hides_message(self):
        mock_request = MagicMock()
        exc = AppException("secret internals")

        with patch("nextsub.core.exceptions.handlers.request_logger") as mock_logger:
            response = await general_exception_handler(mock_request, exc)

        mock_logger.error.assert_called_once()
        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert _body(response) == {
            "success": False,
            "detail": "An unexpected error occurred.",
        }


class TestDatabaseExceptionHandler:
    @pytest.mark.asyncio
    async def test_generic_message(self):
        exc = DatabaseException("connection refused to 10.0.0.5")

        with patch("nextsub.core.exceptions.handlers.request_logger") as mock_logger:
            response = await database_exception_handler(MagicMock(), exc)

        assert "connection refused" in str(mock_logger.error.call_args[0][0])
        assert response.status_code == 500
        assert b"10.0.0.5" not in response.body


class TestNotificationExceptionHandler:
    @pytest.mark.asyncio
    async def test_returns_500(self):
        response = await notification_exception_handler(
            MagicMock(), NotificationException()
        )

        assert response.status_code == 500
        assert _body(response)["detail"] == "Failed to send the admin code."


class TestAdminSessionExceptionHandler:
    @pytest.mark.asyncio
    async def test_clears_cookie(self):
        response = await admin_session_exception_handler(
            MagicMock(), AdminSessionException()
        )

        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"
        cookie = response.headers["set-cookie"]
        assert cookie.startswith(f"{settings.ADMIN_SESSION_COOKIE_NAME}=")
        assert "Max-Age=0" in cookie


class TestForbiddenExceptionHandler:
    @pytest.mark.asyncio
    async def test_identity_mismatch_is_generic(self):
        response = await forbidden_exception_handler(
            MagicMock(), IdentityMismatchException()
        )

        assert response.status_code == 403
        assert _body(response) == {"success": False, "detail": "Access denied."}


class TestBadRequestExceptionHandler:
    @pytest.mark.asyncio
    async def test_invalid_code(self):
        response = await bad_request_exception_handler(
            MagicMock(), InvalidOrExpiredCodeException()
        )

        assert response.status_code == 400
        assert _body(response) == {
            "success": False,
            "detail": "Invalid or expired code.",
        }


class TestRateLimitExceptionHandler:
    @pytest.mark.asyncio
    async def test_sets_retry_after(self):
        response = await rate_limit_exception_handler(
            MagicMock(), RateLimitExceededException(retry_after=1800)
        )

        assert response.status_code == 429
        assert response.headers["Retry-After"] == "1800"
        assert _body(response)["retry_after"] == 1800

    @pytest.mark.asyncio
    async def test_without_retry_after(self):
        response = await rate_limit_exception_handler(
            MagicMock(), RateLimitExceededException()
        )

        assert "Retry-After" not in response.headers


class TestExceptionSchema:
    def test_documents_500_and_429(self):
        assert status.HTTP_500_INTERNAL_SERVER_ERROR in exception_schema
        assert status.HTTP_429_TOO_MANY_REQUESTS in exception_schema
