"""
Tests for the admin authentication endpoints.

Run tests:
    pytest tests/core/routers/test_admin.py -v
"""

import asyncio
from datetime import timedelta
from unittest.mock import AsyncMock, patch

from aio_pika.exceptions import AMQPConnectionError
import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from nextsub.core.config import settings
from nextsub.core.db.crud import admin_code_db
from nextsub.core.db.models import AdminCode
from nextsub.core.utils import utc_now

REQUEST_CODE_URL = "/admin/request-code"
VERIFY_CODE_URL = "/admin/verify-code"
ME_URL = "/admin/me"
LOGOUT_URL = "/admin/logout"

INVALID_CODE_BODY = {"success": False, "detail": "Invalid or expired code."}


async def _request_code(client, email: str):
    return await client.post(REQUEST_CODE_URL, json={"email": email})


async def _verify(client, email: str, code: str):
    return await client.post(VERIFY_CODE_URL, json={"email": email, "code": code})


# ============================================================================
# Request Code Tests
# ============================================================================


class TestRequestCode:
    """Test suite for POST /admin/request-code."""

    @pytest.mark.asyncio
    async def test_request_code_success(self, client, admin_email, mock_publish):
        response = await _request_code(client, admin_email)

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert str(settings.ADMIN_CODE_TTL_MINUTES) in data["message"]
        assert "expires_at" in data
        assert "code" not in data
        mock_publish.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_rate_limit_headers(self, client, admin_email):
        response = await _request_code(client, admin_email)

        assert response.headers["X-RateLimit-Limit"] == str(
            settings.ADMIN_MAX_REQUESTS_PER_HOUR
        )
        assert response.headers["X-RateLimit-Remaining"] == str(
            settings.ADMIN_MAX_REQUESTS_PER_HOUR - 1
        )
        assert "X-RateLimit-Reset" in response.headers

    @pytest.mark.asyncio
    async def test_non_admin_email_forbidden(self, client, mock_publish):
        response = await _request_code(client, "someone@nextsub.example.com")

        assert response.status_code == 403
        assert response.json() == {"success": False, "detail": "Access denied."}
        mock_publish.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_malformed_email_rejected(self, client, mock_publish):
        response = await _request_code(client, "not-an-email")

        assert response.status_code == 422
        mock_publish.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_seventh_request_rate_limited(self, client, admin_email):
        for _ in range(settings.ADMIN_MAX_REQUESTS_PER_HOUR):
            response = await _request_code(client, admin_email)
            assert response.status_code == 200

        response = await _request_code(client, admin_email)

        assert response.status_code == 429
        data = response.json()
        assert data["success"] is False
        assert data["retry_after"] > 0
        assert int(response.headers["Retry-After"]) > 0

    @pytest.mark.asyncio
    async def test_delivery_failure_keeps_previous_code(
        self, client, admin_email, mock_publish, last_code
    ):
        await _request_code(client, admin_email)
        first_code = last_code()

        mock_publish.side_effect = AMQPConnectionError("broker down")
        response = await _request_code(client, admin_email)
        assert response.status_code == 500
        assert response.json()["success"] is False

        mock_publish.side_effect = None
        response = await _verify(client, admin_email, first_code)
        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_commit_failure_returns_generic_error(
        self, client, admin_email, last_code
    ):
        with patch.object(
            AsyncSession,
            "commit",
            new_callable=AsyncMock,
            side_effect=OperationalError("COMMIT", {}, Exception("disk I/O error")),
        ):
            response = await _request_code(client, admin_email)

        assert response.status_code == 500
        assert response.json() == {"success": False, "detail": "Internal server error."}

        response = await _verify(client, admin_email, last_code())
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_concurrent_requests_leave_one_live_code(
        self, client, session_factory, admin_email
    ):
        responses = await asyncio.gather(
            *(_request_code(client, admin_email) for _ in range(4))
        )

        assert [r.status_code for r in responses] == [200] * 4
        async with session_factory() as session:
            result = await session.execute(
                select(func.count())
                .select_from(AdminCode)
                .where(AdminCode.email == admin_email, AdminCode.consumed.is_(False))
            )
        assert result.scalar_one() == 1


# ============================================================================
# Verify Code Tests
# ============================================================================


class TestVerifyCode:
    """Test suite for POST /admin/verify-code."""

    @pytest.mark.asyncio
    async def test_verify_success_sets_session(self, client, admin_email, last_code):
        await _request_code(client, admin_email)

        response = await _verify(client, admin_email, last_code())

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["token"]
        cookie = response.headers["set-cookie"]
        assert f"{settings.ADMIN_SESSION_COOKIE_NAME}={data['token']}" in cookie
        assert "HttpOnly" in cookie
        assert "samesite=strict" in cookie.lower()

    @pytest.mark.asyncio
    async def test_code_refused_after_expiry(self, client, admin_email, last_code):
        await _request_code(client, admin_email)
        later = utc_now() + timedelta(minutes=settings.ADMIN_CODE_TTL_MINUTES + 1)

        with patch("nextsub.core.db.crud.admin_code.utc_now", return_value=later):
            response = await _verify(client, admin_email, last_code())

        assert response.status_code == 400
        assert response.json() == INVALID_CODE_BODY
        assert "set-cookie" not in response.headers

    @pytest.mark.asyncio
    async def test_correct_code_refused_after_exhaustion(
        self, client, admin_email, last_code
    ):
        await _request_code(client, admin_email)
        code = last_code()

        for _ in range(settings.ADMIN_CODE_MAX_ATTEMPTS):
            response = await _verify(client, admin_email, "wrong-guess")
            assert response.status_code == 400

        response = await _verify(client, admin_email, code)

        assert response.status_code == 400
        assert response.json() == INVALID_CODE_BODY

    @pytest.mark.asyncio
    async def test_failed_attempts_are_persisted(
        self, client, session_factory, admin_email
    ):
        await _request_code(client, admin_email)
        await _verify(client, admin_email, "wrong-guess")
        await _verify(client, admin_email, "wrong-guess")

        async with session_factory() as session:
            record = await admin_code_db.get_live(session, admin_email)
        assert record is not None
        assert record.attempts == 2

    @pytest.mark.asyncio
    async def test_only_newest_code_works(self, client, admin_email, last_code):
        await _request_code(client, admin_email)
        code_a = last_code()
        await _request_code(client, admin_email)
        code_b = last_code()

        response_a = await _verify(client, admin_email, code_a)
        response_b = await _verify(client, admin_email, code_b)

        assert response_a.status_code == 400
        assert response_b.status_code == 200

    @pytest.mark.asyncio
    async def test_code_single_use(self, client, admin_email, last_code):
        await _request_code(client, admin_email)
        code = last_code()

        first = await _verify(client, admin_email, code)
        second = await _verify(client, admin_email, code)

        assert first.status_code == 200
        assert second.status_code == 400
        assert second.json() == INVALID_CODE_BODY

    @pytest.mark.asyncio
    async def test_concurrent_correct_codes_succeed_once(
        self, client, admin_email, last_code
    ):
        await _request_code(client, admin_email)
        code = last_code()

        responses = await asyncio.gather(
            *(_verify(client, admin_email, code) for _ in range(4))
        )

        statuses = sorted(r.status_code for r in responses)
        assert statuses == [200, 400, 400, 400]

    @pytest.mark.asyncio
    async def test_correct_and_wrong_code_race(self, client, admin_email, last_code):
        await _request_code(client, admin_email)
        code = last_code()

        responses = await asyncio.gather(
            _verify(client, admin_email, code),
            _verify(client, admin_email, "wrong-guess"),
        )

        assert sorted(r.status_code for r in responses) == [200, 400]

    @pytest.mark.asyncio
    async def test_verify_without_code_issued(self, client, admin_email):
        response = await _verify(client, admin_email, "a" * 24)

        assert response.status_code == 400
        assert response.json() == INVALID_CODE_BODY

    @pytest.mark.asyncio
    async def test_verify_non_admin_email_forbidden(self, client):
        response = await _verify(client, "someone@nextsub.example.com", "a" * 24)

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_empty_code_rejected(self, client, admin_email):
        response = await _verify(client, admin_email, "")

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_verify_rate_limited(self, client, admin_email):
        with patch.object(settings, "ADMIN_MAX_VERIFY_ATTEMPTS_PER_HOUR", 2):
            for _ in range(2):
                await _verify(client, admin_email, "wrong-guess")
            response = await _verify(client, admin_email, "wrong-guess")

        assert response.status_code == 429
        assert "Retry-After" in response.headers


# ============================================================================
# Session Tests
# ============================================================================


class TestAdminSession:
    """Test suite for GET /admin/me and POST /admin/logout."""

    @pytest.mark.asyncio
    async def test_me_with_bearer_token(self, client, admin_email, admin_token):
        response = await client.get(
            ME_URL, headers={"Authorization": f"Bearer {admin_token}"}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["admin"]["email"] == admin_email
        assert data["admin"]["role"] == "admin"

    @pytest.mark.asyncio
    async def test_me_with_cookie_after_login(self, client, admin_email, last_code):
        await _request_code(client, admin_email)
        await _verify(client, admin_email, last_code())

        # The client stores the session cookie from the login response
        response = await client.get(ME_URL)

        assert response.status_code == 200
        assert response.json()["admin"]["email"] == admin_email

    @pytest.mark.asyncio
    async def test_me_without_session(self, client):
        response = await client.get(ME_URL)

        assert response.status_code == 401
        assert response.json()["success"] is False
        assert response.headers["WWW-Authenticate"] == "Bearer"
        assert settings.ADMIN_SESSION_COOKIE_NAME in response.headers["set-cookie"]

    @pytest.mark.asyncio
    async def test_me_with_invalid_token(self, client):
        response = await client.get(
            ME_URL, headers={"Authorization": "Bearer not-a-token"}
        )

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_logout_clears_cookie(self, client, admin_token):
        response = await client.post(
            LOGOUT_URL, headers={"Authorization": f"Bearer {admin_token}"}
        )

        assert response.status_code == 200
        assert response.json() == {"message": "Logged out.", "success": True}
        cookie = response.headers["set-cookie"]
        assert cookie.startswith(f"{settings.ADMIN_SESSION_COOKIE_NAME}=")
        assert "Max-Age=0" in cookie

    @pytest.mark.asyncio
    async def test_logout_requires_session(self, client):
        response = await client.post(LOGOUT_URL)

        assert response.status_code == 401
