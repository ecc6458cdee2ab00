"""
Test suite for EmailManagerService and the admin code templates.

Run tests:
    pytest tests/core/services/test_email_manager.py -v
"""

from datetime import timedelta
from unittest.mock import AsyncMock, patch

import pytest

from nextsub.core.exceptions.types import AppException
from nextsub.core.services.email_manager import EmailManagerService
from nextsub.core.services.template import Renderer
from nextsub.core.utils import utc_now

SEND_PATH = "nextsub.core.services.email_manager.BrevoService.send_transactional_email"


@pytest.fixture(autouse=True)
def renderer():
    Renderer.initialize()
    EmailManagerService.init()
    yield
    Renderer._env = None
    EmailManagerService._initialized = False


class TestRenderer:
    @pytest.mark.asyncio
    async def test_render_requires_initialize(self):
        Renderer._env = None

        with pytest.raises(RuntimeError):
            await Renderer.render_template("emails/admin_code.txt", {})

    @pytest.mark.asyncio
    async def test_html_is_escaped_text_is_not(self):
        context = {
            "app_name": "Next Subscription",
            "code": "a<b&c",
            "expiry_minutes": 10,
            "expires_at": "2026-01-01 12:10 UTC",
            "year": 2026,
        }

        html = await Renderer.render_template("emails/admin_code.html", context)
        text = await Renderer.render_template("emails/admin_code.txt", context)

        assert "a&lt;b&amp;c" in html
        assert "a<b&c" in text
        assert "10 minutes" in text


class TestSendAdminCodeEmail:
    @pytest.mark.asyncio
    async def test_sends_code_in_both_parts(self):
        expires_at = utc_now() + timedelta(minutes=10)

        with patch(SEND_PATH, new_callable=AsyncMock) as mock_send:
            sent = await EmailManagerService.send_admin_code_email(
                email="admin@nextsub.example.com",
                code="Zq7-example-code-0042",
                expires_at=expires_at,
            )

        assert sent is True
        kwargs = mock_send.call_args.kwargs
        assert kwargs["to"][0].email == "admin@nextsub.example.com"
        assert "Zq7-example-code-0042" in kwargs["htmlContent"]
        assert "Zq7-example-code-0042" in kwargs["textContent"]
        assert kwargs["tags"] == ["admin-code"]

    @pytest.mark.asyncio
    async def test_provider_failure_returns_false(self):
        with patch(
            SEND_PATH,
            new_callable=AsyncMock,
            side_effect=AppException("Brevo error after retries: 503", 503),
        ):
            sent = await EmailManagerService.send_admin_code_email(
                email="admin@nextsub.example.com",
                code="Zq7-example-code-0042",
                expires_at=utc_now() + timedelta(minutes=10),
            )

        assert sent is False
