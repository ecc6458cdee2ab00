"""
Test suite for the admin code email handler.

Run tests:
    pytest tests/infrastructure/messaging/test_email_handler.py -v
"""

from datetime import timedelta
from unittest.mock import AsyncMock, patch

import pytest

from nextsub.core.exceptions.types import NotificationException
from nextsub.core.utils import utc_now
from nextsub.infrastructure.messaging.handlers.email_handler import (
    handle_admin_code_email,
)

SEND_PATH = (
    "nextsub.infrastructure.messaging.handlers.email_handler."
    "EmailManagerService.send_admin_code_email"
)


def _event(minutes: int) -> dict:
    return {
        "email": "admin@nextsub.example.com",
        "code": "k7Qz-example-code-123",
        "expires_at": (utc_now() + timedelta(minutes=minutes)).isoformat(),
    }


class TestHandleAdminCodeEmail:
    @pytest.mark.asyncio
    async def test_sends_live_code(self):
        event = _event(minutes=10)

        with patch(SEND_PATH, new_callable=AsyncMock, return_value=True) as mock_send:
            await handle_admin_code_email(event)

        mock_send.assert_awaited_once()
        kwargs = mock_send.call_args.kwargs
        assert kwargs["email"] == "admin@nextsub.example.com"
        assert kwargs["code"] == "k7Qz-example-code-123"
        assert kwargs["expires_at"].tzinfo is not None

    @pytest.mark.asyncio
    async def test_skips_expired_code(self):
        with patch(SEND_PATH, new_callable=AsyncMock) as mock_send:
            await handle_admin_code_email(_event(minutes=-1))

        mock_send.assert_not_called()

    @pytest.mark.asyncio
    async def test_send_failure_raises_for_retry(self):
        with patch(SEND_PATH, new_callable=AsyncMock, return_value=False):
            with pytest.raises(NotificationException):
                await handle_admin_code_email(_event(minutes=10))
