"""
Test suite for RabbitMQ message consumer.

Run tests:
    pytest tests/infrastructure/messaging/test_consumer.py -v
"""

import json
from unittest.mock import AsyncMock

import aio_pika
import pytest

from nextsub.infrastructure.messaging.consumer import process_message


def _make_message(body: dict, headers: dict | None = None) -> AsyncMock:
    mock_message = AsyncMock(spec=aio_pika.IncomingMessage)
    mock_message.body = json.dumps(body).encode()
    mock_message.headers = headers or {}
    mock_message.content_type = "application/json"
    mock_message.expiration = None

    mock_context = AsyncMock()
    mock_context.__aenter__ = AsyncMock()
    mock_context.__aexit__ = AsyncMock(return_value=False)
    mock_message.process.return_value = mock_context
    return mock_message


def _make_channel() -> AsyncMock:
    mock_channel = AsyncMock(spec=aio_pika.Channel)
    mock_channel.default_exchange = AsyncMock()
    return mock_channel


async def _failing_handler(event):
    raise ValueError("Processing failed")


class TestProcessMessage:
    """Test suite for process_message function."""

    @pytest.mark.asyncio
    async def test_process_message_success(self):
        mock_message = _make_message({"email": "admin@nextsub.example.com"})
        handled = []

        async def handler(event):
            handled.append(event)

        await process_message(mock_message, handler, _make_channel())

        assert handled == [{"email": "admin@nextsub.example.com"}]
        mock_message.reject.assert_not_called()

    @pytest.mark.asyncio
    async def test_failure_without_retry_queue_rejects(self):
        mock_message = _make_message({"data": "test"})
        mock_channel = _make_channel()

        await process_message(mock_message, _failing_handler, mock_channel)

        mock_message.reject.assert_called_once_with(requeue=False)
        mock_channel.default_exchange.publish.assert_not_called()

    @pytest.mark.asyncio
    async def test_failure_republishes_to_retry_queue(self):
        mock_message = _make_message({"data": "test"}, headers={"x-retry-attempt": 1})
        mock_channel = _make_channel()

        await process_message(
            mock_message,
            _failing_handler,
            mock_channel,
            retry_queue="admin_code_emails_retry",
            max_retries=3,
        )

        mock_channel.default_exchange.publish.assert_called_once()
        call_args = mock_channel.default_exchange.publish.call_args
        assert call_args.kwargs["routing_key"] == "admin_code_emails_retry"
        republished = call_args.args[0]
        assert republished.headers["x-retry-attempt"] == 2
        assert republished.body == mock_message.body
        mock_message.reject.assert_called_once_with(requeue=False)

    @pytest.mark.asyncio
    async def test_exhausted_message_dropped(self):
        """A message out of retries is rejected and published nowhere."""
        mock_message = _make_message({"data": "test"}, headers={"x-retry-attempt": 3})
        mock_channel = _make_channel()

        await process_message(
            mock_message,
            _failing_handler,
            mock_channel,
            retry_queue="admin_code_emails_retry",
            max_retries=3,
        )

        mock_channel.default_exchange.publish.assert_not_called()
        mock_message.reject.assert_called_once_with(requeue=False)

    @pytest.mark.asyncio
    async def test_invalid_json_is_rejected(self):
        mock_message = _make_message({})
        mock_message.body = b"not json"
        handler = AsyncMock()

        await process_message(mock_message, handler, _make_channel())

        handler.assert_not_called()
        mock_message.reject.assert_called_once_with(requeue=False)
