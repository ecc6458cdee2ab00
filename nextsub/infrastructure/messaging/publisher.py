from datetime import timedelta
import json
from typing import Any

import aio_pika

from nextsub.core.config import rabbitmq_logger
from nextsub.infrastructure.messaging.connection import get_connection


async def publish_event(
    queue_name: str,
    event: dict[str, Any],
    headers: dict[str, Any] | None = None,
    expiration: timedelta | None = None,
) -> None:
    """
    Publish a persistent JSON message to a durable queue.

    Args:
        queue_name (str): Target queue, declared durable if missing.
        event (dict[str, Any]): JSON-serializable payload.
        headers (dict[str, Any] | None): Extra AMQP headers.
        expiration (timedelta | None): Per-message TTL; the broker drops the
            message once it passes.

    Raises:
        aio_pika.exceptions.AMQPException: If the broker cannot be reached or refuses the message.
    """
    connection = await get_connection()
    async with connection.channel() as channel:
        await channel.declare_queue(queue_name, durable=True)

        message = aio_pika.Message(
            body=json.dumps(event).encode(),
            headers=headers or {},
            content_type="application/json",
            delivery_mode=aio_pika.DeliveryMode.PERSISTENT,
            expiration=expiration,
        )

        await channel.default_exchange.publish(message, routing_key=queue_name)
    rabbitmq_logger.info(f"Event published to {queue_name}")
