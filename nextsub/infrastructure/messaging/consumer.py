import json
from typing import Any, Callable

import aio_pika

from nextsub.core.config import rabbitmq_logger


async def process_message(
    message: aio_pika.abc.AbstractIncomingMessage,
    handler: Callable[[dict[str, Any]], Any],
    channel: aio_pika.abc.AbstractChannel,
    retry_queue: str | None = None,
    max_retries: int | None = None,
) -> None:
    """
    Run a handler on an incoming message with bounded retries.

    On handler failure the message is republished to `retry_queue` with an
    incremented `x-retry-attempt` header until `max_retries` is reached, and
    is dropped after that. The original delivery is always settled, so a
    failing message never blocks the queue.

    Args:
        message: The incoming message.
        handler: Async function receiving the decoded JSON payload.
        channel: Channel used to republish.
        retry_queue: Queue that delays and feeds messages back to the main queue.
        max_retries: Retry budget. Unlimited if None.
    """
    async with message.process(ignore_processed=True):
        try:
            event = json.loads(message.body.decode())
            await handler(event)
        except Exception as e:
            # Any handler failure becomes a retry; the consumer loop must survive it
            rabbitmq_logger.error(f"Error in handler {handler.__name__}: {type(e).__name__} - {e}")
            headers = dict(message.headers or {})
            attempt = int(headers.get("x-retry-attempt", 0))  # type: ignore[arg-type]

            if retry_queue and (not max_retries or attempt < max_retries):
                headers["x-retry-attempt"] = attempt + 1
                await channel.default_exchange.publish(
                    aio_pika.Message(
                        body=message.body,
                        content_type=message.content_type,
                        delivery_mode=aio_pika.DeliveryMode.PERSISTENT,
                        headers=headers,
                        expiration=message.expiration,
                    ),
                    routing_key=retry_queue,
                )
                rabbitmq_logger.info(
                    f"Message requeued to {retry_queue} (attempt {attempt + 1})"
                )
            else:
                rabbitmq_logger.error(
                    f"Message dropped after {attempt} retries: {type(e).__name__}"
                )

            await message.reject(requeue=False)
