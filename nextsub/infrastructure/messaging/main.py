"""
Standalone message consumer for the admin code email queue.

Usage:
    python -m nextsub.infrastructure.messaging.main
    python manage.py runworker
"""

import asyncio
import signal
from functools import partial

import aio_pika

from nextsub.core.config import rabbitmq_logger, settings
from nextsub.core.services import BrevoService, EmailManagerService, Renderer
from nextsub.infrastructure.messaging.connection import close_connection, get_connection
from nextsub.infrastructure.messaging.consumer import process_message
from nextsub.infrastructure.messaging.queues import get_queue_configs


async def start_consumers(
    keep_alive: bool,
) -> aio_pika.abc.AbstractRobustConnection | None:
    """
    Declare every configured queue and start consuming from it.

    For each queue the main queue and its retry queue (which dead-letters back
    into the main queue once `retry_ttl` elapses) are declared durable.

    Args:
        keep_alive (bool): If True, block forever and close the connection on
            exit. If False, return the connection and let the caller manage it.

    Returns:
        The connection when keep_alive is False, None otherwise.
    """
    conn = await get_connection()
    channel = await conn.channel()
    await channel.set_qos(prefetch_count=10)

    for q in get_queue_configs():
        queue = await channel.declare_queue(q.name, durable=True)

        if retry := q.retry_queue:
            await channel.declare_queue(
                retry,
                durable=True,
                arguments={
                    "x-message-ttl": q.retry_ttl,
                    "x-dead-letter-exchange": "",
                    "x-dead-letter-routing-key": q.name,
                },
            )

        await queue.consume(
            partial(
                process_message,
                handler=q.handler,
                channel=channel,
                retry_queue=q.retry_queue,
                max_retries=q.max_retries,
            ),
            no_ack=False,
        )
        rabbitmq_logger.info(f"Consumer registered for queue {q.name}")

    if keep_alive:
        try:
            await asyncio.Future()  # Run forever
        finally:
            await conn.close()
            rabbitmq_logger.info("Connection closed.")
        return None
    return conn


async def main() -> None:
    """
    Run the consumers until SIGINT or SIGTERM.

    Initializes the email stack (Brevo, templates, email manager), starts the
    consumers and shuts them down cleanly on signal.
    """
    shutdown_event = asyncio.Event()
    conn: aio_pika.abc.AbstractRobustConnection | None = None

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, shutdown_event.set)

    rabbitmq_logger.info("Starting standalone message consumer...")

    try:
        await BrevoService.init(
            api_key=settings.BREVO_API_KEY,
            sender_email=settings.BREVO_SENDER_EMAIL,
            sender_name=settings.BREVO_SENDER_NAME,
        )
        Renderer.initialize()
        EmailManagerService.init()

        conn = await start_consumers(keep_alive=False)
        rabbitmq_logger.info("Message consumers started. Waiting for messages...")

        await shutdown_event.wait()

    finally:
        rabbitmq_logger.info("Shutting down message consumer...")
        if conn:
            await conn.close()
        await close_connection()
        await BrevoService.aclose()
        rabbitmq_logger.info("Message consumer shutdown complete.")


if __name__ == "__main__":
    asyncio.run(main())
