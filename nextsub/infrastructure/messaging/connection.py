import aio_pika

from nextsub.core.config import rabbitmq_logger, settings

_connection: aio_pika.abc.AbstractRobustConnection | None = None


async def get_connection() -> aio_pika.abc.AbstractRobustConnection:
    """
    Return the process-wide robust RabbitMQ connection, reconnecting if it was closed.

    Returns:
        AbstractRobustConnection: An open connection to RABBITMQ_URL.
    """
    global _connection
    if _connection is None or _connection.is_closed:
        _connection = await aio_pika.connect_robust(settings.RABBITMQ_URL)
        rabbitmq_logger.info("RabbitMQ connection established")
    return _connection


async def close_connection() -> None:
    global _connection
    if _connection is not None and not _connection.is_closed:
        await _connection.close()
        rabbitmq_logger.info("RabbitMQ connection closed")
    _connection = None
