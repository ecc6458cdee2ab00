import logging
from logging.handlers import RotatingFileHandler
import os
from typing import Optional

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Sentry is a process-wide singleton
_sentry_initialized = False


def init_sentry(
    dsn: str,
    environment: str = "development",
    traces_sample_rate: float = 1.0,
) -> bool:
    """
    Initialize the Sentry SDK once for the whole process.

    Args:
        dsn (str): Sentry DSN. An empty DSN disables Sentry.
        environment (str): Sentry environment name.
        traces_sample_rate (float): Performance tracing sample rate (0.0 to 1.0).

    Returns:
        bool: True if Sentry was initialized by this call, False otherwise.
    """
    global _sentry_initialized

    if _sentry_initialized or not dsn:
        return False

    try:
        import sentry_sdk
        from sentry_sdk.integrations.asyncio import AsyncioIntegration
        from sentry_sdk.integrations.logging import LoggingIntegration
    except ImportError:
        return False

    sentry_sdk.init(
        dsn=dsn,
        environment=environment,
        traces_sample_rate=traces_sample_rate,
        # Login codes and tokens must never leave the process
        send_default_pii=False,
        integrations=[
            LoggingIntegration(level=logging.INFO, event_level=logging.ERROR),
            AsyncioIntegration(),
        ],
    )
    _sentry_initialized = True
    return True


def setup_logger(
    name: str,
    log_file: str,
    level: int = logging.INFO,
    sentry_tag: Optional[str] = None,
) -> logging.Logger:
    """
    Build a named logger that writes to a rotating file and to the console.

    Calling it twice with the same name returns the already configured logger
    instead of stacking duplicate handlers.

    Args:
        name (str): The logger name.
        log_file (str): Path of the rotating log file.
        level (int, optional): Logging level. Defaults to logging.INFO.
        sentry_tag (str, optional): Component tag attached to Sentry events.

    Returns:
        logging.Logger: The configured logger.
    """
    if sentry_tag and _sentry_initialized:
        import sentry_sdk

        sentry_sdk.set_tag("component", sentry_tag)

    logger = logging.getLogger(name)
    logger.setLevel(level)
    if logger.handlers:
        return logger

    formatter = logging.Formatter(LOG_FORMAT)

    log_dir = os.path.dirname(log_file)
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
    file_handler = RotatingFileHandler(
        log_file, maxBytes=5 * 1024 * 1024, backupCount=3, encoding="utf-8"
    )
    file_handler.setLevel(level)
    file_handler.setFormatter(formatter)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)

    logger.addHandler(file_handler)
    logger.addHandler(console_handler)
    return logger
