from functools import lru_cache
from typing import Annotated, Any, Callable

from pydantic import BaseModel, Field, model_validator

from nextsub.infrastructure.messaging.handlers.email_handler import (
    handle_admin_code_email,
)

ADMIN_CODE_EMAILS_QUEUE = "admin_code_emails"


class QueueConfig(BaseModel):
    name: Annotated[str, Field(description="Name of the main queue")]
    handler: Annotated[
        Callable[[dict[str, Any]], Any],
        Field(description="Function to handle messages from the queue"),
    ]
    retry_queue: Annotated[
        str | None, Field(description="Name of the retry queue")
    ] = None
    retry_ttl: Annotated[
        int | None,
        Field(gt=0, description="Time to live in milliseconds in the retry queue"),
    ] = None
    max_retries: Annotated[
        int | None,
        Field(gt=0, description="Maximum number of retries"),
    ] = None

    @model_validator(mode="before")
    @classmethod
    def check_retry_configuration(cls, values: dict[str, Any]) -> dict[str, Any]:
        if values.get("retry_queue") and not values.get("retry_ttl"):
            raise ValueError("'retry_ttl' must be set when using 'retry_queue'.")
        return values


QUEUE_CONFIG = [
    # Admin login codes. Retried quickly and dropped once retries run out,
    # so no plaintext code is parked after it stopped mattering.
    {
        "name": ADMIN_CODE_EMAILS_QUEUE,
        "handler": handle_admin_code_email,
        "retry_queue": f"{ADMIN_CODE_EMAILS_QUEUE}_retry",
        "retry_ttl": 15 * 1000,  # 15 seconds
        "max_retries": 3,
    },
]


@lru_cache()
def get_queue_configs() -> list[QueueConfig]:
    return [QueueConfig.model_validate(config) for config in QUEUE_CONFIG]
