"""
Client identification for rate limiting and auditing.

"""

from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, Request

from nextsub.core.config import settings

UNKNOWN_CLIENT = "unknown"


@dataclass(frozen=True)
class ClientContext:
    """
    Who is calling, as far as the network can tell.

    Attributes:
        client_key: Network address used as the rate-limit key.
        client_agent: The User-Agent header, truncated for storage.
    """

    client_key: str
    client_agent: str | None = None


def resolve_client_key(request: Request) -> str:
    """
    Determine the client's network address.

    X-Forwarded-For is only honoured when TRUST_FORWARDED_FOR is set, since
    a client can put anything in it when no proxy overwrites it.

    Args:
        request: The incoming request.

    Returns:
        str: The client address, or "unknown".
    """
    if settings.TRUST_FORWARDED_FOR:
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            first_hop = forwarded.split(",")[0].strip()
            if first_hop:
                return first_hop[:64]
    if request.client and request.client.host:
        return request.client.host
    return UNKNOWN_CLIENT


async def get_client_context(request: Request) -> ClientContext:
    user_agent = request.headers.get("user-agent")
    return ClientContext(
        client_key=resolve_client_key(request),
        client_agent=user_agent[:512] if user_agent else None,
    )


Client = Annotated[ClientContext, Depends(get_client_context)]

__all__ = [
    "Client",
    "ClientContext",
    "UNKNOWN_CLIENT",
    "get_client_context",
    "resolve_client_key",
]
