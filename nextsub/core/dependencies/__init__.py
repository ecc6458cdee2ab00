"""
Shared dependencies for FastAPI endpoints.

"""

from nextsub.core.dependencies.client import (
    Client,
    ClientContext,
    get_client_context,
    resolve_client_key,
)
from nextsub.core.dependencies.db import get_async_session
from nextsub.core.dependencies.auth import (
    CurrentAdmin,
    extract_admin_token,
    get_current_admin,
    optional_bearer_scheme,
)

__all__ = [
    "Client",
    "ClientContext",
    "get_client_context",
    "resolve_client_key",
    "get_async_session",
    "CurrentAdmin",
    "extract_admin_token",
    "get_current_admin",
    "optional_bearer_scheme",
]
