"""
Admin session dependencies for FastAPI endpoints.

The session token is read from the session cookie first and from an
`Authorization: Bearer` header second, so browser clients and scripts can
both call admin routes.

Example usage:
    from nextsub.core.dependencies.auth import CurrentAdmin

    @router.get("/me")
    async def me(admin: CurrentAdmin):
        return {"email": admin.email}
"""

from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from nextsub.core.config import auth_logger, settings
from nextsub.core.exceptions.types import AdminSessionException
from nextsub.core.services.token import AdminClaims, TokenIssuer

# auto_error=False so a missing header falls through to our own 401
optional_bearer_scheme = HTTPBearer(auto_error=False)


def extract_admin_token(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None,
) -> str | None:
    """
    Pick the session token from the cookie or the bearer header.

    Args:
        request: The incoming request.
        credentials: Bearer credentials, if an Authorization header was sent.

    Returns:
        str | None: The raw token, or None if neither source has one.
    """
    token = request.cookies.get(settings.ADMIN_SESSION_COOKIE_NAME)
    if token:
        return token
    if credentials is not None and credentials.credentials:
        return credentials.credentials
    return None


async def get_current_admin(
    request: Request,
    credentials: Annotated[
        HTTPAuthorizationCredentials | None, Depends(optional_bearer_scheme)
    ],
) -> AdminClaims:
    """
    Require a valid admin session.

    Args:
        request: The incoming request.
        credentials: Optional bearer credentials.

    Returns:
        AdminClaims: Claims of the authenticated administrator.

    Raises:
        AdminSessionException: 401 if the token is missing, invalid, expired,
            or names someone who is no longer the administrator.
    """
    token = extract_admin_token(request, credentials)
    if token is None:
        auth_logger.debug("Admin session missing")
        raise AdminSessionException()

    claims = TokenIssuer.decode(token)
    if claims is None:
        auth_logger.warning("Admin session rejected: invalid or expired token")
        raise AdminSessionException()

    return claims


CurrentAdmin = Annotated[AdminClaims, Depends(get_current_admin)]

__all__ = [
    "CurrentAdmin",
    "extract_admin_token",
    "get_current_admin",
    "optional_bearer_scheme",
]
