"""
Admin authentication router.

This module provides endpoints for:
- Requesting a one-time admin code by email
- Verifying the code and opening an admin session
- Reading and closing the admin session

All endpoints are prefixed with /admin when mounted in the main app.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from nextsub.core.config import settings
from nextsub.core.dependencies import Client, CurrentAdmin, get_async_session
from nextsub.core.exceptions.handlers import exception_schema
from nextsub.core.exceptions.types import InvalidOrExpiredCodeException
from nextsub.core.schemas.admin import (
    AdminInfo,
    AdminInfoResponse,
    MessageResponse,
    RequestCodeRequest,
    RequestCodeResponse,
    VerifyCodeRequest,
    VerifyCodeResponse,
)
from nextsub.core.services.admin_auth import AdminAuthService
from nextsub.core.services.token import IssuedToken

router = APIRouter(prefix="/admin")


def _set_session_cookie(response: Response, issued: IssuedToken) -> None:
    response.set_cookie(
        key=settings.ADMIN_SESSION_COOKIE_NAME,
        value=issued.token,
        max_age=issued.max_age,
        path="/",
        httponly=True,
        secure=settings.is_production,
        samesite="strict",
    )


def _clear_session_cookie(response: Response) -> None:
    response.delete_cookie(
        key=settings.ADMIN_SESSION_COOKIE_NAME,
        path="/",
        httponly=True,
        secure=settings.is_production,
        samesite="strict",
    )


_forbidden_schema = {
    status.HTTP_403_FORBIDDEN: {
        "description": "Email is not the administrator's",
        "content": {
            "application/json": {
                "example": {"success": False, "detail": "Access denied."}
            }
        },
    },
}

_session_schema = {
    status.HTTP_401_UNAUTHORIZED: {
        "description": "Missing, invalid or expired admin session",
        "content": {
            "application/json": {
                "example": {
                    "success": False,
                    "detail": "Admin authentication required.",
                }
            }
        },
    },
}


@router.post(
    "/request-code",
    response_model=RequestCodeResponse,
    summary="Request an admin login code",
    description="""
## Request a One-Time Admin Code

Sends a single-use code to the administrator's email address. Any code
issued earlier stops working as soon as the new one is stored.

### Flow

1. **Submit** the administrator's email
2. **Receive** the code by email (valid for `ADMIN_CODE_TTL_MINUTES`)
3. **Verify** it with `POST /admin/verify-code`

### Response Headers

| Header | Meaning |
|--------|---------|
| `X-RateLimit-Limit` | Requests allowed per window |
| `X-RateLimit-Remaining` | Requests left in the current window |
| `X-RateLimit-Reset` | When the window resets (ISO 8601) |

### Error Responses

| Status | Reason |
|--------|--------|
| `403 Forbidden` | The email is not the administrator's |
| `422 Unprocessable Entity` | Malformed email |
| `429 Too Many Requests` | Too many requests from this client; see `Retry-After` |
| `500 Internal Server Error` | The code could not be stored or sent |
""",
    responses={**_forbidden_schema, **exception_schema},
)
async def request_code(
    request_data: RequestCodeRequest,
    response: Response,
    client: Client,
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> RequestCodeResponse:
    """
    Issue and send a new admin code.

    The code is stored and handed to delivery inside one transaction that
    the service commits, so a delivery failure leaves any previous code as
    it was.

    Args:
        request_data (RequestCodeRequest): The administrator's email.
        response (Response): Used to attach the rate-limit headers.
        client (ClientContext): The caller's address and user agent.
        session (AsyncSession): The async database session.

    Returns:
        RequestCodeResponse: Confirmation with the code's expiry.
    """
    issued = await AdminAuthService.request_code(
        session=session,
        email=request_data.email,
        client=client,
    )

    response.headers.update(issued.rate_limit.headers)
    return RequestCodeResponse(
        message=(
            f"Admin code sent. It expires in {settings.ADMIN_CODE_TTL_MINUTES} minutes."
        ),
        expires_at=issued.expires_at,
    )


@router.post(
    "/verify-code",
    response_model=VerifyCodeResponse,
    summary="Verify an admin login code",
    description="""
## Verify the Admin Code

Exchanges a valid code for an admin session. The session token is returned
in the body and set as an HTTP-only cookie.

### Notes

- A code works **once**
- Each wrong guess counts against the code; after `ADMIN_CODE_MAX_ATTEMPTS`
  wrong guesses the code stops working even if it has not expired
- Every failure (unknown, wrong, expired, used or exhausted code) returns
  the same `400` response

### Error Responses

| Status | Reason |
|--------|--------|
| `400 Bad Request` | Invalid or expired code |
| `403 Forbidden` | The email is not the administrator's |
| `422 Unprocessable Entity` | Malformed body |
| `429 Too Many Requests` | Too many attempts from this client; see `Retry-After` |
""",
    responses={
        status.HTTP_400_BAD_REQUEST: {
            "description": "Invalid or expired code",
            "content": {
                "application/json": {
                    "example": {"success": False, "detail": "Invalid or expired code."}
                }
            },
        },
        **_forbidden_schema,
        **exception_schema,
    },
)
async def verify_code(
    request_data: VerifyCodeRequest,
    response: Response,
    client: Client,
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> VerifyCodeResponse:
    """
    Verify an admin code and open a session.

    The service commits before a failure is raised, so wrong guesses are
    counted even though the request fails.

    Args:
        request_data (VerifyCodeRequest): The administrator's email and code.
        response (Response): Used to set the session cookie.
        client (ClientContext): The caller's address and user agent.
        session (AsyncSession): The async database session.

    Returns:
        VerifyCodeResponse: The session token and its expiry.

    Raises:
        InvalidOrExpiredCodeException: For every unsuccessful verification.
    """
    result = await AdminAuthService.verify_code(
        session=session,
        email=request_data.email,
        code=request_data.code,
        client=client,
    )

    if result.rate_limit is not None:
        response.headers.update(result.rate_limit.headers)

    if not result.succeeded or result.token is None:
        raise InvalidOrExpiredCodeException()

    _set_session_cookie(response, result.token)
    return VerifyCodeResponse(
        message="Admin login successful.",
        token=result.token.token,
        expires_at=result.token.expires_at,
    )


@router.get(
    "/me",
    response_model=AdminInfoResponse,
    summary="Get the current admin session",
    responses=_session_schema,
)
async def me(admin: CurrentAdmin) -> AdminInfoResponse:
    return AdminInfoResponse(
        admin=AdminInfo(
            email=admin.email,
            role=admin.role,
            expires_at=admin.expires_at,
        )
    )


@router.post(
    "/logout",
    response_model=MessageResponse,
    summary="End the admin session",
    description="""
Clears the session cookie. Tokens are stateless, so a copy of the token
kept elsewhere stays valid until it expires.
""",
    responses=_session_schema,
)
async def logout(
    admin: CurrentAdmin,
    response: Response,
    client: Client,
) -> MessageResponse:
    AdminAuthService.logout(admin.email, client)
    _clear_session_cookie(response)
    return MessageResponse(message="Logged out.")
