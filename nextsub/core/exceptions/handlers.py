from fastapi import Request, status
from fastapi.responses import JSONResponse

from nextsub.core.config import request_logger, settings
from nextsub.core.exceptions.types import (
    AdminSessionException,
    AppException,
    AuthenticationException,
    BadRequestException,
    DatabaseException,
    ForbiddenException,
    NotificationException,
    RateLimitExceededException,
)


def _error_content(message: str, **extra) -> dict:
    return {"success": False, "detail": message, **extra}


async def general_exception_handler(request: Request, exc: AppException):
    """
    Handles general exceptions by returning a JSON response with a generic message.

    Args:
        request: The request object.
        exc (AppException): The exception instance.

    Returns:
        JSONResponse: A response with the exception's status code (500 by default).
    """
    request_logger.error(
        f"AppException on {request.method} {request.url.path}: {exc}"
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_content("An unexpected error occurred."),
    )


async def database_exception_handler(request: Request, exc: DatabaseException):
    """
    Handles store failures. The cause is logged, the client gets a generic message.

    Args:
        request: The request object.
        exc (DatabaseException): The database exception instance.

    Returns:
        JSONResponse: A response with status code 500.
    """
    request_logger.error(
        f"DatabaseException on {request.method} {request.url.path}: {exc}"
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_content("Internal server error."),
    )


async def notification_exception_handler(
    request: Request, exc: NotificationException
):
    """
    Handles admin code delivery failures.

    Args:
        request: The request object.
        exc (NotificationException): The notification exception instance.

    Returns:
        JSONResponse: A response with status code 500.
    """
    request_logger.error(
        f"NotificationException on {request.method} {request.url.path}: {exc}"
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_content(str(exc)),
    )


async def authentication_exception_handler(
    request: Request, exc: AuthenticationException
):
    """
    Handles authentication exceptions by returning a JSON response.

    Args:
        request: The request object.
        exc (AuthenticationException): The authentication exception instance.

    Returns:
        JSONResponse: A response containing the error message and status code 401.
    """
    request_logger.warning(f"AuthenticationException: {exc}")
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_content(str(exc)),
        headers={"WWW-Authenticate": "Bearer"},
    )


async def admin_session_exception_handler(
    request: Request, exc: AdminSessionException
):
    """
    Handles a missing or invalid admin session and clears the session cookie.

    Args:
        request: The request object.
        exc (AdminSessionException): The admin session exception instance.

    Returns:
        JSONResponse: A 401 response that also expires the admin cookie.
    """
    request_logger.warning(f"AdminSessionException: {exc}")
    response = JSONResponse(
        status_code=exc.status_code,
        content=_error_content(str(exc)),
        headers={"WWW-Authenticate": "Bearer"},
    )
    response.delete_cookie(
        key=settings.ADMIN_SESSION_COOKIE_NAME,
        path="/",
        secure=settings.is_production,
        httponly=True,
        samesite="strict",
    )
    return response


async def forbidden_exception_handler(request: Request, exc: ForbiddenException):
    """
    Handles forbidden exceptions by returning a JSON response.

    Args:
        request: The request object.
        exc (ForbiddenException): The forbidden exception instance.

    Returns:
        JSONResponse: A response containing the error message and status code 403.
    """
    request_logger.warning(f"ForbiddenException: {exc}")
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_content(str(exc)),
    )


async def bad_request_exception_handler(request: Request, exc: BadRequestException):
    """
    Handles bad request exceptions, including failed code verifications.

    Args:
        request: The request object.
        exc (BadRequestException): The bad request exception instance.

    Returns:
        JSONResponse: A response containing the error message and status code 400.
    """
    request_logger.warning(f"{type(exc).__name__}: {exc}")
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_content(str(exc)),
    )


async def rate_limit_exception_handler(
    request: Request, exc: RateLimitExceededException
):
    """
    Handles rate limit exceeded exceptions by returning a JSON response.

    Args:
        request: The request object.
        exc (RateLimitExceededException): The rate limit exception instance.

    Returns:
        JSONResponse: A response with status code 429, `retry_after` in the body
                      and a Retry-After header.
    """
    request_logger.warning(f"RateLimitExceededException: {exc}")
    headers = {}
    if exc.retry_after:
        headers["Retry-After"] = str(exc.retry_after)
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_content(str(exc), retry_after=exc.retry_after),
        headers=headers,
    )


exception_schema = {
    status.HTTP_500_INTERNAL_SERVER_ERROR: {
        "description": "Internal Server Error",
        "content": {
            "application/json": {
                "example": {"success": False, "detail": "Internal server error."},
            }
        },
    },
    status.HTTP_429_TOO_MANY_REQUESTS: {
        "description": "Rate Limit Exceeded",
        "content": {
            "application/json": {
                "example": {
                    "success": False,
                    "detail": "Too many requests. Please try again later.",
                    "retry_after": 1800,
                },
            }
        },
    },
}


__all__ = [
    "general_exception_handler",
    "database_exception_handler",
    "notification_exception_handler",
    "authentication_exception_handler",
    "admin_session_exception_handler",
    "forbidden_exception_handler",
    "bad_request_exception_handler",
    "rate_limit_exception_handler",
    "exception_schema",
]
