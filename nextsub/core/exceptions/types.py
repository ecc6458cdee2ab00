from fastapi import status


class AppException(Exception):
    """Base application exception."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        details: dict | None = None,
    ):
        self.message = message
        self.status_code = status_code or status.HTTP_500_INTERNAL_SERVER_ERROR
        self.details = details
        super().__init__(message)


class DatabaseException(AppException):
    """Exception raised when the code store or the rate-limit store fails."""

    def __init__(self, message: str = "A database error occurred."):
        super().__init__(message, status.HTTP_500_INTERNAL_SERVER_ERROR)


class NotificationException(AppException):
    """Exception raised when an admin code could not be handed to delivery."""

    def __init__(self, message: str = "Failed to send the admin code."):
        super().__init__(message, status.HTTP_500_INTERNAL_SERVER_ERROR)


class AuthenticationException(AppException):
    """Exception raised for authentication-related errors."""

    def __init__(self, message: str = "Authentication failed."):
        super().__init__(message, status.HTTP_401_UNAUTHORIZED)


class AdminSessionException(AuthenticationException):
    """Exception raised when the admin session token is missing or invalid."""

    def __init__(self, message: str = "Admin authentication required."):
        super().__init__(message)


class ForbiddenException(AppException):
    """Exception raised when access is forbidden."""

    def __init__(self, message: str = "Access forbidden."):
        super().__init__(message, status.HTTP_403_FORBIDDEN)


class IdentityMismatchException(ForbiddenException):
    """Exception raised when the supplied email is not the admin identity."""

    def __init__(self, message: str = "Access denied."):
        super().__init__(message)


class BadRequestException(AppException):
    """Exception raised for bad request errors."""

    def __init__(self, message: str = "Bad request."):
        super().__init__(message, status.HTTP_400_BAD_REQUEST)


class InvalidOrExpiredCodeException(BadRequestException):
    """
    Exception raised for every failed code verification.

    Missing, wrong, expired, exhausted and already-consumed codes all map
    here so the response never tells them apart.
    """

    def __init__(self, message: str = "Invalid or expired code."):
        super().__init__(message)


class RateLimitExceededException(AppException):
    """Exception raised when rate limit is exceeded."""

    def __init__(
        self,
        message: str = "Too many requests. Please try again later.",
        retry_after: int | None = None,
    ):
        super().__init__(message, status.HTTP_429_TOO_MANY_REQUESTS)
        self.retry_after = retry_after


__all__ = [
    "AppException",
    "DatabaseException",
    "NotificationException",
    "AuthenticationException",
    "AdminSessionException",
    "ForbiddenException",
    "IdentityMismatchException",
    "BadRequestException",
    "InvalidOrExpiredCodeException",
    "RateLimitExceededException",
]
