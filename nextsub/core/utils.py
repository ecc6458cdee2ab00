"""
Utility functions for the application.

- JWT token creation and decoding
- Masking of one-time codes for logs and audit entries
- Email normalization
- Timezone-aware clock used by the code store and the rate limiter
- OpenAPI export helpers
"""

from datetime import datetime, timedelta, timezone
import json
from typing import Any
import uuid

import aiofiles
from fastapi import FastAPI
import jwt

from nextsub.core.config import settings, utils_logger


def utc_now() -> datetime:
    """
    Return the current time as a timezone-aware UTC datetime.

    Every expiry and window computation goes through this function so tests
    can move the clock by patching it where it is imported.
    """
    return datetime.now(timezone.utc)


def ensure_aware(value: datetime) -> datetime:
    """
    Attach UTC to a naive datetime.

    SQLite drops timezone information on round trips; PostgreSQL keeps it.

    Args:
        value: A naive or aware datetime.

    Returns:
        datetime: The same instant, timezone-aware in UTC.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def normalize_email(email: str | None) -> str:
    """
    Normalize an email address for identity comparison.

    Args:
        email: Raw email as received from a client. Can be None.

    Returns:
        str: The email stripped of surrounding whitespace and lower-cased,
             or an empty string for None.

    Examples:
        >>> normalize_email("  Admin@Example.COM ")
        'admin@example.com'
    """
    if email is None:
        return ""
    return email.strip().lower()


def mask_code(code: str | None, visible: int = 2) -> str:
    """
    Mask a one-time code so only its last characters remain readable.

    Args:
        code: The code to mask. Can be None.
        visible: Number of trailing characters left in clear text.

    Returns:
        str: The masked code (e.g. "Ab3$...xZ" -> "********xZ").
             Short codes are masked entirely.

    Examples:
        >>> mask_code("Ab3$efgh")
        '******gh'
        >>> mask_code("abc")
        '***'
    """
    if not code:
        return ""
    if len(code) <= visible * 2:
        return "*" * len(code)
    return f"{'*' * (len(code) - visible)}{code[-visible:]}"


def create_jwt_token(
    data: dict[str, Any] | None, expires_delta: timedelta | None = None
) -> str:
    """
    Create a JWT token with the given data and expiration time.

    The token is signed with JWT_SECRET_KEY using JWT_ALGORITHM and always
    carries `exp`, `iat` and a random `jti` claim.

    Args:
        data: Dictionary containing the claims to encode. Cannot be None.
        expires_delta: Optional token lifetime. Defaults to 15 minutes.
                       Can be negative for immediate expiration (testing only).

    Returns:
        str: Encoded JWT token string in the format: header.payload.signature

    Raises:
        ValueError: If data is None.

    Examples:
        >>> token = create_jwt_token({"sub": "admin@example.com"}, timedelta(hours=8))
        >>> len(token.split("."))
        3
    """
    if data is None:
        utils_logger.error("Attempted to create JWT token with None data")
        raise ValueError("Data cannot be None")

    try:
        to_encode = data.copy()

        if expires_delta is None:
            expires_delta = timedelta(minutes=15)

        issued_at = utc_now()
        expire = issued_at + expires_delta
        to_encode["exp"] = expire
        to_encode["iat"] = issued_at
        to_encode["jti"] = str(uuid.uuid4())

        encoded_jwt = jwt.encode(
            to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM
        )

        utils_logger.info(
            f"JWT token created successfully with expiration: {expire.isoformat()}"
        )
        return encoded_jwt

    except Exception as e:
        utils_logger.error(f"Failed to create JWT token: {type(e).__name__} - {str(e)}")
        raise


def decode_jwt_token(token: str | None) -> dict[str, Any] | None:
    """
    Decode and validate a JWT token.

    Args:
        token: The JWT token string to decode. Can be None or empty.

    Returns:
        dict[str, Any] | None: The decoded claims, or None if the token is
                               missing, expired, tampered or otherwise invalid.

    Examples:
        >>> decode_jwt_token("invalid.token.here") is None
        True
    """
    if not token:
        utils_logger.warning(
            f"JWT token decoding attempted with invalid token: "
            f"{'None' if token is None else 'empty string'}"
        )
        return None

    try:
        payload = jwt.decode(
            token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM]
        )
        return payload

    except jwt.ExpiredSignatureError:
        utils_logger.warning("JWT token decoding failed: token has expired")
        return None
    except jwt.InvalidTokenError as e:
        utils_logger.warning(
            f"JWT token decoding failed: invalid token - {type(e).__name__}"
        )
        return None


def generate_openapi_json(app: FastAPI) -> str:
    """
    Generate OpenAPI JSON schema for the given FastAPI application.

    Args:
        app: The FastAPI application instance.

    Returns:
        A pretty-printed JSON string of the OpenAPI schema.
    """
    openapi_json = json.dumps(app.openapi(), indent=4)
    utils_logger.info("OpenAPI JSON schema generated successfully")
    return openapi_json


async def write_to_file_async(file_path: str, data: str) -> None:
    """
    Asynchronously write data to a file.

    Args:
        file_path: Path to the file where data should be written.
        data: The string data to write to the file.
    """
    try:
        async with aiofiles.open(file_path, mode="w", encoding="utf-8") as file:
            await file.write(data)
        utils_logger.info(f"Data written to file {file_path} successfully.")
    except OSError as e:
        utils_logger.error(
            f"Failed to write data to file {file_path}: {type(e).__name__} - {str(e)}"
        )
        raise
