"""
Admin authentication schemas for request validation and response serialization.

- Requesting a one-time admin code
- Verifying the code and opening an admin session
- Reading the current admin session
"""

from datetime import datetime
from typing import Annotated

from pydantic import BaseModel, ConfigDict, EmailStr, Field, StringConstraints

from nextsub.core.enums import AdminRole

AdminCodeStr = Annotated[
    str,
    StringConstraints(min_length=1, max_length=128),
    Field(description="The one-time admin code from the email"),
]


class MessageResponse(BaseModel):
    """Generic message response."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {"message": "Operation completed successfully", "success": True}
        }
    )

    message: str
    success: bool = True


class RequestCodeRequest(BaseModel):
    """Request schema for sending an admin code."""

    model_config = ConfigDict(
        json_schema_extra={"example": {"email": "admin@example.com"}}
    )

    email: Annotated[EmailStr, Field(description="The administrator's email address")]


class RequestCodeResponse(MessageResponse):
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "message": "Admin code sent. It expires in 10 minutes.",
                "success": True,
                "expires_at": "2026-01-01T12:10:00Z",
            }
        }
    )

    expires_at: datetime


class VerifyCodeRequest(BaseModel):
    """Request schema for verifying an admin code."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {"email": "admin@example.com", "code": "Xy7#pQ2!rT9@kL4$mN8&"}
        }
    )

    email: Annotated[EmailStr, Field(description="The administrator's email address")]
    # Codes may contain leading or trailing symbols, so whitespace is not stripped
    code: AdminCodeStr


class VerifyCodeResponse(MessageResponse):
    """Response for a successful verification. The token is also set as a cookie."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "message": "Admin login successful.",
                "success": True,
                "token": "eyJhbGciOiJIUzI1NiIsInR5cCI6IkpXVCJ9...",
                "expires_at": "2026-01-01T20:00:00Z",
            }
        }
    )

    token: str
    expires_at: datetime


class AdminInfo(BaseModel):
    email: str
    role: AdminRole
    expires_at: datetime


class AdminInfoResponse(BaseModel):
    """The authenticated administrator."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "success": True,
                "admin": {
                    "email": "admin@example.com",
                    "role": "admin",
                    "expires_at": "2026-01-01T20:00:00Z",
                },
            }
        }
    )

    admin: AdminInfo
    success: bool = True
