"""
Admin session tokens.

Tokens are stateless HS256 JWTs. Expiry is their only termination path;
logout just removes the cookie on the client.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from nextsub.core.config import auth_logger, settings
from nextsub.core.enums import AdminRole
from nextsub.core.utils import create_jwt_token, decode_jwt_token, utc_now

ADMIN_TOKEN_TYPE = "admin"


@dataclass(frozen=True)
class IssuedToken:
    token: str
    expires_at: datetime
    max_age: int  # seconds, for the session cookie


@dataclass(frozen=True)
class AdminClaims:
    email: str
    role: AdminRole
    expires_at: datetime


class TokenIssuer:
    """Signs and validates admin session tokens."""

    @classmethod
    def issue(cls, principal_id: str, role: AdminRole = AdminRole.ADMIN) -> IssuedToken:
        """
        Sign a session token for the administrator.

        Args:
            principal_id: The administrator's normalized email.
            role: Role claim. Only "admin" exists.

        Returns:
            IssuedToken: The encoded token with its expiry and cookie max-age.
        """
        lifetime = timedelta(hours=settings.ADMIN_SESSION_HOURS)
        token = create_jwt_token(
            {
                "sub": principal_id,
                "email": principal_id,
                "role": role.value,
                "type": ADMIN_TOKEN_TYPE,
            },
            expires_delta=lifetime,
        )
        auth_logger.info(f"Admin session token issued for {principal_id}")
        return IssuedToken(
            token=token,
            expires_at=utc_now() + lifetime,
            max_age=int(lifetime.total_seconds()),
        )

    @classmethod
    def decode(cls, token: str | None) -> AdminClaims | None:
        """
        Validate a session token.

        Args:
            token: Encoded token from the cookie or the Authorization header.

        Returns:
            AdminClaims if the signature, expiry, type and role all check out
            and the subject is still the configured administrator, else None.
        """
        payload = decode_jwt_token(token)
        if payload is None:
            return None

        if payload.get("type") != ADMIN_TOKEN_TYPE:
            auth_logger.warning("Rejected token with non-admin type")
            return None
        if payload.get("role") != AdminRole.ADMIN.value:
            auth_logger.warning("Rejected token with non-admin role")
            return None

        email = payload.get("email") or payload.get("sub")
        if not email or email != settings.admin_email:
            auth_logger.warning("Rejected admin token for a principal that is no longer the admin")
            return None

        return AdminClaims(
            email=email,
            role=AdminRole.ADMIN,
            expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
        )


__all__ = [
    "ADMIN_TOKEN_TYPE",
    "AdminClaims",
    "IssuedToken",
    "TokenIssuer",
]
