"""
Admin code model for storing hashed one-time login codes.

"""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Index, Integer, String, text
from sqlalchemy.orm import Mapped, mapped_column

from nextsub.core.db.models.base import BaseModel


class AdminCode(BaseModel):
    """
    A one-time login code issued to the administrator.

    Only the bcrypt digest of the code is stored. A record is live while it is
    unconsumed, unexpired and under its attempt budget; expiry is evaluated at
    read time. The partial unique index keeps at most one unconsumed record
    per email.

    Attributes:
        email: Normalized administrator email the code was issued to.
        code_hash: bcrypt digest of the code.
        expires_at: Instant after which the code is dead.
        attempts: Failed verification attempts so far.
        max_attempts: Failed attempts after which the code is invalidated.
        consumed: Set once the code is used, exhausted or superseded.
        consumed_at: When the code was used successfully.
        ip_address: Client key of the requester, for security review.
        user_agent: User-Agent of the requester, for security review.
    """

    __tablename__ = "admin_codes"

    __table_args__ = (
        Index(
            "uq_admin_codes_email_unconsumed",
            "email",
            unique=True,
            postgresql_where=text("NOT consumed"),
            sqlite_where=text("NOT consumed"),
        ),
    )

    email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True,
    )

    code_hash: Mapped[str] = mapped_column(
        String(60),  # bcrypt digests are 60 characters
        nullable=False,
    )

    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    attempts: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
    )

    max_attempts: Mapped[int] = mapped_column(
        Integer,
        default=5,
        nullable=False,
    )

    consumed: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )

    consumed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    ip_address: Mapped[str | None] = mapped_column(
        String(64),
        nullable=True,
    )

    user_agent: Mapped[str | None] = mapped_column(
        String(512),
        nullable=True,
    )

    @property
    def remaining_attempts(self) -> int:
        return max(self.max_attempts - self.attempts, 0)


__all__ = ["AdminCode"]
