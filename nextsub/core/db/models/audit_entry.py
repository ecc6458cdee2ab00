"""
Audit entry model for the admin authentication trail.

"""

from typing import Any

from sqlalchemy import JSON, Enum, String
from sqlalchemy.orm import Mapped, mapped_column

from nextsub.core.db.models.base import BaseModel
from nextsub.core.enums import AuditAction, AuditOutcome


class AuditEntry(BaseModel):
    """
    Immutable record of one admin authentication event.

    Entries are append-only. `detail` never holds a plaintext code or a
    digest; at most a masked code tail.

    Attributes:
        action: Which operation was attempted.
        outcome: How it ended.
        reason: Internal classifier for failures (e.g. "identity_mismatch").
        principal_id: Email the client claimed, normalized. None if absent.
        client_key: Network address of the client.
        client_agent: User-Agent of the client.
        detail: Extra non-sensitive context.
    """

    __tablename__ = "audit_entries"

    action: Mapped[AuditAction] = mapped_column(
        Enum(AuditAction, native_enum=False, name="audit_action"),
        nullable=False,
        index=True,
    )

    outcome: Mapped[AuditOutcome] = mapped_column(
        Enum(AuditOutcome, native_enum=False, name="audit_outcome"),
        nullable=False,
        index=True,
    )

    reason: Mapped[str | None] = mapped_column(
        String(64),
        nullable=True,
    )

    principal_id: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        index=True,
    )

    client_key: Mapped[str | None] = mapped_column(
        String(64),
        nullable=True,
    )

    client_agent: Mapped[str | None] = mapped_column(
        String(512),
        nullable=True,
    )

    detail: Mapped[dict[str, Any] | None] = mapped_column(
        JSON,
        nullable=True,
    )


__all__ = ["AuditEntry"]
