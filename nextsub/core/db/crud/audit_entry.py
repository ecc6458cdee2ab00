"""
CRUD operations for the AuditEntry model.

"""

from typing import Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from nextsub.core.db.crud.base import BaseDB
from nextsub.core.db.models.audit_entry import AuditEntry
from nextsub.core.enums import AuditAction


class AuditEntryDB(BaseDB[AuditEntry]):
    """Append-only access to the admin authentication audit trail."""

    def __init__(self):
        super().__init__(model=AuditEntry)

    async def get_recent(
        self,
        session: AsyncSession,
        action: AuditAction | None = None,
        limit: int = 50,
    ) -> Sequence[AuditEntry]:
        """
        Retrieve the newest audit entries, optionally for a single action.

        Args:
            session: The async database session.
            action: Restrict to this action. Defaults to all actions.
            limit: Max number of entries to return.

        Returns:
            Entries ordered newest first.
        """
        conditions = [self.model.action == action] if action else []
        return await self.get_by_conditions(
            session=session,
            conditions=conditions,
            order_by=[self.model.created_at.desc()],
            limit=limit,
        )


__all__ = ["AuditEntryDB"]
