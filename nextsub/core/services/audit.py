"""
Fire-and-forget audit trail for admin authentication.

Every event is written to the audit log file immediately and persisted as
an AuditEntry row by a background task with its own session, so a slow or
failing audit store never delays or fails the request that produced it.
"""

import asyncio
from typing import Any

from sqlalchemy.ext.asyncio import async_sessionmaker

from nextsub.core.config import audit_logger
from nextsub.core.db.crud import audit_entry_db
from nextsub.core.dependencies.client import ClientContext
from nextsub.core.enums import AuditAction, AuditOutcome
from nextsub.core.services.base import SingletonService


class AuditLogger(SingletonService):
    """
    Append-only sink for admin authentication events.

    Example:
        >>> AuditLogger.init(AsyncSessionLocal)
        >>> AuditLogger.record(
        ...     AuditAction.VERIFY_CODE,
        ...     AuditOutcome.FAILURE,
        ...     principal_id="admin@example.com",
        ...     client=client,
        ...     reason="invalid_code",
        ... )
    """

    _session_factory: async_sessionmaker | None = None
    _pending: set[asyncio.Task] = set()

    @classmethod
    def init(cls, session_factory: async_sessionmaker) -> None:
        """
        Attach the session factory used for background writes.

        Args:
            session_factory: Factory producing sessions independent of any request.
        """
        cls._session_factory = session_factory
        cls._initialized = True
        audit_logger.info("AuditLogger initialized")

    @classmethod
    def _reset(cls) -> None:
        super()._reset()
        cls._session_factory = None
        cls._pending = set()

    @classmethod
    def record(
        cls,
        action: AuditAction,
        outcome: AuditOutcome,
        *,
        principal_id: str | None = None,
        client: ClientContext | None = None,
        reason: str | None = None,
        detail: dict[str, Any] | None = None,
    ) -> None:
        """
        Record one event. Never raises and never blocks on storage.

        Args:
            action: What was attempted.
            outcome: How it ended.
            principal_id: The email the client claimed, if any.
            client: Network identity of the caller.
            reason: Internal failure classifier.
            detail: Extra non-sensitive context.
        """
        data = {
            "action": action,
            "outcome": outcome,
            "reason": reason,
            "principal_id": principal_id,
            "client_key": client.client_key if client else None,
            "client_agent": client.client_agent if client else None,
            "detail": detail,
        }

        line = (
            f"action={action.value} outcome={outcome.value} reason={reason} "
            f"principal={principal_id} client={data['client_key']}"
        )
        if outcome == AuditOutcome.SUCCESS:
            audit_logger.info(line)
        else:
            audit_logger.warning(line)

        if cls._session_factory is None:
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            audit_logger.warning("No running event loop; audit entry not persisted")
            return

        task = loop.create_task(cls._persist(data))
        cls._pending.add(task)
        task.add_done_callback(cls._pending.discard)

    @classmethod
    async def _persist(cls, data: dict[str, Any]) -> None:
        assert cls._session_factory is not None
        try:
            async with cls._session_factory() as session:
                await audit_entry_db.create(session, data, commit_self=True)
        except Exception as e:
            # Audit failures must never reach the authentication flow
            audit_logger.error(
                f"Failed to persist audit entry ({data['action'].value}/{data['outcome'].value}): "
                f"{type(e).__name__} - {str(e)}"
            )

    @classmethod
    async def drain(cls) -> None:
        """Wait for every pending audit write to finish."""
        if cls._pending:
            await asyncio.gather(*list(cls._pending), return_exceptions=True)


__all__ = ["AuditLogger"]
