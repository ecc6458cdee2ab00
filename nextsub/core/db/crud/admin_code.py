"""
CRUD operations for the AdminCode model.

Every state transition of a code record is a single conditional statement so
that concurrent requests cannot double-spend a code or lose an attempt:

- `issue` supersedes the previous unconsumed code and inserts the new one
- `record_failed_attempt` increments and, at the limit, invalidates in one UPDATE
- `consume` is a compare-and-swap on the `consumed` flag
"""

from datetime import timedelta
from uuid import UUID

from sqlalchemy import case, update as sa_update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from nextsub.core.config import database_logger
from nextsub.core.db.crud.base import BaseDB
from nextsub.core.db.models.admin_code import AdminCode
from nextsub.core.exceptions.types import DatabaseException
from nextsub.core.utils import utc_now

# A concurrent issuer can win the unique index between our UPDATE and INSERT
ISSUE_RETRIES = 3


class AdminCodeDB(BaseDB[AdminCode]):
    """
    CRUD operations for AdminCode model.

    At most one record per email is live at any time: unconsumed, unexpired
    and under its attempt budget. Expiry is never swept; it is evaluated in
    the WHERE clause of every read and state transition.
    """

    def __init__(self):
        """Initialize AdminCodeDB with the AdminCode model."""
        super().__init__(model=AdminCode)

    async def issue(
        self,
        session: AsyncSession,
        email: str,
        code_hash: str,
        ttl_minutes: int,
        max_attempts: int,
        ip_address: str | None = None,
        user_agent: str | None = None,
        commit_self: bool = True,
    ) -> AdminCode:
        """
        Supersede any unconsumed code for the email and store a new one.

        The supersede and the insert run inside one SAVEPOINT. If a concurrent
        issuer commits first, the partial unique index rejects our insert, the
        savepoint is rolled back and the whole step is retried, so the latest
        issuer always ends up holding the only live code.

        Args:
            session: The async database session.
            email: Normalized administrator email.
            code_hash: bcrypt digest of the new code.
            ttl_minutes: Lifetime of the new code.
            max_attempts: Failed verifications allowed before invalidation.
            ip_address: Client key of the requester.
            user_agent: User-Agent of the requester.
            commit_self: Whether to commit the session after inserting.

        Returns:
            The newly stored AdminCode.

        Raises:
            DatabaseException: If the store fails or the retries are exhausted.
        """
        for attempt in range(1, ISSUE_RETRIES + 1):
            now = utc_now()
            try:
                async with session.begin_nested():
                    await session.execute(
                        sa_update(self.model)
                        .where(
                            self.model.email == email,
                            self.model.consumed.is_(False),
                        )
                        .values(consumed=True)
                        .execution_options(synchronize_session=False)
                    )
                    record = self.model(
                        email=email,
                        code_hash=code_hash,
                        expires_at=now + timedelta(minutes=ttl_minutes),
                        attempts=0,
                        max_attempts=max_attempts,
                        consumed=False,
                        ip_address=ip_address,
                        user_agent=user_agent,
                    )
                    session.add(record)
                    await session.flush()
            except IntegrityError as e:
                if attempt == ISSUE_RETRIES:
                    raise DatabaseException(
                        f"Error issuing admin code after {attempt} attempts: {str(e)}"
                    ) from e
                database_logger.warning(
                    f"Concurrent admin code issuance detected, retrying ({attempt}/{ISSUE_RETRIES})"
                )
                continue
            except SQLAlchemyError as e:
                raise DatabaseException(f"Error issuing admin code: {str(e)}") from e

            try:
                if commit_self:
                    await session.commit()
            except SQLAlchemyError as e:
                raise DatabaseException(
                    f"Error committing admin code: {str(e)}"
                ) from e

            database_logger.info(
                f"Admin code {record.id} issued, expires at {record.expires_at.isoformat()}"
            )
            return record

        raise DatabaseException("Error issuing admin code.")

    async def get_live(self, session: AsyncSession, email: str) -> AdminCode | None:
        """
        Retrieve the live code for an email.

        A code is live when it is unconsumed, `now < expires_at` and
        `attempts < max_attempts`.

        Args:
            session: The async database session.
            email: Normalized administrator email.

        Returns:
            The live AdminCode, or None.

        Raises:
            DatabaseException: If a database error occurs.
        """
        return await self.get_one_by_conditions(
            session=session,
            conditions=[
                self.model.email == email,
                self.model.consumed.is_(False),
                self.model.expires_at > utc_now(),
                self.model.attempts < self.model.max_attempts,
            ],
            order_by=[self.model.created_at.desc()],
        )

    async def get_latest(self, session: AsyncSession, email: str) -> AdminCode | None:
        """
        Retrieve the most recent code for an email regardless of its state.

        Args:
            session: The async database session.
            email: Normalized administrator email.

        Returns:
            The newest AdminCode, or None if no code was ever issued.

        Raises:
            DatabaseException: If a database error occurs.
        """
        return await self.get_one_by_conditions(
            session=session,
            conditions=[self.model.email == email],
            order_by=[self.model.created_at.desc()],
        )

    async def record_failed_attempt(
        self,
        session: AsyncSession,
        code_id: UUID,
        commit_self: bool = True,
    ) -> int | None:
        """
        Atomically count a failed verification against a code.

        The increment and the invalidation at `max_attempts` happen in the
        same UPDATE, so two concurrent wrong guesses can never both observe
        the pre-limit count.

        Args:
            session: The async database session.
            code_id: ID of the code that was guessed against.
            commit_self: Whether to commit the session after updating.

        Returns:
            The new attempt count, or None if the code was already consumed.

        Raises:
            DatabaseException: If a database error occurs.
        """
        try:
            next_attempts = self.model.attempts + 1
            stmt = (
                sa_update(self.model)
                .where(
                    self.model.id == code_id,
                    self.model.consumed.is_(False),
                )
                .values(
                    attempts=next_attempts,
                    consumed=case(
                        (next_attempts >= self.model.max_attempts, True),
                        else_=self.model.consumed,
                    ),
                )
                .returning(self.model.attempts)
                .execution_options(synchronize_session=False)
            )
            result = await session.execute(stmt)
            attempts = result.scalar_one_or_none()

            if commit_self:
                await session.commit()
            else:
                await session.flush()

            return attempts
        except SQLAlchemyError as e:
            raise DatabaseException(
                f"Error recording failed admin code attempt: {str(e)}"
            ) from e

    async def consume(
        self,
        session: AsyncSession,
        code_id: UUID,
        commit_self: bool = True,
    ) -> bool:
        """
        Mark a live code as consumed (compare-and-swap).

        Args:
            session: The async database session.
            code_id: ID of the code to consume.
            commit_self: Whether to commit the session after updating.

        Returns:
            True if this call consumed the code, False if it was no longer live.

        Raises:
            DatabaseException: If a database error occurs.
        """
        now = utc_now()
        updated = await self.update_by_conditions(
            session=session,
            conditions=[
                self.model.id == code_id,
                self.model.consumed.is_(False),
                self.model.expires_at > now,
                self.model.attempts < self.model.max_attempts,
            ],
            updates={"consumed": True, "consumed_at": now},
            commit_self=commit_self,
        )
        return updated == 1


__all__ = ["AdminCodeDB"]
