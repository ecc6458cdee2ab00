"""
Admin one-time-code authentication.

Issuance: rate limit -> identity check -> generate -> hash -> store -> deliver.
Verification: rate limit -> identity check -> load live code -> compare ->
consume (compare-and-swap) or count the failure -> session token.

Both operations commit their own transaction and audit success only after
the commit. Verification failures are returned as outcomes instead of
raised, so the attempt counter is committed before the caller turns every
failure into the same client-facing error.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta

from aio_pika.exceptions import AMQPError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from nextsub.core.config import auth_logger, settings
from nextsub.core.db.crud import admin_code_db
from nextsub.core.db.models import AdminCode
from nextsub.core.dependencies.client import ClientContext
from nextsub.core.enums import (
    AuditAction,
    AuditOutcome,
    CodeDeliveryMode,
    RateLimitAction,
    VerificationOutcome,
)
from nextsub.core.exceptions.types import (
    DatabaseException,
    IdentityMismatchException,
    NotificationException,
    RateLimitExceededException,
)
from nextsub.core.services.audit import AuditLogger
from nextsub.core.services.code_generator import SecureCodeGenerator
from nextsub.core.services.code_hasher import CodeHasher
from nextsub.core.services.email_manager import EmailManagerService
from nextsub.core.services.rate_limit import RateLimitResult, get_rate_limiter
from nextsub.core.services.token import IssuedToken, TokenIssuer
from nextsub.core.utils import ensure_aware, mask_code, normalize_email
from nextsub.infrastructure.messaging import publish_event


@dataclass
class RequestCodeResult:
    expires_at: datetime
    rate_limit: RateLimitResult


@dataclass
class VerificationResult:
    """
    Terminal state of one verification attempt.

    Attributes:
        outcome: Which terminal state was reached.
        token: The session token, only for SUCCEEDED.
        remaining_attempts: Attempts left on the code, only for INVALID_CODE.
        rate_limit: The verify rate-limit check that admitted this attempt.
    """

    outcome: VerificationOutcome
    token: IssuedToken | None = None
    remaining_attempts: int | None = None
    rate_limit: RateLimitResult | None = None

    @property
    def succeeded(self) -> bool:
        return self.outcome == VerificationOutcome.SUCCEEDED


_ACTION_LIMITS = {
    RateLimitAction.REQUEST_CODE: lambda: settings.ADMIN_MAX_REQUESTS_PER_HOUR,
    RateLimitAction.VERIFY_CODE: lambda: settings.ADMIN_MAX_VERIFY_ATTEMPTS_PER_HOUR,
}


class AdminAuthService:
    """
    Passwordless login for the single configured administrator.

    Example:
        >>> issued = await AdminAuthService.request_code(
        ...     session, "admin@example.com", client
        ... )
        >>> result = await AdminAuthService.verify_code(
        ...     session, "admin@example.com", code, client
        ... )
        >>> result.succeeded
        True
    """

    @classmethod
    async def enforce_rate_limit(
        cls,
        client: ClientContext,
        action: RateLimitAction,
        principal_id: str | None = None,
    ) -> RateLimitResult:
        """
        Count the request against the client's window for the action.

        Args:
            client: The caller.
            action: The guarded action.
            principal_id: Email the client claimed, for the audit trail.

        Returns:
            RateLimitResult of the admitted request.

        Raises:
            RateLimitExceededException: If the window's limit is exhausted.
            DatabaseException: If the shared counter store is unavailable.
        """
        result = await get_rate_limiter().check_and_increment(
            client.client_key,
            action,
            limit=_ACTION_LIMITS[action](),
            window=settings.ADMIN_RATE_LIMIT_WINDOW_SECONDS,
        )
        if not result.allowed:
            AuditLogger.record(
                AuditAction(action.value),
                AuditOutcome.RATE_LIMITED,
                principal_id=principal_id,
                client=client,
                reason="rate_limited",
                detail={"retry_after": result.retry_after},
            )
            raise RateLimitExceededException(retry_after=result.retry_after)
        return result

    @classmethod
    def check_identity(
        cls,
        email: str,
        action: AuditAction,
        client: ClientContext,
    ) -> str:
        """
        Make sure the supplied email is the administrator's.

        Args:
            email: Email as received from the client.
            action: The operation being attempted, for the audit trail.
            client: The caller.

        Returns:
            str: The normalized administrator email.

        Raises:
            IdentityMismatchException: For any other email. The message does
                not say what the configured email is.
        """
        normalized = normalize_email(email)
        if not normalized or normalized != settings.admin_email:
            auth_logger.warning(
                f"Admin {action.value} rejected for non-admin email from {client.client_key}"
            )
            AuditLogger.record(
                action,
                AuditOutcome.FAILURE,
                principal_id=normalized or None,
                client=client,
                reason="identity_mismatch",
            )
            raise IdentityMismatchException()
        return normalized

    @classmethod
    async def _dispatch_code(cls, email: str, code: str, expires_at: datetime) -> None:
        """
        Hand the plaintext code to the delivery channel.

        Raises:
            NotificationException: If the channel did not accept the code.
        """
        if settings.ADMIN_CODE_DELIVERY == CodeDeliveryMode.DIRECT.value:
            sent = await EmailManagerService.send_admin_code_email(
                email=email, code=code, expires_at=expires_at
            )
            if not sent:
                raise NotificationException()
            return

        try:
            await publish_event(
                "admin_code_emails",
                {
                    "email": email,
                    "code": code,
                    "expires_at": expires_at.isoformat(),
                },
                expiration=timedelta(minutes=settings.ADMIN_CODE_TTL_MINUTES),
            )
        except (AMQPError, OSError) as e:
            auth_logger.error(
                f"Failed to queue admin code email: {type(e).__name__} - {str(e)}"
            )
            raise NotificationException() from e

    @classmethod
    async def _commit(cls, session: AsyncSession) -> None:
        """
        Commit the session, rolling back and raising DatabaseException on failure.
        """
        try:
            await session.commit()
        except SQLAlchemyError as e:
            auth_logger.error(f"Error committing admin code state: {str(e)}")
            await session.rollback()
            raise DatabaseException(
                f"Error committing admin code state: {str(e)}"
            ) from e

    @classmethod
    async def request_code(
        cls,
        session: AsyncSession,
        email: str,
        client: ClientContext,
        commit_self: bool = True,
    ) -> RequestCodeResult:
        """
        Issue a new admin code and send it to the administrator.

        The new code supersedes any outstanding one. Delivery happens before
        the transaction is committed, and any failure rolls it back, so the
        previous code keeps working. Success is audited after the commit.

        Args:
            session: The async database session.
            email: Email as received from the client.
            client: The caller.
            commit_self: Whether to commit after a successful delivery and
                roll back on failure. Callers passing False own both.

        Returns:
            RequestCodeResult with the code's expiry and the rate-limit state.

        Raises:
            RateLimitExceededException: Too many requests from this client.
            IdentityMismatchException: The email is not the administrator's.
            DatabaseException: The code store failed.
            NotificationException: The code could not be handed to delivery.
        """
        claimed = normalize_email(email) or None
        rate_limit = await cls.enforce_rate_limit(
            client, RateLimitAction.REQUEST_CODE, claimed
        )
        principal = cls.check_identity(email, AuditAction.REQUEST_CODE, client)

        code = SecureCodeGenerator.generate()
        code_hash = await CodeHasher.ahash(code)

        try:
            record = await admin_code_db.issue(
                session=session,
                email=principal,
                code_hash=code_hash,
                ttl_minutes=settings.ADMIN_CODE_TTL_MINUTES,
                max_attempts=settings.ADMIN_CODE_MAX_ATTEMPTS,
                ip_address=client.client_key,
                user_agent=client.client_agent,
                commit_self=False,
            )
            expires_at = ensure_aware(record.expires_at)
            await cls._dispatch_code(principal, code, expires_at)
            if commit_self:
                await cls._commit(session)
        except (DatabaseException, NotificationException) as e:
            if commit_self:
                await session.rollback()
            AuditLogger.record(
                AuditAction.REQUEST_CODE,
                AuditOutcome.FAILURE,
                principal_id=principal,
                client=client,
                reason=(
                    "notification_failed"
                    if isinstance(e, NotificationException)
                    else "store_unavailable"
                ),
            )
            raise

        auth_logger.info(
            f"Admin code issued for {principal}, expires at {expires_at.isoformat()}"
        )
        AuditLogger.record(
            AuditAction.REQUEST_CODE,
            AuditOutcome.SUCCESS,
            principal_id=principal,
            client=client,
            detail={
                "code_hint": mask_code(code),
                "expires_at": expires_at.isoformat(),
            },
        )
        return RequestCodeResult(expires_at=expires_at, rate_limit=rate_limit)

    @classmethod
    def _classify_missing(cls, latest: AdminCode | None) -> VerificationOutcome:
        """Name the reason no live code exists. Exhaustion wins over expiry."""
        if latest is None:
            return VerificationOutcome.NO_LIVE_CODE
        if latest.attempts >= latest.max_attempts:
            return VerificationOutcome.ATTEMPTS_EXHAUSTED
        if latest.consumed:
            return VerificationOutcome.NO_LIVE_CODE
        return VerificationOutcome.EXPIRED

    @classmethod
    async def _evaluate(
        cls,
        session: AsyncSession,
        principal: str,
        code: str,
    ) -> VerificationResult:
        record = await admin_code_db.get_live(session, principal)
        if record is None:
            latest = await admin_code_db.get_latest(session, principal)
            return VerificationResult(outcome=cls._classify_missing(latest))

        if await CodeHasher.averify(code, record.code_hash):
            if not await admin_code_db.consume(session, record.id, commit_self=False):
                return VerificationResult(outcome=VerificationOutcome.LOST_RACE)
            return VerificationResult(
                outcome=VerificationOutcome.SUCCEEDED,
                token=TokenIssuer.issue(principal),
            )

        attempts = await admin_code_db.record_failed_attempt(
            session, record.id, commit_self=False
        )
        if attempts is None:
            # Consumed by a concurrent request between load and increment
            return VerificationResult(outcome=VerificationOutcome.NO_LIVE_CODE)
        if attempts >= record.max_attempts:
            return VerificationResult(
                outcome=VerificationOutcome.ATTEMPTS_EXHAUSTED, remaining_attempts=0
            )
        return VerificationResult(
            outcome=VerificationOutcome.INVALID_CODE,
            remaining_attempts=record.max_attempts - attempts,
        )

    @classmethod
    async def verify_code(
        cls,
        session: AsyncSession,
        email: str,
        code: str,
        client: ClientContext,
        commit_self: bool = True,
    ) -> VerificationResult:
        """
        Check a submitted code and open an admin session on success.

        Exactly one audit entry is written per call. Only SUCCEEDED issues a
        token. A wrong guess is counted atomically and invalidates the code
        when it reaches the attempt limit.

        Args:
            session: The async database session.
            email: Email as received from the client.
            code: The submitted code.
            client: The caller.
            commit_self: Whether to commit the attempt counter or consumption
                before the outcome is audited.

        Returns:
            VerificationResult describing the terminal state.

        Raises:
            RateLimitExceededException: Too many verifications from this client.
            IdentityMismatchException: The email is not the administrator's.
            DatabaseException: The code store failed.
        """
        claimed = normalize_email(email) or None
        rate_limit = await cls.enforce_rate_limit(
            client, RateLimitAction.VERIFY_CODE, claimed
        )
        principal = cls.check_identity(email, AuditAction.VERIFY_CODE, client)

        try:
            result = await cls._evaluate(session, principal, code)
            if commit_self:
                await cls._commit(session)
        except DatabaseException:
            if commit_self:
                await session.rollback()
            AuditLogger.record(
                AuditAction.VERIFY_CODE,
                AuditOutcome.FAILURE,
                principal_id=principal,
                client=client,
                reason="store_unavailable",
            )
            raise
        result.rate_limit = rate_limit

        if result.succeeded:
            auth_logger.info(f"Admin {principal} signed in from {client.client_key}")
            AuditLogger.record(
                AuditAction.VERIFY_CODE,
                AuditOutcome.SUCCESS,
                principal_id=principal,
                client=client,
            )
        else:
            auth_logger.warning(
                f"Admin code verification failed for {principal}: {result.outcome.value}"
            )
            AuditLogger.record(
                AuditAction.VERIFY_CODE,
                AuditOutcome.FAILURE,
                principal_id=principal,
                client=client,
                reason=result.outcome.value,
                detail=(
                    {"remaining_attempts": result.remaining_attempts}
                    if result.remaining_attempts is not None
                    else None
                ),
            )
        return result

    @classmethod
    def logout(cls, principal_id: str, client: ClientContext) -> None:
        """
        Record the end of an admin session.

        Tokens are stateless, so this only writes the audit entry; the
        caller removes the cookie.
        """
        AuditLogger.record(
            AuditAction.LOGOUT,
            AuditOutcome.SUCCESS,
            principal_id=principal_id,
            client=client,
        )


__all__ = ["AdminAuthService", "RequestCodeResult", "VerificationResult"]
