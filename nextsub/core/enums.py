from enum import Enum


class AdminRole(str, Enum):
    """Roles that can be embedded in an admin session token."""

    ADMIN = "admin"


class RateLimitAction(str, Enum):
    """Actions guarded by a per-client fixed-window rate limit."""

    REQUEST_CODE = "request_code"
    VERIFY_CODE = "verify_code"


class AuditAction(str, Enum):
    """Kind of admin authentication event written to the audit trail."""

    REQUEST_CODE = "request_code"
    VERIFY_CODE = "verify_code"
    LOGOUT = "logout"


class AuditOutcome(str, Enum):
    """How an audited admin authentication event ended."""

    SUCCESS = "success"
    FAILURE = "failure"
    RATE_LIMITED = "rate_limited"


class VerificationOutcome(str, Enum):
    """Terminal states of a single code verification attempt."""

    SUCCEEDED = "succeeded"
    NO_LIVE_CODE = "no_live_code"
    EXPIRED = "expired"
    INVALID_CODE = "invalid_code"
    ATTEMPTS_EXHAUSTED = "attempts_exhausted"
    LOST_RACE = "lost_race"


class CodeDeliveryMode(str, Enum):
    """How a freshly issued admin code reaches the administrator."""

    QUEUE = "queue"  # Published to RabbitMQ, sent by the email worker
    DIRECT = "direct"  # Sent inline before the HTTP response
