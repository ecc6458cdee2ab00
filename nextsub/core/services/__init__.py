from nextsub.core.services.admin_auth import (
    AdminAuthService,
    RequestCodeResult,
    VerificationResult,
)
from nextsub.core.services.audit import AuditLogger
from nextsub.core.services.base import SingletonService
from nextsub.core.services.brevo import BrevoService
from nextsub.core.services.code_generator import SecureCodeGenerator
from nextsub.core.services.code_hasher import CodeHasher
from nextsub.core.services.email_manager import EmailManagerService
from nextsub.core.services.rate_limit import (
    MemoryBackend,
    RateLimitBackend,
    RateLimiter,
    RateLimitResult,
    RedisBackend,
    format_rate_limit_key,
    get_rate_limiter,
)
from nextsub.core.services.redis_service import RedisService
from nextsub.core.services.template import Renderer
from nextsub.core.services.token import AdminClaims, IssuedToken, TokenIssuer

__all__ = [
    # Admin authentication
    "AdminAuthService",
    "RequestCodeResult",
    "VerificationResult",
    "SecureCodeGenerator",
    "CodeHasher",
    "TokenIssuer",
    "AdminClaims",
    "IssuedToken",
    "AuditLogger",
    # Infrastructure services
    "SingletonService",
    "BrevoService",
    "EmailManagerService",
    "RedisService",
    "Renderer",
    # Rate limiting
    "MemoryBackend",
    "RateLimitBackend",
    "RateLimiter",
    "RateLimitResult",
    "RedisBackend",
    "format_rate_limit_key",
    "get_rate_limiter",
]
