from nextsub.core.schemas.admin import (
    AdminCodeStr,
    AdminInfo,
    AdminInfoResponse,
    MessageResponse,
    RequestCodeRequest,
    RequestCodeResponse,
    VerifyCodeRequest,
    VerifyCodeResponse,
)

__all__ = [
    "AdminCodeStr",
    "AdminInfo",
    "AdminInfoResponse",
    "MessageResponse",
    "RequestCodeRequest",
    "RequestCodeResponse",
    "VerifyCodeRequest",
    "VerifyCodeResponse",
]
