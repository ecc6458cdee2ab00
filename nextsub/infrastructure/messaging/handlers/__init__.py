from nextsub.infrastructure.messaging.handlers.email_handler import (
    handle_admin_code_email,
)

__all__ = ["handle_admin_code_email"]
