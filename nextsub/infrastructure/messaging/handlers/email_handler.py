"""
Email message handlers.

Admin codes are delivered from the queue so the request that issued the
code does not wait on the email provider.
"""

from datetime import datetime
from typing import Any

from nextsub.core.config import email_manager_logger
from nextsub.core.exceptions.types import NotificationException
from nextsub.core.services.email_manager import EmailManagerService
from nextsub.core.utils import ensure_aware, utc_now


async def handle_admin_code_email(event: dict[str, Any]) -> None:
    """
    Send an admin login code email.

    Messages whose code has already expired are acknowledged without
    sending anything.

    Args:
        event: Event data containing:
            - email (str): The administrator's email address
            - code (str): The plaintext code
            - expires_at (str): ISO-8601 expiry of the code

    Raises:
        NotificationException: If the email could not be sent, to trigger a retry.
    """
    email = event["email"]
    code = event["code"]
    expires_at = ensure_aware(datetime.fromisoformat(event["expires_at"]))

    if expires_at <= utc_now():
        email_manager_logger.warning(
            f"Skipping admin code email for {email}: code expired at {expires_at.isoformat()}"
        )
        return

    sent = await EmailManagerService.send_admin_code_email(
        email=email,
        code=code,
        expires_at=expires_at,
    )
    if not sent:
        email_manager_logger.warning(f"Admin code email failed for {email}, will retry")
        raise NotificationException(f"Email service failed for {email}")

    email_manager_logger.info(f"Admin code email sent to {email}")


__all__ = ["handle_admin_code_email"]
