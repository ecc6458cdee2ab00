"""
Email Manager Service for the admin code email.

Renders the Jinja2 templates under `nextsub/templates/emails/` and hands
the result to BrevoService.

Example usage:
    EmailManagerService.init()

    await EmailManagerService.send_admin_code_email(
        email="admin@example.com",
        code="k7#Qz...",
        expires_at=datetime(2026, 1, 1, 12, 10, tzinfo=timezone.utc),
    )
"""

from datetime import datetime
from typing import Any

from jinja2 import TemplateError

from nextsub.core.config import email_manager_logger, settings
from nextsub.core.exceptions.types import AppException
from nextsub.core.services.base import SingletonService
from nextsub.core.services.brevo import BrevoService, Contact
from nextsub.core.services.template import Renderer
from nextsub.core.utils import ensure_aware, utc_now


__all__ = ["EmailManagerService"]


class EmailManagerService(SingletonService):
    """
    Centralized email sending.

    Example:
        >>> EmailManagerService.init()
        >>> await EmailManagerService.send_admin_code_email(
        ...     email="admin@example.com", code="...", expires_at=expires_at
        ... )
        True
    """

    @classmethod
    def init(cls) -> None:
        """
        Mark the service as ready.

        Call during startup after BrevoService and Renderer are initialized.
        """
        cls._initialized = True
        email_manager_logger.info("EmailManagerService initialized")

    @classmethod
    async def send_email(
        cls,
        email: str,
        subject: str,
        html_template: str,
        context: dict[str, Any],
        text_template: str | None = None,
        recipient_name: str | None = None,
        tags: list[str] | None = None,
    ) -> bool:
        """
        Render a template pair and send it.

        Args:
            email: Recipient email address.
            subject: Email subject line.
            html_template: Name of the HTML template file.
            context: Template variables.
            text_template: Optional name of the plain text template file.
            recipient_name: Optional recipient display name.
            tags: Optional Brevo tags.

        Returns:
            bool: True if Brevo accepted the email, False otherwise.
        """
        try:
            html_content = await Renderer.render_template(html_template, context=context)

            text_content = None
            if text_template:
                text_content = await Renderer.render_template(
                    text_template, context=context
                )

            await BrevoService.send_transactional_email(
                subject=subject,
                to=[Contact(email=email, name=recipient_name)],
                htmlContent=html_content,
                textContent=text_content,
                tags=tags,
            )

            email_manager_logger.info(
                f"Email sent successfully: subject='{subject}', to='{email}'"
            )
            return True

        except (AppException, TemplateError, RuntimeError, ValueError) as e:
            email_manager_logger.error(
                f"Failed to send email: subject='{subject}', to='{email}', error={e}"
            )
            return False

    @classmethod
    async def send_admin_code_email(
        cls,
        email: str,
        code: str,
        expires_at: datetime,
    ) -> bool:
        """
        Send the admin login code.

        Args:
            email: The administrator's email address.
            code: The plaintext one-time code.
            expires_at: When the code stops working.

        Returns:
            bool: True if the email was sent successfully, False otherwise.
        """
        now = utc_now()
        expires_at = ensure_aware(expires_at)
        minutes_left = max(1, round((expires_at - now).total_seconds() / 60))

        context = {
            "app_name": settings.APP_NAME,
            "code": code,
            "expiry_minutes": minutes_left,
            "expires_at": expires_at.strftime("%Y-%m-%d %H:%M UTC"),
            "year": now.year,
        }

        return await cls.send_email(
            email=email,
            subject=f"Your admin login code - {settings.APP_NAME}",
            html_template="emails/admin_code.html",
            text_template="emails/admin_code.txt",
            context=context,
            recipient_name="Administrator",
            tags=["admin-code"],
        )
