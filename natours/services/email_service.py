"""Email delivery over SMTP."""

from email.message import EmailMessage
from typing import Optional

import aiosmtplib
import structlog

from natours.config import Settings, get_settings

logger = structlog.get_logger(__name__)


class EmailDeliveryError(Exception):
    """The message could not be handed to the SMTP server."""


class EmailService:
    """Service for sending transactional emails."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    def _build_message(self, to_email: str, subject: str, body: str) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self.settings.email_from
        message["To"] = to_email
        message["Subject"] = subject
        message.set_content(body)
        return message

    async def send(self, to_email: str, subject: str, body: str) -> None:
        """Send a plain-text email.

        Raises:
            EmailDeliveryError: If the SMTP exchange fails for any reason
        """
        message = self._build_message(to_email, subject, body)

        try:
            await aiosmtplib.send(
                message,
                hostname=self.settings.smtp_host,
                port=self.settings.smtp_port,
                username=self.settings.smtp_username or None,
                password=self.settings.smtp_password or None,
                use_tls=self.settings.smtp_use_tls,
            )
        except (aiosmtplib.SMTPException, OSError) as e:
            logger.error("email_send_failed", to=to_email, subject=subject, error=str(e))
            raise EmailDeliveryError(str(e)) from e

        logger.info("email_sent", to=to_email, subject=subject)

    async def send_password_reset(self, to_email: str, reset_url: str, expires_minutes: int) -> None:
        """Send the password-reset link."""
        subject = f"Your password reset token (valid for {expires_minutes} min)"
        body = (
            "Forgot your password? Submit a PATCH request with your new password "
            f"and passwordConfirm to: {reset_url}.\n"
            "If you didn't forget your password, please ignore this email!"
        )
        await self.send(to_email, subject, body)
