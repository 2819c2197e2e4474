"""
Email Notifications
Best-effort SMTP delivery; never raises to the caller
"""

import asyncio
import logging
import smtplib
from email.message import EmailMessage
from typing import Optional

from npip.config import Settings, get_settings

logger = logging.getLogger(__name__)


class EmailService:
    """Sends plain-text mail through the configured SMTP relay"""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    @property
    def is_configured(self) -> bool:
        return self.settings.smtp_configured

    def _build_message(self, to: str, subject: str, text: str) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self.settings.SMTP_FROM or self.settings.SMTP_USER
        message["To"] = to
        message["Subject"] = subject
        message.set_content(text)
        return message

    def _send_sync(self, message: EmailMessage) -> None:
        with smtplib.SMTP(self.settings.SMTP_HOST, self.settings.SMTP_PORT, timeout=15) as smtp:
            smtp.starttls()
            smtp.login(self.settings.SMTP_USER, self.settings.SMTP_PASS)
            smtp.send_message(message)

    async def send(self, to: str, subject: str, text: str) -> bool:
        """
        Send one email.

        Returns:
            True if handed to the relay, False if SMTP is not configured or
            delivery failed
        """
        if not self.is_configured or not to:
            return False
        try:
            await asyncio.to_thread(self._send_sync, self._build_message(to, subject, text))
            return True
        except Exception as e:
            logger.warning(f"Email to {to} failed: {e}")
            return False
