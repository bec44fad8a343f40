import logging
from email.message import EmailMessage
from typing import Protocol

import aiosmtplib

from ..core.config import Settings

logger = logging.getLogger(__name__)


class EmailDeliveryError(Exception):
    """Raised by an email sender when a message could not be handed off."""


class EmailSender(Protocol):
    async def send(self, to: str, subject: str, html: str) -> None: ...


class SmtpEmailSender:
    """Deliver HTML email through an SMTP relay (e.g. SendGrid on port 587)."""

    def __init__(
        self,
        hostname: str,
        port: int,
        username: str = "",
        password: str = "",
        sender: str = "no-reply@localhost",
        timeout: float = 10.0,
    ):
        self.hostname = hostname
        self.port = port
        self.username = username
        self.password = password
        self.sender = sender
        self.timeout = timeout

    async def send(self, to: str, subject: str, html: str) -> None:
        msg = EmailMessage()
        msg["From"] = self.sender
        msg["To"] = to
        msg["Subject"] = subject
        msg.set_content("This message requires an HTML capable email client.")
        msg.add_alternative(html, subtype="html")
        try:
            await aiosmtplib.send(
                msg,
                hostname=self.hostname,
                port=self.port,
                username=self.username or None,
                password=self.password or None,
                start_tls=bool(self.username),
                timeout=self.timeout,
            )
        except (aiosmtplib.SMTPException, OSError) as exc:
            logger.error("Failed to send email to %s: %s", to, exc)
            raise EmailDeliveryError(str(exc)) from exc
        logger.info("Sent email to %s", to)


class LoggingEmailSender:
    """Development sender: writes the message to the log instead of sending."""

    async def send(self, to: str, subject: str, html: str) -> None:
        logger.info("EMAIL_DEV_MODE to=%s subject=%s body=%s", to, subject, html)


def build_email_sender(settings: Settings) -> EmailSender:
    if settings.EMAIL_DEV_MODE:
        return LoggingEmailSender()
    return SmtpEmailSender(
        hostname=settings.SMTP_HOST,
        port=settings.SMTP_PORT,
        username=settings.SMTP_USERNAME,
        password=settings.SMTP_PASSWORD,
        sender=settings.SMTP_FROM,
        timeout=settings.EMAIL_SEND_TIMEOUT_SECONDS,
    )
