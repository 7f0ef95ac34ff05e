"""
Mailer implementations.

``SMTPMailer`` delivers through an SMTP relay; ``LoggingMailer`` only logs and
is used when no relay is configured (local development, tests).
"""

from email.message import EmailMessage
from typing import Optional
import asyncio
import smtplib

import structlog

from ..core.config import Settings
from ..interfaces.mailer_interface import IMailer

logger = structlog.get_logger()


class SMTPMailer(IMailer):
    """Sends plain-text mail over SMTP from a worker thread."""

    def __init__(
        self,
        host: str,
        port: int = 587,
        username: Optional[str] = None,
        password: Optional[str] = None,
        use_tls: bool = True,
        sender: Optional[str] = None,
        timeout: float = 30.0,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.sender = sender or username
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "SMTPMailer":
        return cls(
            host=settings.SMTP_HOST,
            port=settings.SMTP_PORT,
            username=settings.SMTP_USER,
            password=settings.SMTP_PASSWORD,
            use_tls=settings.SMTP_TLS,
            sender=settings.mail_sender,
        )

    async def send(self, to: str, subject: str, body: str) -> None:
        message = EmailMessage()
        message["From"] = self.sender or ""
        message["To"] = to
        message["Subject"] = subject
        message.set_content(body)

        await asyncio.to_thread(self._deliver, message)
        logger.info("Mail delivered", subject=subject, smtp_host=self.host)

    def _deliver(self, message: EmailMessage) -> None:
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
            if self.use_tls:
                smtp.starttls()
            if self.username and self.password:
                smtp.login(self.username, self.password)
            smtp.send_message(message)


class LoggingMailer(IMailer):
    """Logs outgoing mail instead of sending it."""

    def __init__(self, sender: Optional[str] = None):
        self.sender = sender

    async def send(self, to: str, subject: str, body: str) -> None:
        # Bodies carry verification links and reset codes; log only their size.
        logger.info(
            "Mail delivery skipped, no SMTP relay configured",
            subject=subject,
            body_length=len(body),
        )
