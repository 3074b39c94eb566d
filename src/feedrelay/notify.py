"""
Report delivery by email.
"""

from __future__ import annotations

import asyncio
import smtplib
from collections.abc import Sequence
from email.message import EmailMessage
from typing import Protocol

from feedrelay.config.settings import NotificationSettings
from feedrelay.exceptions import NotificationError
from feedrelay.utils.logging import get_logger

logger = get_logger("feedrelay.notify")


class Notifier(Protocol):
    """Delivers a rendered run report."""

    async def send(self, recipients: Sequence[str], subject: str, body: str) -> None: ...


class SmtpNotifier:
    """Send reports through an SMTP relay."""

    def __init__(
        self,
        host: str = "localhost",
        port: int = 25,
        sender: str = "feedrelay@localhost",
        use_tls: bool = False,
        username: str | None = None,
        password: str | None = None,
        timeout: float = 30.0,
    ):
        self.host = host
        self.port = port
        self.sender = sender
        self.use_tls = use_tls
        self.username = username
        self.password = password
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: NotificationSettings) -> "SmtpNotifier":
        return cls(
            host=settings.smtp_host,
            port=settings.smtp_port,
            sender=settings.sender,
            use_tls=settings.use_tls,
            username=settings.username,
            password=settings.password,
        )

    def build_message(self, recipients: Sequence[str], subject: str, body: str) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self.sender
        message["To"] = ", ".join(recipients)
        message["Subject"] = subject
        message.set_content(body)
        return message

    def _deliver(self, message: EmailMessage) -> None:
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
            if self.use_tls:
                smtp.starttls()
            if self.username:
                smtp.login(self.username, self.password or "")
            smtp.send_message(message)

    async def send(self, recipients: Sequence[str], subject: str, body: str) -> None:
        """
        Send the report.

        Raises:
            NotificationError: If the SMTP exchange fails
        """
        if not recipients:
            raise NotificationError("No recipients configured")
        message = self.build_message(recipients, subject, body)
        try:
            await asyncio.to_thread(self._deliver, message)
        except (smtplib.SMTPException, OSError) as e:
            raise NotificationError(f"Could not send report via {self.host}:{self.port}: {e}") from e
        logger.info(f"Report sent to {', '.join(recipients)}")
