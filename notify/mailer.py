"""
notify/mailer.py -- Outbound email.

Two backends behind one send() method:
  smtp    -- used when SMTP_HOST is configured. One connection per message,
             STARTTLS when SMTP_STARTTLS=true, LOGIN when credentials are set.
  console -- used when SMTP_HOST is empty (local dev, CI). The message is
             written to the log instead of being delivered.

send() makes a single attempt and raises MailerError on any transport
failure. It does not retry and does not clean up caller state; the
forgot-password route owns that decision.

Layer rule: no imports from api/ or auth/.
"""

from __future__ import annotations

import logging
import smtplib
from email.message import EmailMessage
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from core.config import Settings

logger = logging.getLogger("gatekeeper.mailer")


class MailerError(Exception):
    """Raised when a message could not be handed to the mail server."""


class Mailer:
    def __init__(
        self,
        host: str = "",
        port: int = 587,
        username: str = "",
        password: str = "",
        starttls: bool = True,
        sender: str = "Gatekeeper <noreply@localhost>",
        timeout: float = 10.0,
    ) -> None:
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.starttls = starttls
        self.sender = sender
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> Mailer:
        return cls(
            host=settings.smtp_host,
            port=settings.smtp_port,
            username=settings.smtp_username,
            password=settings.smtp_password,
            starttls=settings.smtp_starttls,
            sender=settings.email_from,
            timeout=settings.smtp_timeout,
        )

    @property
    def backend(self) -> str:
        return "smtp" if self.host else "console"

    def build_message(self, to: str, subject: str, body: str) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self.sender
        message["To"] = to
        message["Subject"] = subject
        message.set_content(body)
        return message

    def send(self, to: str, subject: str, body: str) -> None:
        """Deliver a plain-text email to a single recipient."""
        message = self.build_message(to, subject, body)

        if self.backend == "console":
            logger.info("Email (console backend) to=%s subject=%r\n%s", to, subject, body)
            return

        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
                if self.starttls:
                    server.starttls()
                if self.username:
                    server.login(self.username, self.password)
                server.send_message(message)
        except (smtplib.SMTPException, OSError) as exc:
            logger.error("SMTP error sending email to %s: %s", to, exc)
            raise MailerError(f"Could not send email to {to}") from exc

        logger.info("Email sent to %s (subject=%r)", to, subject)
