"""
SMTP email sender adapter - Implements EmailSender protocol via smtplib.
"""

import logging
import smtplib
from email.message import EmailMessage

from src.domain.exceptions import DependencyFailure

logger = logging.getLogger(__name__)


class SmtpEmailSender:
    """
    Implements EmailSender protocol over SMTP with optional STARTTLS.

    A connection is opened per message; senders are called at most once
    per request.
    """

    def __init__(
        self,
        host: str,
        port: int,
        sender: str,
        username: str | None = None,
        password: str | None = None,
        use_tls: bool = True,
        timeout: float = 10.0,
    ) -> None:
        self._host = host
        self._port = port
        self._sender = sender
        self._username = username
        self._password = password
        self._use_tls = use_tls
        self._timeout = timeout

    def send(self, to: str, subject: str, html: str) -> None:
        """
        Deliver an HTML email.

        Raises:
            DependencyFailure: Connection, authentication or delivery failed
        """
        message = EmailMessage()
        message["Subject"] = subject
        message["From"] = self._sender
        message["To"] = to
        message.set_content("This message requires an HTML capable email client.")
        message.add_alternative(html, subtype="html")

        try:
            with smtplib.SMTP(self._host, self._port, timeout=self._timeout) as server:
                if self._use_tls:
                    server.starttls()
                if self._username:
                    server.login(self._username, self._password or "")
                server.send_message(message)
        except (smtplib.SMTPException, OSError) as exc:
            logger.error("Failed to send email to %s: %s", to, exc)
            raise DependencyFailure("Email delivery failed") from exc

        logger.info("Email sent to %s: %s", to, subject)
