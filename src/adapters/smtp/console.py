"""
Console email sender adapter - Implements EmailSender protocol.

This module provides a console-based implementation of the domain's
email sender port, logging outgoing mail instead of delivering it.
"""

import logging

logger = logging.getLogger(__name__)


class ConsoleEmailSender:
    """
    Implements EmailSender protocol via console logging.

    Uses structural subtyping - no explicit inheritance from Protocol.
    For demo/development purposes - verification and reset links show up
    in the application log.
    """

    def send(self, to: str, subject: str, html: str) -> None:
        """
        Log the message to console (simulates email delivery).

        In production, this is replaced with the SMTP adapter.
        The body is logged at INFO level to be visible in docker-compose logs.

        Args:
            to: Recipient email address (normalized by domain layer)
            subject: Subject line
            html: HTML body
        """
        logger.info("[EMAIL] To: %s Subject: %s", to, subject)
        logger.info("[EMAIL] Body: %s", html)
