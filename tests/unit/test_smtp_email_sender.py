"""
Unit tests for SmtpEmailSender adapter.

smtplib.SMTP is patched; no network connection is made.
"""

import smtplib
from unittest.mock import MagicMock, patch

import pytest

from src.adapters.smtp.mailer import SmtpEmailSender
from src.domain.exceptions import DependencyFailure


@pytest.fixture
def smtp() -> MagicMock:
    with patch("src.adapters.smtp.mailer.smtplib.SMTP") as smtp_class:
        yield smtp_class


def server_of(smtp: MagicMock) -> MagicMock:
    return smtp.return_value.__enter__.return_value


class TestSend:
    """Tests for send()."""

    def test_sends_html_message(self, smtp: MagicMock) -> None:
        sender = SmtpEmailSender("smtp.example.com", 587, "noreply@example.com", "user", "secret")

        sender.send("ama@example.com", "Password Reset Request", "<p>Reset</p>")

        smtp.assert_called_once_with("smtp.example.com", 587, timeout=10.0)
        server = server_of(smtp)
        server.starttls.assert_called_once()
        server.login.assert_called_once_with("user", "secret")
        message = server.send_message.call_args.args[0]
        assert message["To"] == "ama@example.com"
        assert message["From"] == "noreply@example.com"
        assert message["Subject"] == "Password Reset Request"
        assert message.get_body(preferencelist=("html",)).get_content().strip() == "<p>Reset</p>"

    def test_without_tls_or_login(self, smtp: MagicMock) -> None:
        sender = SmtpEmailSender("localhost", 1025, "noreply@example.com", use_tls=False)

        sender.send("ama@example.com", "Subject", "<p>Body</p>")

        server = server_of(smtp)
        server.starttls.assert_not_called()
        server.login.assert_not_called()
        server.send_message.assert_called_once()

    @pytest.mark.parametrize(
        "error",
        [smtplib.SMTPAuthenticationError(535, b"bad credentials"), ConnectionRefusedError("refused")],
    )
    def test_delivery_errors_become_dependency_failure(self, smtp: MagicMock, error: Exception) -> None:
        server_of(smtp).send_message.side_effect = error
        sender = SmtpEmailSender("smtp.example.com", 587, "noreply@example.com")

        with pytest.raises(DependencyFailure, match="Email delivery failed"):
            sender.send("ama@example.com", "Subject", "<p>Body</p>")
