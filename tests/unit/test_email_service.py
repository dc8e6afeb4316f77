"""
Unit tests for email service functions.
"""

import smtplib
from unittest.mock import MagicMock, patch

import pytest

from app.services.email import EmailService


class TestEmailService:
    """Test EmailService class methods."""

    @pytest.fixture
    def email_service(self):
        """EmailService instance."""
        return EmailService()

    @pytest.mark.asyncio
    async def test_send_otp_email_success(self, email_service):
        """Test successful OTP email sending."""
        with patch.object(email_service, "_send_email_sync") as mock_send:
            result = await email_service.send_otp_email(
                to_email="voter@example.com", code="482913", expires_minutes=10
            )

            assert result is True
            mock_send.assert_called_once()
            to_email, email_content = mock_send.call_args[0]
            assert to_email == "voter@example.com"
            assert "482913" in email_content
            assert "10 minutes" in email_content

    @pytest.mark.asyncio
    async def test_send_otp_email_failure(self, email_service):
        """Test OTP email sending failure."""
        with patch.object(email_service, "_send_email_sync") as mock_send:
            mock_send.side_effect = smtplib.SMTPException("SMTP error")

            result = await email_service.send_otp_email(
                to_email="voter@example.com", code="482913", expires_minutes=10
            )

            assert result is False

    @pytest.mark.asyncio
    async def test_send_nomination_rejected_email(self, email_service):
        with patch.object(email_service, "_send_email_sync") as mock_send:
            result = await email_service.send_nomination_rejected_email(
                to_email="candidate@example.com",
                candidate_name="Ramesh Shah",
                election_name="Karobari Samiti",
                reason="Address proof is unreadable",
            )

            assert result is True
            email_content = mock_send.call_args[0][1]
            assert "Ramesh Shah" in email_content
            assert "Address proof is unreadable" in email_content
            assert "Karobari Samiti nomination update" in email_content

    @pytest.mark.asyncio
    async def test_connection_error_is_reported(self, email_service):
        with patch.object(email_service, "_send_email_sync") as mock_send:
            mock_send.side_effect = ConnectionRefusedError()

            result = await email_service.send_otp_email("voter@example.com", "1", 10)

            assert result is False

    def test_send_email_sync_sends_to_recipient(self, email_service):
        """The message goes to the recipient, not back to the sender."""
        email_service.smtp_tls = True
        email_service.smtp_username = "user"
        email_service.smtp_password = "pass"

        with patch("app.services.email.smtplib.SMTP") as mock_smtp:
            server = MagicMock()
            mock_smtp.return_value = server

            email_service._send_email_sync("voter@example.com", "content")

            server.starttls.assert_called_once()
            server.login.assert_called_once_with("user", "pass")
            server.sendmail.assert_called_once_with(
                email_service.from_email, ["voter@example.com"], "content"
            )
            server.quit.assert_called_once()
