"""Unit tests for OTP generation, verification and delivery."""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import httpx
import pytest

from app.services import otp as otp_service
from app.services.otp import (
    deliver_otp,
    generate_otp,
    hash_code,
    request_voter_otp,
    send_sms_otp,
    verify_otp_token,
)


def token_row(code: str = "123456", attempts: int = 0, expires_in: int = 600) -> dict:
    return {
        "id": uuid4(),
        "token_hash": hash_code(code),
        "expires_at": datetime.now(UTC) + timedelta(seconds=expires_in),
        "attempts": attempts,
    }


class TestGenerateOtp:
    def test_numeric_of_requested_length(self):
        code = generate_otp(6)

        assert len(code) == 6
        assert code.isdigit()

    def test_hash_is_keyed_with_secret(self):
        import hashlib

        assert len(hash_code("123456")) == 64
        assert hash_code("123456") != hash_code("654321")
        assert hash_code("123456") != hashlib.sha256(b"123456").hexdigest()

    def test_hash_changes_with_secret(self):
        original = hash_code("123456")
        with patch.object(otp_service, "settings") as mock_settings:
            mock_settings.SECRET_KEY = "another_secret"
            rotated = hash_code("123456")

        assert rotated != original


class TestVerifyOtpToken:
    """Test verify_otp_token."""

    async def test_valid_code_is_consumed(self):
        conn = MagicMock()
        row = token_row("123456")
        conn.fetchrow = AsyncMock(return_value=row)
        conn.execute = AsyncMock()

        success, _ = await verify_otp_token(conn, uuid4(), "123456")

        assert success is True
        assert "used = TRUE" in conn.execute.call_args[0][0]

    async def test_wrong_code_counts_attempt(self):
        conn = MagicMock()
        conn.fetchrow = AsyncMock(return_value=token_row("123456"))
        conn.execute = AsyncMock()

        success, message = await verify_otp_token(conn, uuid4(), "000000")

        assert success is False
        assert message == "Invalid verification code"
        assert "attempts = attempts + 1" in conn.execute.call_args[0][0]

    async def test_expired_code(self):
        conn = MagicMock()
        conn.fetchrow = AsyncMock(return_value=token_row("123456", expires_in=-1))
        conn.execute = AsyncMock()

        success, message = await verify_otp_token(conn, uuid4(), "123456")

        assert success is False
        assert "expired" in message
        conn.execute.assert_not_called()

    async def test_too_many_attempts(self):
        conn = MagicMock()
        conn.fetchrow = AsyncMock(return_value=token_row("123456", attempts=5))
        conn.execute = AsyncMock()

        success, message = await verify_otp_token(conn, uuid4(), "123456")

        assert success is False
        assert message.startswith("Too many")

    async def test_no_active_code(self):
        conn = MagicMock()
        conn.fetchrow = AsyncMock(return_value=None)

        success, _ = await verify_otp_token(conn, uuid4(), "123456")

        assert success is False


class TestSendSmsOtp:
    async def test_without_gateway_outside_production(self):
        with patch.object(otp_service, "settings") as mock_settings:
            mock_settings.SMS_GATEWAY_URL = ""
            mock_settings.ENVIRONMENT = "development"

            success, _ = await send_sms_otp("+919876543210", "123456")

        assert success is True

    async def test_without_gateway_in_production(self):
        with patch.object(otp_service, "settings") as mock_settings:
            mock_settings.SMS_GATEWAY_URL = ""
            mock_settings.ENVIRONMENT = "production"

            success, _ = await send_sms_otp("+919876543210", "123456")

        assert success is False

    async def test_gateway_error(self):
        with (
            patch.object(otp_service, "settings") as mock_settings,
            patch("app.services.otp.httpx.AsyncClient") as mock_client_class,
        ):
            mock_settings.SMS_GATEWAY_URL = "https://sms.example.com/send"
            mock_settings.SMS_GATEWAY_TOKEN = "token"
            mock_settings.OTP_EXPIRE_MINUTES = 10
            client = MagicMock()
            client.post = AsyncMock(side_effect=httpx.ConnectError("refused"))
            mock_client_class.return_value.__aenter__.return_value = client

            success, message = await send_sms_otp("+919876543210", "123456")

        assert success is False
        assert message == "Failed to send SMS"

    async def test_gateway_success(self):
        with (
            patch.object(otp_service, "settings") as mock_settings,
            patch("app.services.otp.httpx.AsyncClient") as mock_client_class,
        ):
            mock_settings.SMS_GATEWAY_URL = "https://sms.example.com/send"
            mock_settings.SMS_GATEWAY_TOKEN = "token"
            mock_settings.OTP_EXPIRE_MINUTES = 10
            client = MagicMock()
            client.post = AsyncMock(return_value=MagicMock())
            mock_client_class.return_value.__aenter__.return_value = client

            success, _ = await send_sms_otp("+919876543210", "123456")

        assert success is True
        assert client.post.call_args[1]["json"]["to"] == "+919876543210"
        assert "123456" in client.post.call_args[1]["json"]["message"]


class TestDeliverOtp:
    async def test_email_channel(self):
        with patch.object(
            otp_service.email_service, "send_otp_email", AsyncMock(return_value=True)
        ) as mock_send:
            success, _ = await deliver_otp("email", "voter@example.com", "123456")

        assert success is True
        mock_send.assert_awaited_once()


class TestRequestVoterOtp:
    async def test_unknown_voter(self):
        conn = MagicMock()
        with patch("app.services.otp.get_voter_by_contact", AsyncMock(return_value=None)):
            success, message = await request_voter_otp(conn, phone="9876543210")

        assert success is False
        assert "No active voter" in message

    async def test_rate_limited(self):
        conn = MagicMock()
        with (
            patch("app.services.otp.get_voter_by_contact", AsyncMock(return_value=None)),
            patch.object(otp_service.otp_rate_limiter, "max_requests", 2),
        ):
            await request_voter_otp(conn, phone="9876543210")
            await request_voter_otp(conn, phone="9876543210")
            success, message = await request_voter_otp(conn, phone="9876543210")

        assert success is False
        assert message.startswith("Too many")

    async def test_code_sent_to_registered_contact(self):
        conn = MagicMock()
        voter = {"id": str(uuid4()), "phone": "+919876543210", "email": None}
        expires_at = datetime.now(UTC) + timedelta(minutes=10)
        with (
            patch("app.services.otp.get_voter_by_contact", AsyncMock(return_value=voter)),
            patch(
                "app.services.otp.create_otp_token",
                AsyncMock(return_value=("123456", expires_at)),
            ),
            patch(
                "app.services.otp.deliver_otp", AsyncMock(return_value=(True, "SMS sent"))
            ) as mock_deliver,
        ):
            success, _ = await request_voter_otp(conn, phone="98765 43210")

        assert success is True
        mock_deliver.assert_awaited_once_with("sms", "+919876543210", "123456")

    async def test_formatting_variants_share_one_limit(self):
        conn = MagicMock()
        voter = {"id": str(uuid4()), "phone": "+919876543210", "email": None}
        expires_at = datetime.now(UTC) + timedelta(minutes=10)
        variants = [
            "9876543210",
            "09876543210",
            "+91 98765 43210",
            "98765-43210",
            "(98765) 43210",
            "919876543210",
            "+919876543210",
        ]
        with (
            patch("app.services.otp.get_voter_by_contact", AsyncMock(return_value=voter)),
            patch(
                "app.services.otp.create_otp_token",
                AsyncMock(return_value=("123456", expires_at)),
            ),
            patch(
                "app.services.otp.deliver_otp", AsyncMock(return_value=(True, "SMS sent"))
            ) as mock_deliver,
        ):
            results = [await request_voter_otp(conn, phone=phone) for phone in variants]

        limit = otp_service.otp_rate_limiter.max_requests
        assert sum(1 for success, _ in results if success) == limit
        assert mock_deliver.await_count == limit
        assert all(message.startswith("Too many") for success, message in results if not success)

    async def test_email_case_shares_one_limit(self):
        conn = MagicMock()
        with (
            patch("app.services.otp.get_voter_by_contact", AsyncMock(return_value=None)),
            patch.object(otp_service.otp_rate_limiter, "max_requests", 2),
        ):
            await request_voter_otp(conn, email="Voter@Example.com")
            await request_voter_otp(conn, email=" voter@example.com")
            success, message = await request_voter_otp(conn, email="VOTER@EXAMPLE.COM")

        assert success is False
        assert message.startswith("Too many")

    async def test_invalid_phone_is_rejected(self):
        conn = MagicMock()
        with pytest.raises(ValueError):
            await request_voter_otp(conn, phone="no digits")
