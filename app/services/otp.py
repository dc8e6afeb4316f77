"""One-time login codes for voters, delivered by email or SMS."""

import hashlib
import hmac
import secrets
from datetime import UTC, datetime, timedelta
from uuid import UUID

import asyncpg
import httpx

from app.core.config import settings
from app.core.logging_config import get_logger, mask_identifier, security_logger
from app.core.rate_limiting import otp_rate_limiter
from app.core.validation import normalize_email, normalize_phone
from app.services.email import email_service
from app.services.voters import get_voter_by_contact

logger = get_logger(__name__)

CHANNEL_EMAIL = "email"
CHANNEL_SMS = "sms"


def generate_otp(length: int = 6) -> str:
    """Generate a numeric OTP code."""
    return "".join(secrets.choice("0123456789") for _ in range(length))


def hash_code(code: str) -> str:
    """HMAC-SHA256 of a code, keyed with the application secret."""
    return hmac.new(
        settings.SECRET_KEY.encode(), code.encode(), hashlib.sha256
    ).hexdigest()


# ============================================
# OTP GENERATION & VERIFICATION
# ============================================


async def create_otp_token(
    conn: asyncpg.Connection,
    voter_id: UUID,
    channel: str,
    expires_minutes: int | None = None,
) -> tuple[str, datetime]:
    """Create a code for a voter. Earlier unused codes stop working."""
    code = generate_otp(settings.OTP_LENGTH)
    expires_at = datetime.now(UTC) + timedelta(
        minutes=expires_minutes or settings.OTP_EXPIRE_MINUTES
    )

    await conn.execute(
        """
        UPDATE otp_tokens
        SET used = TRUE
        WHERE voter_id = $1 AND used = FALSE
        """,
        str(voter_id),
    )

    await conn.execute(
        """
        INSERT INTO otp_tokens (voter_id, channel, token_hash, expires_at)
        VALUES ($1, $2, $3, $4)
        """,
        str(voter_id),
        channel,
        hash_code(code),
        expires_at,
    )

    return code, expires_at


async def verify_otp_token(
    conn: asyncpg.Connection,
    voter_id: UUID,
    code: str,
) -> tuple[bool, str]:
    """Verify a voter's latest code. Returns (success, message)."""
    token = await conn.fetchrow(
        """
        SELECT id, token_hash, expires_at, attempts
        FROM otp_tokens
        WHERE voter_id = $1 AND used = FALSE
        ORDER BY created_at DESC
        LIMIT 1
        """,
        str(voter_id),
    )

    if not token:
        return False, "No active verification code. Please request a new code."

    if token["attempts"] >= settings.OTP_MAX_ATTEMPTS:
        return False, "Too many failed attempts. Please request a new code."

    if token["expires_at"] < datetime.now(UTC):
        return False, "Verification code has expired"

    if not secrets.compare_digest(token["token_hash"], hash_code(code.strip())):
        await conn.execute(
            "UPDATE otp_tokens SET attempts = attempts + 1 WHERE id = $1",
            token["id"],
        )
        return False, "Invalid verification code"

    await conn.execute(
        """
        UPDATE otp_tokens
        SET used = TRUE, used_at = CURRENT_TIMESTAMP
        WHERE id = $1
        """,
        token["id"],
    )

    return True, "Verification successful"


# ============================================
# DELIVERY
# ============================================


async def send_sms_otp(phone: str, code: str) -> tuple[bool, str]:
    """Send a code through the configured HTTP SMS gateway."""
    if not settings.SMS_GATEWAY_URL:
        if settings.ENVIRONMENT == "production":
            logger.error("SMS gateway is not configured")
            return False, "SMS delivery is not available"
        logger.info(f"[SMS] OTP {code} for {mask_identifier(phone)} (no gateway configured)")
        return True, "SMS logged"

    message = (
        f"Your election login code is {code}. "
        f"It expires in {settings.OTP_EXPIRE_MINUTES} minutes."
    )
    try:
        async with httpx.AsyncClient(timeout=10.0) as client:
            response = await client.post(
                settings.SMS_GATEWAY_URL,
                json={"to": phone, "message": message},
                headers={"Authorization": f"Bearer {settings.SMS_GATEWAY_TOKEN}"},
            )
            response.raise_for_status()
    except httpx.HTTPError as e:
        logger.error(f"SMS gateway error for {mask_identifier(phone)}: {e}")
        return False, "Failed to send SMS"

    return True, "SMS sent successfully"


async def deliver_otp(channel: str, destination: str, code: str) -> tuple[bool, str]:
    if channel == CHANNEL_EMAIL:
        sent = await email_service.send_otp_email(
            destination, code, settings.OTP_EXPIRE_MINUTES
        )
        return sent, "Email sent successfully" if sent else "Failed to send email"
    return await send_sms_otp(destination, code)


# ============================================
# VOTER LOGIN FLOW
# ============================================


async def request_voter_otp(
    conn: asyncpg.Connection,
    phone: str | None = None,
    email: str | None = None,
    ip_address: str | None = None,
) -> tuple[bool, str]:
    """Create and deliver a login code to a registered voter."""
    channel = CHANNEL_SMS if phone else CHANNEL_EMAIL
    # One bucket per voter contact, whatever formatting the caller used
    if phone:
        identifier = normalize_phone(phone)
    elif email:
        identifier = normalize_email(email)
    else:
        return False, "Provide either a phone number or an email address"

    allowed, error = otp_rate_limiter.check_request_allowed(identifier)
    if not allowed:
        return False, error or "Too many code requests"

    voter = await get_voter_by_contact(conn, phone=phone, email=email)
    otp_rate_limiter.record_request(identifier)
    if not voter:
        return False, "No active voter is registered with these details"

    destination = voter["phone"] if channel == CHANNEL_SMS else voter["email"]
    code, expires_at = await create_otp_token(conn, voter["id"], channel)
    sent, msg = await deliver_otp(channel, destination, code)
    security_logger.log_otp_requested(identifier, channel, ip_address)

    if not sent:
        return False, f"Failed to send verification code: {msg}"

    return True, f"Verification code sent. Expires at {expires_at.isoformat()}"


async def verify_voter_otp(
    conn: asyncpg.Connection,
    code: str,
    phone: str | None = None,
    email: str | None = None,
    ip_address: str | None = None,
) -> tuple[bool, str, dict | None]:
    """Check a login code. Returns (success, message, voter)."""
    identifier = phone or email or ""
    voter = await get_voter_by_contact(conn, phone=phone, email=email)
    if not voter:
        security_logger.log_otp_verification(identifier, False, ip_address, "unknown voter")
        return False, "Invalid verification code", None

    success, msg = await verify_otp_token(conn, voter["id"], code)
    security_logger.log_otp_verification(identifier, success, ip_address, msg)
    if not success:
        return False, msg, None

    return True, msg, voter
