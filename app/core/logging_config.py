"""Structured logging configuration for the application."""

from datetime import UTC, datetime
import json
import logging
import sys

from app.core.config import settings


class JSONFormatter(logging.Formatter):
    """Format logs as JSON for structured logging in production."""

    def format(self, record: logging.LogRecord) -> str:
        """Format the log record as JSON."""
        log_data = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if hasattr(record, "extra_fields"):
            log_data.update(record.extra_fields)

        return json.dumps(log_data, default=str)


class StandardFormatter(logging.Formatter):
    """Human-readable formatter for development."""

    def __init__(self) -> None:
        super().__init__(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )


def setup_logging() -> None:
    """Configure application logging based on environment."""
    log_level = logging.INFO
    if settings.ENVIRONMENT == "development":
        log_level = logging.DEBUG
    elif settings.ENVIRONMENT == "production":
        log_level = logging.WARNING

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)

    if settings.ENVIRONMENT == "production":
        formatter = JSONFormatter()
    else:
        formatter = StandardFormatter()

    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # Set specific log levels for noisy libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.error").setLevel(logging.INFO)
    logging.getLogger("fastapi").setLevel(logging.INFO)
    logging.getLogger("botocore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance with the given name."""
    return logging.getLogger(name)


class SecurityLogger:
    """Specialized logger for authentication and access events."""

    def __init__(self) -> None:
        self.logger = get_logger("security")

    def log_otp_requested(
        self, identifier: str, channel: str, ip_address: str | None = None
    ) -> None:
        """Log an OTP request. The identifier is masked before logging."""
        self.logger.info(
            f"OTP requested via {channel} for {mask_identifier(identifier)}",
            extra={
                "extra_fields": {
                    "event_type": "otp_requested",
                    "identifier": mask_identifier(identifier),
                    "channel": channel,
                    "ip_address": ip_address,
                }
            },
        )

    def log_otp_verification(
        self,
        identifier: str,
        success: bool,
        ip_address: str | None = None,
        reason: str | None = None,
    ) -> None:
        """Log an OTP verification attempt."""
        extra_fields = {
            "event_type": "otp_verification",
            "identifier": mask_identifier(identifier),
            "success": success,
            "ip_address": ip_address,
        }
        if not success and reason:
            extra_fields["failure_reason"] = reason

        message = (
            f"OTP verification {'succeeded' if success else 'failed'} "
            f"for {mask_identifier(identifier)}"
        )
        if success:
            self.logger.info(message, extra={"extra_fields": extra_fields})
        else:
            self.logger.warning(message, extra={"extra_fields": extra_fields})

    def log_login_attempt(
        self,
        username: str,
        success: bool,
        ip_address: str | None = None,
        reason: str | None = None,
    ) -> None:
        """Log an admin login attempt."""
        extra_fields = {
            "event_type": "login_attempt",
            "username": username,
            "success": success,
            "ip_address": ip_address,
        }

        if not success and reason:
            extra_fields["failure_reason"] = reason

        message = f"Login {'succeeded' if success else 'failed'} for admin: {username}"

        if success:
            self.logger.info(message, extra={"extra_fields": extra_fields})
        else:
            self.logger.warning(message, extra={"extra_fields": extra_fields})

    def log_unauthorized_access(
        self,
        resource: str,
        subject: str | None = None,
        reason: str | None = None,
    ) -> None:
        """Log unauthorized access attempt."""
        self.logger.warning(
            f"Unauthorized access attempt to: {resource}",
            extra={
                "extra_fields": {
                    "event_type": "unauthorized_access",
                    "resource": resource,
                    "subject": subject,
                    "reason": reason,
                }
            },
        )


class IntegrityLogger:
    """Logger for data-integrity anomalies that must not be masked."""

    def __init__(self) -> None:
        self.logger = get_logger("integrity")

    def log_unknown_ineligibility(
        self, voter_id: str, election_type: str, region: str | None
    ) -> None:
        """An unassigned voter passed every eligibility rule."""
        self.logger.error(
            f"Voter {voter_id} has no {election_type} zone but satisfies all rules",
            extra={
                "extra_fields": {
                    "event_type": "eligibility_anomaly",
                    "voter_id": voter_id,
                    "election_type": election_type,
                    "region": region,
                }
            },
        )

    def log_turnout_mismatch(
        self,
        zone_id: str,
        seats: int,
        unique_voters_voted: int,
        total_votes: int,
    ) -> None:
        """Vote-line count disagrees with voters-who-voted times seats."""
        self.logger.error(
            f"Zone {zone_id}: {total_votes} vote lines but "
            f"{unique_voters_voted} voters x {seats} seats",
            extra={
                "extra_fields": {
                    "event_type": "turnout_mismatch",
                    "zone_id": zone_id,
                    "seats": seats,
                    "unique_voters_voted": unique_voters_voted,
                    "total_votes": total_votes,
                    "expected_votes": unique_voters_voted * seats,
                }
            },
        )


def mask_identifier(identifier: str) -> str:
    """Mask a phone number or email address for logs."""
    if "@" in identifier:
        local, _, domain = identifier.partition("@")
        return f"{local[:2]}***@{domain}"
    if len(identifier) <= 4:
        return "****"
    return f"{'*' * (len(identifier) - 4)}{identifier[-4:]}"


# Global logger instances
security_logger = SecurityLogger()
integrity_logger = IntegrityLogger()
