"""Rate limiting for OTP requests and admin logins."""

from collections import defaultdict
from datetime import UTC, datetime, timedelta
import threading

from app.core.config import settings


class RateLimiter:
    """
    Simple in-memory sliding-window rate limiter.

    For multi-instance deployments, back this with a shared store instead.
    """

    def __init__(self) -> None:
        self._attempts: dict[str, list] = defaultdict(list)
        self._lock = threading.Lock()

    def is_rate_limited(
        self, identifier: str, max_attempts: int, window_seconds: int
    ) -> tuple[bool, int | None]:
        """
        Check if an identifier is rate limited.

        Returns:
            Tuple of (is_limited, retry_after_seconds)
        """
        with self._lock:
            now = datetime.now(UTC)
            cutoff = now - timedelta(seconds=window_seconds)

            recent = [
                timestamp
                for timestamp in self._attempts.get(identifier, ())
                if timestamp > cutoff
            ]
            if not recent:
                self._attempts.pop(identifier, None)
                return False, None
            self._attempts[identifier] = recent

            if len(recent) >= max_attempts:
                oldest_attempt = min(recent)
                retry_after = (
                    oldest_attempt + timedelta(seconds=window_seconds) - now
                ).total_seconds()
                return True, int(max(1, retry_after))

            return False, None

    def record_attempt(self, identifier: str) -> None:
        """Record an attempt for the given identifier."""
        with self._lock:
            self._attempts[identifier].append(datetime.now(UTC))

    def reset(self, identifier: str) -> None:
        """Reset rate limiting for an identifier."""
        with self._lock:
            self._attempts.pop(identifier, None)

    def cleanup_old_entries(self, max_age_seconds: int = 3600) -> None:
        """Drop attempts older than ``max_age_seconds`` and identifiers left empty."""
        with self._lock:
            cutoff = datetime.now(UTC) - timedelta(seconds=max_age_seconds)
            for identifier in list(self._attempts):
                recent = [t for t in self._attempts[identifier] if t > cutoff]
                if recent:
                    self._attempts[identifier] = recent
                else:
                    del self._attempts[identifier]

    def __len__(self) -> int:
        return len(self._attempts)


class LoginRateLimiter:
    """Rate limiter with temporary lockout for admin logins."""

    MAX_ATTEMPTS_PER_USERNAME = 5
    MAX_ATTEMPTS_PER_IP = 10
    WINDOW_SECONDS = 300  # 5 minutes
    LOCKOUT_DURATION = 900  # 15 minutes

    def __init__(self) -> None:
        self.username_limiter = RateLimiter()
        self.ip_limiter = RateLimiter()
        self._lockouts: dict[str, datetime] = {}
        self._lock = threading.Lock()

    def check_login_allowed(
        self, username: str, ip_address: str | None = None
    ) -> tuple[bool, str | None]:
        """
        Check if a login attempt is allowed.

        Returns:
            Tuple of (is_allowed, error_message)
        """
        remaining = self._lockout_remaining(username)
        if remaining:
            return False, f"Account temporarily locked. Try again in {remaining} seconds"

        username_limited, _ = self.username_limiter.is_rate_limited(
            username, self.MAX_ATTEMPTS_PER_USERNAME, self.WINDOW_SECONDS
        )
        if username_limited:
            self._lockout_account(username)
            return (
                False,
                f"Too many failed attempts. Account locked for {self.LOCKOUT_DURATION // 60} minutes",
            )

        if ip_address:
            ip_limited, ip_retry = self.ip_limiter.is_rate_limited(
                ip_address, self.MAX_ATTEMPTS_PER_IP, self.WINDOW_SECONDS
            )
            if ip_limited:
                return (
                    False,
                    f"Too many requests from your IP. Try again in {ip_retry} seconds",
                )

        return True, None

    def record_failed_attempt(self, username: str, ip_address: str | None = None) -> None:
        self.username_limiter.record_attempt(username)
        if ip_address:
            self.ip_limiter.record_attempt(ip_address)

    def record_successful_login(self, username: str, ip_address: str | None = None) -> None:
        self.username_limiter.reset(username)
        if ip_address:
            self.ip_limiter.reset(ip_address)
        with self._lock:
            self._lockouts.pop(username, None)

    def _lockout_remaining(self, username: str) -> int:
        with self._lock:
            expiry = self._lockouts.get(username)
            if expiry is None:
                return 0
            remaining = int((expiry - datetime.now(UTC)).total_seconds())
            if remaining <= 0:
                del self._lockouts[username]
                return 0
            return remaining

    def _lockout_account(self, username: str) -> None:
        with self._lock:
            self._lockouts[username] = datetime.now(UTC) + timedelta(
                seconds=self.LOCKOUT_DURATION
            )


class OtpRateLimiter:
    """Limits how often a code can be requested for one phone/email."""

    CLEANUP_EVERY = 500  # recorded requests between sweeps

    def __init__(
        self,
        max_requests: int | None = None,
        window_seconds: int | None = None,
    ) -> None:
        self.max_requests = max_requests or settings.OTP_RATE_LIMIT
        self.window_seconds = window_seconds or settings.OTP_RATE_WINDOW_SECONDS
        self.limiter = RateLimiter()
        self._recorded_since_cleanup = 0

    def check_request_allowed(self, identifier: str) -> tuple[bool, str | None]:
        limited, retry_after = self.limiter.is_rate_limited(
            identifier, self.max_requests, self.window_seconds
        )
        if limited:
            return False, f"Too many code requests. Try again in {retry_after} seconds"
        return True, None

    def record_request(self, identifier: str) -> None:
        self.limiter.record_attempt(identifier)
        self._recorded_since_cleanup += 1
        if self._recorded_since_cleanup >= self.CLEANUP_EVERY:
            self._recorded_since_cleanup = 0
            self.limiter.cleanup_old_entries(self.window_seconds)


# Global rate limiter instances
login_rate_limiter = LoginRateLimiter()
otp_rate_limiter = OtpRateLimiter()
