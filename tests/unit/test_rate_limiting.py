"""Unit tests for the in-memory rate limiters."""

from datetime import UTC, datetime, timedelta

from app.core.rate_limiting import LoginRateLimiter, OtpRateLimiter, RateLimiter


class TestRateLimiter:
    def test_limits_after_max_attempts(self):
        limiter = RateLimiter()
        for _ in range(3):
            assert limiter.is_rate_limited("ip", 3, 60) == (False, None)
            limiter.record_attempt("ip")

        limited, retry_after = limiter.is_rate_limited("ip", 3, 60)

        assert limited is True
        assert 1 <= retry_after <= 60

    def test_reset(self):
        limiter = RateLimiter()
        limiter.record_attempt("ip")
        limiter.reset("ip")

        assert limiter.is_rate_limited("ip", 1, 60) == (False, None)

    def test_identifiers_are_independent(self):
        limiter = RateLimiter()
        limiter.record_attempt("a")

        assert limiter.is_rate_limited("a", 1, 60)[0] is True
        assert limiter.is_rate_limited("b", 1, 60)[0] is False

    def test_expired_identifier_is_dropped(self):
        limiter = RateLimiter()
        limiter._attempts["old"] = [datetime.now(UTC) - timedelta(seconds=120)]

        assert limiter.is_rate_limited("old", 1, 60) == (False, None)
        assert "old" not in limiter._attempts

    def test_checking_unknown_identifier_stores_nothing(self):
        limiter = RateLimiter()

        limiter.is_rate_limited("never-seen", 3, 60)

        assert len(limiter) == 0

    def test_cleanup_old_entries(self):
        limiter = RateLimiter()
        limiter._attempts["old"] = [datetime.now(UTC) - timedelta(hours=2)]
        limiter.record_attempt("fresh")

        limiter.cleanup_old_entries(max_age_seconds=3600)

        assert list(limiter._attempts) == ["fresh"]


class TestLoginRateLimiter:
    def test_lockout_after_failed_attempts(self):
        limiter = LoginRateLimiter()
        for _ in range(limiter.MAX_ATTEMPTS_PER_USERNAME):
            limiter.record_failed_attempt("admin", "10.0.0.1")

        allowed, message = limiter.check_login_allowed("admin", "10.0.0.1")
        assert allowed is False
        assert "locked" in message

        allowed, message = limiter.check_login_allowed("admin", "10.0.0.1")
        assert allowed is False
        assert "temporarily locked" in message

    def test_success_clears_state(self):
        limiter = LoginRateLimiter()
        limiter.record_failed_attempt("admin", "10.0.0.1")
        limiter.record_successful_login("admin", "10.0.0.1")

        assert limiter.check_login_allowed("admin", "10.0.0.1") == (True, None)


class TestOtpRateLimiter:
    def test_request_limit(self):
        limiter = OtpRateLimiter(max_requests=2, window_seconds=300)
        limiter.record_request("+919876543210")
        limiter.record_request("+919876543210")

        allowed, message = limiter.check_request_allowed("+919876543210")

        assert allowed is False
        assert message.startswith("Too many")
        assert limiter.check_request_allowed("+919876543211") == (True, None)

    def test_periodic_sweep_drops_stale_identifiers(self):
        limiter = OtpRateLimiter(max_requests=3, window_seconds=300)
        limiter.CLEANUP_EVERY = 3
        limiter.limiter._attempts["+910000000001"] = [
            datetime.now(UTC) - timedelta(seconds=600)
        ]

        for n in range(3):
            limiter.record_request(f"+91987654321{n}")

        assert "+910000000001" not in limiter.limiter._attempts
        assert len(limiter.limiter) == 3
