"""Input normalization and validation for voter contact data and admin passwords."""

import re
from datetime import date, datetime

from app.core.config import settings

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
DOB_FORMAT = "%d/%m/%Y"


def normalize_phone(phone: str) -> str:
    """
    Normalize a phone number to E.164.

    Ten-digit numbers get the default country code; a leading trunk ``0`` is
    dropped.
    """
    phone = phone.strip()
    digits = re.sub(r"\D", "", phone)
    if not digits:
        raise ValueError("Phone number must contain digits")

    if phone.startswith("+"):
        return f"+{digits}"

    country = settings.SMS_DEFAULT_COUNTRY_CODE
    if len(digits) == 10:
        return f"+{country}{digits}"
    if len(digits) == 11 and digits.startswith("0"):
        return f"+{country}{digits[1:]}"
    if len(digits) == 12 and digits.startswith(country):
        return f"+{digits}"
    return f"+{digits}"


def normalize_email(email: str) -> str:
    email = email.strip().lower()
    if not EMAIL_PATTERN.match(email):
        raise ValueError("Invalid email address")
    return email


def parse_dob(dob: str) -> date:
    """Parse a DD/MM/YYYY date of birth."""
    return datetime.strptime(dob.strip(), DOB_FORMAT).date()


def age_as_of(dob: date, reference: date) -> int:
    """Whole years between ``dob`` and ``reference``."""
    age = reference.year - dob.year
    if (reference.month, reference.day) < (dob.month, dob.day):
        age -= 1
    return age


class PasswordValidator:
    """Validate admin password strength."""

    MIN_LENGTH = 10
    MAX_LENGTH = 128
    SPECIAL_CHARS = "!@#$%^&*()_+-=[]{}|;:,.<>?"

    COMMON_PASSWORDS = {
        "password",
        "password123",
        "12345678",
        "qwerty123",
        "admin",
        "admin123",
        "letmein",
        "election",
    }

    @classmethod
    def validate(cls, password: str) -> tuple[bool, str | None]:
        """
        Validate password strength.

        Returns:
            Tuple of (is_valid, error_message)
        """
        if len(password) < cls.MIN_LENGTH:
            return False, f"Password must be at least {cls.MIN_LENGTH} characters long"
        if len(password) > cls.MAX_LENGTH:
            return False, f"Password must be at most {cls.MAX_LENGTH} characters long"
        if password.lower() in cls.COMMON_PASSWORDS:
            return False, "Password is too common"
        if not re.search(r"[A-Z]", password):
            return False, "Password must contain an uppercase letter"
        if not re.search(r"[a-z]", password):
            return False, "Password must contain a lowercase letter"
        if not re.search(r"\d", password):
            return False, "Password must contain a digit"
        if not any(c in cls.SPECIAL_CHARS for c in password):
            return False, "Password must contain a special character"
        return True, None
