from __future__ import annotations

import re
from email.utils import parseaddr

EMAIL_PATTERN = re.compile(
    r"^[A-Za-z0-9.!#$%&'*+/=?^_`{|}~-]+@[A-Za-z0-9-]+(?:\.[A-Za-z0-9-]+)+$"
)
PHONE_PATTERN = re.compile(r"^\+[1-9]\d{6,14}$")
MAX_EMAIL_LENGTH = 320


def normalize_email(email: str | None) -> str:
    """Return a normalized email string for comparisons and sign-in."""
    return (email or "").strip().lower()


def is_valid_email(email: str) -> bool:
    """Return True when an email has a pragmatic valid format."""
    if not email or len(email) > MAX_EMAIL_LENGTH:
        return False
    if "\r" in email or "\n" in email:
        return False
    _, parsed = parseaddr(email)
    if parsed != email:
        return False
    return bool(EMAIL_PATTERN.fullmatch(email))


def normalize_phone(phone: str | None) -> str:
    """Strip spaces, dashes and parentheses from an E.164-style number."""
    return re.sub(r"[\s\-().]", "", phone or "")


def is_valid_phone(phone: str) -> bool:
    return bool(PHONE_PATTERN.fullmatch(phone or ""))


def display_name_from_email(email: str | None) -> str:
    """Return the local part of an email for use as a fallback name."""
    return (email or "").split("@", 1)[0]
