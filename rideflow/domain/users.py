"""User profile validation.

Phones are Sri Lankan numbers, either local (``0771234567``) or with the
country code (``+94771234567``); they are stored in the ``+94`` form.
"""

import re
from typing import Optional

from .errors import InvalidUser

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_RE = re.compile(r"^(?:0|\+94)(\d{9})$")


def clean_name(raw: Optional[str]) -> str:
    name = (raw or "").strip()
    if not name:
        raise InvalidUser("Name is required")
    if len(name) > 120:
        raise InvalidUser("Name must be at most 120 characters")
    return name


def normalize_email(raw: Optional[str]) -> str:
    email = (raw or "").strip().lower()
    if not EMAIL_RE.match(email) or len(email) > 255:
        raise InvalidUser(f"Invalid email address {raw!r}")
    return email


def normalize_phone(raw: Optional[str]) -> Optional[str]:
    if raw is None or not raw.strip():
        return None
    match = PHONE_RE.match(raw.strip().replace(" ", ""))
    if match is None:
        raise InvalidUser(
            f"Invalid phone number {raw!r} (expected 0771234567 or +94771234567)"
        )
    return f"+94{match.group(1)}"
