"""
Tracking ID generation.

Tracking IDs look like ``PKG-<base36 millisecond timestamp><random suffix>``,
e.g. ``PKG-M1X2Y3Z4A7QK``. They are short enough to read over the phone and
never purely numeric, so they cannot be confused with internal IDs.
"""

import secrets
import string
from datetime import datetime, timezone
from typing import Optional

TRACKING_PREFIX = "PKG-"
SUFFIX_LENGTH = 4
BASE36_ALPHABET = string.digits + string.ascii_uppercase


def to_base36(number: int) -> str:
    if number < 0:
        raise ValueError("base36 encoding requires a non-negative integer")
    if number == 0:
        return "0"
    digits = []
    while number:
        number, remainder = divmod(number, 36)
        digits.append(BASE36_ALPHABET[remainder])
    return "".join(reversed(digits))


def generate_tracking_id(now: Optional[datetime] = None) -> str:
    """
    Build a new tracking ID from the current time and a random suffix.
    
    Uniqueness is not guaranteed here; the caller checks the ledger and
    reports a collision as a conflict.
    """
    now = now or datetime.now(timezone.utc)
    millis = int(now.timestamp() * 1000)
    suffix = "".join(secrets.choice(BASE36_ALPHABET) for _ in range(SUFFIX_LENGTH))
    return f"{TRACKING_PREFIX}{to_base36(millis)}{suffix}"
