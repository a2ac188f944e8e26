"""
phone.py — Phone Number Normalization for M-Pesa

Customers type numbers in local or international form; the gateway only
accepts the country-code-prefixed form without a plus sign.
"""

import re
from typing import Optional

KENYA_CALLING_CODE = "254"

_WHITESPACE = re.compile(r"\s+")


def sanitize_phone_number(phone: Optional[str]) -> Optional[str]:
    """
    Converts a phone number as typed by a customer into the format the
    M-Pesa gateway expects (e.g. '0712 345 678' -> '254712345678').

    Digit count and country code are not checked; the gateway rejects
    numbers it cannot use.
    """
    if not phone:
        return None

    trimmed = _WHITESPACE.sub("", phone)
    if not trimmed:
        return None
    if trimmed.startswith("+"):
        return trimmed[1:]
    if trimmed.startswith("0"):
        return KENYA_CALLING_CODE + trimmed[1:]
    return trimmed
