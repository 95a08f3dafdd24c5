"""Shared validation utilities"""

import re
from typing import Optional

HEX_COLOR_RE = re.compile(r"^#[0-9A-Fa-f]{6}$")


def sanitize_phone(phone: Optional[str]) -> Optional[str]:
    """Strip everything but digits; empty input stays as-is"""
    if not phone:
        return phone
    return re.sub(r"\D", "", phone)


def format_phone_e164(phone: Optional[str]) -> Optional[str]:
    """
    Normalize a phone number to E.164 format.

    10-digit numbers are treated as US numbers; anything else already
    carries its country code and just gets a leading plus.
    """
    if not phone:
        return None

    digits = re.sub(r"\D", "", phone)
    if not digits:
        return None
    if len(digits) == 10:
        return f"+1{digits}"
    return f"+{digits}"


def validate_hex_color(color: Optional[str]) -> Optional[str]:
    """
    Validate a #RRGGBB color.

    Raises:
        ValueError: If the color is not a 6-digit hex value
    """
    if color is None:
        return color
    if not HEX_COLOR_RE.match(color):
        raise ValueError("Color must be a valid hex color (e.g. #3B82F6)")
    return color
