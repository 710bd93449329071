"""Data normalization utilities for consistent data quality."""

import re
from typing import Optional


def normalize_phone(phone: Optional[str]) -> Optional[str]:
    """
    Normalize phone to E.164 format (+15551234567).

    Accepts:
    - 10 digits: 5551234567 → +15551234567
    - 11 digits starting with 1: 15551234567 → +15551234567
    - Already E.164: +15551234567 → +15551234567

    Raises:
        ValueError: If phone is not a valid US phone number
    """
    if not phone:
        return None

    cleaned = phone.strip()
    if cleaned.startswith("+"):
        digits = re.sub(r"\D", "", cleaned[1:])
        if digits.startswith("1") and len(digits) == 11:
            return f"+{digits}"
    else:
        digits = re.sub(r"\D", "", cleaned)

    if len(digits) == 10:
        return f"+1{digits}"
    elif len(digits) == 11 and digits.startswith("1"):
        return f"+{digits}"

    raise ValueError(f"Invalid phone number '{phone}'. Use 10-digit US format (e.g., 5551234567).")


def normalize_phone_lenient(phone: Optional[str]) -> Optional[str]:
    """Normalize to E.164 when possible, otherwise keep the trimmed input.

    Public intake forms accept international numbers, so an unparseable
    phone is stored as typed rather than rejected.
    """
    if not phone or not phone.strip():
        return None
    try:
        return normalize_phone(phone)
    except ValueError:
        return phone.strip()


def normalize_email(email: Optional[str]) -> Optional[str]:
    """Normalize email to lowercase. Returns None if empty."""
    if not email or not email.strip():
        return None
    return email.strip().lower()


def normalize_name(name: Optional[str]) -> Optional[str]:
    """
    Normalize name by stripping whitespace and collapsing multiple spaces.

    Returns:
        Cleaned name or None if empty
    """
    if not name:
        return None
    cleaned = " ".join(name.split())
    return cleaned or None


def normalize_search_text(value: Optional[str]) -> Optional[str]:
    """Lowercase, collapse whitespace. Used for case-insensitive matching."""
    cleaned = normalize_name(value)
    return cleaned.lower() if cleaned else None


def normalize_tags(tags: list[str] | None) -> list[str]:
    """Trim, drop empties and dedupe tags while keeping order."""
    seen: set[str] = set()
    result: list[str] = []
    for tag in tags or []:
        cleaned = " ".join(str(tag).split())
        if cleaned and cleaned not in seen:
            seen.add(cleaned)
            result.append(cleaned)
    return result
