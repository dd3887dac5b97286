"""
Validation utilities.
"""
from datetime import date
from typing import Optional
from email_validator import validate_email, EmailNotValidError


def validate_user_email(email: str) -> bool:
    """
    Validate email address syntax.

    Args:
        email: Email address to validate

    Returns:
        bool: True if email is valid
    """
    try:
        validate_email(email, check_deliverability=False)
        return True
    except EmailNotValidError:
        return False


def normalize_email(email: str) -> str:
    """Trim and lower-case an address for matching."""
    return (email or "").strip().lower()


def parse_iso_date(value: Optional[str]) -> Optional[date]:
    """
    Parse a ``YYYY-MM-DD`` string (a full ISO timestamp is truncated to its date).

    Returns:
        date or None when the value is missing or malformed
    """
    if not value:
        return None
    try:
        return date.fromisoformat(value.strip()[:10])
    except ValueError:
        return None
