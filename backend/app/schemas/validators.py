"""Reusable field validators for quote request input.

Provides:
- Email validation (conventional local@domain.tld shape)
- Closed-set choice validation for the wizard's option fields
- Blank-string normalisation
"""

import re

# Something before and after a single @, and a dot in the domain.
EMAIL_REGEX = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MAX_EMAIL_LENGTH = 254  # RFC 5321


def is_valid_email(value: str | None) -> bool:
    if not value:
        return False
    value = value.strip()
    return len(value) <= MAX_EMAIL_LENGTH and bool(EMAIL_REGEX.match(value))


def validate_email(value: str) -> str:
    """Validate email address.

    Args:
        value: Email address

    Returns:
        Trimmed, lowercase email address

    Raises:
        ValueError: If email is invalid
    """
    if not value or not value.strip():
        raise ValueError("Email is required")

    value = value.strip().lower()

    if len(value) > MAX_EMAIL_LENGTH:
        raise ValueError("Email address too long")

    if not EMAIL_REGEX.match(value):
        raise ValueError("Invalid email address format")

    return value


def blank_to_none(value):
    """Map empty / whitespace-only strings to None, trim everything else."""
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


def validate_choice(value: str | None, choices, label: str) -> str | None:
    """Allow None or a member of `choices`."""
    if value is None:
        return None
    if value not in choices:
        allowed = ", ".join(sorted(choices))
        raise ValueError(f"Unknown {label} {value!r} (expected one of: {allowed})")
    return value
