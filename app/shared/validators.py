"""Shared validation utilities"""

import re
from datetime import datetime, timezone
from typing import Iterable, Optional

from .exceptions import ValidationError

EMAIL_PATTERN = r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"
MAX_NOTE_LENGTH = 500


def validate_email(email: Optional[str]) -> Optional[str]:
    """
    Validate email format.

    Args:
        email: Email address string

    Returns:
        Lowercase email address

    Raises:
        ValueError: If email format is invalid
    """
    if not email:
        return email

    email = email.strip().lower()

    if not re.match(EMAIL_PATTERN, email):
        raise ValueError("Invalid email format")

    return email


def normalize_participants(participants: Optional[Iterable[str]]) -> list[str]:
    """
    Normalize a participant list: trim, lower-case and de-duplicate while
    keeping the caller's order.

    Raises:
        ValidationError: If any entry is not a valid email address
    """
    result = []
    seen = set()
    for raw in participants or []:
        try:
            email = validate_email(raw)
        except (ValueError, AttributeError):
            raise ValidationError(f"Invalid participant email: {raw!r}") from None
        if not email:
            raise ValidationError("Participant email must not be empty")
        if email not in seen:
            seen.add(email)
            result.append(email)
    return result


def ensure_utc(value: datetime, field: str = "datetime") -> datetime:
    """Return an aware UTC datetime. Naive values are interpreted as UTC."""
    if not isinstance(value, datetime):
        raise ValidationError(f"{field} must be a datetime")
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def validate_time_range(
    start: Optional[datetime], end: Optional[datetime], label: str = "time range"
) -> tuple[datetime, datetime]:
    """
    Validate a half-open [start, end) range.

    Raises:
        ValidationError: If either bound is missing or end <= start
    """
    if start is None or end is None:
        raise ValidationError(f"Start and end are required for {label}")
    start = ensure_utc(start, "start")
    end = ensure_utc(end, "end")
    if end <= start:
        raise ValidationError(f"End must be after start for {label}")
    return start, end


def validate_note(note: Optional[str]) -> Optional[str]:
    if note is None:
        return None
    note = note.strip()
    if len(note) > MAX_NOTE_LENGTH:
        raise ValidationError(f"Note cannot exceed {MAX_NOTE_LENGTH} characters")
    return note or None
