from __future__ import annotations

from ..core.exceptions import ValidationError


def require_non_empty(value: str, field_name: str) -> str:
    if not value or not value.strip():
        raise ValidationError(f"{field_name} is required")
    return value.strip()


def require_positive_int(value, field_name: str) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be a number")
    if number <= 0:
        raise ValidationError(f"{field_name} is invalid")
    return number


def require_min_length(value: str, field_name: str, min_len: int) -> str:
    if not value or len(value) < min_len:
        raise ValidationError(f"{field_name} must be at least {min_len} characters")
    return value


def require_hhmm(value, field_name: str) -> str:
    """Normalize "H:MM" / "HH:MM" to "HH:MM"."""

    try:
        hours, minutes = str(value or "").strip().split(":")
        h, m = int(hours), int(minutes)
    except ValueError:
        raise ValidationError(f"{field_name} must be in HH:MM format")
    if not (0 <= h <= 23 and 0 <= m <= 59):
        raise ValidationError(f"{field_name} must be in HH:MM format")
    return f"{h:02d}:{m:02d}"
