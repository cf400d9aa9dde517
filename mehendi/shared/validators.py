"""Shared validation utilities"""

import re
import uuid
from typing import Optional

TIME_PATTERN = re.compile(r"^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$")

MINUTES_PER_DAY = 24 * 60


def validate_uuid(value: str) -> bool:
    """Validate UUID format"""
    try:
        uuid.UUID(value)
        return True
    except (ValueError, AttributeError, TypeError):
        return False


def validate_time_string(value: Optional[str]) -> Optional[str]:
    """
    Validate a 24-hour "HH:MM" time and normalize it to two-digit hours.

    Raises:
        ValueError: If the value is not a valid time of day
    """
    if value is None:
        return value

    value = value.strip()
    if not TIME_PATTERN.match(value):
        raise ValueError("Start time must be in HH:MM format (e.g., 14:30).")

    hours, minutes = value.split(":")
    return f"{int(hours):02d}:{minutes}"


def compute_end_time(start_time: Optional[str], duration_minutes: Optional[int]) -> Optional[str]:
    """
    Derive the end time of an appointment from its start and duration.

    The result wraps around midnight (23:30 + 60 -> 00:30) and the appointment
    date is not advanced.
    """
    if not start_time or not duration_minutes:
        return None

    hours, minutes = (int(part) for part in start_time.split(":"))
    total = (hours * 60 + minutes + duration_minutes) % MINUTES_PER_DAY
    return f"{total // 60:02d}:{total % 60:02d}"
