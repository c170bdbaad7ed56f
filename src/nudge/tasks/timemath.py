"""
Time-of-day arithmetic for daily tasks.

Tasks carry only a clock time, so every comparison happens on the
second-of-day scale. Dates are ignored and midnight wraparound is not
modelled.
"""

from __future__ import annotations

import re
from datetime import datetime, time

from nudge.errors import InvalidTimeError

TASK_TIME_PATTERN = re.compile(r"(\d{2}):(\d{2}):(\d{2}) ([APM]{2})")
INPUT_TIME_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})(?::(\d{2}))?$")

SECONDS_PER_DAY = 24 * 3600


def seconds_of_day(task_time: str) -> int | None:
    """
    Convert a ``"hh:mm:ss AM"`` string to seconds since midnight.

    Returns None when the string does not contain a scheduled time.
    """
    match = TASK_TIME_PATTERN.search(task_time)
    if not match:
        return None

    hours = int(match.group(1))
    minutes = int(match.group(2))
    seconds = int(match.group(3))
    marker = match.group(4)

    if marker == "PM" and hours != 12:
        hours += 12
    if marker == "AM" and hours == 12:
        hours = 0

    return hours * 3600 + minutes * 60 + seconds


def offset_seconds(task_time: str, now: datetime) -> int | None:
    """
    Signed seconds from ``now`` until the task's time of day.

    Negative means the task is overdue. None means the task time could not
    be parsed and the task cannot be scheduled.
    """
    task_total = seconds_of_day(task_time)
    if task_total is None:
        return None

    now_total = now.hour * 3600 + now.minute * 60 + now.second
    return task_total - now_total


def format_time(value: datetime | time) -> str:
    """Format a clock value as ``"hh:mm:ss AM"``."""
    return value.strftime("%I:%M:%S %p")


def normalize_time_input(raw: str) -> str:
    """
    Turn a 24-hour form value (``"14:00"`` or ``"14:00:30"``) into the
    stored 12-hour form. Missing seconds default to zero.
    """
    match = INPUT_TIME_PATTERN.match(raw.strip())
    if not match:
        raise InvalidTimeError(raw)

    hours = int(match.group(1))
    minutes = int(match.group(2))
    seconds = int(match.group(3) or 0)

    try:
        value = time(hour=hours, minute=minutes, second=seconds)
    except ValueError as e:
        raise InvalidTimeError(raw) from e

    return format_time(value)
