"""Nudge exception types."""

from __future__ import annotations


class NudgeError(Exception):
    """Base class for all Nudge errors."""


class InvalidTimeError(NudgeError, ValueError):
    """A time-of-day value could not be understood."""

    def __init__(self, value: str):
        super().__init__(f"Invalid time of day: {value!r}")
        self.value = value
