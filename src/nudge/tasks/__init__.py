"""
Task list: models, time-of-day math and persistence.
"""

from nudge.tasks.models import Task, TaskPriority
from nudge.tasks.store import KeyValueStore, TaskStore
from nudge.tasks.timemath import (
    format_time,
    normalize_time_input,
    offset_seconds,
    seconds_of_day,
)

__all__ = [
    "Task",
    "TaskPriority",
    "KeyValueStore",
    "TaskStore",
    "format_time",
    "normalize_time_input",
    "offset_seconds",
    "seconds_of_day",
]
