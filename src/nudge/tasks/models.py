"""
Task Data Models

Pydantic models for the reminder task list. Records are stored with the
camelCase field names the persisted JSON has always used.
"""

from __future__ import annotations

import enum

from pydantic import BaseModel, ConfigDict, Field


class TaskPriority(str, enum.Enum):
    """Task priority levels (display only)."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Task(BaseModel):
    """
    A scheduled time-of-day task.

    ``time`` is a 12-hour clock string such as ``"02:00:00 PM"``; the date
    is always implicitly today.
    """

    model_config = ConfigDict(populate_by_name=True, use_enum_values=False)

    id: int
    name: str
    time: str
    priority: TaskPriority = TaskPriority.MEDIUM
    completed: bool = False
    delay_count: int = Field(default=0, alias="delayCount")
    last_spoken_time: int = Field(default=0, alias="lastSpokenTime")

    def __repr__(self) -> str:
        state = "done" if self.completed else "pending"
        return f"<Task {self.name!r} at {self.time} [{state}]>"
