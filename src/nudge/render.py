"""
Task list rendering.

Produces the plain-text listing shown by ``nudge list`` and refreshed by the
daemon after every change.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime
from typing import Sequence

from nudge.tasks.models import Task
from nudge.tasks.timemath import format_time, offset_seconds

SOON_WINDOW = 5 * 60


class TaskStatus(enum.Enum):
    """Visual status of a task in the listing."""
    NONE = ""
    DONE = "done"
    OVERDUE = "overdue"
    SOON = "soon"


@dataclass(frozen=True)
class RenderedTask:
    task: Task
    status: TaskStatus
    is_current: bool


def task_status(task: Task, now: datetime) -> TaskStatus:
    if task.completed:
        return TaskStatus.DONE

    offset = offset_seconds(task.time, now)
    if offset is None:
        return TaskStatus.NONE
    if offset < 0:
        return TaskStatus.OVERDUE
    if offset < SOON_WINDOW:
        return TaskStatus.SOON
    return TaskStatus.NONE


def render_tasks(tasks: Sequence[Task], now: datetime) -> list[RenderedTask]:
    """Tag each task with its status; the first pending task is current."""
    rendered: list[RenderedTask] = []
    current_found = False

    for task in tasks:
        is_current = not task.completed and not current_found
        current_found = current_found or is_current
        rendered.append(RenderedTask(task, task_status(task, now), is_current))

    return rendered


def format_line(item: RenderedTask) -> str:
    task = item.task
    line = f"{task.name} ({task.time[:8]}) | {task.priority.value.upper()}"
    if item.status is not TaskStatus.NONE:
        line += f" [{item.status.value}]"
    if item.is_current:
        line += " *current*"
    return f"{line}  #{task.id}"


def format_listing(tasks: Sequence[Task], now: datetime) -> str:
    """Clock line followed by one line per task."""
    lines = [format_time(now)]
    if not tasks:
        lines.append("(no tasks)")
    lines.extend(format_line(item) for item in render_tasks(tasks, now))
    return "\n".join(lines)
