"""
Task Store

Persists the whole task list as one JSON value in a small key-value table,
and owns the list's ordering and mutations.
"""

from __future__ import annotations

import json
import time
from datetime import datetime
from pathlib import Path
from typing import Optional

from pydantic import ValidationError
from sqlalchemy import String, Text, create_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker

from nudge.tasks.models import Task, TaskPriority
from nudge.tasks.timemath import SECONDS_PER_DAY, seconds_of_day
from nudge.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_TASK_KEY = "nudgeTasks"


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


class KeyValue(Base):
    """A single string-keyed value."""
    __tablename__ = "kv_store"

    key: Mapped[str] = mapped_column(String(255), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)

    def __repr__(self) -> str:
        return f"<KeyValue {self.key!r}>"


class KeyValueStore:
    """
    String-keyed persistent store.

    Values are overwritten wholesale; there are no partial updates.
    """

    def __init__(self, db_path: Optional[str | Path] = None, echo: bool = False):
        """
        Initialize the store.

        Args:
            db_path: Path to SQLite database. Defaults to ~/.nudge/data/nudge.db
            echo: Log SQL statements
        """
        if db_path is None:
            db_path = Path.home() / ".nudge" / "data" / "nudge.db"
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)

        self.db_path = str(db_path)
        self.engine = create_engine(f"sqlite:///{self.db_path}", echo=echo)
        self.SessionLocal = sessionmaker(bind=self.engine)

        Base.metadata.create_all(self.engine)

    def _get_session(self) -> Session:
        return self.SessionLocal()

    def get(self, key: str) -> Optional[str]:
        """Get the value stored under ``key``, or None."""
        with self._get_session() as session:
            row = session.get(KeyValue, key)
            return row.value if row else None

    def set(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""
        with self._get_session() as session:
            row = session.get(KeyValue, key)
            if row:
                row.value = value
            else:
                session.add(KeyValue(key=key, value=value))
            session.commit()

    def delete(self, key: str) -> bool:
        """Remove ``key``. Returns True if it existed."""
        with self._get_session() as session:
            row = session.get(KeyValue, key)
            if row:
                session.delete(row)
                session.commit()
                return True
            return False

    def close(self) -> None:
        self.engine.dispose()


def sort_key(task: Task) -> tuple[bool, int]:
    """Incomplete before completed, then by time of day."""
    total = seconds_of_day(task.time)
    return (task.completed, total if total is not None else SECONDS_PER_DAY)


class TaskStore:
    """
    Ordered task list backed by a key-value store.

    Every mutation saves the full list and re-sorts it, so ``tasks`` always
    reflects what a fresh ``load()`` would return.
    """

    def __init__(self, kv: KeyValueStore, key: str = DEFAULT_TASK_KEY):
        self.kv = kv
        self.key = key
        self.tasks: list[Task] = []
        self._last_id = 0
        self._raw: Optional[str] = None

    # =========================================================================
    # Persistence
    # =========================================================================

    def load(self) -> list[Task]:
        """Reload tasks from storage. Missing or corrupt data means no tasks."""
        raw = self.kv.get(self.key)
        self._raw = raw
        self.tasks = self._decode(raw) if raw else []
        self.sort()
        logger.debug("tasks_loaded", count=len(self.tasks))
        return self.tasks

    def refresh(self) -> bool:
        """
        Pick up a list written by another process (e.g. ``nudge add`` while the
        daemon runs). Returns True if the stored list had changed.

        Announcement progress of tasks that still exist is merged in:
        ``last_spoken_time`` never goes backwards, and ``delay_count`` only
        resets when the other writer toggled the task.
        """
        raw = self.kv.get(self.key)
        if raw == self._raw:
            return False

        known = {task.id: task for task in self.tasks}
        self._raw = raw
        self.tasks = self._decode(raw) if raw else []
        for task in self.tasks:
            mine = known.get(task.id)
            if mine is None:
                continue
            task.last_spoken_time = max(task.last_spoken_time, mine.last_spoken_time)
            if task.completed == mine.completed:
                task.delay_count = max(task.delay_count, mine.delay_count)

        self.sort()
        logger.info("tasks_refreshed", count=len(self.tasks))
        return True

    def _decode(self, raw: str) -> list[Task]:
        try:
            records = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning("stored_tasks_corrupt", key=self.key, error=str(e))
            return []

        if not isinstance(records, list):
            logger.warning("stored_tasks_corrupt", key=self.key, error="not a list")
            return []

        try:
            return [Task.model_validate(record) for record in records]
        except ValidationError as e:
            logger.warning("stored_tasks_corrupt", key=self.key, error=str(e))
            return []

    def save(self) -> None:
        """Write the whole task list back to storage."""
        payload = [task.model_dump(mode="json", by_alias=True) for task in self.tasks]
        raw = json.dumps(payload, ensure_ascii=False)
        self.kv.set(self.key, raw)
        self._raw = raw

    def _commit(self) -> None:
        self.save()
        self.load()

    # =========================================================================
    # Queries
    # =========================================================================

    def sort(self) -> None:
        """Stable sort: pending first, each group ascending by time of day."""
        self.tasks.sort(key=sort_key)

    def current_index(self) -> int:
        """Index of the first incomplete task, or -1."""
        for index, task in enumerate(self.tasks):
            if not task.completed:
                return index
        return -1

    def current(self) -> Optional[Task]:
        """The first incomplete task in sort order, if any."""
        index = self.current_index()
        return self.tasks[index] if index != -1 else None

    def get(self, task_id: int) -> Optional[Task]:
        for task in self.tasks:
            if task.id == task_id:
                return task
        return None

    # =========================================================================
    # Mutations
    # =========================================================================

    def _next_id(self, now: Optional[datetime] = None) -> int:
        stamp = int((now.timestamp() if now else time.time()) * 1000)
        self._last_id = max(stamp, self._last_id + 1)
        return self._last_id

    def add(
        self,
        name: str,
        task_time: str,
        priority: TaskPriority = TaskPriority.MEDIUM,
        now: Optional[datetime] = None,
    ) -> Task:
        """Create and persist a new task."""
        task = Task(
            id=self._next_id(now),
            name=name,
            time=task_time,
            priority=priority,
        )
        self.tasks.append(task)
        self._commit()
        logger.info("task_added", task_id=task.id, name=task.name, time=task.time)
        return self.get(task.id) or task

    def toggle(self, task_id: int) -> Optional[Task]:
        """Flip completion and reset the delay counter."""
        task = self.get(task_id)
        if task is None:
            return None

        task.completed = not task.completed
        task.delay_count = 0
        self._commit()
        logger.info("task_toggled", task_id=task_id, completed=task.completed)
        return self.get(task_id)

    def delete(self, task_id: int) -> Optional[Task]:
        """Remove a task. Returns the removed task, or None if unknown."""
        task = self.get(task_id)
        if task is None:
            return None

        self.tasks.remove(task)
        self._commit()
        logger.info("task_deleted", task_id=task_id, name=task.name)
        return task
