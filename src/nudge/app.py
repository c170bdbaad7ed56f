"""
Nudge Application

Owns the task list, the reminder loop and the speaker, and implements the
user-facing actions: add, toggle completion, delete.
"""

from __future__ import annotations

import random
from datetime import datetime
from typing import Callable, Optional

from nudge.config import NudgeConfig
from nudge.events import TASKS_CHANGED, EventBus
from nudge.reminders import phrases
from nudge.reminders.loop import AppState, ReminderLoop
from nudge.reminders.policy import MotivationPolicy
from nudge.render import TaskStatus, format_listing, render_tasks
from nudge.speech.tts import SilentSpeaker, Speaker, SpeechOutput
from nudge.speech.voices import VoiceCatalog, default_search_dirs
from nudge.tasks.models import Task, TaskPriority
from nudge.tasks.store import KeyValueStore, TaskStore
from nudge.tasks.timemath import normalize_time_input, offset_seconds
from nudge.utils.logging import get_logger

logger = get_logger(__name__)


class NudgeApp:
    """
    The reminder assistant.

    Every mutation persists immediately, reloads the list and publishes
    ``tasks.changed`` so listeners can re-render.
    """

    def __init__(
        self,
        store: TaskStore,
        speaker: SpeechOutput,
        event_bus: Optional[EventBus] = None,
        policy: Optional[MotivationPolicy] = None,
        clock: Callable[[], datetime] = datetime.now,
        interval: float = 1.0,
    ):
        """
        Initialize the app.

        Args:
            store: Task list persistence
            speaker: Speech output for announcements
            event_bus: Bus for change notifications (optional)
            policy: Motivation policy; a default one is created if omitted
            clock: Returns the current local time
            interval: Seconds between reminder ticks
        """
        self.store = store
        self.speaker = speaker
        self.event_bus = event_bus
        self.clock = clock
        self.state = AppState(store=store)
        self.loop = ReminderLoop(
            self.state,
            speaker,
            policy=policy,
            clock=clock,
            interval=interval,
            on_tick=self._on_tick,
        )
        self._statuses: list[tuple[int, TaskStatus, bool]] = []

    @classmethod
    def from_config(cls, config: NudgeConfig) -> "NudgeApp":
        """Build the app and its collaborators from configuration."""
        kv = KeyValueStore(db_path=config.store.path, echo=config.store.echo)
        store = TaskStore(kv, key=config.store.key)

        speaker: SpeechOutput
        if config.speech.enabled:
            speaker = Speaker(
                VoiceCatalog(default_search_dirs(config.speech.models_dir)),
                piper_path=config.speech.piper_path,
                preferred_langs=config.speech.preferred_langs,
                fallback_lang=config.speech.fallback_lang,
                rate=config.speech.rate,
                sample_rate=config.speech.sample_rate,
            )
        else:
            speaker = SilentSpeaker()

        event_bus = EventBus(
            max_queue_size=config.events.max_queue_size,
            handler_timeout=config.events.handler_timeout,
        )
        policy = MotivationPolicy(
            rng=random.Random(),
            window=config.reminder.motivation_window,
            probability=config.reminder.motivation_probability,
            cooldown=config.reminder.escalation_cooldown,
        )
        return cls(
            store,
            speaker,
            event_bus=event_bus,
            policy=policy,
            interval=config.reminder.interval,
        )

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def load(self) -> list[Task]:
        tasks = self.store.load()
        self._statuses = self._snapshot(self.clock())
        return tasks

    async def start(self) -> None:
        """Load tasks, run the first tick, greet the user, then keep ticking."""
        self.load()
        self.loop.tick()
        self.speaker.speak(phrases.GREETING)
        await self.loop.start()
        logger.info("nudge_app_started", tasks=len(self.store.tasks))

    async def stop(self) -> None:
        await self.loop.stop()
        logger.info("nudge_app_stopped")

    # =========================================================================
    # User actions
    # =========================================================================

    def add_task(
        self,
        name: str,
        time_input: str,
        priority: TaskPriority | str = TaskPriority.MEDIUM,
    ) -> Optional[Task]:
        """
        Add a task from form input.

        Returns None when the name or time is blank. Raises InvalidTimeError
        when the time cannot be parsed.
        """
        name = name.strip()
        if not name or not time_input.strip():
            return None

        task_time = normalize_time_input(time_input)
        task = self.store.add(name, task_time, TaskPriority(priority), now=self.clock())

        self.speaker.speak(phrases.task_added(task.name, task.time))
        self._changed("added", task)
        return task

    def toggle_task(self, task_id: int) -> Optional[Task]:
        """
        Flip a task's completion. After completing a task, announce the one
        that is now current.
        """
        task = self.store.toggle(task_id)
        if task is None:
            logger.warning("task_not_found", task_id=task_id)
            return None

        if task.completed:
            message = f"{phrases.task_completed(task.name)} {self._next_task_message()}"
        else:
            message = phrases.task_reopened(task.name)

        self.speaker.speak(message)
        self._changed("toggled", task)
        return task

    def delete_task(self, task_id: int) -> Optional[Task]:
        task = self.store.delete(task_id)
        if task is None:
            logger.warning("task_not_found", task_id=task_id)
            return None

        self.speaker.speak(phrases.task_deleted(task.name))
        self._changed("deleted", task)
        return task

    def _next_task_message(self) -> str:
        next_task = self.store.current()
        if next_task is None:
            return phrases.ALL_DONE
        return phrases.next_task(next_task.name, offset_seconds(next_task.time, self.clock()))

    # =========================================================================
    # Rendering
    # =========================================================================

    def render(self, now: Optional[datetime] = None) -> str:
        return format_listing(self.store.tasks, now or self.clock())

    def _snapshot(self, now: datetime) -> list[tuple[int, TaskStatus, bool]]:
        return [
            (item.task.id, item.status, item.is_current)
            for item in render_tasks(self.store.tasks, now)
        ]

    def _changed(self, action: str, task: Optional[Task] = None) -> None:
        self._statuses = self._snapshot(self.clock())
        self._publish(
            TASKS_CHANGED,
            {
                "action": action,
                "task_id": task.id if task else None,
                "count": len(self.store.tasks),
            },
        )

    def _on_tick(self, now: datetime) -> None:
        # Re-render only when a task changes colour or another process edited the list
        statuses = self._snapshot(now)
        if statuses != self._statuses:
            self._statuses = statuses
            self._publish(TASKS_CHANGED, {"action": "status", "count": len(statuses)})

    def _publish(self, event_name: str, payload: dict) -> None:
        if self.event_bus and self.event_bus.is_running:
            self.event_bus.emit_nowait(event_name, payload)
