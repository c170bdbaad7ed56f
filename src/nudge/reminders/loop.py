"""
Reminder Loop

Once a second, picks up any change another process made to the stored task
list, looks at the current task (the first incomplete one) and speaks
whatever the announcement policies decide.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Callable, Optional

from nudge.reminders.policy import Announcement, MotivationPolicy, decide_milestone
from nudge.tasks.models import Task
from nudge.tasks.store import TaskStore
from nudge.tasks.timemath import offset_seconds
from nudge.utils.logging import get_logger

if TYPE_CHECKING:
    from nudge.speech.tts import SpeechOutput

logger = get_logger(__name__)


@dataclass
class AppState:
    """
    Mutable application state shared by the loop and the mutation handlers.

    ``last_motivation_time`` is process-wide, not per task.
    """

    store: TaskStore
    last_motivation_time: int = 0


class ReminderLoop:
    """
    Periodic driver for reminder announcements.

    ``tick`` does one second's worth of work synchronously; ``start`` runs it
    on a background asyncio task at a fixed interval.
    """

    def __init__(
        self,
        state: AppState,
        speaker: "SpeechOutput",
        policy: Optional[MotivationPolicy] = None,
        clock: Callable[[], datetime] = datetime.now,
        interval: float = 1.0,
        on_tick: Optional[Callable[[datetime], None]] = None,
    ):
        """
        Initialize the loop.

        Args:
            state: Shared application state
            speaker: Where announcements are spoken
            policy: Motivation policy (owns the random source)
            clock: Returns the current local time
            interval: Seconds between ticks
            on_tick: Called after every tick (re-render)
        """
        self.state = state
        self.speaker = speaker
        self.policy = policy or MotivationPolicy()
        self.clock = clock
        self.interval = interval
        self.on_tick = on_tick

        self._running = False
        self._task: Optional[asyncio.Task] = None

    async def start(self) -> None:
        """Start ticking in the background. The first tick is one interval away."""
        if self._running:
            logger.warning("reminder_loop_already_running")
            return

        self._running = True
        self._task = asyncio.create_task(self._run_loop())
        logger.info("reminder_loop_started", interval=self.interval)

    async def stop(self) -> None:
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("reminder_loop_stopped")

    async def _run_loop(self) -> None:
        while self._running:
            await asyncio.sleep(self.interval)
            try:
                self.tick()
            except Exception as e:
                logger.error("reminder_tick_error", error=str(e), exc_info=True)

    def tick(self, now: Optional[datetime] = None) -> list[Announcement]:
        """
        Run the reminder checks for one second.

        Returns the announcements spoken during this tick.
        """
        now = now or self.clock()
        self.state.store.refresh()
        spoken = self._check_current(now)

        if self.on_tick:
            self.on_tick(now)

        return spoken

    def _check_current(self, now: datetime) -> list[Announcement]:
        now_second = int(now.timestamp())

        task = self.state.store.current()
        if task is None:
            return []

        offset = offset_seconds(task.time, now)
        if offset is None:
            logger.debug("task_time_unparseable", task_id=task.id, time=task.time)
            return []

        spoken: list[Announcement] = []

        milestone = decide_milestone(task, offset, now_second)
        if milestone:
            if milestone.is_late:
                task.delay_count += 1
            self._announce(task, milestone)
            task.last_spoken_time = now_second
            self.state.store.save()
            spoken.append(milestone)

        escalation = self.policy.escalation(task, offset, now_second)
        if escalation:
            self._announce(task, escalation)
            task.last_spoken_time = now_second
            self.state.store.save()
            spoken.append(escalation)
        else:
            motivation = self._random_motivation(task, now_second)
            if motivation:
                spoken.append(motivation)

        return spoken

    def _random_motivation(self, task: Task, now_second: int) -> Optional[Announcement]:
        if task.completed:
            return None
        if not self.policy.motivation_due(now_second, self.state.last_motivation_time):
            return None

        self.state.last_motivation_time = now_second
        motivation = self.policy.random_motivation(task)
        if motivation:
            self._announce(task, motivation)
        return motivation

    def _announce(self, task: Task, announcement: Announcement) -> None:
        logger.info(
            "reminder_announced",
            task_id=task.id,
            kind=announcement.kind.value,
            delay_count=task.delay_count,
        )
        self.speaker.speak(announcement.text)

    @property
    def is_running(self) -> bool:
        return self._running
