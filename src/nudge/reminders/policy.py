"""
Announcement Policies

Decide what, if anything, to say about the current task on a given tick.
Both policies only decide; the reminder loop applies the side effects
(speaking, updating counters, persisting).
"""

from __future__ import annotations

import enum
import random
from dataclasses import dataclass
from typing import Optional

from nudge.reminders import phrases
from nudge.tasks.models import Task


class AnnouncementKind(enum.Enum):
    """Why an announcement fired."""
    START = "start"
    ONE_MINUTE = "one_minute"
    SECONDS = "seconds"
    MINUTES = "minutes"
    LATE = "late"
    ESCALATION = "escalation"
    MOTIVATION = "motivation"


@dataclass(frozen=True)
class Announcement:
    """Text to speak for a task, tagged with the rule that produced it."""

    kind: AnnouncementKind
    text: str

    @property
    def is_late(self) -> bool:
        return self.kind == AnnouncementKind.LATE


def decide_milestone(task: Task, offset: int, now_second: int) -> Optional[Announcement]:
    """
    Countdown and lateness milestones for the current task.

    At most one announcement per wall-clock second: nothing fires unless
    ``now_second`` is past the task's last announcement. The late rule is
    checked after the countdown rules and wins when both match.
    """
    if now_second <= task.last_spoken_time:
        return None

    announcement: Optional[Announcement] = None

    if offset == 0:
        announcement = Announcement(AnnouncementKind.START, phrases.task_starts_now(task.name))
    elif offset == 60:
        announcement = Announcement(
            AnnouncementKind.ONE_MINUTE, phrases.task_one_minute(task.name)
        )
    elif 0 < offset < 60 and offset % 10 == 0:
        announcement = Announcement(
            AnnouncementKind.SECONDS, phrases.task_seconds_left(task.name, offset)
        )
    elif 60 < offset <= 300 and offset % 60 == 0:
        announcement = Announcement(
            AnnouncementKind.MINUTES, phrases.task_minutes_left(task.name, offset // 60)
        )

    seconds_late = abs(offset)
    if offset < 0 and seconds_late >= 60 and seconds_late % 60 < 2:
        announcement = Announcement(AnnouncementKind.LATE, phrases.task_late(task.name))

    return announcement


class MotivationPolicy:
    """
    Secondary nagging layered on top of the milestones.

    Escalation repeats an urgent phrase on a tightening cadence once a task
    has been late several times. Random motivation occasionally offers
    encouragement, at most one evaluation per window across all tasks.
    """

    def __init__(
        self,
        rng: Optional[random.Random] = None,
        window: int = 60,
        probability: float = 0.20,
        cooldown: int = 10,
    ):
        """
        Args:
            rng: Random source (inject a seeded one for deterministic runs)
            window: Seconds between random motivation checks
            probability: Chance that a due check actually speaks
            cooldown: Quiet seconds after any announcement before escalating
        """
        self.rng = rng or random.Random()
        self.window = window
        self.probability = probability
        self.cooldown = cooldown

    @staticmethod
    def escalation_interval(delay_count: int) -> int:
        """Seconds between escalations for a given delay count (0 = none)."""
        if delay_count >= 10:
            return 15
        if delay_count >= 5:
            return 30
        return 0

    def escalation(self, task: Task, offset: int, now_second: int) -> Optional[Announcement]:
        if offset >= 0 or task.delay_count <= 0:
            return None
        if now_second <= task.last_spoken_time + self.cooldown:
            return None

        interval = self.escalation_interval(task.delay_count)
        if interval == 0 or abs(offset) % interval != 0:
            return None

        phrase = self.rng.choice(phrases.MOTIVATIONAL_PHRASES[: phrases.URGENT_PHRASE_COUNT])
        return Announcement(AnnouncementKind.ESCALATION, phrases.escalation(phrase))

    def motivation_due(self, now_second: int, last_motivation_time: int) -> bool:
        """True once the shared motivation window has elapsed."""
        return now_second > last_motivation_time + self.window

    def random_motivation(self, task: Task) -> Optional[Announcement]:
        """
        A single coin flip. Callers flip at most once per window and restart
        the window whether or not it lands.
        """
        if task.completed:
            return None
        if self.rng.random() >= self.probability:
            return None

        phrase = self.rng.choice(phrases.MOTIVATIONAL_PHRASES)
        return Announcement(AnnouncementKind.MOTIVATION, phrases.motivation(phrase))
