"""
Reminder scheduling: announcement policies and the once-a-second loop.
"""

from nudge.reminders.loop import AppState, ReminderLoop
from nudge.reminders.policy import (
    Announcement,
    AnnouncementKind,
    MotivationPolicy,
    decide_milestone,
)

__all__ = [
    "AppState",
    "ReminderLoop",
    "Announcement",
    "AnnouncementKind",
    "MotivationPolicy",
    "decide_milestone",
]
