"""
Spoken phrases (Roman Urdu).
"""

from __future__ import annotations

MOTIVATIONAL_PHRASES: tuple[str, ...] = (
    "Jaldi karien! Waqt nikal raha hai, apna kaam shuru karien.",
    "Aap schedule se peeche hain! Abhi focus karien!",
    "Har aik second qeemti hai, aagay barhiye!",
    "Bas thora sa josh, yeh kaam khatam karien.",
)

# Escalation only draws from the urgent phrases
URGENT_PHRASE_COUNT = 3

GREETING = "Salam! Main aapka Smart Assistant hoon. Aap apna schedule shuru karien."
ALL_DONE = "Aapke saare kaam poore ho chuke hain! Bahut umda!"


def task_starts_now(name: str) -> str:
    return f"Aapka task {name} start ho gaya hai!"


def task_one_minute(name: str) -> str:
    return f"Aapka task {name} bas 1 minute mein shuru hone wala hai! Tayyar ho jaiye!"


def task_seconds_left(name: str, seconds: int) -> str:
    return f"{name} shuru honay mein sirf {seconds} second baaqi hain."


def task_minutes_left(name: str, minutes: int) -> str:
    return f"{name} shuru honay mein {minutes} minute baaqi hain."


def task_late(name: str) -> str:
    return f"Aap {name} ke liye late ho chukay hain! Fauran isko poora karien!"


def escalation(phrase: str) -> str:
    return f"Khayal karien! {phrase}"


def motivation(phrase: str) -> str:
    return f"Aapke liye aik chota message: {phrase}"


def task_added(name: str, task_time: str) -> str:
    return f"Naya kaam daal diya gaya hai: {name} time {task_time} par."


def task_completed(name: str) -> str:
    return f"{name} poora ho gaya. Bahut accha kiya!"


def task_reopened(name: str) -> str:
    return f"Task {name} wapas pending list mein hai."


def task_deleted(name: str) -> str:
    return f"Kaam {name} khatam kar diya gaya hai."


def next_task(name: str, offset: int | None) -> str:
    """Announce the task that just became current."""
    message = f"Agla kaam {name} hai."
    if offset is None:
        return message

    if offset > 0:
        minutes_left = -(-offset // 60)
        message += f" Ismein abhi takriban {minutes_left} minute baaqi hain."
    elif offset < 0:
        minutes_late = -(-abs(offset) // 60)
        message += f" Ye kaam shuru ho chuka hai aur aap {minutes_late} minute late hain."
    else:
        message += " Aur iska waqt bilkul abhi hai."
    return message
