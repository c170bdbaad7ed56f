"""
Tests for the application actions and lifecycle.
"""

import asyncio
from datetime import datetime

import pytest

from nudge.app import NudgeApp
from nudge.config import NudgeConfig
from nudge.errors import InvalidTimeError
from nudge.events import TASKS_CHANGED, Event, EventBus
from nudge.reminders import phrases
from nudge.reminders.policy import MotivationPolicy
from nudge.speech.tts import SilentSpeaker, Speaker
from nudge.tasks.models import TaskPriority
from nudge.tasks.store import KeyValueStore, TaskStore

from fakes import ScriptedRandom


@pytest.fixture
def app(store, speaker, afternoon):
    return NudgeApp(
        store,
        speaker,
        policy=MotivationPolicy(rng=ScriptedRandom()),
        clock=lambda: afternoon,
    )


class TestAddTask:
    """Tests for adding tasks from form input."""

    def test_add(self, app, speaker):
        task = app.add_task("Standup", "14:00", "high")
        assert task.time == "02:00:00 PM"
        assert task.priority == TaskPriority.HIGH
        assert speaker.spoken == [phrases.task_added("Standup", "02:00:00 PM")]

    def test_blank_inputs_ignored(self, app, speaker):
        assert app.add_task("", "14:00") is None
        assert app.add_task("Standup", "  ") is None
        assert app.store.tasks == []
        assert speaker.spoken == []

    def test_invalid_time_raises(self, app):
        with pytest.raises(InvalidTimeError):
            app.add_task("Standup", "teatime")
        assert app.store.tasks == []

    def test_invalid_priority_raises(self, app):
        with pytest.raises(ValueError):
            app.add_task("Standup", "14:00", "urgent")


class TestToggleTask:
    """Tests for completion toggling and next-task announcements."""

    def test_complete_announces_next_task(self, app, speaker):
        first = app.add_task("Standup", "13:30")
        app.add_task("Review", "14:05")
        speaker.clear()

        app.toggle_task(first.id)

        assert app.store.current().name == "Review"
        (message,) = speaker.spoken
        assert message.startswith(phrases.task_completed("Standup"))
        assert message.endswith(phrases.next_task("Review", 360))
        assert "6 minute baaqi" in message

    def test_next_task_late(self, app, speaker):
        first = app.add_task("Standup", "13:58:30")
        app.add_task("Review", "13:58:50")
        speaker.clear()

        app.toggle_task(first.id)
        assert "1 minute late" in speaker.spoken[0]

    def test_next_task_now(self, app, speaker):
        first = app.add_task("Standup", "13:30")
        app.add_task("Review", "13:59")
        speaker.clear()

        app.toggle_task(first.id)
        assert "bilkul abhi" in speaker.spoken[0]

    def test_complete_last_task(self, app, speaker):
        task = app.add_task("Standup", "14:00")
        speaker.clear()

        app.toggle_task(task.id)
        assert speaker.spoken[0].endswith(phrases.ALL_DONE)
        assert app.store.current() is None

    def test_undo_resets_delay_and_reopens(self, app, speaker):
        task = app.add_task("Standup", "14:00")
        app.toggle_task(task.id)
        app.store.get(task.id).delay_count = 3
        speaker.clear()

        reopened = app.toggle_task(task.id)
        assert reopened.completed is False
        assert reopened.delay_count == 0
        assert speaker.spoken == [phrases.task_reopened("Standup")]

    def test_toggle_unknown(self, app, speaker):
        assert app.toggle_task(123) is None
        assert speaker.spoken == []


class TestDeleteTask:
    """Tests for task deletion."""

    def test_delete_current_promotes_next(self, app, speaker):
        first = app.add_task("Standup", "13:30")
        app.add_task("Review", "15:00")
        speaker.clear()

        app.delete_task(first.id)
        assert app.store.current().name == "Review"
        assert speaker.spoken == [phrases.task_deleted("Standup")]

    def test_delete_unknown(self, app):
        assert app.delete_task(123) is None


class TestRendering:
    """Tests for the listing produced by the app."""

    def test_render(self, app):
        app.add_task("Standup", "14:00", "high")
        listing = app.render()
        assert listing.splitlines()[0] == "01:59:00 PM"
        assert "Standup (02:00:00 PM) | HIGH [soon] *current*" in listing


class TestEvents:
    """Tests for change notifications."""

    @pytest.mark.asyncio
    async def test_mutations_publish_changes(self, store, speaker, afternoon):
        bus = EventBus()
        received: list[Event] = []

        async def handler(event: Event):
            received.append(event)

        bus.subscribe(TASKS_CHANGED, handler)
        await bus.start()

        app = NudgeApp(store, speaker, event_bus=bus, clock=lambda: afternoon)
        task = app.add_task("Standup", "14:00")
        app.toggle_task(task.id)
        app.delete_task(task.id)

        await asyncio.sleep(0.05)
        await bus.stop()

        actions = [e.payload["action"] for e in received]
        assert actions == ["added", "toggled", "deleted"]

    def test_status_change_triggers_render(self, store, speaker, afternoon):
        app = NudgeApp(store, speaker, clock=lambda: afternoon)
        app.add_task("Standup", "14:00")
        published = []
        app._publish = lambda name, payload: published.append((name, payload))

        app._on_tick(afternoon)
        assert published == []

        app._on_tick(datetime(2026, 10, 19, 14, 0, 1))
        assert published == [(TASKS_CHANGED, {"action": "status", "count": 1})]

    def test_change_from_other_process_triggers_render(self, kv, store, speaker, afternoon):
        app = NudgeApp(
            store,
            speaker,
            policy=MotivationPolicy(rng=ScriptedRandom()),
            clock=lambda: afternoon,
        )
        app.add_task("Standup", "15:00")
        published = []
        app._publish = lambda name, payload: published.append((name, payload))

        other_kv = KeyValueStore(db_path=kv.db_path)
        try:
            cli = TaskStore(other_kv)
            cli.load()
            cli.add("Lunch", "01:30:00 PM", now=datetime(2026, 10, 19, 14, 0, 0))
        finally:
            other_kv.close()

        app.loop.tick(afternoon)
        assert published == [(TASKS_CHANGED, {"action": "status", "count": 2})]
        assert "Lunch (01:30:00 PM) | MEDIUM [overdue] *current*" in app.render()


class TestLifecycle:
    """Tests for start/stop."""

    @pytest.mark.asyncio
    async def test_empty_list_only_greets(self, store, speaker, afternoon):
        app = NudgeApp(
            store,
            speaker,
            policy=MotivationPolicy(rng=ScriptedRandom()),
            clock=lambda: afternoon,
            interval=10,
        )
        await app.start()
        await asyncio.sleep(0.01)
        await app.stop()
        assert speaker.spoken == [phrases.GREETING]

    @pytest.mark.asyncio
    async def test_start_loads_stored_tasks(self, kv, store, speaker, afternoon):
        store.add("Standup", "02:00:00 PM", now=afternoon)

        app = NudgeApp(
            TaskStore(kv),
            speaker,
            policy=MotivationPolicy(rng=ScriptedRandom()),
            clock=lambda: afternoon,
            interval=10,
        )
        await app.start()
        await asyncio.sleep(0.01)
        await app.stop()

        assert [t.name for t in app.store.tasks] == ["Standup"]
        # first tick runs before the greeting, so the greeting is heard last
        assert speaker.spoken == [phrases.task_one_minute("Standup"), phrases.GREETING]


class TestFromConfig:
    """Tests for building the app from configuration."""

    def test_speech_disabled(self, tmp_path):
        config = NudgeConfig(
            store={"path": str(tmp_path / "db" / "nudge.db"), "key": "custom"},
            speech={"enabled": False},
            reminder={"motivation_probability": 0.5, "interval": 2.0},
        )
        app = NudgeApp.from_config(config)
        try:
            assert isinstance(app.speaker, SilentSpeaker)
            assert app.store.key == "custom"
            assert app.loop.interval == 2.0
            assert app.loop.policy.probability == 0.5
            assert app.event_bus is not None
        finally:
            app.store.kv.close()

    def test_speech_enabled(self, tmp_path):
        config = NudgeConfig(
            store={"path": str(tmp_path / "nudge.db")},
            speech={"rate": 0.8, "preferred_langs": ["en-US"]},
        )
        app = NudgeApp.from_config(config)
        try:
            assert isinstance(app.speaker, Speaker)
            assert app.speaker.rate == 0.8
            assert app.speaker.preferred_langs == ["en-US"]
        finally:
            app.store.kv.close()
