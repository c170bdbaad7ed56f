"""
Shared fixtures.
"""

from datetime import datetime

import pytest

from nudge.tasks.store import KeyValueStore, TaskStore

from fakes import RecordingSpeaker, ScriptedRandom


@pytest.fixture
def kv(tmp_path):
    store = KeyValueStore(db_path=tmp_path / "nudge.db")
    yield store
    store.close()


@pytest.fixture
def store(kv):
    task_store = TaskStore(kv)
    task_store.load()
    return task_store


@pytest.fixture
def speaker():
    return RecordingSpeaker()


@pytest.fixture
def rng():
    return ScriptedRandom()


@pytest.fixture
def afternoon():
    """01:59:00 PM on a fixed day."""
    return datetime(2026, 10, 19, 13, 59, 0)
