"""
Tests for milestone and motivation policies.
"""

import pytest

from nudge.reminders import phrases
from nudge.reminders.policy import AnnouncementKind, MotivationPolicy, decide_milestone
from nudge.tasks.models import Task

from fakes import ScriptedRandom

NOW = 1_800_000_000


def make_task(**overrides) -> Task:
    fields = {"id": 1, "name": "Standup", "time": "02:00:00 PM"}
    fields.update(overrides)
    return Task(**fields)


class TestDecideMilestone:
    """Tests for countdown and late announcements."""

    def test_start(self):
        result = decide_milestone(make_task(), 0, NOW)
        assert result.kind == AnnouncementKind.START
        assert result.text == phrases.task_starts_now("Standup")

    def test_one_minute(self):
        result = decide_milestone(make_task(), 60, NOW)
        assert result.kind == AnnouncementKind.ONE_MINUTE

    @pytest.mark.parametrize("offset", [10, 20, 30, 40, 50])
    def test_last_minute_every_ten_seconds(self, offset):
        result = decide_milestone(make_task(), offset, NOW)
        assert result.kind == AnnouncementKind.SECONDS
        assert f"{offset} second" in result.text

    @pytest.mark.parametrize("offset", [120, 180, 240, 300])
    def test_whole_minutes_up_to_five(self, offset):
        result = decide_milestone(make_task(), offset, NOW)
        assert result.kind == AnnouncementKind.MINUTES
        assert f"{offset // 60} minute" in result.text

    @pytest.mark.parametrize("offset", [1, 9, 15, 59, 61, 90, 119, 301, 360, 3600, -1, -30, -59, -62])
    def test_silent_offsets(self, offset):
        assert decide_milestone(make_task(), offset, NOW) is None

    @pytest.mark.parametrize("offset", [-60, -61, -120, -121, -600])
    def test_late(self, offset):
        result = decide_milestone(make_task(), offset, NOW)
        assert result.kind == AnnouncementKind.LATE
        assert result.is_late
        assert result.text == phrases.task_late("Standup")

    def test_same_second_is_gated(self):
        task = make_task(last_spoken_time=NOW)
        assert decide_milestone(task, 0, NOW) is None
        assert decide_milestone(task, -60, NOW) is None

    def test_next_second_is_allowed(self):
        task = make_task(last_spoken_time=NOW)
        assert decide_milestone(task, 0, NOW + 1) is not None


class TestEscalation:
    """Tests for late-task escalation cadence."""

    @pytest.fixture
    def policy(self):
        return MotivationPolicy(rng=ScriptedRandom(choice_index=1))

    def test_interval_by_delay_count(self):
        assert MotivationPolicy.escalation_interval(0) == 0
        assert MotivationPolicy.escalation_interval(4) == 0
        assert MotivationPolicy.escalation_interval(5) == 30
        assert MotivationPolicy.escalation_interval(9) == 30
        assert MotivationPolicy.escalation_interval(10) == 15
        assert MotivationPolicy.escalation_interval(25) == 15

    def test_fires_every_thirty_seconds_after_five_delays(self, policy):
        task = make_task(delay_count=5, last_spoken_time=NOW - 60)
        result = policy.escalation(task, -150, NOW)
        assert result.kind == AnnouncementKind.ESCALATION
        assert result.text == phrases.escalation(phrases.MOTIVATIONAL_PHRASES[1])

    def test_thirty_second_cadence_skips_fifteen(self, policy):
        task = make_task(delay_count=5, last_spoken_time=NOW - 60)
        assert policy.escalation(task, -135, NOW) is None

    def test_fifteen_second_cadence(self, policy):
        task = make_task(delay_count=10, last_spoken_time=NOW - 60)
        assert policy.escalation(task, -135, NOW) is not None

    def test_no_escalation_below_five_delays(self, policy):
        task = make_task(delay_count=4, last_spoken_time=NOW - 60)
        assert policy.escalation(task, -150, NOW) is None

    def test_cooldown_after_announcement(self, policy):
        task = make_task(delay_count=5, last_spoken_time=NOW - 10)
        assert policy.escalation(task, -150, NOW) is None
        task.last_spoken_time = NOW - 11
        assert policy.escalation(task, -150, NOW) is not None

    def test_not_before_start(self, policy):
        task = make_task(delay_count=10, last_spoken_time=NOW - 60)
        assert policy.escalation(task, 0, NOW) is None
        assert policy.escalation(task, 30, NOW) is None

    def test_only_urgent_phrases(self):
        policy = MotivationPolicy(rng=ScriptedRandom(choice_index=3))
        task = make_task(delay_count=5, last_spoken_time=0)
        result = policy.escalation(task, -150, NOW)
        # index 3 wraps around the three urgent phrases
        assert result.text == phrases.escalation(phrases.MOTIVATIONAL_PHRASES[0])


class TestRandomMotivation:
    """Tests for occasional encouragement."""

    def test_window(self):
        policy = MotivationPolicy(window=60)
        assert policy.motivation_due(NOW, NOW - 61) is True
        assert policy.motivation_due(NOW, NOW - 60) is False
        assert policy.motivation_due(NOW, 0) is True

    def test_coin_hit_speaks_from_all_phrases(self):
        policy = MotivationPolicy(rng=ScriptedRandom([0.1], choice_index=3))
        result = policy.random_motivation(make_task())
        assert result.kind == AnnouncementKind.MOTIVATION
        assert result.text == phrases.motivation(phrases.MOTIVATIONAL_PHRASES[3])

    def test_coin_miss(self):
        policy = MotivationPolicy(rng=ScriptedRandom([0.2]))
        assert policy.random_motivation(make_task()) is None

    def test_completed_task_never_flips(self):
        rng = ScriptedRandom([0.0])
        policy = MotivationPolicy(rng=rng)
        assert policy.random_motivation(make_task(completed=True)) is None
        assert rng.draws == 0

    def test_probability_is_configurable(self):
        policy = MotivationPolicy(rng=ScriptedRandom([0.5]), probability=0.6)
        assert policy.random_motivation(make_task()) is not None
