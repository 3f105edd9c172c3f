"""
Tests for minute-resolution alarm matching
"""

import asyncio
from datetime import datetime

import pytest

from reminder_playback.models import State
from reminder_playback.poller import CLOCK_TICK_JOB_ID, ClockPoller
from reminder_playback.registry import AlarmRegistry
from reminder_playback.session import RingingSessionController
from reminder_playback.speech import SpeechLoopDriver

from conftest import FakeClock, FakePlayer, FakeSynthesizer


def at(hour, minute, second=0, day=6):
    return datetime(2024, 5, day, hour, minute, second)


@pytest.fixture
def clock():
    return FakeClock(at(6, 59, 30))


@pytest.fixture
def registry():
    return AlarmRegistry()


@pytest.fixture
def controller(registry, clock):
    return RingingSessionController(
        registry, SpeechLoopDriver(FakeSynthesizer()), FakePlayer(), clock=clock
    )


@pytest.fixture
def poller(registry, controller, clock):
    return ClockPoller(registry, controller, clock=clock)


class TestClockPoller:
    """Test due-alarm matching"""

    def test_fires_only_in_matching_minute(self, poller, registry, controller):
        alarm = registry.add("07:00", "Wake up")

        assert poller.tick(at(6, 59, 59)) is None
        session = poller.tick(at(7, 0, 0))

        assert session.alarm_id == alarm.id
        assert controller.state is State.RINGING

    def test_uses_clock_when_no_time_given(self, poller, registry, clock):
        registry.add("07:00", "Wake up")

        assert poller.tick() is None
        clock.now = at(7, 0, 12)
        assert poller.tick() is not None

    def test_inactive_alarm_never_fires(self, poller, registry):
        alarm = registry.add("07:00", "Wake up")
        registry.toggle(alarm.id)

        assert poller.tick(at(7, 0)) is None

    def test_no_second_session_while_ringing(self, poller, registry, controller):
        first = registry.add("07:00", "Wake up")
        registry.add("07:01", "Stretch")

        poller.tick(at(7, 0))
        assert poller.tick(at(7, 1)) is None
        assert controller.session.alarm_id == first.id

    def test_stopped_alarm_not_refired_same_minute(self, poller, registry, controller):
        alarm = registry.add("07:00", "Wake up")
        poller.tick(at(7, 0, 1))
        controller.stop()

        assert poller.tick(at(7, 0, 30)) is None
        assert alarm.is_active is False

    def test_same_minute_alarms_fire_once(self, poller, registry, controller):
        first = registry.add("08:30", "Meds")
        second = registry.add("08:30", "Water")

        session = poller.tick(at(8, 30, 0))
        assert session.alarm_id == first.id
        controller.stop()

        assert poller.tick(at(8, 30, 20)) is None
        assert first.is_active is False
        assert second.is_active is True
        assert controller.state is State.IDLE

    def test_same_minute_alarms_fire_in_turn_when_allowed(self, registry, controller, clock):
        poller = ClockPoller(registry, controller, one_fire_per_minute=False, clock=clock)
        first = registry.add("08:30", "Meds")
        second = registry.add("08:30", "Water")

        assert poller.tick(at(8, 30, 0)).alarm_id == first.id
        controller.stop()
        assert poller.tick(at(8, 30, 5)).alarm_id == second.id

    def test_snoozed_alarm_fires_again(self, poller, registry, controller, clock):
        alarm = registry.add("07:00", "Wake up")
        poller.tick(at(7, 0))
        clock.now = at(7, 0, 5)
        controller.snooze(5)

        assert alarm.snooze_until == "07:05"
        assert poller.tick(at(7, 0, 40)) is None
        assert poller.tick(at(7, 4, 59)) is None

        session = poller.tick(at(7, 5, 0))
        assert session.alarm_id == alarm.id
        assert alarm.snooze_until is None

        controller.stop()
        assert poller.tick(at(7, 5, 30)) is None

    def test_fires_again_next_day(self, poller, registry, controller):
        alarm = registry.add("07:00", "Wake up")
        poller.tick(at(7, 0, day=6))
        controller.abort()

        session = poller.tick(at(7, 0, day=7))

        assert session.alarm_id == alarm.id


class TestClockPollerScheduling:
    """Test the scheduler-driven cadence"""

    def test_scheduler_ticks_on_running_loop(self, registry, controller):
        clock = FakeClock(at(7, 0, 3))
        poller = ClockPoller(registry, controller, interval_s=0.05, clock=clock)
        alarm = registry.add("07:00", "Wake up")

        async def scenario():
            poller.start()
            assert poller.running is True
            assert poller._scheduler.get_job(CLOCK_TICK_JOB_ID) is not None
            await asyncio.sleep(0.4)
            poller.stop()

        asyncio.run(scenario())

        assert controller.session.alarm_id == alarm.id
        assert poller.running is False

    def test_tick_job_swallows_errors(self, poller, registry):
        registry.add("07:00", "Wake up")
        poller.tick = lambda now=None: 1 / 0

        asyncio.run(poller._tick_job())

    def test_late_ticks_are_not_dropped(self, poller):
        async def scenario():
            poller.start()
            job = poller._scheduler.get_job(CLOCK_TICK_JOB_ID)
            poller.stop()
            return job

        job = asyncio.run(scenario())

        assert job.misfire_grace_time is None
        assert job.coalesce is True
        assert job.max_instances == 1
