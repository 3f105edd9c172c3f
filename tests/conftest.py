"""
Shared fakes and fixtures for reminder playback tests
"""

import asyncio
from datetime import datetime

import pytest

from reminder_playback.config import ReminderEngineConfig, Timings
from reminder_playback.engine import ReminderEngine
from reminder_playback.errors import PlaybackBlockedError
from reminder_playback.player import ClipPlayer
from reminder_playback.speech import SpeechSynthesizer


class FakeClock:
    """Settable wall clock"""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


class FakeSynthesizer(SpeechSynthesizer):
    """Records utterances; completes them on the loop when auto_complete is set"""

    def __init__(self, auto_complete: bool = False, fail: bool = False):
        self.auto_complete = auto_complete
        self.fail = fail
        self.spoken = []
        self.pending = []
        self.cancel_calls = 0
        self.closed = False

    def speak(self, text, on_start=None, on_end=None, on_error=None):
        self.spoken.append(text)
        if not self.auto_complete:
            self.pending.append((on_end, on_error))
            return
        loop = asyncio.get_running_loop()
        if on_start is not None:
            loop.call_soon(on_start)
        if self.fail:
            loop.call_soon(on_error, RuntimeError("no audio device"))
        else:
            loop.call_soon(on_end)

    def cancel(self):
        self.cancel_calls += 1

    def close(self):
        self.closed = True


class FakePlayer(ClipPlayer):
    """Clip player that can simulate an autoplay refusal"""

    def __init__(self, blocked: bool = False):
        self.blocked = blocked
        self.played = []
        self.stop_calls = 0
        self._playing = False

    def play(self, handle):
        if self.blocked:
            raise PlaybackBlockedError("autoplay refused")
        self.played.append(handle)
        self._playing = True

    def stop(self):
        self.stop_calls += 1
        was_playing = self._playing
        self._playing = False
        return was_playing

    @property
    def is_playing(self):
        return self._playing


@pytest.fixture
def clock():
    return FakeClock(datetime(2024, 5, 6, 6, 59, 30))


@pytest.fixture
def synthesizer():
    return FakeSynthesizer()


@pytest.fixture
def player():
    return FakePlayer()


@pytest.fixture
def config(tmp_path):
    return ReminderEngineConfig(
        timings=Timings(speech_repeat_pause_s=0.01),
        data_dir=tmp_path / "data",
    )


@pytest.fixture
def engine(config, synthesizer, player, clock):
    return ReminderEngine(config, synthesizer=synthesizer, player=player, clock=clock)
