"""
Tests for the token-gated speech loop
"""

import asyncio

from reminder_playback.speech import SpeechLoopDriver

from conftest import FakeSynthesizer


class TestSpeechLoopDriver:
    """Test repeat and cancellation behaviour"""

    def test_repeats_until_cancelled(self):
        synthesizer = FakeSynthesizer(auto_complete=True)
        driver = SpeechLoopDriver(synthesizer, repeat_pause_s=0.01)

        async def scenario():
            driver.start("Wake up", token=1)
            await asyncio.sleep(0.2)
            spoken_before_cancel = len(synthesizer.spoken)
            assert driver.cancel(1) is True
            await asyncio.sleep(0.1)
            return spoken_before_cancel

        spoken_before_cancel = asyncio.run(scenario())

        assert spoken_before_cancel >= 3
        assert set(synthesizer.spoken) == {"Wake up"}
        assert len(synthesizer.spoken) == spoken_before_cancel
        assert synthesizer.cancel_calls == 1
        assert driver.is_running is False

    def test_pause_between_repeats(self):
        synthesizer = FakeSynthesizer(auto_complete=True)
        driver = SpeechLoopDriver(synthesizer, repeat_pause_s=0.5)

        async def scenario():
            driver.start("Wake up", token=1)
            await asyncio.sleep(0.1)
            driver.cancel(1)

        asyncio.run(scenario())

        assert len(synthesizer.spoken) == 1

    def test_stale_completion_does_not_resurrect(self):
        synthesizer = FakeSynthesizer()
        driver = SpeechLoopDriver(synthesizer, repeat_pause_s=0.01)

        async def scenario():
            driver.start("Wake up", token=1)
            driver.cancel(1)
            on_end, _ = synthesizer.pending.pop()
            # Completion arrives after the stop
            on_end()
            await asyncio.sleep(0.05)

        asyncio.run(scenario())

        assert synthesizer.spoken == ["Wake up"]
        assert driver.is_running is False

    def test_new_session_invalidates_previous_token(self):
        synthesizer = FakeSynthesizer()
        driver = SpeechLoopDriver(synthesizer, repeat_pause_s=0.01)

        async def scenario():
            driver.start("First", token=1)
            first_end, _ = synthesizer.pending.pop()
            driver.start("Second", token=2)
            first_end()
            await asyncio.sleep(0.05)

        asyncio.run(scenario())

        assert synthesizer.spoken == ["First", "Second"]
        assert driver.live_token == 2

    def test_cancel_with_wrong_token_is_noop(self):
        synthesizer = FakeSynthesizer()
        driver = SpeechLoopDriver(synthesizer)

        driver.start("Wake up", token=3)

        assert driver.cancel(2) is False
        assert driver.live_token == 3
        assert synthesizer.cancel_calls == 0

    def test_error_still_repeats(self):
        synthesizer = FakeSynthesizer(auto_complete=True, fail=True)
        driver = SpeechLoopDriver(synthesizer, repeat_pause_s=0.01)

        async def scenario():
            driver.start("Wake up", token=1)
            await asyncio.sleep(0.15)
            driver.cancel(1)

        asyncio.run(scenario())

        assert len(synthesizer.spoken) >= 2

    def test_sync_failure_outside_loop_does_not_raise(self):
        class RefusingSynthesizer(FakeSynthesizer):
            def speak(self, text, on_start=None, on_end=None, on_error=None):
                self.spoken.append(text)
                raise RuntimeError("no audio device")

        synthesizer = RefusingSynthesizer()
        driver = SpeechLoopDriver(synthesizer, repeat_pause_s=0.01)

        driver.start("Wake up", token=1)

        assert synthesizer.spoken == ["Wake up"]
        assert driver.live_token == 1
        assert driver.cancel(1) is True
