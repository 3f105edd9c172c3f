"""
On-device speech synthesis and the repeating speech loop used while ringing
"""

import asyncio
import threading
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from functools import partial
from typing import Any, Callable, Optional

import pyttsx3

from .config import SpeechSettings
from .logging_utils import get_logger

logger = get_logger(__name__)

Callback = Optional[Callable[..., Any]]


class SpeechSynthesizer(ABC):
    """On-device text-to-speech with start/end/error notifications"""

    @abstractmethod
    def speak(self, text: str, on_start: Callback = None, on_end: Callback = None,
              on_error: Callback = None) -> None:
        """
        Queue one utterance. Must be called from the event loop thread;
        callbacks are delivered on that loop. on_error receives the exception.
        """
        ...

    @abstractmethod
    def cancel(self) -> None:
        """Best-effort stop of the utterance in progress"""
        ...

    def close(self) -> None:
        pass


class Pyttsx3Synthesizer(SpeechSynthesizer):
    """pyttsx3 backend; the engine lives on a single worker thread"""

    # pyttsx3 default speaking rate in words per minute
    BASE_RATE_WPM = 200

    def __init__(self, settings: Optional[SpeechSettings] = None):
        self.settings = settings or SpeechSettings()
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="speech")
        self._engine = None
        self._engine_lock = threading.Lock()

    def _pick_voice(self, voices) -> Optional[str]:
        for fragment in self.settings.preferred_voices:
            for voice in voices or []:
                if fragment.lower() in (voice.name or "").lower():
                    return voice.id
        return None

    def _get_engine(self):
        with self._engine_lock:
            if self._engine is None:
                engine = pyttsx3.init()
                engine.setProperty("rate", int(self.BASE_RATE_WPM * self.settings.rate))
                engine.setProperty("volume", self.settings.volume)
                voice_id = self._pick_voice(engine.getProperty("voices"))
                if voice_id:
                    engine.setProperty("voice", voice_id)
                    logger.debug(f"Using voice {voice_id}")
                self._engine = engine
            return self._engine

    def _run(self, text: str, post: Callable[..., None], on_start: Callback,
             on_end: Callback, on_error: Callback) -> None:
        try:
            engine = self._get_engine()
            post(on_start)
            engine.say(text)
            engine.runAndWait()
        except Exception as e:
            logger.warning(f"Speech synthesis failed: {e}")
            post(on_error, e)
            return
        post(on_end)

    def speak(self, text: str, on_start: Callback = None, on_end: Callback = None,
              on_error: Callback = None) -> None:
        loop = asyncio.get_running_loop()

        def post(callback: Callback, *args) -> None:
            if callback is not None and not loop.is_closed():
                loop.call_soon_threadsafe(callback, *args)

        self._executor.submit(self._run, text, post, on_start, on_end, on_error)

    def cancel(self) -> None:
        engine = self._engine
        if engine is None:
            return
        try:
            engine.stop()
        except Exception as e:  # pragma: no cover - driver specific
            logger.debug(f"Speech stop failed: {e}")

    def close(self) -> None:
        self.cancel()
        self._executor.shutdown(wait=False, cancel_futures=True)


class SpeechLoopDriver:
    """
    Repeats a message until cancelled.

    Every repeat is tagged with the session token that started it. Completion
    callbacks can arrive after a stop, so each one re-checks the token against
    the live token before scheduling anything.
    """

    def __init__(self, synthesizer: SpeechSynthesizer, repeat_pause_s: float = 1.5):
        self.synthesizer = synthesizer
        self.repeat_pause_s = repeat_pause_s
        self._live_token: Optional[int] = None
        self._timer: Optional[asyncio.TimerHandle] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self.utterance_count = 0

    @property
    def live_token(self) -> Optional[int]:
        return self._live_token

    @property
    def is_running(self) -> bool:
        return self._live_token is not None

    def start(self, message: str, token: int) -> None:
        """Begin speaking message in a loop for the given session token"""
        if self._live_token is not None and self._live_token != token:
            self.cancel(self._live_token)
        try:
            self._loop = asyncio.get_running_loop()
        except RuntimeError:
            self._loop = None
        self._live_token = token
        self.utterance_count = 0
        logger.info(f"Speech loop started (token {token})")
        self._speak_once(message, token)

    def _speak_once(self, message: str, token: int) -> None:
        self._timer = None
        if token != self._live_token:
            return
        self.utterance_count += 1
        try:
            self.synthesizer.speak(
                message,
                on_end=partial(self._on_utterance_done, message, token),
                on_error=partial(self._on_utterance_error, message, token),
            )
        except Exception as e:
            logger.error(f"Speech synthesizer refused utterance: {e}")
            self._on_utterance_done(message, token)

    def _on_utterance_error(self, message: str, token: int, error: Exception) -> None:
        logger.warning(f"Utterance failed (token {token}): {error}")
        self._on_utterance_done(message, token)

    def _on_utterance_done(self, message: str, token: int) -> None:
        if token != self._live_token:
            logger.debug(f"Ignoring completion for stale token {token}")
            return
        loop = self._loop
        if loop is None:
            try:
                loop = self._loop = asyncio.get_running_loop()
            except RuntimeError:
                logger.warning(f"No event loop to schedule the next repeat (token {token})")
                return
        self._timer = loop.call_later(self.repeat_pause_s, self._speak_once, message, token)

    def cancel(self, token: int) -> bool:
        """Invalidate token; pending repeats become no-ops"""
        if token != self._live_token:
            return False
        self._live_token = None
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        try:
            self.synthesizer.cancel()
        except Exception as e:
            logger.warning(f"Speech cancel failed: {e}")
        logger.info(f"Speech loop cancelled (token {token}, {self.utterance_count} utterances)")
        return True
