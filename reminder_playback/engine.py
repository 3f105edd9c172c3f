"""
Reminder engine: wires registry, resolver, poller and session controller together
"""

import os
from datetime import datetime
from typing import Callable, List, Optional

from .config import ReminderEngineConfig
from .errors import AlarmValidationError
from .logging_utils import get_logger
from .models import Alarm, AudioHandle, Notice, RingingSession, State
from .notices import NoticeBoard
from .player import ClipPlayer, MpvClipPlayer
from .poller import ClockPoller
from .registry import AlarmRegistry, validate_alarm_input
from .resolver import AudioSourceResolver, RemoteVoiceStrategy
from .session import RingingSessionController
from .speech import Pyttsx3Synthesizer, SpeechLoopDriver, SpeechSynthesizer
from .storage import AlarmStore
from .voice_api import VoiceSynthesisClient

logger = get_logger(__name__)


class ReminderEngine:
    """Single entry point used by the API, the CLI and tests"""

    def __init__(self, config: Optional[ReminderEngineConfig] = None,
                 synthesizer: Optional[SpeechSynthesizer] = None,
                 player: Optional[ClipPlayer] = None,
                 resolver: Optional[AudioSourceResolver] = None,
                 store: Optional[AlarmStore] = None,
                 clock: Callable[[], datetime] = datetime.now):
        self.config = config or ReminderEngineConfig()
        self._clock = clock

        self.registry = AlarmRegistry()
        self.notices = NoticeBoard()

        self.voice_client = VoiceSynthesisClient(self.config.voice)
        self.resolver = resolver or AudioSourceResolver(
            [RemoteVoiceStrategy(self.voice_client, self.config.audio_dir)],
            notify=self._notify_failure,
        )

        self.synthesizer = synthesizer or Pyttsx3Synthesizer(self.config.speech)
        self.speech_driver = SpeechLoopDriver(self.synthesizer, self.config.timings.speech_repeat_pause_s)
        self.player = player or MpvClipPlayer(self.config.player_command,
                                              self.config.timings.player_stop_timeout_s,
                                              self.config.timings.player_startup_grace_s)

        self.controller = RingingSessionController(self.registry, self.speech_driver,
                                                   self.player, clock=clock)
        self.poller = ClockPoller(
            self.registry,
            self.controller,
            interval_s=self.config.timings.poll_interval_s,
            one_fire_per_minute=self.config.one_fire_per_minute,
            clock=clock,
        )

        if store is None and self.config.persist:
            store = AlarmStore(self.config.alarms_file)
        self.store = store

        logger.info("Initialized reminder engine")

    def _notify_failure(self, message: str) -> None:
        self.notices.post(message, level="warning")

    def _persist(self) -> None:
        if self.store is not None:
            self.store.save(self.registry.list())

    # Alarm management

    async def create_alarm(self, scheduled_time: str, message: str,
                           api_key: Optional[str] = None,
                           clip_path: Optional[os.PathLike] = None) -> Alarm:
        """
        Create an alarm, resolving its audio once.

        Args:
            scheduled_time: "HH:MM"
            message: Text to speak
            api_key: Voice service key; falls back to the configured key
            clip_path: Recorded clip to use instead of remote synthesis

        Raises:
            AlarmValidationError: Missing or malformed time/message
            ClipUnavailableError: clip_path cannot be read
        """
        validate_alarm_input(scheduled_time, message)

        if clip_path is not None:
            audio_source: Optional[AudioHandle] = AudioHandle.from_file(clip_path)
        else:
            key = api_key if api_key is not None else self.config.voice.api_key
            audio_source = await self.resolver.resolve_async(message.strip(), key)

        alarm = self.registry.add(scheduled_time, message, audio_source=audio_source)
        self._persist()
        return alarm

    def remove_alarm(self, alarm_id: int) -> bool:
        """Delete an alarm, stopping it first if it is ringing"""
        session = self.controller.session
        if session is not None and session.alarm_id == alarm_id:
            self.controller.stop()
        removed = self.registry.remove(alarm_id) is not None
        if removed:
            self._persist()
        return removed

    def toggle_alarm(self, alarm_id: int) -> Optional[Alarm]:
        alarm = self.registry.toggle(alarm_id)
        if alarm is not None:
            self._persist()
        return alarm

    def get_alarm(self, alarm_id: int) -> Optional[Alarm]:
        return self.registry.get(alarm_id)

    def list_alarms(self) -> List[Alarm]:
        return self.registry.list()

    # Ringing

    @property
    def state(self) -> State:
        return self.controller.state

    @property
    def session(self) -> Optional[RingingSession]:
        return self.controller.session

    def tick(self, now: Optional[datetime] = None) -> Optional[RingingSession]:
        return self.poller.tick(now)

    def stop(self) -> Optional[RingingSession]:
        session = self.controller.stop()
        if session is not None:
            self._persist()
        return session

    def snooze(self, minutes: Optional[int] = None) -> Optional[RingingSession]:
        session = self.controller.snooze(minutes or self.config.timings.snooze_minutes)
        if session is not None:
            self._persist()
        return session

    # Notices

    def active_notices(self) -> List[Notice]:
        return self.notices.active()

    def dismiss_notice(self, notice_id: int) -> Optional[Notice]:
        return self.notices.dismiss(notice_id)

    # Lifecycle

    def restore(self) -> int:
        """Load persisted alarms into an empty registry"""
        if self.store is None:
            return 0
        restored = 0
        for alarm in self.store.load():
            try:
                self.registry.restore(alarm)
            except AlarmValidationError as e:
                logger.warning(f"Skipping stored alarm {alarm.id}: {e}")
                continue
            restored += 1
        return restored

    def start(self) -> None:
        """Restore state and start polling; needs a running event loop"""
        restored = self.restore()
        if restored:
            logger.info(f"Restored {restored} alarm(s)")
        self.poller.start()

    def shutdown(self) -> None:
        self.poller.stop()
        self.controller.abort()
        if self.store is not None:
            self._persist()
        else:
            # Nothing will reload the audio files
            self.registry.clear()
        self.synthesizer.close()
        self.voice_client.close()
        logger.info("Reminder engine stopped")
