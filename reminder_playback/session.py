"""
Ringing session controller: the IDLE/RINGING state machine
"""

import itertools
from datetime import datetime, timedelta
from typing import Callable, Optional

from .errors import AlarmInactiveError, PlaybackBlockedError, SessionActiveError
from .logging_utils import (
    get_logger, log_state_change, log_playback_event, log_session_summary
)
from .models import Alarm, PlaybackStrategy, RingingSession, State
from .player import ClipPlayer
from .registry import AlarmRegistry
from .speech import SpeechLoopDriver

logger = get_logger(__name__)


class RingingSessionController:
    """Owns the single ringing session and the playback behind it"""

    def __init__(self, registry: AlarmRegistry, speech_driver: SpeechLoopDriver,
                 player: ClipPlayer, clock: Callable[[], datetime] = datetime.now):
        """
        Initialize the controller.

        Args:
            registry: Alarm registry (deactivated on stop)
            speech_driver: Fallback speech loop
            player: Clip player for pre-rendered audio
            clock: Wall-clock source
        """
        self.registry = registry
        self.speech_driver = speech_driver
        self.player = player
        self._clock = clock
        self._session: Optional[RingingSession] = None
        self._tokens = itertools.count(1)

    @property
    def state(self) -> State:
        return State.RINGING if self._session is not None else State.IDLE

    @property
    def session(self) -> Optional[RingingSession]:
        return self._session

    @property
    def is_ringing(self) -> bool:
        return self._session is not None

    def trigger(self, alarm: Alarm) -> RingingSession:
        """
        IDLE -> RINGING for a due alarm.

        Playback problems never fail the transition: a blocked clip falls
        back to the speech loop on the same session.

        Raises:
            SessionActiveError: If a session is already ringing
            AlarmInactiveError: If the alarm is not active
        """
        if self._session is not None:
            raise SessionActiveError(
                f"Alarm {self._session.alarm_id} is already ringing; cannot start {alarm.id}"
            )
        if not alarm.is_active:
            raise AlarmInactiveError(f"Alarm {alarm.id} is not active")

        strategy = PlaybackStrategy.CLIP if alarm.audio_source is not None else PlaybackStrategy.SPEECH_LOOP
        session = RingingSession(
            alarm_id=alarm.id,
            message=alarm.message,
            strategy=strategy,
            token=next(self._tokens),
            started_at=self._clock(),
        )
        self._session = session

        if session.strategy is PlaybackStrategy.CLIP:
            try:
                self.player.play(alarm.audio_source)
                log_playback_event(logger, alarm.id, "clip_started", token=session.token)
            except PlaybackBlockedError as e:
                logger.warning(f"Clip playback blocked for alarm {alarm.id}: {e}; using speech loop")
                session.strategy = PlaybackStrategy.SPEECH_LOOP

        if session.strategy is PlaybackStrategy.SPEECH_LOOP:
            self.speech_driver.start(alarm.message, session.token)
            log_playback_event(logger, alarm.id, "speech_loop_started", token=session.token)

        log_state_change(logger, alarm.id, State.IDLE.value, State.RINGING.value,
                         strategy=session.strategy.value, token=session.token)
        return session

    def _end_session(self, outcome: str) -> Optional[RingingSession]:
        session = self._session
        if session is None:
            return None

        # Token first so no completion callback can restart speech
        self._session = None
        self.speech_driver.cancel(session.token)
        if session.strategy is PlaybackStrategy.CLIP:
            self.player.stop()

        log_state_change(logger, session.alarm_id, State.RINGING.value, State.IDLE.value,
                         outcome=outcome, token=session.token)
        log_session_summary(logger, session.alarm_id, {
            "strategy": session.strategy.value,
            "outcome": outcome,
            "duration_s": round((self._clock() - session.started_at).total_seconds(), 1),
        })
        return session

    def stop(self) -> Optional[RingingSession]:
        """RINGING -> IDLE; the alarm is deactivated. No-op when idle."""
        session = self._end_session("stopped")
        if session is not None:
            self.registry.deactivate(session.alarm_id)
        return session

    def abort(self) -> Optional[RingingSession]:
        """Halt playback on shutdown without touching the alarm"""
        return self._end_session("aborted")

    def snooze(self, minutes: int) -> Optional[RingingSession]:
        """RINGING -> IDLE; the alarm stays active and re-fires after minutes"""
        session = self._end_session("snoozed")
        if session is None:
            return None

        alarm = self.registry.get(session.alarm_id)
        if alarm is not None:
            alarm.snooze_until = (self._clock() + timedelta(minutes=minutes)).strftime("%H:%M")
            logger.info(f"Alarm {alarm.id} snoozed until {alarm.snooze_until}")
        return session
