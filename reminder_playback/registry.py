"""
Alarm registry: the ordered collection of reminders
"""

import time
from datetime import datetime
from typing import Dict, List, Optional

from .errors import AlarmValidationError
from .logging_utils import get_logger
from .models import Alarm, AudioHandle

logger = get_logger(__name__)


def normalize_time(value: str) -> str:
    """
    Normalize a 24-hour time of day to "HH:MM".

    Raises:
        AlarmValidationError: If the value is empty or not a valid time
    """
    if not value or not value.strip():
        raise AlarmValidationError("Alarm time is required")
    try:
        parsed = datetime.strptime(value.strip(), "%H:%M")
    except ValueError:
        raise AlarmValidationError(f"Invalid alarm time '{value}' (expected 24-hour HH:MM)") from None
    return parsed.strftime("%H:%M")


def validate_alarm_input(scheduled_time: str, message: str) -> str:
    """Validate a submission and return the normalized time"""
    if not message or not message.strip():
        raise AlarmValidationError("Alarm message is required")
    return normalize_time(scheduled_time)


class AlarmRegistry:
    """Owns alarms in insertion order; no timing logic"""

    def __init__(self):
        self._alarms: Dict[int, Alarm] = {}
        self._last_id = 0

    def _next_id(self) -> int:
        # Millisecond timestamp, bumped so ids stay unique and increasing
        candidate = time.time_ns() // 1_000_000
        self._last_id = max(candidate, self._last_id + 1)
        return self._last_id

    def add(self, scheduled_time: str, message: str,
            audio_source: Optional[AudioHandle] = None) -> Alarm:
        """
        Create a new active alarm.

        Args:
            scheduled_time: Time of day, "HH:MM"
            message: Text to speak when the alarm fires
            audio_source: Pre-resolved audio, if any

        Returns:
            The new alarm

        Raises:
            AlarmValidationError: If time or message is missing or malformed
        """
        normalized = validate_alarm_input(scheduled_time, message)
        alarm = Alarm(
            id=self._next_id(),
            scheduled_time=normalized,
            message=message.strip(),
            audio_source=audio_source,
        )
        self._alarms[alarm.id] = alarm
        logger.info(f"Added alarm {alarm.id} at {alarm.scheduled_time} "
                    f"({'clip' if audio_source else 'speech'})")
        return alarm

    def restore(self, alarm: Alarm) -> Alarm:
        """Re-insert a previously persisted alarm, keeping its id"""
        alarm.scheduled_time = normalize_time(alarm.scheduled_time)
        self._alarms[alarm.id] = alarm
        self._last_id = max(self._last_id, alarm.id)
        return alarm

    def get(self, alarm_id: int) -> Optional[Alarm]:
        return self._alarms.get(alarm_id)

    def remove(self, alarm_id: int) -> Optional[Alarm]:
        """Delete an alarm and release its audio; unknown ids are ignored"""
        alarm = self._alarms.pop(alarm_id, None)
        if alarm is None:
            logger.debug(f"Remove ignored for unknown alarm {alarm_id}")
            return None
        if alarm.audio_source is not None:
            alarm.audio_source.release()
        logger.info(f"Removed alarm {alarm_id}")
        return alarm

    def deactivate(self, alarm_id: int) -> bool:
        """Mark an alarm inactive after its ringing session ends"""
        alarm = self._alarms.get(alarm_id)
        if alarm is None:
            return False
        alarm.is_active = False
        alarm.snooze_until = None
        return True

    def toggle(self, alarm_id: int) -> Optional[Alarm]:
        """Flip the active flag on user request"""
        alarm = self._alarms.get(alarm_id)
        if alarm is None:
            return None
        alarm.is_active = not alarm.is_active
        alarm.snooze_until = None
        logger.info(f"Alarm {alarm_id} {'enabled' if alarm.is_active else 'disabled'}")
        return alarm

    def list(self) -> List[Alarm]:
        return list(self._alarms.values())

    def clear(self) -> None:
        """Drop every alarm and release owned audio"""
        for alarm in self._alarms.values():
            if alarm.audio_source is not None:
                alarm.audio_source.release()
        self._alarms.clear()

    def __len__(self) -> int:
        return len(self._alarms)
