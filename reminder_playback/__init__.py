"""
Reminder Playback Module

Schedule spoken reminders and ring them exactly once, using a synthesized
voice clip when available and on-device speech otherwise.
"""

__version__ = "1.0.0"
__author__ = "Reminder Playback"

from .config import ReminderEngineConfig
from .engine import ReminderEngine
from .errors import ReminderPlaybackError, AlarmValidationError
from .models import Alarm, AudioHandle, PlaybackStrategy, RingingSession, State

__all__ = [
    "ReminderEngine",
    "ReminderEngineConfig",
    "ReminderPlaybackError",
    "AlarmValidationError",
    "Alarm",
    "AudioHandle",
    "PlaybackStrategy",
    "RingingSession",
    "State",
]
