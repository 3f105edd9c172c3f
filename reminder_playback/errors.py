"""
Exception hierarchy for the reminder playback engine
"""

from typing import Optional


class ReminderPlaybackError(Exception):
    """Base class for all reminder playback errors"""


class AlarmValidationError(ReminderPlaybackError, ValueError):
    """Raised when an alarm is submitted without a valid time or message"""


class VoiceSynthesisError(ReminderPlaybackError):
    """Raised when the remote voice service rejects or cannot serve a request"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class AudioResolutionError(ReminderPlaybackError):
    """Raised by an audio source strategy that could not produce a handle"""


class ClipUnavailableError(ReminderPlaybackError):
    """Raised when a recorded clip cannot be read (missing file, no permission)"""


class PlaybackBlockedError(ReminderPlaybackError):
    """Raised by a clip player when the host refuses to start playback"""


class SessionActiveError(ReminderPlaybackError):
    """Raised when a ringing session is requested while another one is live"""


class AlarmInactiveError(ReminderPlaybackError):
    """Raised when an inactive alarm is handed to the session controller"""
