"""
Data models and enums for the reminder playback engine
"""

import os
import tempfile
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

from .errors import ClipUnavailableError


class State(Enum):
    """Ringing session controller state"""
    IDLE = "IDLE"
    RINGING = "RINGING"


class PlaybackStrategy(Enum):
    """How a ringing session is producing sound"""
    CLIP = "CLIP"
    SPEECH_LOOP = "SPEECH_LOOP"


class AudioKind(Enum):
    """Where an audio handle came from"""
    SYNTHESIZED = "synthesized"
    RECORDED = "recorded"


@dataclass
class AudioHandle:
    """Opaque reference to playable audio owned by an alarm"""
    path: Path
    kind: AudioKind = AudioKind.SYNTHESIZED
    owned: bool = True
    released: bool = False

    @classmethod
    def from_bytes(cls, payload: bytes, directory: Optional[Path] = None,
                   suffix: str = ".mp3") -> "AudioHandle":
        """Write a synthesized payload to disk and wrap it"""
        if directory is not None:
            directory.mkdir(parents=True, exist_ok=True)
        fd, name = tempfile.mkstemp(suffix=suffix, prefix="reminder_",
                                    dir=str(directory) if directory else None)
        with os.fdopen(fd, "wb") as f:
            f.write(payload)
        return cls(path=Path(name), kind=AudioKind.SYNTHESIZED, owned=True)

    @classmethod
    def from_file(cls, path: os.PathLike, owned: bool = False) -> "AudioHandle":
        """Wrap an existing recorded clip"""
        clip = Path(path)
        if not clip.is_file():
            raise ClipUnavailableError(f"Recorded clip not found: {clip}")
        if not os.access(clip, os.R_OK):
            raise ClipUnavailableError(f"Recorded clip is not readable: {clip}")
        return cls(path=clip, kind=AudioKind.RECORDED, owned=owned)

    @property
    def is_available(self) -> bool:
        return not self.released and self.path.is_file()

    def release(self) -> None:
        """Drop the handle, deleting the file if this handle owns it"""
        if self.released:
            return
        self.released = True
        if self.owned:
            try:
                self.path.unlink()
            except FileNotFoundError:
                pass

    def to_dict(self) -> Dict[str, Any]:
        return {"path": str(self.path), "kind": self.kind.value, "owned": self.owned}


@dataclass
class Alarm:
    """A scheduled (time, message) pair with an activation flag and optional audio"""
    id: int
    scheduled_time: str
    message: str
    audio_source: Optional[AudioHandle] = None
    is_active: bool = True
    created_at: datetime = field(default_factory=datetime.now)
    snooze_until: Optional[str] = None
    last_fired_at: Optional[datetime] = None

    def is_due(self, current_time: str) -> bool:
        """Check if the alarm matches the given "HH:MM" and may fire"""
        if not self.is_active:
            return False
        return current_time in (self.scheduled_time, self.snooze_until)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for the API and the JSON store"""
        return {
            "id": self.id,
            "time": self.scheduled_time,
            "message": self.message,
            "is_active": self.is_active,
            "created_at": self.created_at.isoformat(),
            "snooze_until": self.snooze_until,
            "audio_source": self.audio_source.to_dict() if self.audio_source else None,
        }


@dataclass
class RingingSession:
    """The currently firing alarm"""
    alarm_id: int
    message: str
    strategy: PlaybackStrategy
    token: int
    started_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "alarm_id": self.alarm_id,
            "message": self.message,
            "strategy": self.strategy.value,
            "token": self.token,
            "started_at": self.started_at.isoformat(),
        }


@dataclass
class Notice:
    """Non-blocking, dismissible notification for the user"""
    id: int
    message: str
    level: str = "info"
    created_at: datetime = field(default_factory=datetime.now)
    dismissed: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "message": self.message,
            "level": self.level,
            "created_at": self.created_at.isoformat(),
            "dismissed": self.dismissed,
        }
