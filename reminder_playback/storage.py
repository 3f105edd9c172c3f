"""
Optional JSON persistence for the alarm registry
"""

import json
from datetime import datetime
from pathlib import Path
from typing import List

from .logging_utils import get_logger
from .models import Alarm, AudioHandle, AudioKind
from .registry import validate_alarm_input

logger = get_logger(__name__)


class AlarmStore:
    """Saves and loads alarms as a JSON list"""

    def __init__(self, path: Path):
        self.path = Path(path)

    def save(self, alarms: List[Alarm]) -> bool:
        """Save alarms to file"""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self.path.with_suffix(".tmp")
            with open(tmp_path, "w") as f:
                json.dump([alarm.to_dict() for alarm in alarms], f, indent=2)
                f.write("\n")
            tmp_path.replace(self.path)
            logger.debug(f"Saved {len(alarms)} alarm(s) to {self.path}")
            return True
        except OSError as e:
            logger.error(f"Error saving alarms: {e}")
            return False

    def load(self) -> List[Alarm]:
        """Load alarms from file; a missing or corrupt file yields an empty list"""
        if not self.path.exists():
            return []

        try:
            with open(self.path, "r") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.error(f"Error loading alarms: {e}")
            return []

        if not isinstance(data, list):
            logger.error(f"Error loading alarms: expected a list in {self.path}, got {type(data).__name__}")
            return []

        alarms = []
        for entry in data:
            try:
                if not isinstance(entry, dict):
                    raise TypeError("entry is not an object")
                alarms.append(self._alarm_from_dict(entry))
            except (AttributeError, KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping malformed alarm entry {entry!r}: {e}")
        logger.info(f"Loaded {len(alarms)} alarm(s) from {self.path}")
        return alarms

    @staticmethod
    def _alarm_from_dict(entry: dict) -> Alarm:
        # AlarmValidationError is a ValueError, so bad entries are skipped by load()
        scheduled_time = validate_alarm_input(entry["time"], entry["message"])
        audio_source = None
        audio = entry.get("audio_source")
        if audio:
            path = Path(audio["path"])
            if path.is_file():
                audio_source = AudioHandle(
                    path=path,
                    kind=AudioKind(audio.get("kind", AudioKind.SYNTHESIZED.value)),
                    owned=audio.get("owned", True),
                )
            else:
                logger.warning(f"Audio for alarm {entry['id']} is gone ({path}), using speech")

        return Alarm(
            id=int(entry["id"]),
            scheduled_time=scheduled_time,
            message=entry["message"].strip(),
            audio_source=audio_source,
            is_active=bool(entry.get("is_active", True)),
            created_at=datetime.fromisoformat(entry["created_at"]) if entry.get("created_at") else datetime.now(),
            snooze_until=entry.get("snooze_until"),
        )
