"""
Configuration models for the reminder playback engine
"""

import os
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field
from dotenv import load_dotenv


# Use BASE_DIR for all file paths
BASE_DIR = os.getenv("BASE_DIR", os.path.join(os.path.expanduser("~"), ".reminder_playback"))


class VoiceServiceConfig(BaseModel):
    """Remote voice synthesis service configuration"""
    api_key: Optional[str] = Field(default=None, description="Voice service API key (absent = on-device speech only)")
    voice_model_id: str = Field(default="21m00Tcm4TlvDq8ikWAM", description="Cloned/stock voice identifier")
    model_id: str = Field(default="eleven_monolingual_v1", description="Synthesis model identifier")
    base_url: str = Field(default="https://api.elevenlabs.io", description="Voice service base URL")
    request_timeout_s: float = Field(default=15.0, ge=1.0, le=120.0, description="HTTP request timeout")

    @classmethod
    def from_env(cls) -> "VoiceServiceConfig":
        """Create VoiceServiceConfig from environment variables"""
        return cls(
            api_key=os.getenv("ELEVENLABS_API_KEY") or None,
            voice_model_id=os.getenv("VOICE_MODEL_ID", "21m00Tcm4TlvDq8ikWAM"),
            model_id=os.getenv("VOICE_TTS_MODEL", "eleven_monolingual_v1"),
            base_url=os.getenv("VOICE_API_URL", "https://api.elevenlabs.io"),
            request_timeout_s=float(os.getenv("VOICE_TIMEOUT_S", "15.0")),
        )


class SpeechSettings(BaseModel):
    """On-device speech synthesis settings"""
    rate: float = Field(default=0.9, ge=0.1, le=3.0, description="Speech rate multiplier")
    volume: float = Field(default=1.0, ge=0.0, le=1.0, description="Speech volume")
    preferred_voices: List[str] = Field(
        default_factory=lambda: ["Google US English", "Samantha"],
        description="Voice name fragments tried in order"
    )


class Timings(BaseModel):
    """Timing configuration for polling and ringing"""
    poll_interval_s: float = Field(default=1.0, gt=0.0, le=60.0, description="Clock poll cadence")
    speech_repeat_pause_s: float = Field(default=1.5, ge=0.0, le=30.0, description="Pause between spoken repeats")
    snooze_minutes: int = Field(default=5, ge=1, le=120, description="Snooze offset in minutes")
    player_stop_timeout_s: float = Field(default=2.0, ge=0.1, le=10.0, description="Grace period when stopping the clip player")
    player_startup_grace_s: float = Field(default=0.2, ge=0.0, le=5.0, description="How long a clip player must survive to count as playing")


class ReminderEngineConfig(BaseModel):
    """Main configuration for the reminder playback engine"""
    voice: VoiceServiceConfig = Field(default_factory=VoiceServiceConfig, description="Remote voice synthesis")
    speech: SpeechSettings = Field(default_factory=SpeechSettings, description="On-device speech")
    timings: Timings = Field(default_factory=Timings, description="Timing configuration")
    one_fire_per_minute: bool = Field(default=True, description="Fire at most one alarm per wall-clock minute")
    data_dir: Path = Field(default_factory=lambda: Path(BASE_DIR) / "data", description="Alarm store and audio directory")
    persist: bool = Field(default=False, description="Persist alarms to the JSON store")
    player_command: List[str] = Field(
        default_factory=lambda: ["mpv", "--no-video", "--really-quiet", "--loop-file=inf"],
        description="Clip player command line (file path is appended)"
    )
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="text", description="Log format (json|text)")

    @property
    def audio_dir(self) -> Path:
        return self.data_dir / "audio"

    @property
    def alarms_file(self) -> Path:
        return self.data_dir / "alarms.json"

    @classmethod
    def from_env(cls) -> "ReminderEngineConfig":
        """Create configuration from environment variables"""
        load_dotenv()
        base_dir = os.getenv("BASE_DIR", BASE_DIR)
        return cls(
            voice=VoiceServiceConfig.from_env(),
            speech=SpeechSettings(
                rate=float(os.getenv("SPEECH_RATE", "0.9")),
                volume=float(os.getenv("SPEECH_VOLUME", "1.0")),
            ),
            timings=Timings(
                poll_interval_s=float(os.getenv("REMINDER_POLL_S", "1.0")),
                speech_repeat_pause_s=float(os.getenv("REMINDER_REPEAT_PAUSE_S", "1.5")),
                snooze_minutes=int(os.getenv("REMINDER_SNOOZE_MINUTES", "5")),
            ),
            one_fire_per_minute=os.getenv("REMINDER_ONE_FIRE_PER_MINUTE", "true").lower() == "true",
            data_dir=Path(base_dir) / "data",
            persist=os.getenv("REMINDER_PERSIST", "false").lower() == "true",
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_format=os.getenv("LOG_FORMAT", "text"),
        )
