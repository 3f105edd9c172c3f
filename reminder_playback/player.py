"""
Clip playback for pre-rendered or recorded reminder audio
"""

import subprocess
from abc import ABC, abstractmethod
from typing import List, Optional

from .errors import PlaybackBlockedError
from .logging_utils import get_logger
from .models import AudioHandle

logger = get_logger(__name__)


class ClipPlayer(ABC):
    """Loops one audio clip until stopped"""

    @abstractmethod
    def play(self, handle: AudioHandle) -> None:
        """
        Start looping playback.

        Raises:
            PlaybackBlockedError: If the host refuses to play the clip
        """
        ...

    @abstractmethod
    def stop(self) -> bool:
        """Halt playback; returns False if nothing was playing"""
        ...

    @property
    @abstractmethod
    def is_playing(self) -> bool:
        ...


class MpvClipPlayer(ClipPlayer):
    """Plays clips through an external mpv process"""

    def __init__(self, command: Optional[List[str]] = None, stop_timeout_s: float = 2.0,
                 startup_grace_s: float = 0.2):
        self.command = command or ["mpv", "--no-video", "--really-quiet", "--loop-file=inf"]
        self.stop_timeout_s = stop_timeout_s
        self.startup_grace_s = startup_grace_s
        self._process: Optional[subprocess.Popen] = None

    def play(self, handle: AudioHandle) -> None:
        self.stop()

        if not handle.is_available:
            raise PlaybackBlockedError(f"Audio clip unavailable: {handle.path}")

        try:
            self._process = subprocess.Popen(
                [*self.command, "--", str(handle.path)],
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
            )
        except FileNotFoundError as e:
            raise PlaybackBlockedError(f"Player not installed: {self.command[0]}") from e
        except OSError as e:
            raise PlaybackBlockedError(f"Player failed to start: {e}") from e

        # The clip loops forever, so a player that exits this early never played it
        try:
            returncode = self._process.wait(timeout=self.startup_grace_s)
        except subprocess.TimeoutExpired:
            pass
        else:
            self._process = None
            raise PlaybackBlockedError(f"Player exited immediately (code {returncode}) for {handle.path}")

        logger.info(f"Playing clip {handle.path.name} (pid {self._process.pid})")

    def stop(self) -> bool:
        if self._process is None:
            return False

        try:
            # Send SIGTERM for graceful shutdown
            self._process.terminate()
            self._process.wait(timeout=self.stop_timeout_s)
        except subprocess.TimeoutExpired:
            self._process.kill()
            self._process.wait()

        self._process = None
        logger.info("Clip playback stopped")
        return True

    @property
    def is_playing(self) -> bool:
        return self._process is not None and self._process.poll() is None
