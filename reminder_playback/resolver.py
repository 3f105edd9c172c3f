"""
Audio source resolution: an ordered fallback chain of strategies
"""

import asyncio
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Tuple

from .errors import AudioResolutionError, VoiceSynthesisError
from .logging_utils import get_logger
from .models import AudioHandle
from .voice_api import VoiceSynthesisClient

logger = get_logger(__name__)


class AudioSourceStrategy(ABC):
    """One link of the fallback chain"""

    @abstractmethod
    def attempt(self, message: str, api_key: Optional[str] = None) -> Optional[AudioHandle]:
        """
        Try to produce audio for the message.

        Returns:
            A handle, or None when this strategy does not apply

        Raises:
            AudioResolutionError: When the strategy applies but failed
        """
        ...

    @property
    def name(self) -> str:
        return self.__class__.__name__


class RemoteVoiceStrategy(AudioSourceStrategy):
    """Cloned/stock voice rendered by the remote synthesis service"""

    def __init__(self, client: VoiceSynthesisClient, audio_dir: Optional[Path] = None):
        self.client = client
        self.audio_dir = audio_dir

    def attempt(self, message: str, api_key: Optional[str] = None) -> Optional[AudioHandle]:
        if not api_key:
            logger.debug("No voice service key configured, skipping remote synthesis")
            return None
        try:
            payload = self.client.synthesize(message, api_key)
        except VoiceSynthesisError as e:
            raise AudioResolutionError(str(e)) from e
        try:
            return AudioHandle.from_bytes(payload, self.audio_dir)
        except OSError as e:
            raise AudioResolutionError(f"Could not store synthesized audio: {e}") from e


class AudioSourceResolver:
    """Runs the strategy chain once per alarm creation; first handle wins"""

    def __init__(self, strategies: Sequence[AudioSourceStrategy],
                 notify: Optional[Callable[[str], object]] = None):
        self.strategies: List[AudioSourceStrategy] = list(strategies)
        self._notify = notify

    def _run_chain(self, message: str, api_key: Optional[str]) -> Tuple[Optional[AudioHandle], List[str]]:
        failures: List[str] = []
        for strategy in self.strategies:
            try:
                handle = strategy.attempt(message, api_key)
            except AudioResolutionError as e:
                logger.warning(f"{strategy.name} failed: {e}")
                failures.append(str(e))
                continue
            if handle is not None:
                logger.info(f"Resolved audio via {strategy.name}")
                return handle, failures

        logger.info("No pre-rendered audio, alarm will use on-device speech")
        return None, failures

    def _report(self, failures: List[str]) -> None:
        if self._notify is None:
            return
        for reason in failures:
            self._notify(f"Voice generation failed: {reason}. Using system voice.")

    def resolve(self, message: str, api_key: Optional[str] = None) -> Optional[AudioHandle]:
        """
        Resolve a playable handle for the message.

        Returns None to mean "speak it on-device at fire time". Failures are
        reported through the notify callback and never raised.
        """
        handle, failures = self._run_chain(message, api_key)
        self._report(failures)
        return handle

    async def resolve_async(self, message: str, api_key: Optional[str] = None) -> Optional[AudioHandle]:
        """Resolve off the event loop so only the creation flow waits"""
        handle, failures = await asyncio.to_thread(self._run_chain, message, api_key)
        # Notices are posted back on the loop thread
        self._report(failures)
        return handle
