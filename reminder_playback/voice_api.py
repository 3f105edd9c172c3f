"""
HTTP client for the remote voice synthesis service
"""

import threading
from typing import Optional

import requests
from requests.adapters import HTTPAdapter
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type
from urllib3.util.retry import Retry

from .config import VoiceServiceConfig
from .errors import VoiceSynthesisError
from .logging_utils import get_logger

logger = get_logger(__name__)


class VoiceSynthesisClient:
    """Text-to-speech requests against the configured voice service"""

    def __init__(self, config: VoiceServiceConfig):
        self.config = config
        self._session: Optional[requests.Session] = None
        self._session_lock = threading.Lock()

    def _http_session(self) -> requests.Session:
        if self._session is None:
            with self._session_lock:
                if self._session is None:
                    session = requests.Session()
                    retry_cfg = Retry(
                        total=2,
                        backoff_factor=0.3,
                        status_forcelist=(429, 500, 502, 503, 504),
                        allowed_methods=("POST",),
                        raise_on_status=False,
                    )
                    adapter = HTTPAdapter(pool_connections=2, pool_maxsize=4, max_retries=retry_cfg)
                    session.mount("http://", adapter)
                    session.mount("https://", adapter)
                    session.headers.update({"User-Agent": "ReminderPlayback/1.0"})
                    self._session = session
        return self._session

    def _endpoint(self, voice_model_id: str) -> str:
        return f"{self.config.base_url.rstrip('/')}/v1/text-to-speech/{voice_model_id}"

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
        retry=retry_if_exception_type((requests.exceptions.ConnectionError, requests.exceptions.Timeout)),
        reraise=True,
    )
    def _post_tts(self, text: str, api_key: str, voice_model_id: str) -> requests.Response:
        url = self._endpoint(voice_model_id)
        logger.debug(f"POST {url} ({len(text)} chars)")
        return self._http_session().post(
            url,
            params={"optimize_streaming_latency": 0},
            headers={
                "xi-api-key": api_key,
                "Content-Type": "application/json",
                "Accept": "audio/mpeg",
            },
            json={"text": text, "model_id": self.config.model_id},
            timeout=self.config.request_timeout_s,
        )

    def synthesize(self, text: str, api_key: str, voice_model_id: Optional[str] = None) -> bytes:
        """
        Render text with the remote voice.

        Args:
            text: Message to speak
            api_key: Voice service credential
            voice_model_id: Voice to use (defaults to the configured voice)

        Returns:
            Raw audio bytes

        Raises:
            VoiceSynthesisError: On any non-2xx response or network failure
        """
        voice = voice_model_id or self.config.voice_model_id
        try:
            response = self._post_tts(text, api_key, voice)
        except requests.RequestException as e:
            raise VoiceSynthesisError(f"Voice service unreachable: {e}") from e

        if not 200 <= response.status_code < 300:
            raise VoiceSynthesisError(
                f"Voice service error {response.status_code}",
                status_code=response.status_code,
            )
        if not response.content:
            raise VoiceSynthesisError("Voice service returned an empty body",
                                      status_code=response.status_code)

        logger.info(f"Synthesized {len(response.content)} bytes with voice {voice}")
        return response.content

    def close(self) -> None:
        if self._session is not None:
            self._session.close()
            self._session = None
