"""
Tests for audio source resolution and the voice service client
"""

import asyncio
from unittest.mock import Mock, patch

import pytest
import requests

from reminder_playback.config import VoiceServiceConfig
from reminder_playback.errors import AudioResolutionError, VoiceSynthesisError
from reminder_playback.models import AudioHandle
from reminder_playback.resolver import (
    AudioSourceResolver, AudioSourceStrategy, RemoteVoiceStrategy
)
from reminder_playback.voice_api import VoiceSynthesisClient


class StaticStrategy(AudioSourceStrategy):
    """Strategy returning a fixed result"""

    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error
        self.calls = 0

    def attempt(self, message, api_key=None):
        self.calls += 1
        if self.error:
            raise self.error
        return self.result


class TestRemoteVoiceStrategy:
    """Test the remote synthesis link of the chain"""

    def test_no_api_key_skips_remote_call(self, tmp_path):
        client = Mock(spec=VoiceSynthesisClient)
        strategy = RemoteVoiceStrategy(client, tmp_path)

        assert strategy.attempt("Wake up", None) is None
        client.synthesize.assert_not_called()

    def test_success_wraps_payload(self, tmp_path):
        client = Mock(spec=VoiceSynthesisClient)
        client.synthesize.return_value = b"ID3-voice"
        strategy = RemoteVoiceStrategy(client, tmp_path)

        handle = strategy.attempt("Wake up", "key-123")

        client.synthesize.assert_called_once_with("Wake up", "key-123")
        assert handle.path.read_bytes() == b"ID3-voice"
        assert handle.path.parent == tmp_path
        assert handle.owned is True

    def test_failure_raises_resolution_error(self, tmp_path):
        client = Mock(spec=VoiceSynthesisClient)
        client.synthesize.side_effect = VoiceSynthesisError("Voice service error 401", status_code=401)
        strategy = RemoteVoiceStrategy(client, tmp_path)

        with pytest.raises(AudioResolutionError, match="401"):
            strategy.attempt("Wake up", "bad-key")

    def test_unwritable_audio_dir_raises_resolution_error(self, tmp_path):
        blocker = tmp_path / "notadir"
        blocker.write_text("")
        client = Mock(spec=VoiceSynthesisClient)
        client.synthesize.return_value = b"ID3"
        strategy = RemoteVoiceStrategy(client, blocker / "audio")

        with pytest.raises(AudioResolutionError, match="Could not store synthesized audio"):
            strategy.attempt("Wake up", "key-123")

    def test_unwritable_audio_dir_falls_back_to_speech(self, tmp_path):
        blocker = tmp_path / "notadir"
        blocker.write_text("")
        client = Mock(spec=VoiceSynthesisClient)
        client.synthesize.return_value = b"ID3"
        notify = Mock()
        resolver = AudioSourceResolver([RemoteVoiceStrategy(client, blocker / "audio")], notify=notify)

        assert asyncio.run(resolver.resolve_async("Wake up", "key-123")) is None
        notify.assert_called_once()
        assert "Could not store synthesized audio" in notify.call_args[0][0]


class TestAudioSourceResolver:
    """Test the fallback chain"""

    def test_failure_falls_back_to_none_and_notifies(self):
        notify = Mock()
        resolver = AudioSourceResolver(
            [StaticStrategy(error=AudioResolutionError("Voice service error 500"))],
            notify=notify,
        )

        assert resolver.resolve("Wake up", "key") is None
        notify.assert_called_once()
        assert "Voice service error 500" in notify.call_args[0][0]

    def test_first_success_wins(self, tmp_path):
        handle = AudioHandle.from_bytes(b"x", tmp_path)
        skipped = StaticStrategy(result=None)
        winner = StaticStrategy(result=handle)
        never = StaticStrategy(result=None)
        resolver = AudioSourceResolver([skipped, winner, never])

        assert resolver.resolve("Wake up", "key") is handle
        assert skipped.calls == 1
        assert never.calls == 0

    def test_failure_then_next_strategy(self, tmp_path):
        handle = AudioHandle.from_bytes(b"x", tmp_path)
        notify = Mock()
        resolver = AudioSourceResolver(
            [StaticStrategy(error=AudioResolutionError("down")), StaticStrategy(result=handle)],
            notify=notify,
        )

        assert resolver.resolve("Wake up") is handle
        assert notify.call_count == 1

    def test_empty_chain_returns_none(self):
        assert AudioSourceResolver([]).resolve("Wake up", "key") is None

    def test_resolve_async_notifies_on_loop(self):
        notify = Mock()
        resolver = AudioSourceResolver(
            [StaticStrategy(error=AudioResolutionError("timeout"))], notify=notify
        )

        result = asyncio.run(resolver.resolve_async("Wake up", "key"))

        assert result is None
        notify.assert_called_once()


class TestVoiceSynthesisClient:
    """Test HTTP handling of the voice service client"""

    def _client(self):
        client = VoiceSynthesisClient(VoiceServiceConfig(base_url="https://voice.example/"))
        client._session = Mock()
        return client

    def test_synthesize_success(self):
        client = self._client()
        client._session.post.return_value = Mock(status_code=200, content=b"ID3audio")

        assert client.synthesize("Wake up", "key-123") == b"ID3audio"

        args, kwargs = client._session.post.call_args
        assert args[0] == "https://voice.example/v1/text-to-speech/21m00Tcm4TlvDq8ikWAM"
        assert kwargs["headers"]["xi-api-key"] == "key-123"
        assert kwargs["json"] == {"text": "Wake up", "model_id": "eleven_monolingual_v1"}

    def test_custom_voice_model(self):
        client = self._client()
        client._session.post.return_value = Mock(status_code=200, content=b"ID3audio")

        client.synthesize("Hi", "key", voice_model_id="cloned-voice")

        assert client._session.post.call_args[0][0].endswith("/cloned-voice")

    def test_non_2xx_raises(self):
        client = self._client()
        client._session.post.return_value = Mock(status_code=401, content=b'{"detail":"bad key"}')

        with pytest.raises(VoiceSynthesisError) as exc_info:
            client.synthesize("Wake up", "bad-key")
        assert exc_info.value.status_code == 401

    def test_empty_body_raises(self):
        client = self._client()
        client._session.post.return_value = Mock(status_code=200, content=b"")

        with pytest.raises(VoiceSynthesisError):
            client.synthesize("Wake up", "key")

    def test_network_error_raises(self):
        client = self._client()
        with patch.object(client, "_post_tts", side_effect=requests.exceptions.ConnectionError("down")):
            with pytest.raises(VoiceSynthesisError, match="unreachable"):
                client.synthesize("Wake up", "key")
