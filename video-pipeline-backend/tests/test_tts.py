# video-pipeline-backend/tests/test_tts.py

from unittest.mock import MagicMock, patch

import aiohttp
import edge_tts.exceptions
import pytest

from config import DEFAULT_VOICE
from errors import ProviderError
from tts import EdgeTTS, FishAudioTTS, QwenSpaceTTS, parse_gradio_stream, select_engine


def test_parse_gradio_stream_returns_audio_url():
    lines = [
        "event: generating",
        "data: null",
        "",
        "event: complete",
        'data: [{"path": "/tmp/out.wav", "url": "https://space.test/file=/tmp/out.wav"}]',
    ]

    assert parse_gradio_stream(lines) == "https://space.test/file=/tmp/out.wav"


def test_parse_gradio_stream_accepts_data_wrapper():
    lines = ['data: {"data": [{"url": "https://space.test/a.wav"}]}']

    assert parse_gradio_stream(lines) == "https://space.test/a.wav"


def test_parse_gradio_stream_error_event_with_null_data():
    with pytest.raises(ProviderError, match="rate limit or overload"):
        parse_gradio_stream(["event: error", "data: null"])


def test_parse_gradio_stream_error_payload():
    with pytest.raises(ProviderError, match="GPU quota exceeded"):
        parse_gradio_stream(["event: error", 'data: {"message": "GPU quota exceeded"}'])


def test_parse_gradio_stream_only_null_data():
    with pytest.raises(ProviderError, match="no audio"):
        parse_gradio_stream(["event: heartbeat", "data: null", "data: null"])


def test_parse_gradio_stream_without_url():
    with pytest.raises(ProviderError, match="Audio URL not found"):
        parse_gradio_stream(["event: complete", 'data: [{"path": "/tmp/out.wav"}]'])


def test_select_engine_by_voice_name():
    engine, voice = select_engine("ref:denis.wav", fish_api_key="")
    assert isinstance(engine, QwenSpaceTTS) and voice == "ref:denis.wav"

    engine, voice = select_engine("en-GB-SoniaNeural", fish_api_key="key")
    assert isinstance(engine, EdgeTTS) and voice == "en-GB-SoniaNeural"

    engine, voice = select_engine("8ef4a238714b45718ce04243307c57a7", fish_api_key="key")
    assert isinstance(engine, FishAudioTTS) and voice == "8ef4a238714b45718ce04243307c57a7"


def test_select_engine_without_fish_key_uses_default_edge_voice():
    engine, voice = select_engine("8ef4a238714b45718ce04243307c57a7", fish_api_key="")

    assert isinstance(engine, EdgeTTS)
    assert voice == DEFAULT_VOICE


class FakeReferenceStorage:
    def signed_url(self, path, expires_in=3600):
        return f"https://storage.test/sign/{path}"


def test_voice_clone_payload_with_transcript():
    engine = QwenSpaceTTS(transcript_lookup={"denis.wav": "Hi there"}.get, reference_storage=FakeReferenceStorage())

    endpoint, data = engine._payload("Narration text", "ref:denis.wav")

    assert endpoint == "generate_voice_clone"
    assert data[0]["path"] == "https://storage.test/sign/denis.wav"
    assert data[1] == "Hi there"
    assert data[2] == "Narration text"
    assert data[4] is False


def test_voice_clone_payload_without_transcript_uses_xvector_mode():
    engine = QwenSpaceTTS(transcript_lookup=lambda name: "", reference_storage=FakeReferenceStorage())

    _, data = engine._payload("Narration text", "ref:anas.wav")

    assert data[1] == ""
    assert data[4] is True


def test_voice_clone_needs_reference_storage():
    with pytest.raises(ProviderError):
        QwenSpaceTTS()._payload("text", "ref:denis.wav")


def test_qwen_synthesize_flow():
    start = MagicMock(ok=True)
    start.json.return_value = {"event_id": "evt-1"}
    stream = MagicMock(ok=True)
    stream.iter_lines.return_value = iter(['event: complete', 'data: [{"url": "https://space.test/out.wav"}]'])
    stream.__enter__.return_value = stream
    audio = MagicMock(ok=True, content=b"RIFF....")
    logs = []

    with patch("tts.requests.post", return_value=start) as post, \
            patch("tts.requests.get", side_effect=[stream, audio]) as get:
        result = QwenSpaceTTS(base_url="https://space.test", on_log=logs.append).synthesize("Hello", "Ryan")

    assert result == b"RIFF...."
    assert post.call_args.args[0] == "https://space.test/gradio_api/call/generate_custom_voice"
    assert post.call_args.kwargs["json"]["data"][:3] == ["Hello", "English", "Ryan"]
    assert get.call_args_list[0].args[0] == "https://space.test/gradio_api/call/generate_custom_voice/evt-1"
    assert any("evt-1" in line for line in logs)


def test_fish_audio_error_raises_provider_error():
    response = MagicMock(ok=False, status_code=402, text="insufficient balance")

    with patch("tts.requests.post", return_value=response):
        with pytest.raises(ProviderError, match="402"):
            FishAudioTTS(api_key="key").synthesize("Hello", "voice-id")


class FakeCommunicate:
    """Replays scripted stream chunks, or raises, per narration text."""

    scripts = {}

    def __init__(self, text, voice):
        self.text = text
        self.voice = voice

    async def stream(self):
        outcome = self.scripts[self.text]
        if isinstance(outcome, Exception):
            raise outcome
        for chunk in outcome:
            yield chunk


@pytest.fixture
def communicate():
    FakeCommunicate.scripts = {}
    with patch("tts.edge_tts.Communicate", FakeCommunicate):
        yield FakeCommunicate.scripts


def test_edge_tts_collects_only_audio_chunks(communicate):
    communicate["Hello"] = [
        {"type": "audio", "data": b"ID3"},
        {"type": "WordBoundary", "offset": 100, "text": "Hello"},
        {"type": "audio", "data": b"frames"},
    ]

    assert EdgeTTS().synthesize("Hello", "en-US-GuyNeural") == b"ID3frames"


def test_edge_tts_without_audio_raises_provider_error(communicate):
    communicate["Hello"] = [{"type": "WordBoundary", "offset": 100, "text": "Hello"}]

    with pytest.raises(ProviderError, match="no audio"):
        EdgeTTS().synthesize("Hello", "en-US-GuyNeural")


@pytest.mark.parametrize("error", [
    edge_tts.exceptions.NoAudioReceived("No audio was received."),
    aiohttp.ClientConnectionError("Cannot connect to host speech.platform.bing.com"),
])
def test_edge_tts_library_errors_become_provider_errors(communicate, error):
    communicate["Hello"] = error

    with pytest.raises(ProviderError, match="Edge TTS failed") as excinfo:
        EdgeTTS().synthesize("Hello", "en-US-GuyNeural")

    assert excinfo.value.__cause__ is error
