"""
Text-to-speech engines.

Three engines are supported and picked per voice name:
  * "ref:<file>"     -> Qwen3 TTS Space, cloning a reference recording
  * "*Neural" names  -> Microsoft Edge TTS (no key needed)
  * anything else    -> Fish Audio voice model id (needs FISH_AUDIO_API_KEY)
"""

import json
import asyncio
import logging
from typing import Callable, Iterable, List, Optional

import aiohttp
import edge_tts
import edge_tts.exceptions
import requests

from config import (
    FISH_AUDIO_API_KEY,
    FISH_AUDIO_URL,
    QWEN_SPACE_URL,
    QWEN_MODEL_SIZE,
    TTS_TIMEOUT,
    REQUEST_TIMEOUT,
    DEFAULT_VOICE,
)
from errors import ProviderError

CLONE_PREFIX = "ref:"


def is_voice_clone(voice: str) -> bool:
    return voice.startswith(CLONE_PREFIX)


class FishAudioTTS:
    name = "fish-audio"

    def __init__(self, api_key: str = FISH_AUDIO_API_KEY):
        self.api_key = api_key

    def synthesize(self, text: str, voice: str) -> bytes:
        response = requests.post(
            FISH_AUDIO_URL,
            json={"text": text, "reference_id": voice, "format": "mp3"},
            headers={
                "Content-Type": "application/json",
                "Authorization": f"Bearer {self.api_key}",
            },
            timeout=TTS_TIMEOUT,
        )
        if not response.ok:
            raise ProviderError(f"Fish Audio TTS failed ({response.status_code}): {response.text[:300]}")
        return response.content


class EdgeTTS:
    name = "edge-tts"

    async def _collect(self, text: str, voice: str) -> bytes:
        communicate = edge_tts.Communicate(text, voice)
        chunks = []
        async for chunk in communicate.stream():
            if chunk["type"] == "audio":
                chunks.append(chunk["data"])
        return b"".join(chunks)

    def synthesize(self, text: str, voice: str) -> bytes:
        try:
            audio = asyncio.run(self._collect(text, voice))
        except (edge_tts.exceptions.EdgeTTSException, aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise ProviderError(f"Edge TTS failed for voice {voice}: {e}") from e
        if not audio:
            raise ProviderError(f"Edge TTS returned no audio for voice {voice}")
        return audio


def _extract_url(obj) -> Optional[str]:
    if not obj or not isinstance(obj, (dict, list)):
        return None
    items = obj if isinstance(obj, list) else obj.get("data") or obj.get("output")
    if not isinstance(items, list) or not items or not isinstance(items[0], dict):
        return None
    url = items[0].get("url") or items[0].get("path")
    if isinstance(url, str) and url.startswith(("http://", "https://")):
        return url
    return None


def parse_gradio_stream(lines: Iterable[str]) -> str:
    """
    Read a Gradio /call SSE stream and return the URL of the produced file.

    The Space answers "event: error" + "data: null" when it is overloaded,
    which typically happens from the third request in a row.
    """
    last_event = ""
    only_null = True
    seen: List[str] = []

    for line in lines:
        if line is None:
            continue
        line = line.strip()
        if not line:
            continue
        seen.append(line)

        if line.startswith("event:"):
            last_event = line[len("event:"):].strip()
            continue
        if not line.startswith("data:"):
            continue

        content = line[len("data:"):].strip()
        if not content or content == "[DONE]":
            continue
        if content == "null":
            if last_event == "error":
                raise ProviderError(
                    "TTS Space returned error (rate limit or overload, often on 3rd+ request). "
                    "Wait longer between segments and retry."
                )
            continue

        try:
            parsed = json.loads(content)
        except json.JSONDecodeError:
            continue
        only_null = False

        if isinstance(parsed, dict) and (last_event == "error" or parsed.get("error") or parsed.get("msg")):
            message = parsed.get("message") or parsed.get("error") or parsed.get("msg") or json.dumps(parsed)[:200]
            raise ProviderError(f"TTS Space error: {message}")
        if last_event == "error":
            raise ProviderError(f"TTS Space error: {content[:200]}")

        url = _extract_url(parsed)
        if url:
            return url

    tail = " ".join(seen)[-900:]
    if only_null:
        raise ProviderError(
            "TTS Space returned no audio (stream had only null or empty data). "
            f"The Space may be overloaded. Raw tail: {tail}"
        )
    raise ProviderError(f"Audio URL not found. Last event: {last_event or 'none'}. Raw tail: {tail}")


class QwenSpaceTTS:
    """Qwen3 TTS through the public Hugging Face Space (Gradio 5 API)."""

    name = "qwen-space"

    def __init__(self, base_url: str = QWEN_SPACE_URL,
                 transcript_lookup: Optional[Callable[[str], str]] = None,
                 reference_storage=None,
                 on_log: Callable[[str], None] = lambda message: None):
        self.base_url = base_url.rstrip("/")
        self.transcript_lookup = transcript_lookup or (lambda file_name: "")
        self.reference_storage = reference_storage
        self.on_log = on_log

    def _payload(self, text: str, voice: str):
        if not is_voice_clone(voice):
            return "generate_custom_voice", [text, "English", voice, "natural and engaging", QWEN_MODEL_SIZE]

        if self.reference_storage is None:
            raise ProviderError("Voice cloning needs the reference voice storage")
        file_name = voice[len(CLONE_PREFIX):]
        transcript = self.transcript_lookup(file_name) or ""
        reference_url = self.reference_storage.signed_url(file_name)
        return "generate_voice_clone", [
            {"path": reference_url, "meta": {"_type": "gradio.FileData"}},
            transcript,
            text,
            "Auto",
            not transcript,  # x-vector only when there is no transcript
            QWEN_MODEL_SIZE,
        ]

    def synthesize(self, text: str, voice: str) -> bytes:
        endpoint, data = self._payload(text, voice)
        call_url = f"{self.base_url}/gradio_api/call/{endpoint}"
        self.on_log(f"Starting task: {call_url}")

        start = requests.post(call_url, json={"data": data}, timeout=REQUEST_TIMEOUT)
        if not start.ok:
            raise ProviderError(f"Synthesis start failed ({endpoint}): {start.text[:300]}")
        event_id = (start.json() or {}).get("event_id")
        if not event_id:
            raise ProviderError(f"TTS start response missing event_id: {start.text[:200]}")
        self.on_log(f"Event ID: {event_id}")

        with requests.get(f"{call_url}/{event_id}", stream=True, timeout=TTS_TIMEOUT) as stream:
            if not stream.ok:
                raise ProviderError(f"TTS poll failed ({stream.status_code}): {stream.text[:300]}")
            audio_url = parse_gradio_stream(stream.iter_lines(decode_unicode=True))
        self.on_log(f"Found audio URL: {audio_url}")

        audio = requests.get(audio_url, timeout=REQUEST_TIMEOUT)
        if not audio.ok:
            raise ProviderError(f"Audio download failed ({audio.status_code})")
        return audio.content


def select_engine(voice: str, fish_api_key: str = FISH_AUDIO_API_KEY, **qwen_options):
    """Return (engine, voice) for the requested voice name."""
    if is_voice_clone(voice):
        return QwenSpaceTTS(**qwen_options), voice
    if voice.endswith("Neural"):
        return EdgeTTS(), voice
    if fish_api_key:
        return FishAudioTTS(fish_api_key), voice
    logging.warning(f"No Fish Audio key for voice '{voice}', using Edge TTS {DEFAULT_VOICE}")
    return EdgeTTS(), DEFAULT_VOICE
