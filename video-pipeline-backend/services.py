"""
Service classes for the AI Video Pipeline.
Contains the LLM client, the segment script writer and the JSON
validator that cleans up what the model returns.
"""

import re
import json
import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional

import requests

from config import (
    OPENROUTER_API_KEY,
    OPENROUTER_BASE_URL,
    OPENROUTER_MODEL,
    LLM_MAX_TOKENS,
    LLM_TEMPERATURE,
    LLM_TIMEOUT,
    VOICE_SYSTEM_PROMPT,
    IMAGE_SYSTEM_PROMPT,
    VIDEO_SYSTEM_PROMPT,
    VOICE_PROMPT,
    IMAGE_PROMPT,
    VIDEO_PROMPT,
)
from errors import ProviderError


class SegmentJsonValidator:
    """Validates and cleans LLM output that should be a flat JSON object."""

    def __init__(self, raw_text: str):
        self.text = raw_text or ""
        self.fixes_applied = []

    def _strip_markdown(self):
        cleaned = re.sub(r"```(?:json)?|```", "", self.text).strip()
        if cleaned != self.text.strip():
            self.fixes_applied.append("Stripped markdown fences")
        self.text = cleaned

    def _trim_to_object(self):
        # Models sometimes wrap the object in a sentence of prose
        if self.text.startswith("{") and self.text.endswith("}"):
            return
        start, end = self.text.find("{"), self.text.rfind("}")
        if start != -1 and end > start:
            self.text = self.text[start:end + 1]
            self.fixes_applied.append("Trimmed text around the JSON object")

    def _parse(self) -> dict:
        try:
            obj = json.loads(self.text)
        except json.JSONDecodeError as e:
            logging.error(f"❌ LLM returned invalid JSON: {e}")
            return {}
        if not isinstance(obj, dict):
            logging.error(f"❌ LLM returned {type(obj).__name__}, expected an object")
            return {}
        return obj

    def run(self) -> str:
        if not self.text.strip():
            return "{}"

        self._strip_markdown()
        self._trim_to_object()
        obj = self._parse()

        if self.fixes_applied:
            logging.warning(f"🔧 JSON FIXES APPLIED: {', '.join(self.fixes_applied)}")

        return json.dumps(obj, ensure_ascii=False)


def clean_json(raw: str) -> str:
    return SegmentJsonValidator(raw).run()


def ordered_values(obj: dict, prefix: str) -> List[str]:
    """
    Values of prefix1..prefixN ordered by their number. Keys that do not
    follow the pattern are kept after the numbered ones, in their original order.
    """
    pattern = re.compile(rf"^{re.escape(prefix)}_?(\d+)$")
    numbered, others = [], []
    for key, value in obj.items():
        match = pattern.match(str(key))
        if match:
            numbered.append((int(match.group(1)), str(value)))
        else:
            others.append(str(value))
    return [value for _, value in sorted(numbered, key=lambda item: item[0])] + others


@dataclass
class SegmentPlan:
    """Per-segment narration text, image prompts and video prompts."""

    voice: List[str] = field(default_factory=list)
    image: List[str] = field(default_factory=list)
    video: List[str] = field(default_factory=list)

    @classmethod
    def from_json(cls, voice_json: str, image_json: str, video_json: str) -> "SegmentPlan":
        return cls(
            voice=ordered_values(json.loads(voice_json or "{}"), "voice"),
            image=ordered_values(json.loads(image_json or "{}"), "image"),
            video=ordered_values(json.loads(video_json or "{}"), "video"),
        )

    def is_empty(self) -> bool:
        return not (self.voice and self.image and self.video)


class AIService:
    """Handles OpenRouter chat completion calls."""

    def __init__(self, api_key: str = OPENROUTER_API_KEY, model: str = OPENROUTER_MODEL,
                 base_url: str = OPENROUTER_BASE_URL):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")

    def complete(self, system: str, user: str) -> str:
        """Send one system+user exchange and return the assistant text."""
        if not self.api_key:
            raise ProviderError("OPENROUTER_API_KEY is not set")

        logging.info(f"📝 Sending prompt to {self.model} ({len(user)} chars)")
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
            "max_tokens": LLM_MAX_TOKENS,
            "temperature": LLM_TEMPERATURE,
        }
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }
        response = requests.post(f"{self.base_url}/chat/completions", json=payload,
                                 headers=headers, timeout=LLM_TIMEOUT)
        response.raise_for_status()
        choices = response.json().get("choices") or []
        if not choices:
            return ""
        return (choices[0].get("message") or {}).get("content") or ""


class ScriptWriter:
    """Turns a raw script into the voice, image and video JSON plans."""

    def __init__(self, ai: Optional[AIService] = None):
        self.ai = ai or AIService()

    def write_voice(self, script: str, count: int) -> str:
        return self.ai.complete(VOICE_SYSTEM_PROMPT, VOICE_PROMPT.format(count=count, script=script)) or "{}"

    def write_images(self, raw_voice: str, count: int) -> str:
        return self.ai.complete(IMAGE_SYSTEM_PROMPT, IMAGE_PROMPT.format(count=count, voice_json=raw_voice)) or "{}"

    def write_videos(self, raw_image: str, count: int) -> str:
        return self.ai.complete(VIDEO_SYSTEM_PROMPT, VIDEO_PROMPT.format(count=count, image_json=raw_image)) or "{}"

    def generate(self, script: str, count: int,
                 on_progress: Callable[[int], None] = lambda progress: None):
        """
        Each step feeds the raw output of the previous one so the image and
        video prompts stay consistent with the narration.
        Returns cleaned (voice_json, image_json, video_json) strings.
        """
        raw_voice = self.write_voice(script, count)
        on_progress(15)
        raw_image = self.write_images(raw_voice, count)
        on_progress(25)
        raw_video = self.write_videos(raw_image, count)
        return clean_json(raw_voice), clean_json(raw_image), clean_json(raw_video)
