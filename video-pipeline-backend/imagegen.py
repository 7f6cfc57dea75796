"""
Image generation providers. The first configured provider that returns an
image wins; Pollinations needs no key and is always last in line.
"""

import logging
from typing import List, Optional
from urllib.parse import quote

import requests

from config import (
    HF_TOKEN,
    HF_IMAGE_MODEL_URL,
    POLLINATIONS_URL,
    IMAGE_TIMEOUT,
    OUTPUT_WIDTH,
    OUTPUT_HEIGHT,
)
from errors import ProviderError


class HuggingFaceImages:
    name = "huggingface-flux"

    def __init__(self, token: str = HF_TOKEN, model_url: str = HF_IMAGE_MODEL_URL):
        self.token = token
        self.model_url = model_url

    def generate(self, prompt: str) -> bytes:
        response = requests.post(
            self.model_url,
            json={"inputs": prompt},
            headers={
                "Authorization": f"Bearer {self.token}",
                "Content-Type": "application/json",
            },
            timeout=IMAGE_TIMEOUT,
        )
        if not response.ok:
            raise ProviderError(f"HF image generation failed: {response.status_code} - {response.text[:300]}")
        return response.content


class PollinationsImages:
    name = "pollinations"

    def generate(self, prompt: str) -> bytes:
        url = f"{POLLINATIONS_URL}/{quote(prompt, safe='')}"
        params = {"width": OUTPUT_WIDTH, "height": OUTPUT_HEIGHT, "model": "flux", "nologo": "true"}
        response = requests.get(url, params=params, timeout=IMAGE_TIMEOUT)
        if not response.ok:
            raise ProviderError(f"Pollinations failed: {response.status_code}")
        if not response.headers.get("Content-Type", "image/").startswith("image/"):
            raise ProviderError(f"Pollinations returned {response.headers.get('Content-Type')}")
        return response.content


class ImageGenerator:
    """Tries each provider in turn."""

    def __init__(self, providers: Optional[List] = None):
        if providers is None:
            providers = [HuggingFaceImages()] if HF_TOKEN else []
            providers.append(PollinationsImages())
        self.providers = providers

    def generate(self, prompt: str) -> bytes:
        errors = []
        for provider in self.providers:
            try:
                image = provider.generate(prompt)
                if image:
                    return image
                errors.append(f"{provider.name}: empty response")
            except (requests.RequestException, ProviderError) as e:
                logging.warning(f"🖼️ {provider.name} failed, trying next provider: {e}")
                errors.append(f"{provider.name}: {e}")
        raise ProviderError("All image providers failed: " + "; ".join(errors))
