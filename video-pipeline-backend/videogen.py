"""
MiniMax (Hailuo) image-to-video client.
Generation is asynchronous: submit returns a task id which the stitcher
polls until the clip can be downloaded.
"""

import time
import logging
from typing import Callable, Tuple

import requests

from config import (
    MINIMAX_API_KEY,
    MINIMAX_GROUP_ID,
    MINIMAX_MODEL,
    MINIMAX_BASE_URL,
    MINIMAX_CLIP_SECONDS,
    MINIMAX_RESOLUTION,
    MINIMAX_PROMPT_LIMIT,
    MINIMAX_POLL_INTERVAL,
    MINIMAX_POLL_TIMEOUT,
    REQUEST_TIMEOUT,
)
from errors import ProviderError

FINISHED = "Success"
FAILED = "Fail"


class MiniMaxVideo:
    def __init__(self, api_key: str = MINIMAX_API_KEY, group_id: str = MINIMAX_GROUP_ID,
                 model: str = MINIMAX_MODEL, base_url: str = MINIMAX_BASE_URL,
                 sleep: Callable[[float], None] = time.sleep):
        self.api_key = api_key
        self.group_id = group_id
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.sleep = sleep

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    @property
    def _headers(self) -> dict:
        return {"Authorization": f"Bearer {self.api_key}", "Content-Type": "application/json"}

    def submit(self, prompt: str, first_frame_url: str) -> str:
        """Returns the task id, or "" when MiniMax did not accept the task."""
        payload = {
            "prompt": prompt[:MINIMAX_PROMPT_LIMIT],
            "model": self.model,
            "duration": MINIMAX_CLIP_SECONDS,
            "resolution": MINIMAX_RESOLUTION,
            "first_frame_image": first_frame_url,
        }
        response = requests.post(f"{self.base_url}/video_generation", json=payload,
                                 headers=self._headers, timeout=REQUEST_TIMEOUT)
        if not response.ok:
            logging.error(f"MiniMax API failed: {response.text[:300]}")
            return ""
        task_id = response.json().get("task_id") or ""
        if not task_id:
            logging.error(f"No task_id from MiniMax: {response.text[:300]}")
        return task_id

    def query(self, task_id: str) -> Tuple[str, str]:
        response = requests.get(f"{self.base_url}/query/video_generation", params={"task_id": task_id},
                                headers=self._headers, timeout=REQUEST_TIMEOUT)
        response.raise_for_status()
        data = response.json()
        return data.get("status", ""), data.get("file_id") or ""

    def download_url(self, file_id: str) -> str:
        params = {"file_id": file_id}
        if self.group_id:
            params["GroupId"] = self.group_id
        response = requests.get(f"{self.base_url}/files/retrieve", params=params,
                                headers=self._headers, timeout=REQUEST_TIMEOUT)
        response.raise_for_status()
        url = (response.json().get("file") or {}).get("download_url")
        if not url:
            raise ProviderError(f"MiniMax file {file_id} has no download_url")
        return url

    def wait_for(self, task_id: str, interval: float = MINIMAX_POLL_INTERVAL,
                 timeout: float = MINIMAX_POLL_TIMEOUT) -> str:
        """Poll a task until it finishes and return the clip download URL."""
        waited = 0.0
        last_status = None
        while True:
            status, file_id = self.query(task_id)
            if status != last_status:
                logging.info(f"🎞️ MiniMax task {task_id}: {status}")
                last_status = status
            if status == FINISHED and file_id:
                return self.download_url(file_id)
            if status == FAILED:
                raise ProviderError(f"MiniMax task {task_id} failed")
            if waited >= timeout:
                raise ProviderError(f"MiniMax task {task_id} timed out after {int(waited)}s ({status})")
            self.sleep(interval)
            waited += interval
