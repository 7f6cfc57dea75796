"""
Object storage for generated assets.
Supabase Storage in production, a directory under MEDIA_DIR for local runs.
"""

import os
import logging
from typing import List

from config import (
    MEDIA_DIR,
    STORAGE_BACKEND,
    SUPABASE_URL,
    SUPABASE_SERVICE_KEY,
    SIGNED_URL_SECONDS,
)
from errors import StorageError


def audio_path(folder: str, index: int) -> str:
    return f"{folder}/audio/voice_{index}.mp3"


def image_path(folder: str, index: int) -> str:
    return f"{folder}/images/image_{index}.jpg"


def video_path(folder: str, index: int) -> str:
    return f"{folder}/videos/video_{index}.mp4"


def final_video_path(folder: str) -> str:
    return f"{folder}/final_video.mp4"


class StorageBackend:
    """Minimal bucket interface used by the pipeline."""

    bucket: str

    def upload(self, path: str, data: bytes, content_type: str) -> str:
        raise NotImplementedError

    def download(self, path: str) -> bytes:
        raise NotImplementedError

    def public_url(self, path: str) -> str:
        raise NotImplementedError

    def signed_url(self, path: str, expires_in: int = SIGNED_URL_SECONDS) -> str:
        raise NotImplementedError

    def list(self, prefix: str = "") -> List[str]:
        raise NotImplementedError

    def buckets(self) -> List[str]:
        raise NotImplementedError


class SupabaseStorage(StorageBackend):
    def __init__(self, bucket: str, client=None):
        self.bucket = bucket
        if client is None:
            from supabase import create_client
            if not SUPABASE_URL or not SUPABASE_SERVICE_KEY:
                raise StorageError("SUPABASE_URL and SUPABASE_SERVICE_KEY must be set")
            client = create_client(SUPABASE_URL, SUPABASE_SERVICE_KEY)
        self.client = client

    @property
    def _bucket(self):
        return self.client.storage.from_(self.bucket)

    def upload(self, path: str, data: bytes, content_type: str) -> str:
        try:
            self._bucket.upload(path, data, {"content-type": content_type, "upsert": "true"})
        except Exception as e:
            logging.error(f"Upload of {self.bucket}/{path} failed: {e}")
            raise StorageError(f"Upload failed for {path}: {e}") from e
        logging.info(f"☁️ Uploaded {self.bucket}/{path} ({len(data)} bytes)")
        return self.public_url(path)

    def download(self, path: str) -> bytes:
        try:
            return self._bucket.download(path)
        except Exception as e:
            raise StorageError(f"Download failed for {path}: {e}") from e

    def public_url(self, path: str) -> str:
        return self._bucket.get_public_url(path)

    def signed_url(self, path: str, expires_in: int = SIGNED_URL_SECONDS) -> str:
        try:
            result = self._bucket.create_signed_url(path, expires_in)
        except Exception as e:
            raise StorageError(f"Failed to get signed URL for {path}: {e}") from e
        return result.get("signedURL") or result.get("signedUrl") or ""

    def list(self, prefix: str = "") -> List[str]:
        try:
            return [item["name"] for item in self._bucket.list(prefix) or []]
        except Exception as e:
            raise StorageError(f"Listing {self.bucket}/{prefix} failed: {e}") from e

    def buckets(self) -> List[str]:
        try:
            return [bucket.name for bucket in self.client.storage.list_buckets()]
        except Exception as e:
            raise StorageError(f"Listing buckets failed: {e}") from e


class LocalStorage(StorageBackend):
    """Stores objects as files under <root>/<bucket>/."""

    def __init__(self, bucket: str, root: str = MEDIA_DIR, base_url: str = ""):
        self.bucket = bucket
        self.root = os.path.abspath(root)
        self.base_url = base_url.rstrip("/")

    def _full_path(self, path: str) -> str:
        full = os.path.abspath(os.path.join(self.root, self.bucket, path))
        if not full.startswith(os.path.join(self.root, self.bucket) + os.sep):
            raise StorageError(f"Path escapes the bucket: {path}")
        return full

    def upload(self, path: str, data: bytes, content_type: str) -> str:
        full = self._full_path(path)
        os.makedirs(os.path.dirname(full), exist_ok=True)
        with open(full, "wb") as f:
            f.write(data)
        logging.info(f"💾 Stored {self.bucket}/{path} ({len(data)} bytes)")
        return self.public_url(path)

    def download(self, path: str) -> bytes:
        full = self._full_path(path)
        if not os.path.exists(full):
            raise StorageError(f"Object not found: {self.bucket}/{path}")
        with open(full, "rb") as f:
            return f.read()

    def public_url(self, path: str) -> str:
        return f"{self.base_url}/get-video/?path={self._full_path(path)}"

    def signed_url(self, path: str, expires_in: int = SIGNED_URL_SECONDS) -> str:
        return self.public_url(path)

    def list(self, prefix: str = "") -> List[str]:
        directory = os.path.join(self.root, self.bucket, prefix)
        if not os.path.isdir(directory):
            return []
        return sorted(os.listdir(directory))

    def buckets(self) -> List[str]:
        if not os.path.isdir(self.root):
            return []
        return sorted(d for d in os.listdir(self.root) if os.path.isdir(os.path.join(self.root, d)))


def get_storage(bucket: str) -> StorageBackend:
    if STORAGE_BACKEND == "local":
        return LocalStorage(bucket)
    return SupabaseStorage(bucket)
