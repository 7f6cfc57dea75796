"""
Router for operational endpoints: voice catalogue, configuration checks,
storage listing, a one-off TTS probe and local media serving.
"""

import os
import logging

import requests
from fastapi import APIRouter, HTTPException, Depends
from fastapi.responses import FileResponse
from sqlalchemy.orm import Session

import config
from config import EDGE_TTS_VOICES, MEDIA_DIR, OUTPUT_BUCKET
from database import get_db
from errors import PipelineError
from models import VoiceClone
from schemas import (
    VoiceOption,
    VoiceListResponse,
    SecretStatus,
    StorageBucket,
    StorageListResponse,
    DebugTTSRequest,
    DebugTTSResponse,
)
from storage import get_storage
from tts import CLONE_PREFIX, QwenSpaceTTS

SECRET_NAMES = [
    "HF_TOKEN",
    "OPENROUTER_API_KEY",
    "FISH_AUDIO_API_KEY",
    "MINIMAX_API_KEY",
    "SUPABASE_SERVICE_KEY",
    "GITHUB_TOKEN",
]

MEDIA_TYPES = {
    ".mp4": "video/mp4",
    ".mp3": "audio/mpeg",
    ".wav": "audio/wav",
    ".jpg": "image/jpeg",
}


router = APIRouter(tags=["tools"])


@router.get("/api/voices", response_model=VoiceListResponse)
def list_voices(db: Session = Depends(get_db)):
    voices = [VoiceOption(id=name, label=label, engine="edge-tts") for name, label in EDGE_TTS_VOICES]
    for clone in db.query(VoiceClone).order_by(VoiceClone.id).all():
        voices.append(VoiceOption(
            id=f"{CLONE_PREFIX}{clone.file_name}",
            label=f"{clone.display_name or clone.file_name} (cloned)",
            engine="qwen-clone",
        ))
    return VoiceListResponse(voices=voices)


@router.get("/check-secrets")
def check_secrets():
    """Reports which provider keys are configured. Values are never returned."""
    report = {}
    for name in SECRET_NAMES:
        value = getattr(config, name, "") or ""
        report[name] = SecretStatus(present=bool(value), length=len(value))
    return report


@router.get("/list-storage", response_model=StorageListResponse)
def list_storage():
    try:
        names = get_storage(OUTPUT_BUCKET).buckets()
    except PipelineError as e:
        logging.error(f"Failed to list buckets: {e}")
        raise HTTPException(status_code=500, detail=str(e))

    buckets = []
    for name in names:
        try:
            buckets.append(StorageBucket(name=name, files=get_storage(name).list()))
        except PipelineError as e:
            buckets.append(StorageBucket(name=name, error=str(e)))
    return StorageListResponse(buckets=buckets)


@router.post("/debug-tts", response_model=DebugTTSResponse)
def debug_tts(request: DebugTTSRequest):
    """Runs a single Qwen Space synthesis and returns what happened."""
    logs = []
    engine = QwenSpaceTTS(on_log=logs.append)
    try:
        audio = engine.synthesize(request.text, request.voice)
    except (PipelineError, requests.RequestException) as e:
        logs.append(f"Error: {e}")
        return DebugTTSResponse(success=False, error=str(e), logs=logs)
    logs.append(f"Downloaded {len(audio)} bytes")
    return DebugTTSResponse(success=True, data_length=len(audio), logs=logs)


@router.get("/get-video/")
async def get_video(path: str):
    """
    Safely serves a file from the server's media directory.
    Used by the local storage backend in place of bucket URLs.
    """
    # Security Check: Ensure the requested path is within our allowed media directory
    # to prevent users from accessing arbitrary files on the server.
    media_root = os.path.abspath(MEDIA_DIR)
    requested = os.path.abspath(path)
    if os.path.commonpath([media_root, requested]) != media_root:
        raise HTTPException(status_code=403, detail="Forbidden: Access to this path is not allowed.")

    if not os.path.isfile(requested):
        raise HTTPException(status_code=404, detail="Video file not found.")

    media_type = MEDIA_TYPES.get(os.path.splitext(requested)[1].lower(), "application/octet-stream")
    return FileResponse(requested, media_type=media_type, filename=os.path.basename(requested))
