"""
Pydantic models for data validation in the AI Video Pipeline API.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from config import DEFAULT_SEGMENT_COUNT, DEFAULT_VOICE, MAX_SEGMENTS


class JobCreate(BaseModel):
    """Request model for submitting a new video job."""
    script: str
    voice_name: str = DEFAULT_VOICE
    segment_count: int = Field(default=DEFAULT_SEGMENT_COUNT, ge=1, le=MAX_SEGMENTS)

    @field_validator("script")
    @classmethod
    def script_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("script must not be empty")
        return value.strip()

    @field_validator("voice_name")
    @classmethod
    def voice_or_default(cls, value: str) -> str:
        return value.strip() or DEFAULT_VOICE


class SubmitResponse(BaseModel):
    """Response when submitting a background generation job."""
    success: bool = True
    job_id: str


class LogEntry(BaseModel):
    message: str
    type: str = "info"
    timestamp: Optional[str] = None


class StepState(BaseModel):
    key: str
    label: str
    state: str  # "done" | "active" | "pending" | "error"


class JobOut(BaseModel):
    id: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    script: str
    voice_name: str
    segment_count: int
    status: str
    progress: int
    error_message: Optional[str] = None
    current_task: Optional[str] = None
    logs: List[LogEntry] = []
    voice_json: Optional[str] = None
    image_json: Optional[str] = None
    video_json: Optional[str] = None
    video_tasks: Optional[List[str]] = None
    output_folder: Optional[str] = None
    video_url: Optional[str] = None
    steps: List[StepState] = []


class JobStatusResponse(BaseModel):
    success: bool = True
    job: JobOut


class JobListResponse(BaseModel):
    success: bool = True
    jobs: List[JobOut]


class VoiceOption(BaseModel):
    id: str
    label: str
    engine: str


class VoiceListResponse(BaseModel):
    voices: List[VoiceOption]


class SecretStatus(BaseModel):
    present: bool
    length: int


class StorageBucket(BaseModel):
    name: str
    files: List[str] = []
    error: Optional[str] = None


class StorageListResponse(BaseModel):
    buckets: List[StorageBucket]


class DebugTTSRequest(BaseModel):
    text: str = "Hello, this is a test of the voice pipeline."
    voice: str = "Ryan"


class DebugTTSResponse(BaseModel):
    success: bool
    data_length: int = 0
    error: Optional[str] = None
    logs: List[str] = []


class HealthResponse(BaseModel):
    status: str
    service: str
    details: Dict[str, Any] = {}
