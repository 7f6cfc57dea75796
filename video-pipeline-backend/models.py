# models.py

import enum
from datetime import datetime, timezone

from sqlalchemy import JSON, CheckConstraint, Column, DateTime, Integer, String, Text
from database import Base
from config import DEFAULT_SEGMENT_COUNT, DEFAULT_VOICE


def utcnow():
    return datetime.now(timezone.utc)


class JobStatus(str, enum.Enum):
    PENDING = "pending"
    GENERATING_JSONS = "generating_jsons"
    GENERATING_VOICE = "generating_voice"
    GENERATING_IMAGES = "generating_images"
    GENERATING_VIDEOS = "generating_videos"
    STITCHING = "stitching"
    COMPLETE = "complete"
    ERROR = "error"


# Forward order of a healthy run; ERROR can interrupt any non-terminal step.
PIPELINE_ORDER = [
    JobStatus.PENDING,
    JobStatus.GENERATING_JSONS,
    JobStatus.GENERATING_VOICE,
    JobStatus.GENERATING_IMAGES,
    JobStatus.GENERATING_VIDEOS,
    JobStatus.STITCHING,
    JobStatus.COMPLETE,
]

TERMINAL_STATUSES = {JobStatus.COMPLETE, JobStatus.ERROR}

# Steps shown to clients, in order (status key, label)
PIPELINE_STEPS = [
    (JobStatus.PENDING, "Queued"),
    (JobStatus.GENERATING_JSONS, "Scripts"),
    (JobStatus.GENERATING_VOICE, "Voices"),
    (JobStatus.GENERATING_IMAGES, "Images"),
    (JobStatus.GENERATING_VIDEOS, "Videos"),
    (JobStatus.STITCHING, "Assembly"),
    (JobStatus.COMPLETE, "Success"),
]


def can_transition(current, new) -> bool:
    """Statuses only move forward; complete and error are final."""
    current, new = JobStatus(current), JobStatus(new)
    if current == new:
        return current not in TERMINAL_STATUSES
    if current in TERMINAL_STATUSES:
        return False
    if new == JobStatus.ERROR:
        return True
    return PIPELINE_ORDER.index(new) > PIPELINE_ORDER.index(current)


def step_states(status, failed_status=None) -> list:
    """
    Per-step display state ("done", "active", "pending" or "error").
    For failed jobs the step that was running when the error happened
    is flagged, earlier steps are done.
    """
    status = JobStatus(status)
    if status == JobStatus.ERROR:
        marker = JobStatus(failed_status) if failed_status else JobStatus.PENDING
        current = PIPELINE_ORDER.index(marker)
    else:
        current = PIPELINE_ORDER.index(status)

    states = []
    for key, label in PIPELINE_STEPS:
        index = PIPELINE_ORDER.index(key)
        if index < current or (status == JobStatus.COMPLETE and key == JobStatus.COMPLETE):
            state = "done"
        elif index == current:
            state = "error" if status == JobStatus.ERROR else "active"
        else:
            state = "pending"
        states.append({"key": key.value, "label": label, "state": state})
    return states


class Job(Base):
    """Job model for tracking narrated video generation runs."""

    __tablename__ = "jobs"
    __table_args__ = (
        CheckConstraint(
            "status IN ({})".format(", ".join(f"'{s.value}'" for s in JobStatus)),
            name="ck_jobs_status",
        ),
        CheckConstraint("progress >= 0 AND progress <= 100", name="ck_jobs_progress"),
    )

    id = Column(String, primary_key=True, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    # Input
    script = Column(Text, nullable=False)
    voice_name = Column(String, nullable=False, default=DEFAULT_VOICE)
    segment_count = Column(Integer, nullable=False, default=DEFAULT_SEGMENT_COUNT)

    # Status tracking
    status = Column(String, nullable=False, default=JobStatus.PENDING.value)
    failed_status = Column(String, nullable=True)
    progress = Column(Integer, nullable=False, default=0)
    error_message = Column(Text, nullable=True)
    current_task = Column(Text, nullable=True)
    logs = Column(JSON, nullable=False, default=list)

    # Generated JSON outputs
    voice_json = Column(Text, nullable=True)
    image_json = Column(Text, nullable=True)
    video_json = Column(Text, nullable=True)
    video_tasks = Column(JSON, nullable=True)

    # Output location
    output_folder = Column(String, nullable=True)

    @property
    def storage_folder(self) -> str:
        return f"job_{self.id}"


class VoiceClone(Base):
    """Reference recordings available for voice cloning."""

    __tablename__ = "voice_clones"

    id = Column(Integer, primary_key=True, autoincrement=True)
    file_name = Column(String, nullable=False, unique=True)  # object name in the reference bucket
    transcript = Column(Text, nullable=True)  # exact text spoken in the recording
    display_name = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
