# video-pipeline-backend/tests/conftest.py

import os
import sys
import uuid
import tempfile

import pytest

# Settings are read at import time, so point them at throwaway resources first
_MEDIA_ROOT = tempfile.mkdtemp(prefix="pipeline-media-")
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["STORAGE_BACKEND"] = "local"
os.environ["STITCH_DISPATCH"] = "none"
os.environ["MEDIA_DIR"] = _MEDIA_ROOT
os.environ["WORK_DIR"] = os.path.join(_MEDIA_ROOT, "work")
for key in ("OPENROUTER_API_KEY", "FISH_AUDIO_API_KEY", "HF_TOKEN", "MINIMAX_API_KEY",
            "GITHUB_REPO", "GITHUB_TOKEN", "SUPABASE_URL", "SUPABASE_SERVICE_KEY"):
    os.environ[key] = ""

# Add the parent directory to the Python path so we can import from it
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from database import Base, SessionLocal, engine  # noqa: E402
from models import Job, JobStatus  # noqa: E402


@pytest.fixture
def db():
    """A session on a fresh in-memory schema."""
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def make_job(db):
    def _make_job(**fields):
        values = {
            "id": str(uuid.uuid4()),
            "script": "A short story about a lighthouse keeper.",
            "voice_name": "en-US-GuyNeural",
            "segment_count": 3,
            "status": JobStatus.PENDING.value,
            "progress": 0,
            "logs": [],
        }
        values.update(fields)
        job = Job(**values)
        db.add(job)
        db.commit()
        return job

    return _make_job


@pytest.fixture
def media_root():
    return _MEDIA_ROOT
