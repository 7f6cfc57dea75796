"""
Router for job endpoints.
Handles job submission and status polling for the dashboard.
"""

import uuid
import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Depends
from sqlalchemy.orm import Session

from config import OUTPUT_BUCKET, RECENT_JOBS_LIMIT
from database import get_db
from errors import PipelineError
from job_tracker import JobTracker
from models import Job, JobStatus, step_states
from schemas import JobCreate, SubmitResponse, JobOut, JobStatusResponse, JobListResponse
from storage import StorageBackend, get_storage, final_video_path
from tasks import process_pipeline_task


router = APIRouter(prefix="/api", tags=["jobs"])


def _output_storage() -> Optional[StorageBackend]:
    try:
        return get_storage(OUTPUT_BUCKET)
    except PipelineError as e:
        logging.warning(f"Could not open output storage for video URLs: {e}")
        return None


def _video_url(job: Job, storage: Optional[StorageBackend]) -> Optional[str]:
    if storage is None or job.status != JobStatus.COMPLETE.value or not job.output_folder:
        return None
    return storage.public_url(final_video_path(job.output_folder))


def to_job_out(job: Job, storage: Optional[StorageBackend] = None) -> JobOut:
    return JobOut(
        id=job.id,
        created_at=job.created_at,
        updated_at=job.updated_at,
        script=job.script,
        voice_name=job.voice_name,
        segment_count=job.segment_count,
        status=job.status,
        progress=job.progress,
        error_message=job.error_message,
        current_task=job.current_task,
        logs=job.logs or [],
        voice_json=job.voice_json,
        image_json=job.image_json,
        video_json=job.video_json,
        video_tasks=job.video_tasks,
        output_folder=job.output_folder,
        video_url=_video_url(job, storage),
        steps=step_states(job.status, job.failed_status),
    )


@router.post("/submit", response_model=SubmitResponse)
def submit_job(request: JobCreate, db: Session = Depends(get_db)):
    """
    Creates a pending job record, sends it to Celery and immediately
    returns the job ID for polling.
    """
    job_id = str(uuid.uuid4())
    job = Job(
        id=job_id,
        script=request.script,
        voice_name=request.voice_name,
        segment_count=request.segment_count,
        status=JobStatus.PENDING.value,
        progress=0,
        logs=[],
    )
    db.add(job)
    db.commit()

    try:
        process_pipeline_task.delay(job_id)
    except Exception as e:
        logging.error(f"Failed to submit task to Celery: {e}")
        JobTracker(db, job_id).fail(f"Failed to start pipeline: {e}")
        raise HTTPException(status_code=500, detail="Failed to start the video generation job.")

    logging.info(f"✨ Job {job_id} submitted ({request.segment_count} segments, voice {request.voice_name})")
    return SubmitResponse(job_id=job_id)


@router.get("/status", response_model=None)
def job_status(id: Optional[str] = None, db: Session = Depends(get_db)):
    """One job when `id` is given, otherwise the most recent jobs."""
    storage = _output_storage()
    if id:
        job = db.query(Job).filter(Job.id == id).first()
        if not job:
            raise HTTPException(status_code=404, detail="Job not found.")
        return JobStatusResponse(job=to_job_out(job, storage))

    jobs = db.query(Job).order_by(Job.created_at.desc()).limit(RECENT_JOBS_LIMIT).all()
    return JobListResponse(jobs=[to_job_out(job, storage) for job in jobs])
