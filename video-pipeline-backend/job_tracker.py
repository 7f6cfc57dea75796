"""
Progress and log bookkeeping for a single job row.
Every pipeline step reports through a JobTracker so the polling clients
see status, progress and the running log.
"""

import logging
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from errors import InvalidTransition
from models import Job, JobStatus, TERMINAL_STATUSES, can_transition

LOG_LEVELS = {
    "info": logging.INFO,
    "success": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


class JobTracker:
    """Applies monotonic status/progress updates and log entries to a Job."""

    def __init__(self, db: Session, job_id: str):
        self.db = db
        self.job_id = job_id

    @property
    def job(self) -> Job:
        job = self.db.query(Job).filter(Job.id == self.job_id).first()
        if job is None:
            raise LookupError(f"Job {self.job_id} not found")
        return job

    def update(self, **fields) -> Job:
        job = self.job

        status = fields.pop("status", None)
        if status is not None:
            status = JobStatus(status)
            if status.value != job.status:
                if not can_transition(job.status, status):
                    raise InvalidTransition(f"Job {self.job_id}: {job.status} -> {status.value}")
                if status == JobStatus.ERROR:
                    job.failed_status = job.status
                job.status = status.value

        progress = fields.pop("progress", None)
        if progress is not None:
            # never move the bar backwards
            job.progress = max(job.progress or 0, min(max(int(progress), 0), 100))

        for key, value in fields.items():
            setattr(job, key, value)

        self.db.commit()
        return job

    def advance(self, status, progress: int) -> Job:
        return self.update(status=status, progress=progress)

    def log(self, message: str, level: str = "info") -> None:
        logging.log(LOG_LEVELS.get(level, logging.INFO), f"[{self.job_id}] {message}")
        job = self.job
        entry = {
            "message": message,
            "type": level,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        # reassign so the JSON column is flagged dirty
        job.logs = list(job.logs or []) + [entry]
        job.current_task = message
        self.db.commit()

    def fail(self, message: str) -> None:
        job = self.job
        if JobStatus(job.status) in TERMINAL_STATUSES:
            logging.warning(f"[{self.job_id}] Ignoring failure on finished job: {message}")
            return
        self.update(status=JobStatus.ERROR, error_message=message)
        self.log(message, "error")
