"""
Hands a job over to the stitcher run.
The stitcher either runs on our own Celery workers or as a GitHub Actions
workflow (repository_dispatch) on a runner that has ffmpeg installed.
"""

import json
import logging
from typing import List

import requests

from config import STITCH_DISPATCH, GITHUB_REPO, GITHUB_TOKEN, GITHUB_EVENT_TYPE, REQUEST_TIMEOUT
from errors import DispatchError
from job_tracker import JobTracker
from models import JobStatus


def dispatch_github(job_id: str, segment_count: int, task_ids: List[str],
                    repo: str = GITHUB_REPO, token: str = GITHUB_TOKEN) -> None:
    response = requests.post(
        f"https://api.github.com/repos/{repo}/dispatches",
        json={
            "event_type": GITHUB_EVENT_TYPE,
            "client_payload": {
                "job_id": job_id,
                "segment_count": segment_count,
                "minimax_tasks": json.dumps(task_ids),
            },
        },
        headers={
            "Accept": "application/vnd.github.v3+json",
            "Authorization": f"token {token}",
            "Content-Type": "application/json",
        },
        timeout=REQUEST_TIMEOUT,
    )
    if not response.ok:
        raise DispatchError(f"GitHub Actions error: {response.text[:500]}")


def dispatch_celery(job_id: str, segment_count: int, task_ids: List[str]) -> None:
    from tasks import stitch_video_task

    stitch_video_task.delay(job_id, segment_count, task_ids)


def trigger_stitcher(tracker: JobTracker, segment_count: int, task_ids: List[str],
                     mode: str = STITCH_DISPATCH) -> None:
    """Mark the job as stitching and start the stitcher run for it."""
    tracker.advance(JobStatus.STITCHING, 92)
    job_id = tracker.job_id

    if mode == "github" and GITHUB_REPO and GITHUB_TOKEN:
        try:
            dispatch_github(job_id, segment_count, task_ids, GITHUB_REPO, GITHUB_TOKEN)
        except requests.RequestException as e:
            raise DispatchError(f"Failed to contact GitHub: {e}") from e
        tracker.log("Triggered GitHub Actions workflow for stitching.")
    elif mode == "celery":
        dispatch_celery(job_id, segment_count, task_ids)
        tracker.log("Queued the stitching worker.")
    else:
        logging.info(f"[{job_id}] No stitcher configured, marking job as complete without stitching")
        tracker.update(status=JobStatus.COMPLETE, progress=100, output_folder=f"job_{job_id}")
        tracker.log("Assets generated. Stitching is disabled, job complete.", "success")
