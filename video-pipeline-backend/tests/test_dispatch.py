# video-pipeline-backend/tests/test_dispatch.py

import json
from unittest.mock import MagicMock, patch

import pytest
import requests

import dispatch
from errors import DispatchError
from job_tracker import JobTracker


def test_dispatch_none_completes_without_stitching(db, make_job):
    job = make_job(status="generating_videos", progress=90)

    dispatch.trigger_stitcher(JobTracker(db, job.id), 3, ["", "", ""], mode="none")

    db.refresh(job)
    assert job.status == "complete"
    assert job.progress == 100
    assert job.output_folder == f"job_{job.id}"


def test_dispatch_celery_enqueues_stitch_task(db, make_job):
    job = make_job(status="generating_videos", progress=90)

    with patch("dispatch.dispatch_celery") as enqueue:
        dispatch.trigger_stitcher(JobTracker(db, job.id), 2, ["task-1", ""], mode="celery")

    enqueue.assert_called_once_with(job.id, 2, ["task-1", ""])
    db.refresh(job)
    assert job.status == "stitching"
    assert job.progress == 92


def test_dispatch_github_payload_has_no_secrets(db, make_job):
    job = make_job(status="generating_videos", progress=90)

    with patch.object(dispatch, "GITHUB_REPO", "acme/video-stitcher"), \
            patch.object(dispatch, "GITHUB_TOKEN", "ghp_secret"), \
            patch("dispatch.requests.post", return_value=MagicMock(ok=True)) as post:
        dispatch.trigger_stitcher(JobTracker(db, job.id), 2, ["task-1", ""], mode="github")

    assert post.call_args.args[0] == "https://api.github.com/repos/acme/video-stitcher/dispatches"
    body = post.call_args.kwargs["json"]
    assert body["event_type"] == "stitch_video"
    assert body["client_payload"] == {
        "job_id": job.id,
        "segment_count": 2,
        "minimax_tasks": json.dumps(["task-1", ""]),
    }
    assert "ghp_secret" not in json.dumps(body)
    db.refresh(job)
    assert job.status == "stitching"


def test_dispatch_github_error_response_raises(db, make_job):
    job = make_job(status="generating_videos", progress=90)

    with patch.object(dispatch, "GITHUB_REPO", "acme/video-stitcher"), \
            patch.object(dispatch, "GITHUB_TOKEN", "ghp_secret"), \
            patch("dispatch.requests.post", return_value=MagicMock(ok=False, text="Not Found")):
        with pytest.raises(DispatchError, match="GitHub Actions error: Not Found"):
            dispatch.trigger_stitcher(JobTracker(db, job.id), 2, ["", ""], mode="github")


def test_dispatch_github_connection_error_raises(db, make_job):
    job = make_job(status="generating_videos", progress=90)

    with patch.object(dispatch, "GITHUB_REPO", "acme/video-stitcher"), \
            patch.object(dispatch, "GITHUB_TOKEN", "ghp_secret"), \
            patch("dispatch.requests.post", side_effect=requests.ConnectionError("dns failure")):
        with pytest.raises(DispatchError, match="Failed to contact GitHub"):
            dispatch.trigger_stitcher(JobTracker(db, job.id), 2, ["", ""], mode="github")


def test_dispatch_github_without_credentials_completes(db, make_job):
    job = make_job(status="generating_videos", progress=90)

    dispatch.trigger_stitcher(JobTracker(db, job.id), 1, [""], mode="github")

    db.refresh(job)
    assert job.status == "complete"
