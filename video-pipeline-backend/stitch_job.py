#!/usr/bin/env python3
"""
Command-line stitcher for runners triggered by repository_dispatch.

    JOB_ID=<id> SEGMENT_COUNT=5 MINIMAX_TASKS='["123", ""]' python stitch_job.py

Database and storage settings come from the usual environment variables.
"""

import os
import sys
import json
import logging

from database import SessionLocal
from stitcher import VideoAssembler

logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")


def parse_environment(environ=os.environ):
    """Returns (job_id, segment_count, video_tasks) or raises ValueError."""
    job_id = environ.get("JOB_ID", "").strip()
    if not job_id:
        raise ValueError("JOB_ID is required")
    try:
        segment_count = int(environ.get("SEGMENT_COUNT", ""))
    except ValueError:
        raise ValueError("SEGMENT_COUNT must be an integer")
    if segment_count < 1:
        raise ValueError("SEGMENT_COUNT must be at least 1")

    raw_tasks = environ.get("MINIMAX_TASKS", "").strip() or "[]"
    try:
        video_tasks = json.loads(raw_tasks)
    except json.JSONDecodeError:
        raise ValueError(f"MINIMAX_TASKS is not valid JSON: {raw_tasks[:100]}")
    if not isinstance(video_tasks, list):
        raise ValueError("MINIMAX_TASKS must be a JSON list")
    return job_id, segment_count, [str(task or "") for task in video_tasks]


def main() -> int:
    try:
        job_id, segment_count, video_tasks = parse_environment()
    except ValueError as e:
        logging.error(f"❌ {e}")
        return 1

    db = SessionLocal()
    try:
        ok = VideoAssembler(db, job_id, segment_count, video_tasks).run()
    finally:
        db.close()
    return 0 if ok else 1


if __name__ == "__main__":
    sys.exit(main())
