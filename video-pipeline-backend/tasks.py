# tasks.py

from celery import Celery
import logging
import traceback

from database import SessionLocal
from config import CELERY_BROKER_URL, CELERY_RESULT_BACKEND
from job_tracker import JobTracker
from pipeline import VideoPipeline
from stitcher import VideoAssembler

celery = Celery('tasks', broker=CELERY_BROKER_URL, backend=CELERY_RESULT_BACKEND)
logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")


def _mark_failed(db, job_id: str, message: str):
    try:
        JobTracker(db, job_id).fail(message)
    except LookupError:
        logging.error(f"❌ Job {job_id} vanished before it could be marked as failed")


@celery.task
def process_pipeline_task(job_id: str):
    """
    Runs scripts -> voices -> images -> video tasks for one job and hands
    it to the stitcher. Progress is written to the job row as it goes.
    """
    db = SessionLocal()
    try:
        logging.info(f"📝 Worker received job {job_id}")
        VideoPipeline(db, job_id).run()
        logging.info(f"✅ Worker finished generation for job {job_id}")
    except Exception as e:
        logging.error(f"❌ Worker failed job {job_id}. Error: {e}")
        traceback.print_exc()
        db.rollback()
        _mark_failed(db, job_id, f"Pipeline failed: {e}")
    finally:
        db.close()


@celery.task
def stitch_video_task(job_id: str, segment_count: int, video_tasks=None):
    """Assembles and uploads the final video for a job."""
    db = SessionLocal()
    try:
        logging.info(f"🎬 Worker stitching job {job_id} ({segment_count} segments)")
        if VideoAssembler(db, job_id, segment_count, video_tasks).run():
            logging.info(f"✅ Worker finished job {job_id}")
    except Exception as e:
        logging.error(f"❌ Stitch worker failed job {job_id}. Error: {e}")
        traceback.print_exc()
        db.rollback()
        _mark_failed(db, job_id, f"Stitching failed: {e}")
    finally:
        db.close()
