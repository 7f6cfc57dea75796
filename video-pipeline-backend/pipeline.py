"""
Generation half of the pipeline: scripts -> voices -> images -> video tasks,
then hand-off to the stitcher. Segment failures are logged on the job and
skipped so one bad request does not sink the whole video.
"""

import time
import logging
from typing import Callable, List, Optional

import requests
from sqlalchemy.orm import Session

from config import (
    OUTPUT_BUCKET,
    REFERENCE_BUCKET,
    TTS_DELAY,
    TTS_CLONE_DELAY,
    TTS_CLONE_COOLDOWN,
    TTS_RETRY_DELAY,
    TTS_RETRIES,
    IMAGE_DELAY,
    IMAGE_RETRY_DELAY,
    IMAGE_RETRIES,
    VIDEO_SUBMIT_DELAY,
    STITCH_DISPATCH,
)
from dispatch import trigger_stitcher
from errors import DispatchError, PipelineError
from imagegen import ImageGenerator
from job_tracker import JobTracker
from models import JobStatus, VoiceClone
from retry import with_retry
from services import ScriptWriter, SegmentPlan
from storage import StorageBackend, get_storage, audio_path, image_path
from tts import is_voice_clone, select_engine
from videogen import MiniMaxVideo

EMPTY_PLAN_MESSAGE = "Failed to generate valid JSONs. The AI returned empty results. Please try again."


class VideoPipeline:
    """Runs the generation steps for one job."""

    def __init__(self, db: Session, job_id: str,
                 writer: Optional[ScriptWriter] = None,
                 images: Optional[ImageGenerator] = None,
                 video_client: Optional[MiniMaxVideo] = None,
                 storage: Optional[StorageBackend] = None,
                 reference_storage: Optional[StorageBackend] = None,
                 tts_factory: Callable = select_engine,
                 dispatch_mode: str = STITCH_DISPATCH,
                 sleep: Callable[[float], None] = time.sleep):
        self.db = db
        self.job_id = job_id
        self.tracker = JobTracker(db, job_id)
        self.writer = writer or ScriptWriter()
        self.images = images or ImageGenerator()
        self.video_client = video_client or MiniMaxVideo()
        self.storage = storage or get_storage(OUTPUT_BUCKET)
        self._reference_storage = reference_storage
        self.tts_factory = tts_factory
        self.dispatch_mode = dispatch_mode
        self.sleep = sleep
        self.folder = f"job_{job_id}"

    @property
    def reference_storage(self) -> StorageBackend:
        if self._reference_storage is None:
            self._reference_storage = get_storage(REFERENCE_BUCKET)
        return self._reference_storage

    def _transcript(self, file_name: str) -> str:
        clone = self.db.query(VoiceClone).filter(VoiceClone.file_name == file_name).first()
        return (clone.transcript or "") if clone else ""

    # --------------------------------------------------------------------------
    # --- Step 1: scripts ---
    # --------------------------------------------------------------------------

    def generate_jsons(self) -> SegmentPlan:
        job = self.tracker.advance(JobStatus.GENERATING_JSONS, 5)
        self.tracker.log(f"Writing voice, image and video scripts for {job.segment_count} segments...")

        voice_json, image_json, video_json = self.writer.generate(
            job.script, job.segment_count, on_progress=lambda p: self.tracker.update(progress=p)
        )
        self.tracker.update(voice_json=voice_json, image_json=image_json, video_json=video_json, progress=30)
        return SegmentPlan.from_json(voice_json, image_json, video_json)

    # --------------------------------------------------------------------------
    # --- Step 2: voiceover ---
    # --------------------------------------------------------------------------

    def generate_voice(self, plan: SegmentPlan) -> int:
        job = self.tracker.advance(JobStatus.GENERATING_VOICE, 35)
        voice = job.voice_name
        engine, voice = self.tts_factory(
            voice,
            transcript_lookup=self._transcript,
            reference_storage=self.reference_storage if is_voice_clone(voice) else None,
            on_log=self.tracker.log,
        )
        cloning = is_voice_clone(voice)
        delay = TTS_CLONE_DELAY if cloning else TTS_DELAY
        self.tracker.log(f"Synthesizing voice with {engine.name} ({voice})...")

        total = len(plan.voice)
        stored = 0
        for i, text in enumerate(plan.voice):
            if i > 0:
                self.sleep(delay)
            if cloning and i >= 2 and i % 2 == 0:
                self.tracker.log(f"Cooldown {int(TTS_CLONE_COOLDOWN)}s before segment {i + 1}...")
                self.sleep(TTS_CLONE_COOLDOWN)

            self.tracker.update(progress=35 + round(i / total * 15))
            self.tracker.log(f"Synthesizing voice segment {i + 1}/{total}...")
            try:
                audio = with_retry(
                    lambda: engine.synthesize(text, voice),
                    TTS_RETRIES, TTS_RETRY_DELAY,
                    on_retry=lambda err, attempt, n=i + 1: self.tracker.log(
                        f"Retrying segment {n} (Attempt {attempt}/{TTS_RETRIES}): {err}", "warning"),
                    sleep=self.sleep,
                )
                self.storage.upload(audio_path(self.folder, i + 1), audio, "audio/mpeg")
                stored += 1
                self.tracker.log(f"Voice segment {i + 1} finalized and stored.")
            except (PipelineError, requests.RequestException) as e:
                self.tracker.log(f"Voice segment {i + 1} failed after retries: {e}", "error")
                self.tracker.log(f"Skipping voice segment {i + 1}.", "warning")

        self.tracker.update(progress=50)
        self.tracker.log(f"Voice synthesis step complete ({stored}/{total}).", "success")
        return stored

    # --------------------------------------------------------------------------
    # --- Step 3: images ---
    # --------------------------------------------------------------------------

    def generate_images(self, plan: SegmentPlan) -> int:
        self.tracker.advance(JobStatus.GENERATING_IMAGES, 50)
        total = len(plan.image)
        stored = 0
        for i, prompt in enumerate(plan.image):
            if i > 0:
                self.sleep(IMAGE_DELAY)
            self.tracker.update(progress=50 + round(i / total * 20))
            self.tracker.log(f"Generating image {i + 1}/{total}...")
            try:
                image = with_retry(lambda: self.images.generate(prompt), IMAGE_RETRIES, IMAGE_RETRY_DELAY,
                                   sleep=self.sleep)
                self.storage.upload(image_path(self.folder, i + 1), image, "image/jpeg")
                stored += 1
            except (PipelineError, requests.RequestException) as e:
                self.tracker.log(f"Image {i + 1} failed: {e}", "error")

        self.tracker.update(progress=70)
        self.tracker.log(f"Image step complete ({stored}/{total}).", "success")
        return stored

    # --------------------------------------------------------------------------
    # --- Step 4: video tasks ---
    # --------------------------------------------------------------------------

    def generate_videos(self, plan: SegmentPlan) -> List[str]:
        self.tracker.advance(JobStatus.GENERATING_VIDEOS, 70)
        total = len(plan.video)
        if not self.video_client.configured:
            self.tracker.log("No MiniMax key configured, segments will use animated stills.", "warning")
            task_ids = [""] * total
            self.tracker.update(video_tasks=task_ids, progress=90)
            return task_ids

        task_ids = []
        for i, prompt in enumerate(plan.video):
            if i > 0:
                self.sleep(VIDEO_SUBMIT_DELAY)
            self.tracker.update(progress=70 + round(i / total * 20))
            try:
                first_frame = self.storage.public_url(image_path(self.folder, i + 1))
                task_id = self.video_client.submit(prompt, first_frame)
            except requests.RequestException as e:
                logging.error(f"Video generation error for segment {i + 1}: {e}")
                task_id = ""
            if task_id:
                self.tracker.log(f"Video task {i + 1} submitted: {task_id}")
            else:
                self.tracker.log(f"Video task {i + 1} was not accepted, still image will be used.", "warning")
            task_ids.append(task_id)

        self.tracker.update(video_tasks=task_ids, progress=90)
        return task_ids

    # --------------------------------------------------------------------------
    # --- Orchestration ---
    # --------------------------------------------------------------------------

    def run(self) -> None:
        try:
            plan = self.generate_jsons()
            if plan.is_empty():
                self.tracker.fail(EMPTY_PLAN_MESSAGE)
                return

            self.generate_voice(plan)
            self.generate_images(plan)
            task_ids = self.generate_videos(plan)
            trigger_stitcher(self.tracker, self.tracker.job.segment_count, task_ids, mode=self.dispatch_mode)
        except DispatchError as e:
            logging.error(f"❌ Stitcher dispatch failed for job {self.job_id}: {e}")
            self.tracker.fail(str(e))
        except Exception as e:
            logging.exception(f"❌ Pipeline error for job {self.job_id}")
            self.tracker.fail(f"Pipeline failed: {e}")
