"""
Final video assembly for a job.

Downloads the per-segment voiceovers and visuals, builds one clip per
segment (generated MiniMax clip when available, Ken Burns pan/zoom over the
still image otherwise), joins everything, time-aligns the video with the
narration and uploads the master file.
"""

import os
import math
import shutil
import logging
from typing import List, Optional

import requests
from sqlalchemy.orm import Session

import assembly
from config import WORK_DIR, OUTPUT_BUCKET, DEFAULT_SEGMENT_DURATION, REQUEST_TIMEOUT
from errors import AssemblyError, PipelineError
from job_tracker import JobTracker
from models import JobStatus
from storage import StorageBackend, get_storage, audio_path, image_path, video_path, final_video_path
from videogen import MiniMaxVideo

STITCH_START_PROGRESS = 92
STITCH_END_PROGRESS = 99


class VideoAssembler:
    """Builds and uploads final_video.mp4 for one job."""

    def __init__(self, db: Session, job_id: str, segment_count: int,
                 video_tasks: Optional[List[str]] = None,
                 storage: Optional[StorageBackend] = None,
                 video_client: Optional[MiniMaxVideo] = None,
                 work_root: str = WORK_DIR):
        self.tracker = JobTracker(db, job_id)
        self.job_id = job_id
        self.segment_count = segment_count
        self.video_tasks = list(video_tasks or [])
        self.storage = storage or get_storage(OUTPUT_BUCKET)
        self.video_client = video_client or MiniMaxVideo()
        self.work_dir = os.path.join(work_root, f"stitch_{job_id}")
        self.folder = f"job_{job_id}"

    def _path(self, name: str) -> str:
        return os.path.join(self.work_dir, name)

    def _save(self, name: str, data: bytes) -> str:
        path = self._path(name)
        with open(path, "wb") as f:
            f.write(data)
        return path

    # --- per-segment inputs ---

    def _fetch_voice(self, index: int) -> Optional[str]:
        try:
            data = self.storage.download(audio_path(self.folder, index))
        except PipelineError:
            self.tracker.log(f"Audio segment {index} missing, using default duration.", "warning")
            return None
        return self._save(f"voice_{index}.mp3", data)

    def _fetch_clip(self, index: int) -> Optional[str]:
        task_id = self.video_tasks[index - 1] if index <= len(self.video_tasks) else ""
        if task_id and self.video_client.configured:
            self.tracker.log(f"Waiting for generated clip {index} (task {task_id})...")
            url = self.video_client.wait_for(task_id)
            response = requests.get(url, timeout=REQUEST_TIMEOUT)
            response.raise_for_status()
            self.storage.upload(video_path(self.folder, index), response.content, "video/mp4")
            return self._save(f"clip_{index}.mp4", response.content)
        try:
            data = self.storage.download(video_path(self.folder, index))
        except PipelineError:
            return None
        return self._save(f"clip_{index}.mp4", data)

    def _render_visual(self, index: int, duration: float) -> Optional[str]:
        segment_path = self._path(f"video_{index}.mp4")

        try:
            clip = self._fetch_clip(index)
            if clip:
                assembly.normalize_clip(clip, segment_path)
                self.tracker.log(f"Segment {index}: using generated clip.")
                return segment_path
        except (PipelineError, requests.RequestException) as e:
            self.tracker.log(f"Generated clip {index} unavailable ({e}), falling back to still image.", "warning")

        try:
            image = self._save(f"image_{index}.jpg", self.storage.download(image_path(self.folder, index)))
            style = assembly.motion_style(index)
            self.tracker.log(f"Encoding segment {index} ({duration:.1f}s) with {style} style...")
            assembly.render_kenburns(image, segment_path, duration, style)
            return segment_path
        except PipelineError as e:
            self.tracker.log(f"Segment {index} visual failed: {e}", "error")
            return None

    # --- whole video ---

    def _collect_segments(self):
        videos, voices = [], []
        for index in range(1, self.segment_count + 1):
            self.tracker.log(f"Processing segment {index}: downloading assets...")
            voice = self._fetch_voice(index)
            duration = assembly.probe_duration(voice) if voice else 0.0
            if duration <= 0:
                duration = DEFAULT_SEGMENT_DURATION

            visual = self._render_visual(index, duration)
            if visual:
                videos.append(visual)
            voices.append((voice, duration))

            span = STITCH_END_PROGRESS - STITCH_START_PROGRESS
            self.tracker.update(progress=STITCH_START_PROGRESS + math.floor(index / self.segment_count * span))
        return videos, voices

    def _voice_track(self, voices) -> Optional[str]:
        real = [path for path, _ in voices if path]
        if not real:
            return None
        sample_rate, channels = assembly.probe_audio_format(real[0])
        parts = []
        for index, (path, duration) in enumerate(voices, start=1):
            if path is None:
                # keep later narration aligned with its segment
                path = self._path(f"silence_{index}.mp3")
                assembly.make_silence(path, duration, sample_rate, channels)
            parts.append(path)
        self.tracker.log("Merging all voiceover tracks...")
        track = self._path("concat_audio.m4a")
        assembly.concat_files(parts, track, self._path("audio_list.txt"), reencode_audio=True)
        return track

    def _assemble(self, videos: List[str], voice_track: Optional[str]) -> str:
        self.tracker.log(f"Stitching all {len(videos)} video segments...")
        concat_video = self._path("concat_video.mp4")
        assembly.concat_files(videos, concat_video, self._path("video_list.txt"))

        master = self._path("master.mp4")
        if voice_track is None:
            shutil.copyfile(concat_video, master)
            return master

        video_duration = assembly.probe_duration(concat_video)
        audio_duration = assembly.probe_duration(voice_track)
        self.tracker.log(f"Video duration: {video_duration:.2f}s, audio duration: {audio_duration:.2f}s")

        adjusted = concat_video
        if assembly.needs_speed_match(video_duration, audio_duration):
            factor = assembly.speed_factor(video_duration, audio_duration)
            self.tracker.log(f"Adjusting video speed x{factor:.3f} to match the voiceover...")
            adjusted = self._path("adjusted_video.mp4")
            assembly.retime(concat_video, adjusted, factor)

        self.tracker.log("Assembling final master video file...")
        assembly.mix_voiceover(adjusted, voice_track, master)
        return master

    def run(self) -> bool:
        try:
            self.tracker.job
        except LookupError as e:
            logging.error(f"❌ {e}")
            return False

        try:
            os.makedirs(self.work_dir, exist_ok=True)
            self.tracker.advance(JobStatus.STITCHING, STITCH_START_PROGRESS)
            self.tracker.log("🎬 Starting cinematic video assembly...")
            self.tracker.log(f"Preparing to process {self.segment_count} segments.")

            videos, voices = self._collect_segments()
            if not videos:
                raise AssemblyError("Zero video segments were successfully encoded.")

            master = self._assemble(videos, self._voice_track(voices))

            self.tracker.log("Uploading final creation to storage...")
            with open(master, "rb") as f:
                self.storage.upload(final_video_path(self.folder), f.read(), "video/mp4")

            self.tracker.update(status=JobStatus.COMPLETE, progress=100, output_folder=self.folder)
            self.tracker.log("✅ Production complete! Your video is ready.", "success")
            return True
        except Exception as e:
            logging.exception(f"❌ Stitching failed for job {self.job_id}")
            self.tracker.fail(f"Stitching failed: {e}")
            return False
        finally:
            shutil.rmtree(self.work_dir, ignore_errors=True)
