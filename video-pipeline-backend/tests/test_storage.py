# video-pipeline-backend/tests/test_storage.py

from unittest.mock import MagicMock

import pytest

from errors import StorageError
from storage import LocalStorage, SupabaseStorage, audio_path, final_video_path, image_path, video_path


def test_job_asset_layout():
    assert audio_path("job_1", 2) == "job_1/audio/voice_2.mp3"
    assert image_path("job_1", 3) == "job_1/images/image_3.jpg"
    assert video_path("job_1", 4) == "job_1/videos/video_4.mp4"
    assert final_video_path("job_1") == "job_1/final_video.mp4"


def test_local_storage_round_trip(tmp_path):
    storage = LocalStorage("pipeline_output", root=str(tmp_path), base_url="http://api.test/")

    url = storage.upload("job_1/audio/voice_1.mp3", b"mp3-bytes", "audio/mpeg")

    assert storage.download("job_1/audio/voice_1.mp3") == b"mp3-bytes"
    assert url == f"http://api.test/get-video/?path={tmp_path}/pipeline_output/job_1/audio/voice_1.mp3"
    assert storage.list("job_1/audio") == ["voice_1.mp3"]
    assert storage.buckets() == ["pipeline_output"]


def test_local_storage_missing_object(tmp_path):
    with pytest.raises(StorageError):
        LocalStorage("pipeline_output", root=str(tmp_path)).download("job_1/final_video.mp4")


def test_local_storage_refuses_paths_outside_the_bucket(tmp_path):
    storage = LocalStorage("pipeline_output", root=str(tmp_path))

    with pytest.raises(StorageError):
        storage.upload("../reference_voices/denis.wav", b"x", "audio/wav")


def test_local_storage_list_of_missing_prefix_is_empty(tmp_path):
    assert LocalStorage("pipeline_output", root=str(tmp_path)).list("job_404") == []


def test_supabase_storage_upserts_and_wraps_errors():
    client = MagicMock()
    bucket = client.storage.from_.return_value
    bucket.get_public_url.return_value = "https://sb.test/public/job_1/final_video.mp4"
    storage = SupabaseStorage("pipeline_output", client=client)

    url = storage.upload("job_1/final_video.mp4", b"video", "video/mp4")

    client.storage.from_.assert_called_with("pipeline_output")
    bucket.upload.assert_called_once_with("job_1/final_video.mp4", b"video",
                                          {"content-type": "video/mp4", "upsert": "true"})
    assert url == "https://sb.test/public/job_1/final_video.mp4"

    bucket.download.side_effect = RuntimeError("404 Not Found")
    with pytest.raises(StorageError):
        storage.download("job_1/audio/voice_9.mp3")


def test_supabase_signed_url_key_variants():
    client = MagicMock()
    bucket = client.storage.from_.return_value
    storage = SupabaseStorage("reference_voices", client=client)

    bucket.create_signed_url.return_value = {"signedURL": "https://sb.test/sign/a"}
    assert storage.signed_url("denis.wav") == "https://sb.test/sign/a"

    bucket.create_signed_url.return_value = {"signedUrl": "https://sb.test/sign/b"}
    assert storage.signed_url("denis.wav") == "https://sb.test/sign/b"
