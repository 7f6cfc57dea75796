# video-pipeline-backend/tests/test_providers.py

from unittest.mock import MagicMock, patch

import pytest

from errors import ProviderError
from imagegen import ImageGenerator, PollinationsImages
from retry import with_retry
from videogen import MiniMaxVideo


class StubProvider:
    def __init__(self, name, result=None, error=None):
        self.name = name
        self.result = result
        self.error = error
        self.calls = 0

    def generate(self, prompt):
        self.calls += 1
        if self.error:
            raise self.error
        return self.result


def test_image_generator_falls_back_to_next_provider():
    first = StubProvider("hf", error=ProviderError("503"))
    second = StubProvider("pollinations", result=b"\xff\xd8jpeg")

    assert ImageGenerator([first, second]).generate("a lighthouse") == b"\xff\xd8jpeg"
    assert first.calls == 1 and second.calls == 1


def test_image_generator_treats_empty_body_as_failure():
    providers = [StubProvider("hf", result=b""), StubProvider("pollinations", error=ProviderError("down"))]

    with pytest.raises(ProviderError, match="All image providers failed"):
        ImageGenerator(providers).generate("a lighthouse")


def test_pollinations_rejects_non_image_responses():
    response = MagicMock(ok=True, headers={"Content-Type": "text/html"}, content=b"<html>")

    with patch("imagegen.requests.get", return_value=response):
        with pytest.raises(ProviderError):
            PollinationsImages().generate("a lighthouse")


def test_pollinations_request_parameters():
    response = MagicMock(ok=True, headers={"Content-Type": "image/jpeg"}, content=b"img")

    with patch("imagegen.requests.get", return_value=response) as get:
        assert PollinationsImages().generate("red barn, dusk") == b"img"

    assert get.call_args.args[0].endswith("/red%20barn%2C%20dusk")
    assert get.call_args.kwargs["params"] == {"width": 1280, "height": 720, "model": "flux", "nologo": "true"}


def test_minimax_submit_truncates_prompt_and_returns_task_id():
    response = MagicMock(ok=True)
    response.json.return_value = {"task_id": "task-42"}

    with patch("videogen.requests.post", return_value=response) as post:
        task_id = MiniMaxVideo(api_key="key").submit("x" * 2500, "https://cdn.test/image_1.jpg")

    payload = post.call_args.kwargs["json"]
    assert task_id == "task-42"
    assert len(payload["prompt"]) == 2000
    assert payload["duration"] == 6
    assert payload["resolution"] == "720P"
    assert payload["first_frame_image"] == "https://cdn.test/image_1.jpg"


def test_minimax_submit_failure_returns_empty_string():
    with patch("videogen.requests.post", return_value=MagicMock(ok=False, text="bad request")):
        assert MiniMaxVideo(api_key="key").submit("prompt", "https://cdn.test/i.jpg") == ""


def test_minimax_wait_for_polls_until_success():
    sleeps = []
    client = MiniMaxVideo(api_key="key", sleep=sleeps.append)
    statuses = iter([("Queueing", ""), ("Processing", ""), ("Success", "file-9")])

    with patch.object(client, "query", side_effect=lambda task_id: next(statuses)), \
            patch.object(client, "download_url", return_value="https://cdn.test/clip.mp4") as download_url:
        assert client.wait_for("task-1", interval=10, timeout=600) == "https://cdn.test/clip.mp4"

    download_url.assert_called_once_with("file-9")
    assert sleeps == [10, 10]


def test_minimax_wait_for_failed_task():
    client = MiniMaxVideo(api_key="key", sleep=lambda seconds: None)

    with patch.object(client, "query", return_value=("Fail", "")):
        with pytest.raises(ProviderError, match="failed"):
            client.wait_for("task-1")


def test_minimax_wait_for_times_out():
    sleeps = []
    client = MiniMaxVideo(api_key="key", sleep=sleeps.append)

    with patch.object(client, "query", return_value=("Processing", "")) as query:
        with pytest.raises(ProviderError, match="timed out"):
            client.wait_for("task-1", interval=5, timeout=10)

    assert query.call_count == 3
    assert sleeps == [5, 5]


def test_minimax_download_url_passes_group_id():
    response = MagicMock()
    response.json.return_value = {"file": {"download_url": "https://cdn.test/clip.mp4"}}

    with patch("videogen.requests.get", return_value=response) as get:
        url = MiniMaxVideo(api_key="key", group_id="group-1").download_url("file-9")

    assert url == "https://cdn.test/clip.mp4"
    assert get.call_args.kwargs["params"] == {"file_id": "file-9", "GroupId": "group-1"}


def test_with_retry_succeeds_after_failures():
    attempts = []
    sleeps = []
    retries = []

    def flaky():
        attempts.append(1)
        if len(attempts) < 3:
            raise ProviderError("overloaded")
        return "ok"

    result = with_retry(flaky, 3, 8, on_retry=lambda e, n: retries.append(n), sleep=sleeps.append)

    assert result == "ok"
    assert retries == [1, 2]
    assert sleeps == [8, 8]


def test_with_retry_reraises_last_error():
    sleeps = []

    def broken():
        raise ProviderError("still down")

    with pytest.raises(ProviderError, match="still down"):
        with_retry(broken, 2, 5, sleep=sleeps.append)
    assert sleeps == [5]
