"""
Tests for API endpoints and route functionality
"""
import pytest
from fastapi.testclient import TestClient

from api.main import create_app
from tests.mocks.ffmpeg import MockFFmpegExecutor
from tests.utils.helpers import assert_error_response, upload_part


@pytest.fixture
def failing_client(storage_service, metrics):
    """Client whose engine fails every job."""
    app = create_app(storage_service=storage_service, executor=MockFFmpegExecutor(fail_stage="engine"),
                     metrics=metrics)
    with TestClient(app) as test_client:
        yield test_client


class TestPages:

    @pytest.mark.integration
    @pytest.mark.parametrize("path,marker", [
        ("/", 'action="/"'),
        ("/image-to-video", 'action="/create"'),
        ("/audio-trim", "fetch('/trim'"),
        ("/repeat-audio", "fetch('/process'"),
    ])
    def test_form_pages(self, client, path, marker):
        response = client.get(path)
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/html")
        assert marker in response.text


class TestUploadAndTrim:

    @pytest.mark.integration
    def test_upload_normalizes_and_reports_duration(self, client, mock_executor, stored_files):
        response = client.post("/upload", files={"file": upload_part("voice memo.m4a", b"raw audio", "audio/mp4")})

        assert response.status_code == 200
        data = response.json()
        assert data["path"].startswith("/uploads/converted-")
        assert data["path"].endswith(".mp3")
        assert data["duration"] == "00:00:12.3"
        # Only the normalized file remains
        assert stored_files("uploads") == [data["path"].rsplit("/", 1)[1]]
        assert mock_executor.get_last_invocation().command[-1].endswith(data["path"].rsplit("/", 1)[1])

    @pytest.mark.integration
    def test_upload_without_file(self, client, mock_executor):
        response = client.post("/upload")

        assert response.status_code == 400
        assert_error_response(response.json(), "VALIDATION_ERROR")
        assert mock_executor.invocations == []

    @pytest.mark.integration
    def test_upload_then_trim_then_download(self, client, stored_files):
        uploaded = client.post("/upload", files={"file": upload_part("song.wav", b"raw", "audio/wav")}).json()

        response = client.post("/trim", json={"start": "00:00:05.0", "end": "00:00:10.0", "filePath": uploaded["path"]})

        assert response.status_code == 200
        trimmed = response.json()["trimmed"]
        assert trimmed.startswith("/trimmed/trimmed-")
        # Source consumed by a successful trim
        assert stored_files("uploads") == []

        download = client.get(trimmed)
        assert download.status_code == 200
        assert download.content == b"fake media output"

    @pytest.mark.integration
    @pytest.mark.parametrize("body,code", [
        ({"end": "00:00:10.0", "filePath": "/uploads/a.mp3"}, "VALIDATION_ERROR"),
        ({"start": "00:00:05.0", "filePath": "/uploads/a.mp3"}, "VALIDATION_ERROR"),
        ({"start": "00:00:05.0", "end": "00:00:10.0"}, "VALIDATION_ERROR"),
        ({"start": "5", "end": "00:00:10.0", "filePath": "/uploads/a.mp3"}, "INVALID_TIMECODE"),
        ({"start": "00:00:10.0", "end": "00:00:05.0", "filePath": "/uploads/a.mp3"}, "INVALID_DURATION"),
        ({"start": "00:00:05.0", "end": "00:00:05.0", "filePath": "/uploads/a.mp3"}, "INVALID_DURATION"),
        ({"start": "00:00:00.0", "end": "00:00:05.0", "filePath": "/uploads/../etc/passwd"}, "VALIDATION_ERROR"),
        ({"start": "00:00:00.0", "end": "00:00:05.0", "filePath": "/uploads/missing.mp3"}, "VALIDATION_ERROR"),
    ])
    def test_trim_rejects_bad_requests(self, client, mock_executor, body, code):
        response = client.post("/trim", json=body)

        assert response.status_code == 400
        assert_error_response(response.json(), code)
        assert mock_executor.invocations == []

    @pytest.mark.integration
    def test_trim_malformed_json(self, client):
        response = client.post("/trim", content=b"{not json", headers={"Content-Type": "application/json"})

        assert response.status_code == 400
        assert_error_response(response.json(), "VALIDATION_ERROR")

    @pytest.mark.integration
    def test_engine_failure_keeps_upload(self, failing_client, stored_files):
        response = failing_client.post("/upload", files={"file": upload_part("song.wav")})

        assert response.status_code == 500
        error = response.json()["error"]
        assert error["code"] == "ENGINE_ERROR"
        assert error["message"] == "Conversion failed"
        assert "mock engine failure" not in response.text
        assert len(stored_files("uploads")) == 1


class TestImageToVideo:

    @pytest.mark.integration
    def test_create_video(self, client, mock_executor, stored_files):
        response = client.post(
            "/create",
            files={"image": upload_part("photo.png", b"png", "image/png")},
            data={"duration": "5"},
        )

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/html")
        produced = stored_files("results")
        assert len(produced) == 1
        assert produced[0].startswith("video-")
        assert f'src="/results/{produced[0]}"' in response.text
        assert 'href="/results/' in response.text
        command = mock_executor.get_last_invocation().command
        assert command[command.index("-t") + 1] == "5"

    @pytest.mark.integration
    @pytest.mark.parametrize("duration", ["0", "-2", "abc", "2.5", ""])
    def test_invalid_duration(self, client, mock_executor, stored_files, duration):
        response = client.post(
            "/create",
            files={"image": upload_part("photo.png", b"png", "image/png")},
            data={"duration": duration},
        )

        assert response.status_code == 400
        assert mock_executor.invocations == []
        assert stored_files("uploads") == []

    @pytest.mark.integration
    def test_missing_image(self, client):
        response = client.post("/create", data={"duration": "5"})

        assert response.status_code == 400
        assert_error_response(response.json(), "VALIDATION_ERROR")


class TestReplaceAudio:

    @pytest.mark.integration
    def test_merge(self, client, mock_executor, stored_files):
        response = client.post("/", files={
            "video": upload_part("clip.mp4", b"video", "video/mp4"),
            "audio": upload_part("track.mp3", b"audio", "audio/mpeg"),
        })

        assert response.status_code == 200
        produced = stored_files("results")
        assert len(produced) == 1
        assert produced[0].startswith("replaced-")
        assert f"/results/{produced[0]}" in response.text
        command = mock_executor.get_last_invocation().command
        assert "-shortest" in command
        assert stored_files("uploads") == []

    @pytest.mark.integration
    def test_merge_requires_both_files(self, client, stored_files):
        response = client.post("/", files={"video": upload_part("clip.mp4", b"video", "video/mp4")})

        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Both video and audio files are required."
        assert stored_files("uploads") == []

    @pytest.mark.integration
    def test_merge_failure_keeps_inputs(self, failing_client, stored_files):
        response = failing_client.post("/", files={
            "video": upload_part("clip.mp4", b"video", "video/mp4"),
            "audio": upload_part("track.mp3", b"audio", "audio/mpeg"),
        })

        assert response.status_code == 500
        assert response.json()["error"]["message"] == "Error processing video"
        assert len(stored_files("uploads")) == 2
        assert stored_files("results") == []


class TestRepeatAudio:

    @pytest.mark.integration
    def test_repeat(self, client, mock_executor, stored_files):
        response = client.post(
            "/process",
            files={"audio": upload_part("loop.wav", b"loop", "audio/wav")},
            data={"repeatCount": "3"},
        )

        assert response.status_code == 200
        url = response.json()["audioUrl"]
        assert url.startswith("/results/output-")
        assert url.endswith(".wav")
        assert len(mock_executor.manifests[0].splitlines()) == 3
        # Manifest and source removed
        assert stored_files("uploads") == []

        download = client.get(url)
        assert download.status_code == 200

    @pytest.mark.integration
    @pytest.mark.parametrize("count", ["0", "101", "abc", "1.5"])
    def test_invalid_count_stores_nothing(self, client, mock_executor, stored_files, count):
        response = client.post(
            "/process",
            files={"audio": upload_part("loop.mp3", b"loop", "audio/mpeg")},
            data={"repeatCount": count},
        )

        assert response.status_code == 400
        assert_error_response(response.json(), "INVALID_PARAMETER")
        assert mock_executor.invocations == []
        assert stored_files("uploads") == []

    @pytest.mark.integration
    def test_missing_count(self, client, stored_files):
        response = client.post("/process", files={"audio": upload_part("loop.mp3", b"loop", "audio/mpeg")})

        assert response.status_code == 400
        assert_error_response(response.json(), "VALIDATION_ERROR")
        assert stored_files("uploads") == []

    @pytest.mark.integration
    def test_missing_audio(self, client):
        response = client.post("/process", data={"repeatCount": "2"})

        assert response.status_code == 400
        assert_error_response(response.json(), "VALIDATION_ERROR")


class TestStaticFiles:

    @pytest.mark.integration
    def test_unknown_file_is_404(self, client):
        response = client.get("/results/does-not-exist.mp4")
        assert response.status_code == 404

    @pytest.mark.integration
    def test_uploads_are_served(self, client):
        data = client.post("/upload", files={"file": upload_part("song.mp3")}).json()

        response = client.get(data["path"])
        assert response.status_code == 200
