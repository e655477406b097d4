"""
Tests for the upload endpoint and static package serving
"""
import re

import pytest
from fastapi.testclient import TestClient

from api.config import FailurePolicy, settings
from api.dependencies import get_orchestrator
from api.main import app
from api.routers.upload import asset_id_for, staged_filename
from storage.layout import AssetLayout
from tests.mocks.ffmpeg import MockCodecEngine
from worker.processors.streaming import RenditionOrchestrator
from worker.renditions import DEFAULT_RENDITIONS
from worker.runner import RenditionJobRunner


def _orchestrator(engine, policy=FailurePolicy.BEST_EFFORT):
    return RenditionOrchestrator(
        layout=AssetLayout(settings.OUTPUT_ROOT),
        runner=RenditionJobRunner(engine),
        renditions=DEFAULT_RENDITIONS,
        base_url="http://localhost:3000",
        policy=policy,
    )


@pytest.fixture
def client_with():
    """Build a test client whose orchestrator uses the given engine and policy."""
    clients = []

    def _client(engine, policy=FailurePolicy.BEST_EFFORT):
        orchestrator = _orchestrator(engine, policy)
        app.dependency_overrides[get_orchestrator] = lambda: orchestrator
        client = TestClient(app)
        client.__enter__()
        clients.append(client)
        return client

    yield _client

    for client in clients:
        client.__exit__(None, None, None)
    app.dependency_overrides.clear()


def _upload(client, name="clip.mp4"):
    return client.post("/upload", files={"video": (name, b"\x00\x00\x00\x18ftypmp42", "video/mp4")})


class TestStagedNames:

    @pytest.mark.unit
    def test_staged_filename(self):
        assert staged_filename("video", "My Clip.MP4", now_ms=1700000000000) == "video-1700000000000.mp4"

    @pytest.mark.unit
    def test_staged_filename_drops_odd_extensions(self):
        assert staged_filename("video", "clip.m p4", now_ms=1) == "video-1"
        assert staged_filename("video", None, now_ms=1) == "video-1"

    @pytest.mark.unit
    def test_asset_id_strips_extension(self):
        assert asset_id_for("video-1700000000000.mp4") == "video-1700000000000"


class TestUploadEndpoint:

    @pytest.mark.integration
    def test_upload_returns_stream_url(self, client_with):
        client = client_with(MockCodecEngine())
        response = _upload(client)

        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "Video processed"
        assert re.fullmatch(r"http://localhost:3000/videos/video-\d+/master\.m3u8", data["streamUrl"])
        assert data["renditions"] == ["360p", "720p", "1080p"]
        assert data["degraded"] == []

    @pytest.mark.integration
    def test_package_is_served_statically(self, client_with):
        client = client_with(MockCodecEngine())
        stream_url = _upload(client).json()["streamUrl"]

        response = client.get(stream_url.replace("http://localhost:3000", ""))
        assert response.status_code == 200
        assert response.text.startswith("#EXTM3U\n#EXT-X-VERSION:3\n")
        assert "720p.m3u8" in response.text

    @pytest.mark.integration
    def test_missing_file_is_rejected(self, client_with):
        engine = MockCodecEngine()
        client = client_with(engine)
        response = client.post("/upload")

        assert response.status_code == 400
        assert response.json()["error"]["message"] == "No file uploaded."
        assert engine.command_history == []

    @pytest.mark.integration
    def test_degraded_renditions_are_reported(self, client_with):
        client = client_with(MockCodecEngine(failures={"1080p": "encoder crashed"}))
        data = _upload(client).json()

        assert data["renditions"] == ["360p", "720p"]
        assert data["degraded"] == [{"rendition": "1080p", "reason": "encoder crashed"}]

    @pytest.mark.integration
    def test_all_or_nothing_failure_enumerates_reasons(self, client_with):
        engine = MockCodecEngine(failures={"1080p": "encoder crashed"})
        client = client_with(engine, policy=FailurePolicy.ALL_OR_NOTHING)
        response = _upload(client)

        assert response.status_code == 500
        error = response.json()["error"]
        assert error["code"] == "AGGREGATE_FAILURE"
        assert error["failures"] == [{"rendition": "1080p", "reason": "encoder crashed"}]

    @pytest.mark.integration
    def test_health_lists_ladder(self, client_with):
        client = client_with(MockCodecEngine())
        data = client.get("/health").json()

        assert data["status"] == "healthy"
        assert [r["label"] for r in data["renditions"]] == ["360p", "720p", "1080p"]
        assert data["renditions"][0]["bandwidth"] == 800000
