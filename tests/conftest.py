"""
Test configuration and fixtures
"""
import os
import tempfile

# Keep the app's import-time directories out of the working tree.
_runtime_dir = tempfile.mkdtemp(prefix="rendition-packager-tests-")
os.environ.setdefault("OUTPUT_ROOT", os.path.join(_runtime_dir, "videos"))
os.environ.setdefault("UPLOAD_DIR", os.path.join(_runtime_dir, "uploads"))

import pytest

from api.config import FailurePolicy
from storage.layout import AssetLayout
from tests.mocks.ffmpeg import MockCodecEngine
from worker.processors.streaming import RenditionOrchestrator
from worker.renditions import DEFAULT_RENDITIONS, RenditionSpec
from worker.runner import RenditionJobRunner


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests without external processes")
    config.addinivalue_line("markers", "integration: tests that go through the HTTP app")


@pytest.fixture
def output_root(tmp_path):
    """Root directory for packaged assets."""
    return tmp_path / "videos"


@pytest.fixture
def input_video(tmp_path):
    """Placeholder input file; the mock engine never decodes it."""
    path = tmp_path / "uploads" / "video-1700000000000.mp4"
    path.parent.mkdir(parents=True)
    path.write_bytes(b"\x00\x00\x00\x18ftypmp42")
    return path


@pytest.fixture
def renditions():
    """The standard 360p/720p/1080p ladder."""
    return list(DEFAULT_RENDITIONS)


@pytest.fixture
def mock_engine():
    return MockCodecEngine()


@pytest.fixture
def make_orchestrator(output_root, renditions):
    """Factory for orchestrators wired to a given engine and policy."""

    def _make(engine, policy=FailurePolicy.BEST_EFFORT, specs=None):
        return RenditionOrchestrator(
            layout=AssetLayout(output_root),
            runner=RenditionJobRunner(engine),
            renditions=renditions if specs is None else specs,
            base_url="http://localhost:3000",
            policy=policy,
        )

    return _make


@pytest.fixture
def sample_spec():
    return RenditionSpec(label="720p", width=1280, height=720, bitrate_kbps=2500)
