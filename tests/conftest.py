"""
Test configuration and fixtures
"""
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from api.main import create_app
from api.models.job import UploadedAsset
from api.services.job_service import MediaJobService
from api.services.metrics import MediaJobMetrics
from api.services.storage import StorageService
from tests.mocks.ffmpeg import MockFFmpegExecutor


@pytest.fixture
def storage_service(tmp_path) -> StorageService:
    """Local storage areas rooted in a per-test temp directory."""
    return StorageService.from_settings(root=tmp_path)


@pytest.fixture
def metrics() -> MediaJobMetrics:
    return MediaJobMetrics()


@pytest.fixture
def mock_executor() -> MockFFmpegExecutor:
    return MockFFmpegExecutor()


@pytest.fixture
def job_service(storage_service, mock_executor, metrics) -> MediaJobService:
    return MediaJobService(storage_service, executor=mock_executor, metrics=metrics)


@pytest.fixture
def make_asset(storage_service):
    """Store bytes in an area and return the UploadedAsset."""
    async def _make(content: bytes = b"media bytes", name: str = "clip.mp3", area: str = "uploads"):
        return await storage_service.store(content, original_name=name, area=area)
    return _make


@pytest.fixture
def app(storage_service, mock_executor, metrics):
    return create_app(storage_service=storage_service, executor=mock_executor, metrics=metrics)


@pytest.fixture
def client(app):
    """Test client with lifespan events (storage directories created)."""
    with TestClient(app) as test_client:
        yield test_client


def upload_files(storage_service: StorageService, area: str = "uploads"):
    """Names currently stored in an area."""
    base = Path(storage_service.get_backend(area).base_path)
    if not base.exists():
        return []
    return sorted(p.name for p in base.iterdir())


@pytest.fixture
def stored_files(storage_service):
    def _list(area: str = "uploads"):
        return upload_files(storage_service, area)
    return _list


@pytest.fixture
def sample_asset(tmp_path) -> UploadedAsset:
    """An asset whose path is fixed, for pure command-building tests."""
    return UploadedAsset(
        handle="1700000000000-abcdef12.mp3",
        backend="uploads",
        stored_path=tmp_path / "uploads" / "1700000000000-abcdef12.mp3",
        original_name="song.mp3",
    )
