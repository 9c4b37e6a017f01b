import io
from typing import Any, Callable, List, Optional, Tuple

import pytest
from PIL import Image

from sportlens.analysis.grok_client import AnalysisClient, GrokConfig
from sportlens.config.settings import Settings
from sportlens.jobs.job_queue import JobQueue
from sportlens.jobs.models import Job, JobStatus
from sportlens.storage.image_store import ImageStore
from sportlens.workspace import Workspace


@pytest.fixture(autouse=True)
def no_provider_credentials(monkeypatch):
    monkeypatch.delenv("XAI_API_KEY", raising=False)


@pytest.fixture()
def settings(tmp_path):
    return Settings(
        xai_api_key=None,
        data_dir=tmp_path / "data",
        processing_seconds=0.0,
        batch_processing_seconds=0.0,
        progress_steps=2,
        max_concurrent_analyses=4,
        seed_demo_job=False,
    )


@pytest.fixture()
def png_bytes():
    buffer = io.BytesIO()
    Image.new("RGB", (640, 480), color=(20, 120, 40)).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture()
def queue():
    return JobQueue()


@pytest.fixture()
def image_store(settings):
    return ImageStore(settings.data_dir)


@pytest.fixture()
def demo_client():
    return AnalysisClient(GrokConfig(api_key=None))


@pytest.fixture()
def workspace(settings):
    return Workspace(settings)


@pytest.fixture()
def make_job(queue, image_store, png_bytes):
    """Insert a job backed by a real stored image."""
    def _make(filename: str = "shot.png", **fields) -> Job:
        source_uri, thumbnail_uri = image_store.save_upload(filename, png_bytes)
        job = Job(filename=filename, source_uri=source_uri, thumbnail_uri=thumbnail_uri, **fields)
        queue.insert(job)
        return queue.get(job.id)
    return _make


@pytest.fixture()
def status_log(queue):
    """Record (job_id, status) every time a job's status changes."""
    events: List[Tuple[str, JobStatus]] = []

    def listener(before: Optional[Job], after: Job) -> None:
        if before is None or before.status != after.status:
            events.append((after.id, after.status))

    queue.add_listener(listener)
    return events


class FakeResponse:
    def __init__(self, content: str = '{"ok": true}'):
        self.content = content


class FakeChat:
    """Stands in for an xai_sdk chat; parse() delegates to a callable."""

    def __init__(self, parse: Callable[[Any], Any]):
        self._parse = parse
        self.messages: List[Any] = []

    def append(self, message: Any) -> "FakeChat":
        self.messages.append(message)
        return self

    def parse(self, shape: Any) -> Any:
        return self._parse(shape)


class FakeAsyncChat(FakeChat):
    async def parse(self, shape: Any) -> Any:
        result = self._parse(shape)
        if hasattr(result, "__await__"):
            return await result
        return result


class FakeChatFactory:
    def __init__(self, chat_cls, parse):
        self._chat_cls = chat_cls
        self._parse = parse
        self.created: List[FakeChat] = []

    def create(self, model: str) -> FakeChat:
        chat = self._chat_cls(self._parse)
        self.created.append(chat)
        return chat


class FakeXaiClient:
    def __init__(self, parse: Callable[[Any], Any], asynchronous: bool = False):
        self.chat = FakeChatFactory(FakeAsyncChat if asynchronous else FakeChat, parse)


@pytest.fixture()
def fake_response():
    return FakeResponse


@pytest.fixture()
def fake_xai_client():
    return FakeXaiClient
