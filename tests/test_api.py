import time

import pytest
from fastapi.testclient import TestClient

from conftest import RecordingImageService
from photoflow.broker.memory_broker import MemoryBroker
from photoflow.common.exceptions import BrokerError
from photoflow.common.job import ProcessingTask
from photoflow.config import Settings
from photoflow.serialization.json_serializer import JsonSerializer
from photoflow.storage.memory_storage import MemoryIdempotencyStore
from photoflow.web.app import create_app


class FailingBroker(MemoryBroker):
    def __init__(self):
        super().__init__()
        self.attempts = 0

    def publish(self, exchange, routing_key, body):
        self.attempts += 1
        raise BrokerError("connection refused")


# --- Fixtures ---
@pytest.fixture
def settings(tmp_path):
    return Settings(upload_dir=str(tmp_path / "uploads"))


@pytest.fixture
def broker():
    return MemoryBroker()


@pytest.fixture
def store():
    return MemoryIdempotencyStore()


@pytest.fixture
def client(settings, store, broker):
    app = create_app(settings, store=store, broker=broker)
    return TestClient(app)


def _upload(client, key, filename="cat.jpg", data=b"", content_type="image/jpeg", tasks=None):
    form = {"tasks": tasks} if tasks is not None else {}
    headers = {"X-Idempotency-Key": key} if key else {}
    return client.post(
        "/photos/upload",
        files={"file": (filename, data, content_type)},
        data=form,
        headers=headers,
    )


# Successful upload
def test_upload_publishes_job(client, settings, broker, jpeg_bytes, tmp_path):
    response = _upload(client, "k-1", data=jpeg_bytes, tasks="RESIZE,THUMBNAIL")

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "Photo uploaded successfully"
    assert body["tasks"] == ["RESIZE", "THUMBNAIL"]

    [message] = broker.peek(settings.queue)
    job = JsonSerializer().deserialize_job(message)
    assert job.job_id == body["jobId"]
    assert job.photo_id == body["photoId"]
    assert job.tasks == (ProcessingTask.RESIZE, ProcessingTask.THUMBNAIL)

    stored = tmp_path / "uploads" / f"{body['photoId']}.jpg"
    assert job.original_path == str(stored)
    assert stored.read_bytes() == jpeg_bytes


def test_upload_defaults_to_resize_and_thumbnail(client, jpeg_bytes):
    response = _upload(client, "k-1", data=jpeg_bytes)
    assert response.json()["tasks"] == ["RESIZE", "THUMBNAIL"]


def test_upload_task_names_are_case_insensitive(client, jpeg_bytes):
    response = _upload(client, "k-1", data=jpeg_bytes, tasks="watermark, resize")
    assert response.json()["tasks"] == ["WATERMARK", "RESIZE"]


def test_retried_upload_publishes_once(client, settings, broker, jpeg_bytes):
    first = _upload(client, "k-1", data=jpeg_bytes)
    second = _upload(client, "k-1", data=jpeg_bytes)

    assert second.status_code == 200
    assert second.content == first.content
    assert broker.queue_length(settings.queue) == 1


def test_same_photo_with_new_key_is_a_new_job(client, settings, broker, jpeg_bytes):
    first = _upload(client, "k-1", data=jpeg_bytes).json()
    second = _upload(client, "k-2", data=jpeg_bytes).json()

    assert first["jobId"] != second["jobId"]
    assert broker.queue_length(settings.queue) == 2


# Rejected uploads
def test_empty_file_is_rejected(client, settings, broker):
    first = _upload(client, "k-1", data=b"")
    second = _upload(client, "k-1", data=b"")

    assert first.status_code == 400
    assert first.json() == {"success": False, "message": "File is empty"}
    assert second.status_code == 400
    assert second.content == first.content
    assert broker.queue_length(settings.queue) == 0


def test_non_image_is_rejected(client, settings, broker):
    response = _upload(client, "k-1", filename="notes.txt", data=b"hello", content_type="text/plain")

    assert response.status_code == 400
    assert response.json() == {"success": False, "message": "File must be an image"}
    assert broker.queue_length(settings.queue) == 0


def test_unknown_task_is_rejected(client, settings, broker, jpeg_bytes):
    response = _upload(client, "k-1", data=jpeg_bytes, tasks="RESIZE,SHARPEN")

    assert response.status_code == 400
    assert response.json()["message"] == "Unknown processing task: SHARPEN"
    assert broker.queue_length(settings.queue) == 0


def test_blank_task_list_is_rejected(client, jpeg_bytes):
    response = _upload(client, "k-1", data=jpeg_bytes, tasks=" , ")

    assert response.status_code == 400
    assert response.json()["message"] == "At least one processing task is required"


def test_upload_without_key_is_rejected(client, settings, broker, jpeg_bytes):
    response = _upload(client, None, data=jpeg_bytes)

    assert response.status_code == 400
    assert response.json() == {"error": "Missing required header: X-Idempotency-Key"}
    assert broker.queue_length(settings.queue) == 0


def test_broker_failure_returns_503_and_is_not_cached(settings, store, jpeg_bytes):
    broker = FailingBroker()
    client = TestClient(create_app(settings, store=store, broker=broker), raise_server_exceptions=False)

    first = _upload(client, "k-1", data=jpeg_bytes)
    second = _upload(client, "k-1", data=jpeg_bytes)

    assert first.status_code == 503
    assert first.json() == {"success": False, "message": "Failed to queue photo for processing"}
    assert second.status_code == 503
    assert broker.attempts == 2
    assert store.get("k-1") is None


# Health
def test_health(client):
    response = client.get("/photos/health")
    assert response.status_code == 200
    assert response.text == "OK"


# Embedded worker
def test_embedded_worker_processes_uploaded_photo(tmp_path, jpeg_bytes):
    settings = Settings(upload_dir=str(tmp_path / "uploads"), embedded_worker=True)
    image_service = RecordingImageService()
    broker = MemoryBroker()
    app = create_app(
        settings, store=MemoryIdempotencyStore(), broker=broker, image_service=image_service
    )

    with TestClient(app) as client:
        body = _upload(client, "k-1", data=jpeg_bytes, tasks="THUMBNAIL,RESIZE").json()
        deadline = time.monotonic() + 5
        while len(image_service.calls) < 2 and time.monotonic() < deadline:
            time.sleep(0.05)

    assert image_service.operations == ["thumbnail", "resize"]
    assert {photo_id for _, _, photo_id in image_service.calls} == {body["photoId"]}
    assert broker.unacked_count() == 0
