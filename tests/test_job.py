import dataclasses
import json
from datetime import datetime, UTC

import pytest

from photoflow.common.exceptions import MessageDecodeError, UnknownTaskKind
from photoflow.common.job import Job, ProcessingTask, parse_tasks
from photoflow.common.record import IdempotencyRecord
from photoflow.serialization.json_serializer import JsonSerializer


@pytest.fixture
def json_serializer():
    return JsonSerializer()


# Test Job dataclass
def test_job_creation():
    job = Job.create("photo-1", "/uploads/photo-1.jpg", [ProcessingTask.RESIZE])
    assert job.job_id is not None
    assert job.photo_id == "photo-1"
    assert job.original_path == "/uploads/photo-1.jpg"
    assert job.tasks == (ProcessingTask.RESIZE,)
    assert job.created_at.tzinfo is not None
    assert job.created_at.date() == datetime.now(UTC).date()


def test_job_ids_are_unique():
    ids = {Job.create("p", "/x.jpg", [ProcessingTask.RESIZE]).job_id for _ in range(100)}
    assert len(ids) == 100


def test_job_is_immutable():
    job = Job.create("photo-1", "/x.jpg", [ProcessingTask.RESIZE])
    with pytest.raises(dataclasses.FrozenInstanceError):
        job.photo_id = "other"


def test_job_allows_duplicate_and_empty_tasks():
    job = Job.create("p", "/x.jpg", [ProcessingTask.RESIZE, ProcessingTask.RESIZE])
    assert job.tasks == (ProcessingTask.RESIZE, ProcessingTask.RESIZE)
    assert Job.create("p", "/x.jpg", []).tasks == ()


# Test task parsing
def test_parse_tasks_keeps_order():
    assert parse_tasks("THUMBNAIL, watermark ,RESIZE") == (
        ProcessingTask.THUMBNAIL,
        ProcessingTask.WATERMARK,
        ProcessingTask.RESIZE,
    )


def test_parse_tasks_empty():
    assert parse_tasks("") == ()
    assert parse_tasks(" , ") == ()


def test_parse_tasks_unknown_name():
    with pytest.raises(UnknownTaskKind, match="Unknown processing task: SHARPEN"):
        parse_tasks("RESIZE,SHARPEN")


# Test JsonSerializer
def test_job_wire_round_trip(json_serializer):
    job = Job.create(
        "photo-1",
        "/uploads/photo-1.png",
        [ProcessingTask.WATERMARK, ProcessingTask.RESIZE, ProcessingTask.THUMBNAIL],
    )
    assert json_serializer.deserialize_job(json_serializer.serialize_job(job)) == job


def test_job_wire_format_field_names(json_serializer):
    job = Job.create("photo-1", "/uploads/photo-1.png", [ProcessingTask.RESIZE])
    payload = json.loads(json_serializer.serialize_job(job))
    assert payload == {
        "jobId": job.job_id,
        "photoId": "photo-1",
        "originalPath": "/uploads/photo-1.png",
        "tasks": ["RESIZE"],
        "createdAt": job.created_at.isoformat(),
    }


def test_deserialize_job_ignores_unknown_fields(json_serializer):
    data = json.dumps(
        {
            "jobId": "job-1",
            "photoId": "photo-1",
            "originalPath": "/x.jpg",
            "tasks": ["THUMBNAIL"],
            "createdAt": "2024-05-01T10:00:00+00:00",
            "priority": "high",
        }
    )
    job = json_serializer.deserialize_job(data)
    assert job.job_id == "job-1"
    assert job.tasks == (ProcessingTask.THUMBNAIL,)


def test_deserialize_job_accepts_epoch_timestamp(json_serializer):
    data = json.dumps(
        {
            "jobId": "job-1",
            "photoId": "photo-1",
            "originalPath": "/x.jpg",
            "tasks": ["RESIZE"],
            "createdAt": 0,
        }
    )
    assert json_serializer.deserialize_job(data).created_at == datetime(1970, 1, 1, tzinfo=UTC)


def test_deserialize_job_unknown_task(json_serializer):
    data = json.dumps(
        {
            "jobId": "job-1",
            "photoId": "photo-1",
            "originalPath": "/x.jpg",
            "tasks": ["RESIZE", "SHARPEN"],
            "createdAt": "2024-05-01T10:00:00+00:00",
        }
    )
    with pytest.raises(UnknownTaskKind) as exc_info:
        json_serializer.deserialize_job(data)
    assert exc_info.value.job_id == "job-1"
    assert exc_info.value.task == "SHARPEN"


@pytest.mark.parametrize("data", ["not json", "[]", json.dumps({"jobId": "job-1"})])
def test_deserialize_job_malformed(json_serializer, data):
    with pytest.raises(MessageDecodeError):
        json_serializer.deserialize_job(data)


def test_record_serialization_is_binary_safe(json_serializer):
    body = bytes(range(256))
    record = IdempotencyRecord(key="k", status_code=201, content_type="image/png", body=body)
    data = json_serializer.serialize_record(record)
    restored = json_serializer.deserialize_record("k", data)
    assert restored.body == body
    assert restored.status_code == 201
    assert restored.content_type == "image/png"


def test_record_serialization_empty_fields(json_serializer):
    record = IdempotencyRecord(key="k", status_code=204)
    restored = json_serializer.deserialize_record("k", json_serializer.serialize_record(record))
    assert restored.content_type == ""
    assert restored.body == b""
