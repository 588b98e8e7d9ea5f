# photoflow/serialization/json_serializer.py
import base64
import binascii
import json
from datetime import datetime, UTC

from photoflow.common.exceptions import MessageDecodeError, UnknownTaskKind
from photoflow.common.job import Job, ProcessingTask
from photoflow.common.record import IdempotencyRecord
from photoflow.serialization.base import BaseSerializer


class JsonSerializer(BaseSerializer):
    """
    JSON wire format shared by the publisher and the consumers.

    Jobs travel as ``{"jobId", "photoId", "originalPath", "tasks", "createdAt"}``.
    Fields a consumer does not know are ignored so producers can add new ones.
    """

    def serialize_job(self, job: Job) -> str:
        return json.dumps(
            {
                "jobId": job.job_id,
                "photoId": job.photo_id,
                "originalPath": job.original_path,
                "tasks": [task.value for task in job.tasks],
                "createdAt": job.created_at.isoformat(),
            }
        )

    def deserialize_job(self, data: str) -> Job:
        try:
            payload = json.loads(data)
            return Job(
                job_id=payload["jobId"],
                photo_id=payload["photoId"],
                original_path=payload["originalPath"],
                tasks=self._deserialize_tasks(payload),
                created_at=self._deserialize_timestamp(payload["createdAt"]),
            )
        except ValueError as e:
            # JSONDecodeError and bad timestamps are ValueErrors.
            raise MessageDecodeError(f"Invalid job message: {e}") from e
        except (KeyError, TypeError) as e:
            raise MessageDecodeError(f"Malformed job message: missing {e}") from e

    def _deserialize_tasks(self, payload: dict) -> tuple:
        tasks = []
        for name in payload["tasks"]:
            try:
                tasks.append(ProcessingTask(name))
            except ValueError as e:
                raise UnknownTaskKind(
                    f"Unknown processing task: {name}",
                    job_id=payload.get("jobId"),
                    task=str(name),
                ) from e
        return tuple(tasks)

    def _deserialize_timestamp(self, value) -> datetime:
        if isinstance(value, (int, float)):
            return datetime.fromtimestamp(value, UTC)
        return datetime.fromisoformat(value)

    def serialize_record(self, record: IdempotencyRecord) -> str:
        return json.dumps(
            {
                "status_code": record.status_code,
                "content_type": record.content_type or "",
                "body": base64.b64encode(record.body or b"").decode("ascii"),
            }
        )

    def deserialize_record(self, key: str, data: str) -> IdempotencyRecord:
        try:
            payload = json.loads(data)
            return IdempotencyRecord(
                key=key,
                status_code=int(payload["status_code"]),
                content_type=payload.get("content_type") or "",
                body=base64.b64decode(payload.get("body") or ""),
            )
        except (ValueError, KeyError, TypeError, binascii.Error) as e:
            raise MessageDecodeError(f"Invalid cached response for key {key}") from e
