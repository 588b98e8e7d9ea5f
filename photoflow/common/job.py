# photoflow/common/job.py
import uuid
from dataclasses import dataclass, field
from datetime import datetime, UTC
from enum import Enum
from typing import Iterable, Tuple

from photoflow.common.exceptions import UnknownTaskKind


class ProcessingTask(str, Enum):
    RESIZE = "RESIZE"
    WATERMARK = "WATERMARK"
    THUMBNAIL = "THUMBNAIL"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def from_name(cls, name: str) -> "ProcessingTask":
        try:
            return cls(name.strip().upper())
        except ValueError as e:
            raise UnknownTaskKind(
                f"Unknown processing task: {name.strip()}", task=name.strip()
            ) from e


DEFAULT_TASKS = "RESIZE,THUMBNAIL"


def parse_tasks(value: str) -> Tuple[ProcessingTask, ...]:
    """Parses a comma separated task list such as ``"RESIZE,THUMBNAIL"``."""
    names = [part for part in (value or "").split(",") if part.strip()]
    return tuple(ProcessingTask.from_name(name) for name in names)


@dataclass(frozen=True)
class Job:
    """
    One accepted unit of asynchronous photo processing work.

    A job is published once per accepted upload and never mutated afterwards;
    its success or failure is tracked by the broker, not by the job itself.
    """

    photo_id: str
    original_path: str
    tasks: Tuple[ProcessingTask, ...]

    job_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def __post_init__(self):
        # Lists are accepted for convenience but stored as a tuple.
        object.__setattr__(self, "tasks", tuple(self.tasks))

    @classmethod
    def create(
        cls, photo_id: str, original_path: str, tasks: Iterable[ProcessingTask]
    ) -> "Job":
        return cls(photo_id=photo_id, original_path=original_path, tasks=tuple(tasks))
