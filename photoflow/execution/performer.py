# photoflow/execution/performer.py
from typing import Any

from photoflow.common.exceptions import UnknownTaskKind
from photoflow.common.job import Job, ProcessingTask
from photoflow.imaging.base import ImageService

# Every ProcessingTask must have an entry here.
TASK_OPERATIONS = {
    ProcessingTask.RESIZE: "resize",
    ProcessingTask.WATERMARK: "watermark",
    ProcessingTask.THUMBNAIL: "thumbnail",
}


def perform_task(image_service: ImageService, job: Job, task: ProcessingTask) -> Any:
    """Runs the image operation that corresponds to one task of a job."""
    operation = TASK_OPERATIONS.get(task)
    if operation is None:
        raise UnknownTaskKind(
            f"Unknown processing task: {task!r}", job_id=job.job_id, task=str(task)
        )
    return getattr(image_service, operation)(job.original_path, job.photo_id)
