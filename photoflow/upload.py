# photoflow/upload.py
import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from .common.exceptions import ValidationFailure
from .common.job import Job, ProcessingTask
from .imaging.files import ensure_directory_exists, get_extension
from .publisher import JobPublisher

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PhotoUploadResponse:
    success: bool
    message: str
    job_id: Optional[str] = None
    photo_id: Optional[str] = None
    tasks: List[str] = field(default_factory=list)

    @classmethod
    def accepted(cls, job: Job) -> "PhotoUploadResponse":
        return cls(
            success=True,
            message="Photo uploaded successfully",
            job_id=job.job_id,
            photo_id=job.photo_id,
            tasks=[task.value for task in job.tasks],
        )

    @classmethod
    def error(cls, message: str) -> "PhotoUploadResponse":
        return cls(success=False, message=message)

    def to_dict(self) -> Dict[str, Any]:
        if not self.success:
            return {"success": False, "message": self.message}
        return {
            "success": True,
            "message": self.message,
            "jobId": self.job_id,
            "photoId": self.photo_id,
            "tasks": list(self.tasks),
        }


class PhotoUploadService:
    """Validates and stores an uploaded photo, then publishes a job for it."""

    def __init__(self, publisher: JobPublisher, upload_dir: str = "uploads"):
        self.publisher = publisher
        self.upload_dir = upload_dir

    def validate(
        self, content_type: Optional[str], data: bytes, tasks: Sequence[ProcessingTask]
    ) -> None:
        if not data:
            raise ValidationFailure("File is empty")
        if not content_type or not content_type.startswith("image/"):
            raise ValidationFailure("File must be an image")
        if not tasks:
            raise ValidationFailure("At least one processing task is required")

    def upload_photo(
        self,
        filename: Optional[str],
        content_type: Optional[str],
        data: bytes,
        tasks: Sequence[ProcessingTask],
    ) -> PhotoUploadResponse:
        """
        Raises ValidationFailure for a rejected upload and PublishFailure when
        the photo was stored but its job could not be queued.
        """
        self.validate(content_type, data, tasks)

        photo_id = str(uuid.uuid4())
        try:
            upload_path = ensure_directory_exists(self.upload_dir)
            file_path = upload_path / f"{photo_id}{get_extension(filename)}"
            file_path.write_bytes(data)
        except OSError as e:
            logger.error("Failed to upload photo", exc_info=True)
            raise ValidationFailure(f"Failed to store photo: {e}") from e

        logger.info(f"Photo uploaded: photoId={photo_id}, path={file_path}")

        job = Job.create(photo_id, str(file_path), tasks)
        self.publisher.publish(job)
        return PhotoUploadResponse.accepted(job)
