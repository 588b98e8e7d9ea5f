from .common.job import Job, ProcessingTask
from .config import Settings, configure_logging, create_broker, create_store
from .publisher import JobPublisher
from .server.processor import JobDispatcher, JobProcessor
from .server.worker import Worker
from .upload import PhotoUploadService

__all__ = [
    "Job",
    "JobDispatcher",
    "JobProcessor",
    "JobPublisher",
    "PhotoUploadService",
    "ProcessingTask",
    "Settings",
    "Worker",
    "configure_logging",
    "create_broker",
    "create_store",
]
