# photoflow/common/exceptions.py


class PhotoFlowException(Exception):
    """Base exception for the PhotoFlow library."""

    pass


class MissingIdempotencyKey(PhotoFlowException):
    """Raised when a mutating request arrives without an idempotency key."""

    pass


class ValidationFailure(PhotoFlowException):
    """Raised when an uploaded photo or its parameters are rejected."""

    pass


class BrokerError(PhotoFlowException):
    """Raised by a message broker that cannot accept or route a message."""

    pass


class PublishFailure(PhotoFlowException):
    """Raised when a job cannot be handed to the broker."""

    pass


class MessageDecodeError(PhotoFlowException):
    """Raised when a broker message cannot be turned back into a job."""

    pass


class TaskExecutionFailure(PhotoFlowException):
    """Raised when a processing task of a job fails."""

    def __init__(self, message: str, job_id: str = None, task: str = None):
        super().__init__(message)
        self.job_id = job_id
        self.task = task


class UnknownTaskKind(TaskExecutionFailure):
    """Raised for a task name outside RESIZE, WATERMARK and THUMBNAIL."""

    pass


class ImageProcessingError(PhotoFlowException):
    """Raised when an image operation fails."""

    pass
