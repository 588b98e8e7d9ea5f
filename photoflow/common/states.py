# photoflow/common/states.py

from datetime import datetime, UTC
from typing import Dict, Any, Optional


class BaseState:
    """A step of the lifecycle of one broker message carrying a job."""

    NAME = "base"

    def __init__(self, created_at: datetime = None):
        self.created_at = created_at or datetime.now(UTC)

    @property
    def name(self) -> str:
        return self.NAME

    @property
    def is_final(self) -> bool:
        return False

    def serialize_data(self) -> Dict[str, Any]:
        return {"created_at": self.created_at.isoformat()}


class ReceivedState(BaseState):
    NAME = "Received"


class DispatchingState(BaseState):
    NAME = "Dispatching"

    def __init__(self, task_index: int, task: str, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.task_index = task_index
        self.task = task

    def serialize_data(self) -> Dict[str, Any]:
        data = super().serialize_data()
        data.update({"task_index": self.task_index, "task": self.task})
        return data


class CompletedState(BaseState):
    NAME = "Completed"

    @property
    def is_final(self) -> bool:
        return True


class FailedState(BaseState):
    NAME = "Failed"

    def __init__(
        self,
        exception_type: str,
        exception_message: str,
        task: Optional[str] = None,
        *args,
        **kwargs,
    ):
        super().__init__(*args, **kwargs)
        self.exception_type = exception_type
        self.exception_message = exception_message
        self.task = task

    @property
    def is_final(self) -> bool:
        return True

    def serialize_data(self) -> Dict[str, Any]:
        data = super().serialize_data()
        data.update(
            {
                "exception_type": self.exception_type,
                "exception_message": self.exception_message,
                "task": self.task,
            }
        )
        return data
