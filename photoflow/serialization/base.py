# photoflow/serialization/base.py
from abc import ABC, abstractmethod

from photoflow.common.job import Job
from photoflow.common.record import IdempotencyRecord


class BaseSerializer(ABC):
    @abstractmethod
    def serialize_job(self, job: Job) -> str: ...

    @abstractmethod
    def deserialize_job(self, data: str) -> Job: ...

    @abstractmethod
    def serialize_record(self, record: IdempotencyRecord) -> str: ...

    @abstractmethod
    def deserialize_record(self, key: str, data: str) -> IdempotencyRecord: ...
