# photoflow/storage/base.py
from abc import ABC, abstractmethod
from typing import Optional

from photoflow.common.record import IdempotencyRecord


class IdempotencyStore(ABC):
    """
    Maps an idempotency key to the response produced for it.

    Keys are independent of each other. Implementations must be safe for
    concurrent use and must treat an expired record as absent.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[IdempotencyRecord]: ...

    @abstractmethod
    def put(
        self, key: str, record: IdempotencyRecord, ttl_seconds: int
    ) -> IdempotencyRecord: ...
