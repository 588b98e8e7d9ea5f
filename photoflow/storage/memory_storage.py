# photoflow/storage/memory_storage.py
from dataclasses import replace
from datetime import datetime, UTC, timedelta
from threading import RLock
from typing import Callable, Optional, Dict

from photoflow.storage.base import IdempotencyStore
from photoflow.common.record import IdempotencyRecord


class MemoryIdempotencyStore(IdempotencyStore):
    """Single-process store; records do not survive a restart."""

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        self._records: Dict[str, IdempotencyRecord] = {}
        self._lock = RLock()
        self._clock = clock or (lambda: datetime.now(UTC))

    def get(self, key: str) -> Optional[IdempotencyRecord]:
        with self._lock:
            record = self._records.get(key)
            if record is None:
                return None
            if record.is_expired(self._clock()):
                del self._records[key]
                return None
            return record

    def put(
        self, key: str, record: IdempotencyRecord, ttl_seconds: int
    ) -> IdempotencyRecord:
        stored = replace(
            record, key=key, expires_at=self._clock() + timedelta(seconds=ttl_seconds)
        )
        with self._lock:
            self._records[key] = stored
        return stored

    def sweep(self) -> int:
        """Evicts every expired record and returns how many were removed."""
        now = self._clock()
        with self._lock:
            expired = [k for k, r in self._records.items() if r.is_expired(now)]
            for key in expired:
                del self._records[key]
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
