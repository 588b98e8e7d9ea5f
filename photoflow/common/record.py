# photoflow/common/record.py
from dataclasses import dataclass
from datetime import datetime, UTC
from typing import Optional


@dataclass(frozen=True)
class IdempotencyRecord:
    """The response produced for an idempotency key, replayed on retries."""

    key: str
    status_code: int
    content_type: str = ""
    body: bytes = b""

    # Stamped by the store when the record is saved.
    expires_at: Optional[datetime] = None

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        if self.expires_at is None:
            return False
        return (now or datetime.now(UTC)) >= self.expires_at
