# photoflow/storage/redis_storage.py
import redis
import logging
from dataclasses import replace
from datetime import datetime, UTC, timedelta
from typing import Optional

from .base import IdempotencyStore
from ..common.record import IdempotencyRecord
from ..serialization.base import BaseSerializer
from ..serialization.json_serializer import JsonSerializer

logger = logging.getLogger(__name__)

KEY_PREFIX = "idempotency:"


class RedisIdempotencyStore(IdempotencyStore):
    """
    Store shared by every API instance. Expiry is left to Redis, so a record
    disappears on its own once the TTL passes.
    """

    def __init__(
        self,
        connection_pool=None,
        redis_client=None,
        serializer: Optional[BaseSerializer] = None,
    ):
        if redis_client:
            self.redis_client = redis_client
            if not getattr(self.redis_client, "decode_responses", False):
                self.redis_client = redis.Redis(
                    connection_pool=self.redis_client.connection_pool,
                    decode_responses=True,
                )
        elif connection_pool:
            self.redis_client = redis.Redis(
                connection_pool=connection_pool, decode_responses=True
            )
        else:
            self.redis_client = redis.Redis(
                host="localhost", port=6379, db=0, decode_responses=True
            )
        self.serializer = serializer or JsonSerializer()

    def _redis_key(self, key: str) -> str:
        return f"{KEY_PREFIX}{key}"

    def get(self, key: str) -> Optional[IdempotencyRecord]:
        with self.redis_client.pipeline() as pipe:
            pipe.get(self._redis_key(key))
            pipe.pttl(self._redis_key(key))
            value, pttl = pipe.execute()
        if value is None:
            return None

        record = self.serializer.deserialize_record(key, value)
        expires_at = None
        if pttl is not None and pttl >= 0:
            expires_at = datetime.now(UTC) + timedelta(milliseconds=pttl)
        return replace(record, expires_at=expires_at)

    def put(
        self, key: str, record: IdempotencyRecord, ttl_seconds: int
    ) -> IdempotencyRecord:
        redis_key = self._redis_key(key)
        self.redis_client.set(
            redis_key, self.serializer.serialize_record(record), ex=ttl_seconds
        )
        logger.info(
            f"Cached response in Redis: key={redis_key}, status={record.status_code}, ttl={ttl_seconds}s"
        )
        return replace(
            record, key=key, expires_at=datetime.now(UTC) + timedelta(seconds=ttl_seconds)
        )
