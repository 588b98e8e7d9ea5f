from .base import IdempotencyStore
from .memory_storage import MemoryIdempotencyStore
from .redis_storage import RedisIdempotencyStore
from .sql_storage import SqlIdempotencyStore

__all__ = [
    "IdempotencyStore",
    "MemoryIdempotencyStore",
    "RedisIdempotencyStore",
    "SqlIdempotencyStore",
]
