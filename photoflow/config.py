# photoflow/config.py
import logging
import os
from dataclasses import dataclass, fields
from typing import Mapping, Optional

import redis

from photoflow.broker.base import MessageBroker, QueueTopology
from photoflow.broker.memory_broker import MemoryBroker
from photoflow.broker.redis_broker import RedisBroker
from photoflow.storage.base import IdempotencyStore
from photoflow.storage.memory_storage import MemoryIdempotencyStore
from photoflow.storage.redis_storage import RedisIdempotencyStore
from photoflow.storage.sql_storage import SqlIdempotencyStore

ENV_PREFIX = "PHOTOFLOW_"


@dataclass(frozen=True)
class Settings:
    """
    Process configuration. Every field can be set from the environment as
    ``PHOTOFLOW_<FIELD_NAME>``, e.g. ``PHOTOFLOW_IDEMPOTENCY_TTL_SECONDS=600``.
    """

    store: str = "memory"  # memory | redis | sql
    broker: str = "memory"  # memory | redis
    redis_url: str = "redis://localhost:6379/0"
    database_url: str = "sqlite:///photoflow.db"

    idempotency_ttl_seconds: int = 3600
    idempotency_header: str = "X-Idempotency-Key"

    exchange: str = "photo.exchange"
    routing_key: str = "photo.process"
    queue: str = "photo.process"
    dead_letter_queue: str = "photo.process.dlq"

    upload_dir: str = "uploads"
    processed_dir: str = "processed"
    thumbnail_dir: str = "thumbnails"
    resize_width: int = 1024
    resize_height: int = 768
    thumbnail_width: int = 150
    thumbnail_height: int = 150
    watermark_path: str = "watermark.png"
    watermark_opacity: float = 0.5

    embedded_worker: bool = False
    log_level: str = "INFO"

    @property
    def topology(self) -> QueueTopology:
        return QueueTopology(
            exchange=self.exchange,
            routing_key=self.routing_key,
            queue=self.queue,
            dead_letter_queue=self.dead_letter_queue,
        )

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        environ = os.environ if environ is None else environ
        values = {}
        for f in fields(cls):
            raw = environ.get(f"{ENV_PREFIX}{f.name.upper()}")
            if raw is None:
                continue
            if f.type in (bool, "bool"):
                values[f.name] = raw.strip().lower() in ("1", "true", "yes", "on")
            elif f.type in (int, "int"):
                values[f.name] = int(raw)
            elif f.type in (float, "float"):
                values[f.name] = float(raw)
            else:
                values[f.name] = raw
        return cls(**values)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(threadName)s] %(name)s: %(message)s",
    )


def create_store(settings: Settings) -> IdempotencyStore:
    backend = settings.store.strip().lower()
    if backend == "memory":
        return MemoryIdempotencyStore()
    if backend == "redis":
        return RedisIdempotencyStore(
            redis_client=redis.Redis.from_url(settings.redis_url, decode_responses=True)
        )
    if backend == "sql":
        return SqlIdempotencyStore(connection_url=settings.database_url)
    raise ValueError("store must be 'memory', 'redis' or 'sql'")


def create_broker(settings: Settings) -> MessageBroker:
    backend = settings.broker.strip().lower()
    if backend == "memory":
        return MemoryBroker()
    if backend == "redis":
        return RedisBroker(
            redis_client=redis.Redis.from_url(settings.redis_url, decode_responses=True)
        )
    raise ValueError("broker must be 'memory' or 'redis'")
