# photoflow/storage/sql_storage.py
from __future__ import annotations

import logging
from dataclasses import replace
from datetime import UTC, datetime, timedelta
from typing import Callable, Optional

from sqlalchemy import (
    DateTime,
    Engine,
    Integer,
    LargeBinary,
    String,
    create_engine,
    delete,
    func,
    select,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, sessionmaker

from photoflow.common.record import IdempotencyRecord
from photoflow.storage.base import IdempotencyStore

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


class IdempotencyRecordModel(Base):
    __tablename__ = "photoflow_idempotency"

    key: Mapped[str] = mapped_column(String(255), primary_key=True)
    status_code: Mapped[int] = mapped_column(Integer)
    content_type: Mapped[str] = mapped_column(String(255), default="")
    body: Mapped[bytes] = mapped_column(LargeBinary, default=b"")
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True)


class SqlIdempotencyStore(IdempotencyStore):
    def __init__(
        self,
        connection_url: Optional[str] = None,
        engine: Optional[Engine] = None,
        create_tables: bool = True,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        if engine is None and connection_url is None:
            raise ValueError("connection_url or engine is required")
        self.engine = engine or create_engine(connection_url)
        self._session_factory = sessionmaker(bind=self.engine, expire_on_commit=False)
        self._clock = clock or (lambda: datetime.now(UTC))
        if create_tables:
            Base.metadata.create_all(self.engine)

    def _as_utc(self, value: datetime) -> datetime:
        # SQLite hands back naive datetimes even for timezone-aware columns.
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value

    def _record_from_model(self, model: IdempotencyRecordModel) -> IdempotencyRecord:
        return IdempotencyRecord(
            key=model.key,
            status_code=model.status_code,
            content_type=model.content_type or "",
            body=model.body or b"",
            expires_at=self._as_utc(model.expires_at),
        )

    def get(self, key: str) -> Optional[IdempotencyRecord]:
        with self._session_factory() as session:
            model = session.get(IdempotencyRecordModel, key)
            if model is None:
                return None
            record = self._record_from_model(model)
            now = self._clock()
            if record.is_expired(now):
                # A concurrent put may have refreshed the row since it was read.
                session.execute(
                    delete(IdempotencyRecordModel).where(
                        IdempotencyRecordModel.key == key,
                        IdempotencyRecordModel.expires_at <= now,
                    )
                )
                session.commit()
                return None
            return record

    def put(
        self, key: str, record: IdempotencyRecord, ttl_seconds: int
    ) -> IdempotencyRecord:
        expires_at = self._clock() + timedelta(seconds=ttl_seconds)
        with self._session_factory() as session:
            session.merge(
                IdempotencyRecordModel(
                    key=key,
                    status_code=record.status_code,
                    content_type=record.content_type or "",
                    body=record.body or b"",
                    expires_at=expires_at,
                )
            )
            session.commit()
        logger.info(f"Cached response: key={key}, status={record.status_code}, ttl={ttl_seconds}s")
        return replace(record, key=key, expires_at=expires_at)

    def purge_expired(self) -> int:
        with self._session_factory() as session:
            result = session.execute(
                delete(IdempotencyRecordModel).where(
                    IdempotencyRecordModel.expires_at <= self._clock()
                )
            )
            session.commit()
            return result.rowcount or 0

    def count(self) -> int:
        with self._session_factory() as session:
            return session.execute(
                select(func.count()).select_from(IdempotencyRecordModel)
            ).scalar_one()
