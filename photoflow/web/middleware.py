# photoflow/web/middleware.py
"""
Request middleware for the PhotoFlow API.

Both classes are plain ASGI middleware: each one gets the request, may answer
it on its own, or calls the next stage and sees its response on the way back.
"""

from __future__ import annotations

import logging
import time
from typing import Iterable, List, Optional

from starlette.concurrency import run_in_threadpool
from starlette.datastructures import Headers
from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from photoflow.common.exceptions import MissingIdempotencyKey
from photoflow.common.record import IdempotencyRecord
from photoflow.storage.base import IdempotencyStore

logger = logging.getLogger(__name__)

IDEMPOTENCY_KEY_HEADER = "X-Idempotency-Key"
NON_IDEMPOTENT_METHODS = frozenset({"POST", "PUT", "PATCH"})
DEFAULT_TTL_SECONDS = 3600


class _ResponseCapture:
    """Buffers a downstream response so it can be cached before it is sent."""

    def __init__(self, send: Send):
        self._send = send
        self.start_message: Optional[Message] = None
        self.body_parts: List[bytes] = []

    async def __call__(self, message: Message) -> None:
        if message["type"] == "http.response.start":
            self.start_message = message
        elif message["type"] == "http.response.body":
            self.body_parts.append(message.get("body", b""))
        else:
            await self._send(message)

    @property
    def status_code(self) -> int:
        return self.start_message["status"]

    @property
    def content_type(self) -> str:
        headers = Headers(raw=self.start_message.get("headers", []))
        return headers.get("content-type", "")

    @property
    def body(self) -> bytes:
        return b"".join(self.body_parts)

    async def forward(self) -> None:
        await self._send(self.start_message)
        await self._send({"type": "http.response.body", "body": self.body, "more_body": False})


class IdempotencyMiddleware:
    """
    Replays the stored response for a repeated idempotency key.

    Only POST, PUT and PATCH are inspected; other methods go straight through
    without touching the store. A mutating request without a key is refused
    with 400. On a miss the handler runs once, and whatever response it
    produces is stored for ``ttl_seconds`` before being sent. Two requests with
    the same fresh key that race each other may both reach the handler.
    """

    def __init__(
        self,
        app: ASGIApp,
        store: IdempotencyStore,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        header_name: str = IDEMPOTENCY_KEY_HEADER,
        methods: Iterable[str] = NON_IDEMPOTENT_METHODS,
    ) -> None:
        self.app = app
        self.store = store
        self.ttl_seconds = ttl_seconds
        self.header_name = header_name
        self.methods = frozenset(m.upper() for m in methods)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or scope["method"].upper() not in self.methods:
            await self.app(scope, receive, send)
            return

        try:
            key = self._idempotency_key(scope)
        except MissingIdempotencyKey as e:
            logger.warning(
                f"Missing required {self.header_name} header for {scope['method']} {scope['path']}"
            )
            response = JSONResponse({"error": str(e)}, status_code=400)
            await response(scope, receive, send)
            return

        record = await run_in_threadpool(self.store.get, key)
        if record is not None:
            logger.info(f"Returning cached response for idempotency key: {key}")
            await self._replay(record, send)
            return

        capture = _ResponseCapture(send)
        await self.app(scope, receive, capture)
        if capture.start_message is None:
            return

        record = IdempotencyRecord(
            key=key,
            status_code=capture.status_code,
            content_type=capture.content_type,
            body=capture.body,
        )
        await run_in_threadpool(self.store.put, key, record, self.ttl_seconds)
        await capture.forward()

    def _idempotency_key(self, scope: Scope) -> str:
        key = Headers(scope=scope).get(self.header_name)
        if key is None or not key.strip():
            raise MissingIdempotencyKey(f"Missing required header: {self.header_name}")
        return key

    async def _replay(self, record: IdempotencyRecord, send: Send) -> None:
        body = record.body or b""
        headers = [(b"content-length", str(len(body)).encode("latin-1"))]
        if record.content_type:
            headers.append((b"content-type", record.content_type.encode("latin-1")))
        await send(
            {"type": "http.response.start", "status": record.status_code, "headers": headers}
        )
        await send({"type": "http.response.body", "body": body, "more_body": False})


class RequestLoggingMiddleware:
    """Logs the start, end and duration of every HTTP request."""

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        method, path = scope["method"], scope["path"]
        status = {"code": None}

        async def send_wrapper(message: Message) -> None:
            if message["type"] == "http.response.start":
                status["code"] = message["status"]
            await send(message)

        logger.info(f"START: {method} {path}")
        start_time = time.perf_counter()
        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            elapsed_ms = (time.perf_counter() - start_time) * 1000
            logger.info(f"END: {method} {path} -> {status['code']}")
            logger.info(f"PERFORMANCE: {method} {path} executed in {elapsed_ms:.0f} ms")
