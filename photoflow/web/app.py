# photoflow/web/app.py
"""FastAPI application factory for the PhotoFlow upload API."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from photoflow.broker.base import MessageBroker
from photoflow.common.exceptions import PublishFailure
from photoflow.config import Settings, create_broker, create_store
from photoflow.imaging.base import ImageService
from photoflow.imaging.pillow_service import PillowImageService
from photoflow.integrations.fastapi import add_photoflow_to_fastapi
from photoflow.publisher import JobPublisher
from photoflow.server.processor import JobDispatcher
from photoflow.storage.base import IdempotencyStore
from photoflow.upload import PhotoUploadResponse, PhotoUploadService
from photoflow.web.middleware import IdempotencyMiddleware, RequestLoggingMiddleware
from photoflow.web.routes import router

logger = logging.getLogger(__name__)


async def _unhandled_error(request: Request, exc: Exception) -> JSONResponse:
    # Runs outside the idempotency middleware, so these responses are never cached.
    if isinstance(exc, PublishFailure):
        body = PhotoUploadResponse.error("Failed to queue photo for processing")
        return JSONResponse(body.to_dict(), status_code=503)
    logger.error(f"Unhandled error for {request.method} {request.url.path}", exc_info=exc)
    return JSONResponse({"success": False, "message": "Internal server error"}, status_code=500)


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[IdempotencyStore] = None,
    broker: Optional[MessageBroker] = None,
    image_service: Optional[ImageService] = None,
) -> FastAPI:
    """Create the upload API.

    Args:
        settings: Process configuration; read from the environment when omitted.
        store: Idempotency store, built from ``settings.store`` when omitted.
        broker: Message broker, built from ``settings.broker`` when omitted.
        image_service: Used by the embedded worker, if ``settings.embedded_worker``.

    Returns:
        A FastAPI application.
    """
    settings = settings or Settings.from_env()
    if store is None:
        store = create_store(settings)
    if broker is None:
        broker = create_broker(settings)
    broker.declare_topology(settings.topology)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await plugin.startup()
        try:
            yield
        finally:
            await plugin.shutdown()

    app = FastAPI(title="PhotoFlow", lifespan=lifespan)
    plugin = add_photoflow_to_fastapi(app, broker)
    if settings.embedded_worker:
        dispatcher = JobDispatcher(image_service or PillowImageService.from_settings(settings))
        plugin.run_worker_in_background(dispatcher, queue=settings.queue)

    publisher = JobPublisher(broker, settings.topology)
    app.state.settings = settings
    app.state.store = store
    app.state.broker = broker
    app.state.publisher = publisher
    app.state.upload_service = PhotoUploadService(publisher, upload_dir=settings.upload_dir)

    app.include_router(router)

    # Last added runs first: the idempotency check wraps request logging.
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        IdempotencyMiddleware,
        store=store,
        ttl_seconds=settings.idempotency_ttl_seconds,
        header_name=settings.idempotency_header,
    )
    app.add_exception_handler(Exception, _unhandled_error)
    return app
