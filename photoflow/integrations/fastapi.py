"""FastAPI integration helpers for PhotoFlow."""

from __future__ import annotations

import threading
from typing import Optional

from fastapi import FastAPI

from photoflow.broker.base import MessageBroker
from photoflow.server.processor import JobDispatcher
from photoflow.server.worker import Worker


class PhotoFlowFastAPIPlugin:
    """Runs a job worker in a background thread for the lifetime of the app."""

    def __init__(self, app: FastAPI, broker: MessageBroker):
        self.app = app
        self.broker = broker
        self.worker: Optional[Worker] = None
        self._worker_thread: Optional[threading.Thread] = None

        app.state.photoflow_plugin = self

    def run_worker_in_background(
        self, dispatcher: JobDispatcher, **worker_options
    ) -> "PhotoFlowFastAPIPlugin":
        self.worker = Worker(self.broker, dispatcher, **worker_options)
        self._worker_thread = threading.Thread(
            target=self.worker.run, name="photoflow-worker", daemon=True
        )
        return self

    async def startup(self) -> None:
        if self._worker_thread and not self._worker_thread.is_alive():
            self._worker_thread.start()

    async def shutdown(self) -> None:
        if self.worker:
            self.worker.stop()
        if self._worker_thread and self._worker_thread.is_alive():
            self._worker_thread.join(timeout=10)


def add_photoflow_to_fastapi(app: FastAPI, broker: MessageBroker) -> PhotoFlowFastAPIPlugin:
    return PhotoFlowFastAPIPlugin(app, broker)
