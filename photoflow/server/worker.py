# photoflow/server/worker.py
import logging
import time
import uuid
from typing import Optional

from photoflow.broker.base import MessageBroker, QueueTopology
from photoflow.common.states import BaseState
from photoflow.serialization.base import BaseSerializer
from photoflow.serialization.json_serializer import JsonSerializer
from photoflow.server.processor import JobDispatcher, JobProcessor

logger = logging.getLogger(__name__)


class Worker:
    """Consumes jobs from one queue, processing one job at a time to completion."""

    def __init__(
        self,
        broker: MessageBroker,
        dispatcher: JobDispatcher,
        serializer: BaseSerializer = None,
        queue: Optional[str] = None,
        poll_timeout: float = 1.0,
    ):
        self.broker = broker
        self.dispatcher = dispatcher
        self.serializer = serializer or JsonSerializer()
        self.queue = queue or QueueTopology().queue
        self.poll_timeout = poll_timeout
        self.worker_id = f"worker:{uuid.uuid4()}"
        self._shutdown_requested = False

    def process_next(self, timeout_seconds: Optional[float] = None) -> Optional[BaseState]:
        """Processes a single delivery; returns its final state, or None if the queue was empty."""
        timeout = self.poll_timeout if timeout_seconds is None else timeout_seconds
        delivery = self.broker.consume(self.queue, timeout_seconds=timeout)
        if delivery is None:
            return None
        logger.debug(f"[{self.worker_id}] Picked up delivery {delivery.delivery_tag}")
        processor = JobProcessor(delivery, self.broker, self.serializer, self.dispatcher)
        return processor.process()

    def stop(self) -> None:
        self._shutdown_requested = True

    def run(self):
        """Starts the worker's processing loop."""
        logger.info(f"[{self.worker_id}] Starting worker for queue: {self.queue}")
        while not self._shutdown_requested:
            try:
                self.process_next()
            except KeyboardInterrupt:
                logger.info(f"[{self.worker_id}] Shutdown requested...")
                self._shutdown_requested = True
            except Exception:
                logger.error(f"[{self.worker_id}] Unhandled exception in worker loop.", exc_info=True)
                time.sleep(5)  # Cooldown period after a major failure

        logger.info(f"[{self.worker_id}] Worker has stopped.")
