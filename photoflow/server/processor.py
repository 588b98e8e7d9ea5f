# photoflow/server/processor.py
import logging
from typing import Optional

from photoflow.broker.base import Delivery, MessageBroker
from photoflow.common.exceptions import (
    MessageDecodeError,
    TaskExecutionFailure,
    UnknownTaskKind,
)
from photoflow.common.job import Job
from photoflow.common.states import (
    BaseState,
    CompletedState,
    DispatchingState,
    FailedState,
    ReceivedState,
)
from photoflow.execution.performer import perform_task
from photoflow.imaging.base import ImageService
from photoflow.serialization.base import BaseSerializer

logger = logging.getLogger(__name__)


class JobDispatcher:
    """Runs the tasks of a job, in order, against the image service."""

    def __init__(self, image_service: ImageService):
        self.image_service = image_service

    def dispatch(self, job: Job, on_state=None) -> None:
        logger.info(f"Received photo processing job: jobId={job.job_id}, photoId={job.photo_id}")
        for index, task in enumerate(job.tasks):
            if on_state:
                on_state(DispatchingState(index, str(task)))
            logger.info(f"Processing task {task} for photo: photoId={job.photo_id}")
            try:
                perform_task(self.image_service, job, task)
            except UnknownTaskKind:
                logger.error(
                    f"Unknown task {task!r}: jobId={job.job_id}, photoId={job.photo_id}"
                )
                raise
            except Exception as e:
                logger.error(
                    f"Task {task} failed: jobId={job.job_id}, photoId={job.photo_id}",
                    exc_info=True,
                )
                raise TaskExecutionFailure(
                    f"Task {task} failed for job {job.job_id}: {e}",
                    job_id=job.job_id,
                    task=str(task),
                ) from e
            logger.info(f"Completed task {task} for photo: photoId={job.photo_id}")
        logger.info(f"Completed photo processing job: jobId={job.job_id}")


class JobProcessor:
    """
    Takes one delivery through Received -> Dispatching(i) -> Completed | Failed.

    A job is acked only when every task succeeded. Anything else rejects the
    whole message, and the broker moves it to the dead-letter queue.
    """

    def __init__(
        self,
        delivery: Delivery,
        broker: MessageBroker,
        serializer: BaseSerializer,
        dispatcher: JobDispatcher,
    ):
        self.delivery = delivery
        self.broker = broker
        self.serializer = serializer
        self.dispatcher = dispatcher
        self.state: BaseState = ReceivedState()

    def _set_state(self, state: BaseState) -> None:
        logger.debug(f"Delivery {self.delivery.delivery_tag}: {self.state.name} -> {state.name}")
        self.state = state
        if state.is_final:
            logger.info(f"Delivery from {self.delivery.queue} finished: {state.serialize_data()}")

    def process(self) -> BaseState:
        job: Optional[Job] = None
        try:
            job = self.serializer.deserialize_job(self.delivery.body)
            self.dispatcher.dispatch(job, on_state=self._set_state)
        except (MessageDecodeError, TaskExecutionFailure) as e:
            task = getattr(e, "task", None)
            if job is None:
                logger.error(f"Rejecting undecodable message from {self.delivery.queue}: {e}")
            self._set_state(FailedState(type(e).__name__, str(e), task=task))
            self.broker.reject(self.delivery)
        else:
            self._set_state(CompletedState())
            self.broker.ack(self.delivery)
        return self.state
