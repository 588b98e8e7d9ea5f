# photoflow/publisher.py
import logging
from typing import Optional

import redis

from .broker.base import MessageBroker, QueueTopology
from .common.exceptions import BrokerError, PublishFailure
from .common.job import Job
from .serialization.base import BaseSerializer
from .serialization.json_serializer import JsonSerializer

logger = logging.getLogger(__name__)


class JobPublisher:
    """
    Hands jobs to the broker for asynchronous processing.

    Publishing is fail-fast: there is no retry here, a broker that cannot take
    the message surfaces as PublishFailure to the caller.
    """

    def __init__(
        self,
        broker: MessageBroker,
        topology: Optional[QueueTopology] = None,
        serializer: Optional[BaseSerializer] = None,
    ):
        self.broker = broker
        self.topology = topology or QueueTopology()
        self.serializer = serializer or JsonSerializer()

    def publish(self, job: Job) -> str:
        logger.info(f"Sending photo processing job: jobId={job.job_id}, photoId={job.photo_id}")
        body = self.serializer.serialize_job(job)
        try:
            self.broker.publish(self.topology.exchange, self.topology.routing_key, body)
        except (BrokerError, redis.exceptions.RedisError) as e:
            logger.error(f"Failed to publish job {job.job_id}.", exc_info=True)
            raise PublishFailure(f"Could not publish job {job.job_id}: {e}") from e
        logger.info(f"Photo processing job sent successfully: jobId={job.job_id}")
        return job.job_id
