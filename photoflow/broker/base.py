# photoflow/broker/base.py
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional

DEAD_LETTER_ROUTING_KEY = "x-dead-letter-routing-key"


@dataclass(frozen=True)
class QueueTopology:
    """
    A durable work queue bound to a direct exchange, with failed messages
    dead-lettered to a second durable queue.
    """

    exchange: str = "photo.exchange"
    routing_key: str = "photo.process"
    queue: str = "photo.process"
    dead_letter_queue: str = "photo.process.dlq"

    @property
    def queue_arguments(self) -> dict:
        return {DEAD_LETTER_ROUTING_KEY: self.dead_letter_queue}


@dataclass(frozen=True)
class Delivery:
    """A message handed to a consumer and not yet acked or rejected."""

    queue: str
    body: str
    delivery_tag: str


class MessageBroker(ABC):
    @abstractmethod
    def declare_queue(self, queue: str, arguments: Optional[dict] = None) -> None: ...

    @abstractmethod
    def declare_exchange(self, exchange: str) -> None: ...

    @abstractmethod
    def bind(self, queue: str, exchange: str, routing_key: str) -> None: ...

    @abstractmethod
    def publish(self, exchange: str, routing_key: str, body: str) -> None:
        """Returns once the broker holds the message; raises BrokerError otherwise."""

    @abstractmethod
    def consume(self, queue: str, timeout_seconds: float) -> Optional[Delivery]: ...

    @abstractmethod
    def ack(self, delivery: Delivery) -> None: ...

    @abstractmethod
    def reject(self, delivery: Delivery) -> None:
        """Drops the message, routing it to the queue's dead-letter queue if any."""

    @abstractmethod
    def queue_length(self, queue: str) -> int: ...

    @abstractmethod
    def peek(self, queue: str, limit: int = 100) -> List[str]: ...

    @abstractmethod
    def requeue_dead_letters(self, queue: str, limit: int = 100) -> int: ...

    @abstractmethod
    def recover_unacked(self, queue: str) -> int: ...

    def declare_topology(self, topology: QueueTopology) -> None:
        self.declare_queue(topology.dead_letter_queue)
        self.declare_queue(topology.queue, arguments=topology.queue_arguments)
        self.declare_exchange(topology.exchange)
        self.bind(topology.queue, topology.exchange, topology.routing_key)
