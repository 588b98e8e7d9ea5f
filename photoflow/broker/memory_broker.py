# photoflow/broker/memory_broker.py
import logging
import time
import uuid
from collections import deque
from threading import RLock, Condition
from typing import Optional, List, Dict, Tuple

from photoflow.broker.base import MessageBroker, Delivery, DEAD_LETTER_ROUTING_KEY
from photoflow.common.exceptions import BrokerError

logger = logging.getLogger(__name__)


class MemoryBroker(MessageBroker):
    def __init__(self):
        self._queues: Dict[str, deque[str]] = {}
        self._queue_arguments: Dict[str, dict] = {}
        self._bindings: Dict[Tuple[str, str], List[str]] = {}
        self._exchanges: set = set()
        self._unacked: Dict[str, Delivery] = {}  # Messages handed to a consumer
        self._lock = RLock()
        self._condition = Condition(self._lock)

    def declare_queue(self, queue: str, arguments: Optional[dict] = None) -> None:
        with self._lock:
            existing = self._queue_arguments.get(queue)
            if arguments and existing and existing != arguments:
                raise BrokerError(
                    f"Queue {queue} is already declared with arguments {existing}"
                )
            self._queues.setdefault(queue, deque())
            if arguments or existing is None:
                # Redeclaring without arguments keeps the ones already set.
                self._queue_arguments[queue] = dict(arguments or {})

    def declare_exchange(self, exchange: str) -> None:
        with self._lock:
            self._exchanges.add(exchange)

    def bind(self, queue: str, exchange: str, routing_key: str) -> None:
        with self._lock:
            if exchange not in self._exchanges:
                raise BrokerError(f"Exchange {exchange} is not declared")
            if queue not in self._queues:
                raise BrokerError(f"Queue {queue} is not declared")
            targets = self._bindings.setdefault((exchange, routing_key), [])
            if queue not in targets:
                targets.append(queue)

    def publish(self, exchange: str, routing_key: str, body: str) -> None:
        with self._lock:
            if exchange == "":
                # The default exchange routes straight to the queue of that name.
                targets = [routing_key] if routing_key in self._queues else []
            else:
                if exchange not in self._exchanges:
                    raise BrokerError(f"Exchange {exchange} is not declared")
                targets = self._bindings.get((exchange, routing_key), [])
            if not targets:
                raise BrokerError(
                    f"Message to {exchange or '(default)'}/{routing_key} is unroutable"
                )
            for queue in targets:
                self._queues[queue].append(body)
            self._condition.notify_all()

    def consume(self, queue: str, timeout_seconds: float) -> Optional[Delivery]:
        deadline = time.monotonic() + max(timeout_seconds, 0)
        with self._condition:
            while True:
                messages = self._queues.get(queue)
                if messages:
                    delivery = Delivery(
                        queue=queue, body=messages.popleft(), delivery_tag=str(uuid.uuid4())
                    )
                    self._unacked[delivery.delivery_tag] = delivery
                    return delivery
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return None
                self._condition.wait(remaining)

    def ack(self, delivery: Delivery) -> None:
        with self._lock:
            self._unacked.pop(delivery.delivery_tag, None)

    def reject(self, delivery: Delivery) -> None:
        with self._lock:
            if self._unacked.pop(delivery.delivery_tag, None) is None:
                return
            dead_letter_queue = self._queue_arguments.get(delivery.queue, {}).get(
                DEAD_LETTER_ROUTING_KEY
            )
            if dead_letter_queue and dead_letter_queue in self._queues:
                self._queues[dead_letter_queue].append(delivery.body)
                self._condition.notify_all()
            else:
                logger.warning(f"Queue {delivery.queue} has no dead-letter queue; message dropped.")

    def queue_length(self, queue: str) -> int:
        with self._lock:
            return len(self._queues.get(queue, ()))

    def peek(self, queue: str, limit: int = 100) -> List[str]:
        if limit <= 0:
            return []
        with self._lock:
            return list(self._queues.get(queue, ()))[:limit]

    def requeue_dead_letters(self, queue: str, limit: int = 100) -> int:
        with self._lock:
            dead_letter_queue = self._queue_arguments.get(queue, {}).get(
                DEAD_LETTER_ROUTING_KEY
            )
            dead_letters = self._queues.get(dead_letter_queue)
            if not dead_letters:
                return 0
            moved = 0
            while dead_letters and moved < limit:
                self._queues[queue].append(dead_letters.popleft())
                moved += 1
            self._condition.notify_all()
            return moved

    def recover_unacked(self, queue: str) -> int:
        with self._lock:
            stuck = [d for d in self._unacked.values() if d.queue == queue]
            for delivery in stuck:
                del self._unacked[delivery.delivery_tag]
                self._queues[queue].append(delivery.body)
            self._condition.notify_all()
            return len(stuck)

    def unacked_count(self) -> int:
        with self._lock:
            return len(self._unacked)
