# photoflow/broker/redis_broker.py
import redis
import logging
import math
from typing import Optional, List

from .base import MessageBroker, Delivery, DEAD_LETTER_ROUTING_KEY
from ..common.exceptions import BrokerError

logger = logging.getLogger(__name__)


class RedisBroker(MessageBroker):
    """
    Broker on top of Redis lists.

    A queue is a list that producers LPUSH onto and consumers BRPOPLPUSH from
    into ``<queue>:processing``, where the message stays until it is acked or
    rejected. Exchange bindings and queue arguments live in Redis as well, so
    every producer and consumer process sees the same topology.
    """

    def __init__(self, connection_pool=None, redis_client=None):
        if redis_client:
            self.redis_client = redis_client
            if not getattr(self.redis_client, "decode_responses", False):
                self.redis_client = redis.Redis(
                    connection_pool=self.redis_client.connection_pool,
                    decode_responses=True,
                )
        elif connection_pool:
            self.redis_client = redis.Redis(
                connection_pool=connection_pool, decode_responses=True
            )
        else:
            self.redis_client = redis.Redis(
                host="localhost", port=6379, db=0, decode_responses=True
            )

    def _queue_key(self, queue: str) -> str:
        return f"photoflow:queue:{queue}"

    def _processing_key(self, queue: str) -> str:
        return f"photoflow:queue:{queue}:processing"

    def _arguments_key(self, queue: str) -> str:
        return f"photoflow:queue:{queue}:arguments"

    def _binding_key(self, exchange: str, routing_key: str) -> str:
        return f"photoflow:exchange:{exchange}:binding:{routing_key}"

    def _dead_letter_queue(self, queue: str) -> Optional[str]:
        return self.redis_client.hget(self._arguments_key(queue), DEAD_LETTER_ROUTING_KEY)

    def declare_queue(self, queue: str, arguments: Optional[dict] = None) -> None:
        arguments = {k: str(v) for k, v in (arguments or {}).items()}
        existing = self.redis_client.hgetall(self._arguments_key(queue))
        if arguments and existing and existing != arguments:
            raise BrokerError(f"Queue {queue} is already declared with arguments {existing}")
        with self.redis_client.pipeline() as pipe:
            pipe.sadd("photoflow:queues", queue)
            # Redeclaring without arguments keeps the ones already set.
            if arguments:
                pipe.hset(self._arguments_key(queue), mapping=arguments)
            pipe.execute()

    def declare_exchange(self, exchange: str) -> None:
        self.redis_client.sadd("photoflow:exchanges", exchange)

    def bind(self, queue: str, exchange: str, routing_key: str) -> None:
        if not self.redis_client.sismember("photoflow:exchanges", exchange):
            raise BrokerError(f"Exchange {exchange} is not declared")
        if not self.redis_client.sismember("photoflow:queues", queue):
            raise BrokerError(f"Queue {queue} is not declared")
        self.redis_client.sadd(self._binding_key(exchange, routing_key), queue)

    def publish(self, exchange: str, routing_key: str, body: str) -> None:
        try:
            if exchange == "":
                is_queue = self.redis_client.sismember("photoflow:queues", routing_key)
                targets = [routing_key] if is_queue else []
            else:
                targets = sorted(
                    self.redis_client.smembers(self._binding_key(exchange, routing_key))
                )
            if not targets:
                raise BrokerError(
                    f"Message to {exchange or '(default)'}/{routing_key} is unroutable"
                )
            with self.redis_client.pipeline() as pipe:
                for queue in targets:
                    pipe.lpush(self._queue_key(queue), body)
                pipe.execute()
        except redis.exceptions.RedisError as e:
            raise BrokerError(f"Redis rejected message to {exchange}/{routing_key}: {e}") from e

    def consume(self, queue: str, timeout_seconds: float) -> Optional[Delivery]:
        if timeout_seconds <= 0:
            body = self.redis_client.rpoplpush(
                self._queue_key(queue), self._processing_key(queue)
            )
        else:
            body = self.redis_client.brpoplpush(
                self._queue_key(queue),
                self._processing_key(queue),
                timeout=math.ceil(timeout_seconds),
            )
        if body is None:
            return None
        return Delivery(queue=queue, body=body, delivery_tag=body)

    def ack(self, delivery: Delivery) -> None:
        self.redis_client.lrem(self._processing_key(delivery.queue), 1, delivery.delivery_tag)

    def reject(self, delivery: Delivery) -> None:
        dead_letter_queue = self._dead_letter_queue(delivery.queue)
        with self.redis_client.pipeline() as pipe:
            pipe.lrem(self._processing_key(delivery.queue), 1, delivery.delivery_tag)
            if dead_letter_queue:
                pipe.lpush(self._queue_key(dead_letter_queue), delivery.body)
            pipe.execute()
        if not dead_letter_queue:
            logger.warning(f"Queue {delivery.queue} has no dead-letter queue; message dropped.")

    def queue_length(self, queue: str) -> int:
        return self.redis_client.llen(self._queue_key(queue))

    def peek(self, queue: str, limit: int = 100) -> List[str]:
        if limit <= 0:
            return []
        # Oldest messages sit at the tail of the list.
        return list(reversed(self.redis_client.lrange(self._queue_key(queue), -limit, -1)))

    def requeue_dead_letters(self, queue: str, limit: int = 100) -> int:
        dead_letter_queue = self._dead_letter_queue(queue)
        if not dead_letter_queue:
            return 0
        moved = 0
        while moved < limit:
            body = self.redis_client.rpoplpush(
                self._queue_key(dead_letter_queue), self._queue_key(queue)
            )
            if body is None:
                break
            moved += 1
        return moved

    def recover_unacked(self, queue: str) -> int:
        moved = 0
        while self.redis_client.rpoplpush(
            self._processing_key(queue), self._queue_key(queue)
        ) is not None:
            moved += 1
        return moved
