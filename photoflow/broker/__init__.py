from .base import MessageBroker, QueueTopology, Delivery
from .memory_broker import MemoryBroker
from .redis_broker import RedisBroker

__all__ = ["MessageBroker", "QueueTopology", "Delivery", "MemoryBroker", "RedisBroker"]
