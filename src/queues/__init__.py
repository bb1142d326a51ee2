"""
Redis Streams queues with pending-message reclaim and dead lettering.

Classes:
    BaseRedisQueue: Generic consumer-group queue over one stream
    StreamConfig: Stream and DLQ names for a queue
    QueueConfig: Reclaim and retry behavior
    SensorQueue: Device sensor payload stream
    SensorStreamConfig: SENSOR_STREAM_* settings
    ExponentialBackoff: Delay calculator shared by retry loops
"""

from src.queues.backoff import ExponentialBackoff
from src.queues.base import BaseRedisQueue, StreamConfig
from src.queues.config import QueueConfig, SensorStreamConfig
from src.queues.sensor_queue import SensorJob, SensorQueue

__all__ = [
    "BaseRedisQueue",
    "ExponentialBackoff",
    "QueueConfig",
    "SensorJob",
    "SensorQueue",
    "SensorStreamConfig",
    "StreamConfig",
]
