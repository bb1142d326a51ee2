"""
Redis Streams queue carrying device sensor payloads.

Each entry holds one JSON document in the ``data`` field, either a
multi-sensor batch or a device-reported alert. Entries whose field is
missing or is not valid JSON are dead-lettered at parse time; shape
validation happens downstream in the consumer.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any

import redis.asyncio as redis

from src.config.settings import get_settings
from src.queues.base import BaseRedisQueue, StreamConfig
from src.queues.config import SensorStreamConfig

logger = logging.getLogger(__name__)


@dataclass
class SensorJob:
    """One sensor stream entry."""

    message_id: str
    payload: Any
    fields: dict[str, str] = field(default_factory=dict)
    retry_count: int = 0


class SensorQueue(BaseRedisQueue[SensorJob]):
    """
    Publish and consume device sensor payloads.

    Usage:
        queue = SensorQueue()
        await queue.connect()

        await queue.publish({"temperature": 21.5, "mq2": 120, "sound": 40})

        async for job in queue.consume():
            ...
            await queue.ack(job.message_id)
    """

    def __init__(
        self,
        config: SensorStreamConfig | None = None,
        client: redis.Redis | None = None,
    ):
        self._config = config or SensorStreamConfig()
        super().__init__(
            redis_url=None if client is not None else str(get_settings().redis_url),
            queue_config=self._config.queue_config(),
            client=client,
        )

    @property
    def config(self) -> SensorStreamConfig:
        return self._config

    def _get_stream_config(self) -> StreamConfig:
        return StreamConfig(
            stream_name=self._config.name,
            consumer_group=self._config.consumer_group,
            dlq_stream_name=self._config.dlq_name,
            max_stream_length=self._config.max_stream_length,
        )

    def _get_consumer_prefix(self) -> str:
        return "sensor_worker"

    def _parse_job(self, message_id: str, fields: dict[str, str]) -> SensorJob:
        raw = fields.get(self._config.payload_field)
        if raw is None:
            raise ValueError(f"missing '{self._config.payload_field}' field")
        return SensorJob(
            message_id=message_id,
            payload=json.loads(raw),
            fields=dict(fields),
        )

    def _set_job_retry_count(self, job: SensorJob, retry_count: int) -> None:
        job.retry_count = retry_count

    async def publish(self, payload: dict[str, Any]) -> str:
        """
        Publish a sensor payload.

        Args:
            payload: JSON-serializable device message.

        Returns:
            Stream message ID.
        """
        message_id = await self.add({self._config.payload_field: json.dumps(payload)})
        logger.debug(f"Published sensor payload {message_id}")
        return message_id
