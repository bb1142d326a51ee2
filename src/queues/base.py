"""
Generic Redis Streams consumer-group queue.

Delivery is at-least-once:
- New entries are read with XREADGROUP and must be acknowledged.
- Entries a crashed consumer left unacknowledged are reclaimed with
  XAUTOCLAIM once idle for ``idle_timeout_ms``.
- Entries that cannot be parsed, or that were delivered more than
  ``max_delivery_attempts`` times, are copied to a dead letter stream and
  acknowledged so they stop circulating.

XAUTOCLAIM needs Redis 6.2+. On older servers reclaim is skipped with a
warning and only new entries are consumed.
"""

import asyncio
import logging
import time
import uuid
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from dataclasses import dataclass
from types import TracebackType
from typing import Generic, TypeVar

import redis.asyncio as redis

from src.observability.metrics import get_metrics
from src.queues.backoff import ExponentialBackoff
from src.queues.config import QueueConfig

logger = logging.getLogger(__name__)

T = TypeVar("T")

DLQ_MAX_LENGTH = 10_000


@dataclass
class StreamConfig:
    """
    Names and limits for one stream.

    Attributes:
        stream_name: Stream entries are published to.
        consumer_group: Group that shares the work.
        dlq_stream_name: Dead letter stream.
        max_stream_length: Approximate trim length on publish.
    """

    stream_name: str
    consumer_group: str
    dlq_stream_name: str
    max_stream_length: int = 50_000


class BaseRedisQueue(ABC, Generic[T]):
    """
    Consumer-group queue over a single Redis stream.

    Subclasses provide the stream names, a consumer name prefix, and the
    conversion from raw entry fields to a job object.

    A queue either owns its connection (built from ``redis_url`` on
    ``connect()``) or borrows an existing client, in which case ``close()``
    leaves the client open.

    Usage:
        async with MyQueue(redis_url) as queue:
            async for job in queue.consume():
                await handle(job)
                await queue.ack(job.message_id)
    """

    def __init__(
        self,
        redis_url: str | None = None,
        queue_config: QueueConfig | None = None,
        client: redis.Redis | None = None,
    ):
        if redis_url is None and client is None:
            raise ValueError("Either redis_url or client is required")
        self._redis_url = redis_url
        self._queue_config = queue_config or QueueConfig()

        self._redis: redis.Redis | None = client
        self._owns_client = client is None
        self._consumer_name: str | None = None
        self._stream_config: StreamConfig | None = None
        self._group_ready = False

    @abstractmethod
    def _parse_job(self, message_id: str, fields: dict[str, str]) -> T:
        """Convert raw entry fields to a job. Raise to dead-letter the entry."""
        ...

    @abstractmethod
    def _get_stream_config(self) -> StreamConfig:
        ...

    @abstractmethod
    def _get_consumer_prefix(self) -> str:
        ...

    @abstractmethod
    def _set_job_retry_count(self, job: T, retry_count: int) -> None:
        """Record how many earlier deliveries the job had."""
        ...

    async def connect(self) -> None:
        """Open the connection (if owned) and resolve stream names."""
        if self._redis is None:
            self._redis = redis.from_url(
                self._redis_url,
                encoding="utf-8",
                decode_responses=True,
            )
        self._stream_config = self._get_stream_config()
        self._consumer_name = f"{self._get_consumer_prefix()}_{uuid.uuid4().hex[:8]}"
        logger.info(
            f"Queue ready, consumer={self._consumer_name}, "
            f"stream={self._stream_config.stream_name}"
        )

    async def ensure_group(self) -> None:
        """Create the consumer group (and stream) if missing."""
        if self._group_ready:
            return
        try:
            await self.redis.xgroup_create(
                name=self.stream_config.stream_name,
                groupname=self.stream_config.consumer_group,
                id="0",
                mkstream=True,
            )
            logger.info(
                f"Created consumer group '{self.stream_config.consumer_group}' "
                f"on '{self.stream_config.stream_name}'"
            )
        except redis.ResponseError as e:
            if "BUSYGROUP" not in str(e):
                raise
        self._group_ready = True

    async def close(self) -> None:
        """Release the connection if this queue opened it."""
        if self._redis is not None and self._owns_client:
            await self._redis.close()
            self._redis = None
        self._group_ready = False

    async def __aenter__(self) -> "BaseRedisQueue[T]":
        await self.connect()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()

    @property
    def redis(self) -> redis.Redis:
        if self._redis is None:
            raise RuntimeError("Not connected to Redis. Call connect() first.")
        return self._redis

    @property
    def stream_config(self) -> StreamConfig:
        if self._stream_config is None:
            raise RuntimeError("Not connected. Call connect() first.")
        return self._stream_config

    async def add(self, fields: dict[str, str]) -> str:
        """Append an entry to the stream, trimming approximately."""
        message_id = await self.redis.xadd(
            name=self.stream_config.stream_name,
            fields=fields,
            maxlen=self.stream_config.max_stream_length,
            approximate=True,
        )
        return str(message_id)

    async def consume(
        self,
        count: int = 10,
        block_ms: int = 5000,
    ) -> AsyncIterator[T]:
        """
        Yield jobs until cancelled.

        Each iteration first drains reclaimable pending entries, then
        blocks for new ones. Redis errors pause the loop with exponential
        backoff instead of ending it.

        Args:
            count: Maximum entries fetched per call.
            block_ms: XREADGROUP block time in milliseconds.
        """
        if self._consumer_name is None:
            raise RuntimeError("Not connected. Call connect() first.")
        await self.ensure_group()

        backoff = ExponentialBackoff(
            base_delay=self._queue_config.backoff_base_delay,
            max_delay=self._queue_config.backoff_max_delay,
        )

        while True:
            try:
                async for job in self._reclaim_pending(count):
                    yield job

                response = await self.redis.xreadgroup(
                    groupname=self.stream_config.consumer_group,
                    consumername=self._consumer_name,
                    streams={self.stream_config.stream_name: ">"},
                    count=count,
                    block=block_ms,
                )
                backoff.reset()
                if not response:
                    continue

                for _stream, entries in response:
                    for msg_id, fields in entries:
                        job = await self._parse_or_dead_letter(msg_id, fields)
                        if job is None:
                            continue
                        self._set_job_retry_count(job, 0)
                        yield job

            except asyncio.CancelledError:
                logger.info("Consumer cancelled, stopping")
                break
            except redis.RedisError as e:
                delay = backoff.next_delay()
                logger.error(
                    f"Error consuming from {self.stream_config.stream_name}: {e}; "
                    f"retrying in {delay:.1f}s"
                )
                await asyncio.sleep(delay)

    async def _parse_or_dead_letter(
        self, msg_id: str, fields: dict[str, str]
    ) -> T | None:
        try:
            return self._parse_job(msg_id, fields)
        except Exception as e:
            logger.error(f"Unparseable message {msg_id}: {e}")
            await self._move_to_dlq(msg_id, fields, f"parse_error: {e}")
            await self.ack(msg_id)
            return None

    async def _reclaim_pending(self, count: int) -> AsyncIterator[T]:
        """
        Claim entries idle longer than ``idle_timeout_ms``.

        Entries past ``max_delivery_attempts`` are dead-lettered; the
        rest are yielded again with their retry count set.
        """
        metrics = get_metrics()
        queue_name = self.stream_config.stream_name

        try:
            # [next_start_id, [(msg_id, fields), ...], [deleted_ids]]
            result = await self.redis.xautoclaim(
                name=queue_name,
                groupname=self.stream_config.consumer_group,
                consumername=self._consumer_name,
                min_idle_time=self._queue_config.idle_timeout_ms,
                start_id="0-0",
                count=min(count, self._queue_config.reclaim_batch_size),
            )
        except redis.ResponseError as e:
            if "unknown command" in str(e).lower():
                logger.warning("XAUTOCLAIM unavailable (Redis < 6.2), skipping reclaim")
            else:
                logger.error(f"Error reclaiming pending messages: {e}")
            return

        claimed = result[1] if result and len(result) > 1 else []
        if not claimed:
            return

        logger.info(f"Reclaimed {len(claimed)} pending messages from {queue_name}")
        delivery_counts = await self._get_delivery_counts([msg_id for msg_id, _ in claimed])

        for msg_id, fields in claimed:
            deliveries = delivery_counts.get(msg_id, 1)
            if deliveries > self._queue_config.max_delivery_attempts:
                logger.warning(
                    f"Message {msg_id} delivered {deliveries} times "
                    f"(max {self._queue_config.max_delivery_attempts}), moving to DLQ"
                )
                await self._move_to_dlq(msg_id, fields, "max_retries_exceeded")
                await self.ack(msg_id)
                metrics.dlq_max_retries.labels(queue=queue_name).inc()
                continue

            job = await self._parse_or_dead_letter(msg_id, fields)
            if job is None:
                continue
            self._set_job_retry_count(job, deliveries - 1)
            metrics.pending_reclaimed.labels(queue=queue_name).inc()
            yield job

    async def _get_delivery_counts(self, message_ids: list[str]) -> dict[str, int]:
        """Look up ``times_delivered`` for pending entries via XPENDING."""
        if not message_ids:
            return {}
        wanted = set(message_ids)
        try:
            pending = await self.redis.xpending_range(
                name=self.stream_config.stream_name,
                groupname=self.stream_config.consumer_group,
                min="-",
                max="+",
                count=len(message_ids) * 2,
            )
        except redis.RedisError as e:
            logger.error(f"Error getting delivery counts: {e}")
            return {msg_id: 1 for msg_id in message_ids}

        return {
            info["message_id"]: info["times_delivered"]
            for info in pending
            if info["message_id"] in wanted
        }

    async def ack(self, message_id: str) -> None:
        await self.redis.xack(
            self.stream_config.stream_name,
            self.stream_config.consumer_group,
            message_id,
        )
        logger.debug(f"Acknowledged message {message_id}")

    async def nack(
        self,
        message_id: str,
        error: str | None = None,
        fields: dict[str, str] | None = None,
    ) -> None:
        """
        Dead-letter a message and acknowledge it.

        Args:
            message_id: The failed entry.
            error: Reason recorded on the DLQ entry.
            fields: Original entry fields; read back from the stream when
                not supplied.
        """
        if fields is None:
            entries = await self.redis.xrange(
                self.stream_config.stream_name,
                min=message_id,
                max=message_id,
            )
            fields = entries[0][1] if entries else {}
        await self._move_to_dlq(message_id, fields, error)
        await self.ack(message_id)

    async def _move_to_dlq(
        self,
        original_id: str,
        fields: dict[str, str],
        error: str | None,
    ) -> None:
        await self.redis.xadd(
            self.stream_config.dlq_stream_name,
            {
                **fields,
                "original_id": original_id,
                "error": error or "unknown",
                "failed_at": str(time.time()),
            },
            maxlen=DLQ_MAX_LENGTH,
        )
        logger.warning(f"Moved message {original_id} to DLQ: {error}")
