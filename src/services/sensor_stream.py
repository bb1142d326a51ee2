"""
Sensor stream consumer - turns device messages into readings and alerts.

Runs as a standalone service that:
1. Consumes JSON payloads from the sensor stream
2. Validates the payload shape (multi-sensor batch or reported alert)
3. Runs the shared pipeline with the fallback recipient policy
4. Acknowledges successes; dead-letters rejected or partially failed
   messages with the error summary

Messages are handled concurrently up to ``SENSOR_STREAM_CONCURRENCY``.
"""

import asyncio
from enum import Enum

import structlog

from src.errors import ValidationError
from src.queues.backoff import ExponentialBackoff
from src.queues.sensor_queue import SensorJob, SensorQueue
from src.readings.messages import SensorBatchMessage, parse_sensor_message
from src.services.context import AppContext

logger = structlog.get_logger(__name__)


class MessageOutcome(str, Enum):
    """What the consumer did with one stream message."""

    ACKED = "acked"
    DEAD_LETTERED = "dead_lettered"
    RETRY = "retry"


class SensorStreamConsumer:
    """
    Consumes the sensor stream through the shared pipeline.

    A message is acknowledged only after every reading it carries has been
    stored and dispatched. Transient failures on the report path leave the
    message pending so the queue reclaims and redelivers it; after
    ``max_delivery_attempts`` it is dead-lettered by the queue.

    Usage:
        consumer = SensorStreamConsumer(context)
        await consumer.start()  # Runs until stopped
    """

    def __init__(
        self,
        context: AppContext,
        queue: SensorQueue | None = None,
    ):
        self._context = context
        self._config = context.stream_config
        self._queue = queue
        self._resolver = context.fallback_resolver()
        self._semaphore = asyncio.Semaphore(self._config.concurrency)
        self._in_flight: set[asyncio.Task] = set()
        self._consume_task: asyncio.Task | None = None
        self._running = False

        logger.info(
            "SensorStreamConsumer initialized",
            stream=self._config.name,
            concurrency=self._config.concurrency,
        )

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """
        Consume until stopped, reconnecting the queue on failures.

        Exits after ``worker_max_consecutive_failures`` consecutive errors
        or on cancellation.
        """
        self._running = True
        settings = self._context.settings
        backoff = ExponentialBackoff(
            base_delay=settings.worker_backoff_base_delay,
            max_delay=settings.worker_backoff_max_delay,
        )

        logger.info("Starting sensor stream consumer")

        while self._running:
            try:
                if self._queue is None:
                    self._queue = self._context.sensor_queue()
                await self._queue.connect()
                self._consume_task = asyncio.create_task(self._process_loop())
                try:
                    await self._consume_task
                finally:
                    self._consume_task = None
                if not self._running:
                    break
            except asyncio.CancelledError:
                logger.info("Sensor stream consumer cancelled")
                break
            except Exception as e:
                if backoff.attempt >= settings.worker_max_consecutive_failures:
                    logger.error(
                        "Sensor stream consumer exceeded max consecutive failures",
                        failures=backoff.attempt,
                        error=str(e),
                    )
                    raise
                delay = backoff.next_delay()
                logger.warning(
                    "Sensor stream consumer error, retrying",
                    error=str(e),
                    attempt=backoff.attempt,
                    retry_delay=round(delay, 1),
                )
                await asyncio.sleep(delay)
            else:
                backoff.reset()

        await self._drain()
        if self._queue is not None:
            await self._queue.close()

    async def stop(self) -> None:
        """
        Stop consuming; in-flight messages finish first.

        The read loop is cancelled so an idle stream does not hold the
        consumer inside a blocking XREADGROUP.
        """
        logger.info("Stopping sensor stream consumer")
        self._running = False
        task = self._consume_task
        if task is not None and task is not asyncio.current_task() and not task.done():
            task.cancel()

    async def _process_loop(self) -> None:
        assert self._queue is not None
        async for job in self._queue.consume(
            count=self._config.batch_size,
            block_ms=self._config.block_ms,
        ):
            if not self._running:
                break
            await self._semaphore.acquire()
            task = asyncio.create_task(self._handle_and_release(job))
            self._in_flight.add(task)
            task.add_done_callback(self._in_flight.discard)

    async def _drain(self) -> None:
        if self._in_flight:
            logger.info("Draining in-flight messages", count=len(self._in_flight))
            await asyncio.gather(*self._in_flight, return_exceptions=True)

    async def _handle_and_release(self, job: SensorJob) -> None:
        try:
            await self.handle(job)
        except Exception as e:
            logger.error(
                "Unhandled error processing sensor message",
                message_id=job.message_id,
                error=str(e),
            )
        finally:
            self._semaphore.release()

    async def handle(self, job: SensorJob) -> MessageOutcome:
        """
        Process one stream message and settle it with the queue.

        Returns:
            The outcome recorded for the message.
        """
        assert self._queue is not None
        log = logger.bind(message_id=job.message_id, retry_count=job.retry_count)

        try:
            message = parse_sensor_message(job.payload)
        except ValidationError as e:
            log.warning("Rejected sensor message", errors=[v.to_dict() for v in e.violations])
            await self._queue.nack(job.message_id, f"validation_error: {e}", fields=job.fields)
            return MessageOutcome.DEAD_LETTERED

        if isinstance(message, SensorBatchMessage):
            outcome = await self._context.pipeline.process_batch(
                message.values,
                self._resolver,
                timestamp=message.timestamp,
                source="stream",
            )
            if not outcome.ok:
                # Siblings are already stored; redelivery would duplicate them.
                log.error("Sensor message partially failed", errors=outcome.error_summary())
                await self._queue.nack(
                    job.message_id, outcome.error_summary(), fields=job.fields,
                )
                return MessageOutcome.DEAD_LETTERED
            await self._queue.ack(job.message_id)
            return MessageOutcome.ACKED

        try:
            await self._context.pipeline.process_report(
                message.sensor_type,
                message.severity,
                message.value,
                self._resolver,
                message=message.message,
                timestamp=message.timestamp,
                source="stream",
            )
        except Exception as e:
            log.error(
                "Reported alert failed, leaving pending for redelivery",
                sensor_type=message.sensor_type.value,
                error=str(e),
            )
            return MessageOutcome.RETRY

        await self._queue.ack(job.message_id)
        return MessageOutcome.ACKED
