"""
Process-wide application context.

Owns the connections (PostgreSQL pool, Redis client) and the components
built on them. One context is created per process (API server, stream
worker, CLI command) and handed to whatever needs it; nothing here is a
module-level global.
"""

import redis.asyncio as redis
import structlog

from src.auth.repository import PrincipalRepository
from src.config.settings import Settings, get_settings
from src.notifications.dispatcher import AlertDispatcher
from src.notifications.notifier import EmailConfig, EmailNotifier
from src.notifications.repository import NotificationStore
from src.notifications.resolvers import (
    AlertRoutingConfig,
    CallerResolver,
    FallbackRecipientResolver,
)
from src.observability.metrics import MetricsCollector, get_metrics
from src.queues.config import SensorStreamConfig
from src.queues.sensor_queue import SensorQueue
from src.readings.ingestor import ReadingIngestor
from src.readings.repository import ReadingRepository
from src.services.pipeline import SensorPipeline
from src.storage.database import Database
from src.thresholds.store import ThresholdStore

logger = structlog.get_logger(__name__)


class AppContext:
    """
    Wires repositories, stores and services onto shared connections.

    Usage:
        context = AppContext.from_settings()
        await context.connect()
        try:
            await context.pipeline.process_batch(values, context.fallback_resolver())
        finally:
            await context.close()
    """

    def __init__(
        self,
        settings: Settings | None = None,
        database: Database | None = None,
        redis_client: redis.Redis | None = None,
        email_config: EmailConfig | None = None,
        routing_config: AlertRoutingConfig | None = None,
        stream_config: SensorStreamConfig | None = None,
        metrics: MetricsCollector | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.metrics = metrics or get_metrics()
        self.database = database or Database(
            database_url=str(self.settings.database_url),
            min_size=self.settings.db_pool_min_size,
            max_size=self.settings.db_pool_max_size,
        )
        self._redis = redis_client
        self._owns_redis = redis_client is None

        self.routing_config = routing_config or AlertRoutingConfig()
        self.stream_config = stream_config or SensorStreamConfig()

        self.principals = PrincipalRepository(self.database)
        self.readings = ReadingRepository(self.database)
        self.thresholds = ThresholdStore(self.database)
        self.notifications = NotificationStore(self.database)

        self.notifier = EmailNotifier(config=email_config, metrics=self.metrics)
        self.ingestor = ReadingIngestor(self.readings, self.thresholds, self.metrics)
        self.dispatcher = AlertDispatcher(self.notifications, self.notifier, self.metrics)
        self.pipeline = SensorPipeline(self.ingestor, self.dispatcher, self.thresholds)

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "AppContext":
        return cls(settings=settings)

    @property
    def redis(self) -> redis.Redis:
        if self._redis is None:
            raise RuntimeError("Redis not connected. Call connect() first.")
        return self._redis

    async def connect(self, redis_required: bool = True) -> None:
        """
        Open the database pool and the Redis client.

        Args:
            redis_required: Skip Redis when the caller only needs storage.
        """
        await self.database.connect()
        if redis_required and self._redis is None:
            self._redis = redis.from_url(
                str(self.settings.redis_url),
                encoding="utf-8",
                decode_responses=True,
            )
        logger.info("Application context connected", redis=self._redis is not None)

    async def close(self) -> None:
        await self.database.close()
        if self._redis is not None and self._owns_redis:
            await self._redis.close()
            self._redis = None
        logger.info("Application context closed")

    def caller_resolver(self, principal_id: str) -> CallerResolver:
        return CallerResolver(self.principals, principal_id)

    def fallback_resolver(self) -> FallbackRecipientResolver:
        return FallbackRecipientResolver(self.principals, self.routing_config)

    def sensor_queue(self) -> SensorQueue:
        """Sensor stream queue sharing this context's Redis client."""
        return SensorQueue(config=self.stream_config, client=self.redis)

    async def health(self) -> dict[str, bool]:
        """Report reachability of each backing service."""
        redis_ok = False
        if self._redis is not None:
            try:
                redis_ok = bool(await self._redis.ping())
            except redis.RedisError as e:
                logger.warning("Redis health check failed", error=str(e))
        return {
            "database": await self.database.health_check(),
            "redis": redis_ok,
        }
