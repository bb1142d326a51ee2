"""
Configuration for the sensor readings stream.

QueueConfig carries the reclaim and retry knobs the generic queue needs;
SensorStreamConfig is the environment-facing settings object that the
sensor consumer and the publish command build it from.
"""

from dataclasses import dataclass

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


@dataclass
class QueueConfig:
    """
    Reclaim behavior for a Redis Streams consumer group.

    Attributes:
        idle_timeout_ms: How long a delivered message may stay unacknowledged
            before another consumer may claim it.
        max_delivery_attempts: Deliveries allowed before the message is
            dead-lettered as unprocessable.
        reclaim_batch_size: Pending messages claimed per XAUTOCLAIM call.
        backoff_base_delay: First pause after a consumer-side Redis error.
        backoff_max_delay: Upper bound for that pause.
    """

    idle_timeout_ms: int = 30_000
    max_delivery_attempts: int = 3
    reclaim_batch_size: int = 10
    backoff_base_delay: float = 1.0
    backoff_max_delay: float = 60.0


class SensorStreamConfig(BaseSettings):
    """
    Sensor stream settings.

    Settings can be overridden via environment variables prefixed with
    SENSOR_STREAM_.

    Example:
        SENSOR_STREAM_NAME=sensors:readings
        SENSOR_STREAM_CONCURRENCY=8
    """

    model_config = SettingsConfigDict(
        env_prefix="SENSOR_STREAM_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    name: str = Field(
        default="sensors:readings",
        description="Redis stream devices publish sensor payloads to",
    )
    consumer_group: str = Field(default="sensor_monitor")
    dlq_name: str = Field(default="sensors:readings:dlq")
    max_stream_length: int = Field(default=50_000, ge=1_000)
    payload_field: str = Field(
        default="data",
        description="Stream entry field holding the JSON payload",
    )

    batch_size: int = Field(
        default=10,
        ge=1,
        le=500,
        description="Messages read per XREADGROUP call",
    )
    block_ms: int = Field(default=5_000, ge=100)
    concurrency: int = Field(
        default=8,
        ge=1,
        le=256,
        description="Messages processed at once by one consumer",
    )

    idle_timeout_ms: int = Field(
        default=30_000,
        ge=1_000,
        description="Idle time before a pending message is reclaimed",
    )
    max_delivery_attempts: int = Field(
        default=3,
        ge=1,
        le=20,
        description="Deliveries before a message is moved to the DLQ",
    )

    def queue_config(self) -> QueueConfig:
        return QueueConfig(
            idle_timeout_ms=self.idle_timeout_ms,
            max_delivery_attempts=self.max_delivery_attempts,
            reclaim_batch_size=self.batch_size,
        )
