"""Services that wire ingestion, alerting and the sensor stream together."""

from src.services.context import AppContext
from src.services.pipeline import BatchOutcome, ReadingOutcome, SensorPipeline
from src.services.sensor_stream import MessageOutcome, SensorStreamConsumer

__all__ = [
    "AppContext",
    "BatchOutcome",
    "MessageOutcome",
    "ReadingOutcome",
    "SensorPipeline",
    "SensorStreamConsumer",
]
