"""Sensor reading ingestion.

Components:
- Reading / IngestResult / BatchIngestResult: reading records and outcomes
- ReadingRepository: persistence for the readings table
- ReadingIngestor: persist-then-classify ingestion path
- parse_sensor_message: stream payload shape detection and validation
"""

from src.readings.ingestor import ReadingIngestor
from src.readings.messages import (
    ReportedAlertMessage,
    SensorBatchMessage,
    SingleReadingMessage,
    parse_alert_report,
    parse_batch_message,
    parse_reading_message,
    parse_sensor_message,
    parse_timestamp,
)
from src.readings.repository import ReadingRepository
from src.readings.schemas import BatchIngestResult, IngestResult, Reading

__all__ = [
    "BatchIngestResult",
    "IngestResult",
    "Reading",
    "ReadingIngestor",
    "ReadingRepository",
    "ReportedAlertMessage",
    "SensorBatchMessage",
    "SingleReadingMessage",
    "parse_alert_report",
    "parse_batch_message",
    "parse_reading_message",
    "parse_sensor_message",
    "parse_timestamp",
]
