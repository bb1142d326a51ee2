"""
Prometheus metrics for the sensor ingestion and alerting pipeline.

Defines and exposes metrics for:
- Readings ingested and their severity classification
- Dispatch outcomes (skipped, no recipient, sent)
- Email delivery outcomes
- Per-sensor ingest errors
- Stream reclaim / dead letter activity
- Storage latency

Metrics are exposed via HTTP endpoint for Prometheus scraping.
"""

import logging

from prometheus_client import (
    REGISTRY,
    CollectorRegistry,
    Counter,
    Histogram,
    start_http_server,
)

from src.config.settings import get_settings

logger = logging.getLogger(__name__)

# Buckets for latency histograms (in seconds)
LATENCY_BUCKETS = (0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5)


class MetricsCollector:
    """
    Prometheus metrics collector for the monitoring pipeline.

    Usage:
        metrics = get_metrics()
        metrics.record_reading("gas", "warning")
        metrics.record_dispatch("sent")
    """

    def __init__(self, registry: CollectorRegistry | None = None):
        self._registry = registry or REGISTRY

        self.readings_ingested = Counter(
            "sensor_monitor_readings_ingested_total",
            "Readings persisted, by sensor type and severity",
            ["sensor_type", "severity"],
            registry=self._registry,
        )

        self.ingest_errors = Counter(
            "sensor_monitor_ingest_errors_total",
            "Readings that failed to persist or classify",
            ["sensor_type", "error_type"],
            registry=self._registry,
        )

        self.dispatch_outcomes = Counter(
            "sensor_monitor_dispatch_outcomes_total",
            "Alert dispatch terminal states",
            ["outcome"],  # skipped, no_recipient, sent, storage_failed
            registry=self._registry,
        )

        self.notification_delivery = Counter(
            "sensor_monitor_notification_delivery_total",
            "External notification delivery results",
            ["channel", "status"],  # status: success, failure
            registry=self._registry,
        )

        self.pending_reclaimed = Counter(
            "sensor_monitor_pending_reclaimed_total",
            "Stream messages reclaimed from crashed consumers",
            ["queue"],
            registry=self._registry,
        )

        self.dlq_max_retries = Counter(
            "sensor_monitor_dlq_max_retries_total",
            "Stream messages moved to the DLQ after max delivery attempts",
            ["queue"],
            registry=self._registry,
        )

        self.storage_latency = Histogram(
            "sensor_monitor_storage_latency_seconds",
            "Time spent in database writes",
            ["operation"],  # reading_insert, notification_insert, threshold_insert
            buckets=LATENCY_BUCKETS,
            registry=self._registry,
        )

        logger.info("Prometheus metrics initialized")

    def start_server(self, port: int | None = None) -> None:
        """
        Start Prometheus metrics HTTP server.

        Args:
            port: Port to expose metrics on (default from settings)
        """
        settings = get_settings()
        port = port or settings.metrics_port

        start_http_server(port, registry=self._registry)
        logger.info(f"Prometheus metrics server started on port {port}")

    def record_reading(self, sensor_type: str, severity: str) -> None:
        self.readings_ingested.labels(
            sensor_type=sensor_type,
            severity=severity,
        ).inc()

    def record_ingest_error(self, sensor_type: str, error_type: str) -> None:
        self.ingest_errors.labels(
            sensor_type=sensor_type,
            error_type=error_type,
        ).inc()

    def record_dispatch(self, outcome: str) -> None:
        self.dispatch_outcomes.labels(outcome=outcome).inc()

    def record_delivery(self, channel: str, success: bool) -> None:
        self.notification_delivery.labels(
            channel=channel,
            status="success" if success else "failure",
        ).inc()

    def record_storage_latency(self, operation: str, latency: float) -> None:
        self.storage_latency.labels(operation=operation).observe(latency)


# Global metrics instance
_metrics: MetricsCollector | None = None


def get_metrics() -> MetricsCollector:
    """Get global metrics collector instance."""
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics
