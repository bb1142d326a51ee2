"""Threshold configuration, storage and classification.

Components:
- ThresholdConfig / SensorThresholds: immutable nine-value configuration
- ThresholdStore: active configuration with default-on-first-access
- classify: pure severity classification
"""

from src.thresholds.classifier import classify
from src.thresholds.schemas import (
    DEFAULT_THRESHOLDS,
    THRESHOLD_FIELDS,
    SensorThresholds,
    ThresholdConfig,
)
from src.thresholds.store import ThresholdStore

__all__ = [
    "DEFAULT_THRESHOLDS",
    "THRESHOLD_FIELDS",
    "SensorThresholds",
    "ThresholdConfig",
    "ThresholdStore",
    "classify",
]
