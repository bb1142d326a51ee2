"""Pure severity classification of a single reading.

No I/O, no state. Crossing a cut point is inclusive: a value equal to
``danger_max`` is danger, a value equal to ``warning_max`` is warning.
"""

from src.sensors.schemas import SensorType, Severity
from src.thresholds.schemas import ThresholdConfig


def classify(
    sensor_type: SensorType,
    value: float,
    config: ThresholdConfig,
) -> Severity:
    """Classify ``value`` for ``sensor_type`` against ``config``.

    Args:
        sensor_type: Validated sensor type. Raw strings are a programming
            error; convert them with ``parse_sensor_type`` at the boundary.
        value: Numeric reading.
        config: Active threshold configuration.

    Returns:
        The Severity for this reading.

    Raises:
        TypeError: If ``sensor_type`` is not a SensorType member.
    """
    cuts = config.for_sensor(sensor_type)

    if value >= cuts.danger_max:
        return Severity.DANGER
    if value >= cuts.warning_max:
        return Severity.WARNING
    return Severity.NORMAL
