"""Error taxonomy shared by the ingestion and alerting pipeline.

- ValidationError: malformed input, reported to the caller, nothing persisted.
- StorageError: persistence backend unavailable or write rejected.
- NotificationDeliveryError: external send failure, never surfaced past
  the dispatcher.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class FieldViolation:
    """A single violated input constraint."""

    field: str
    reason: str

    def to_dict(self) -> dict[str, str]:
        return {"field": self.field, "reason": self.reason}


class MonitoringError(Exception):
    """Base class for all service errors."""


class ValidationError(MonitoringError):
    """Input rejected before anything was written.

    Carries every violated constraint, not just the first one found.
    """

    def __init__(self, violations: list[FieldViolation]) -> None:
        if not violations:
            raise ValueError("ValidationError requires at least one violation")
        self.violations = list(violations)
        summary = "; ".join(f"{v.field}: {v.reason}" for v in self.violations)
        super().__init__(summary)

    @classmethod
    def single(cls, field: str, reason: str) -> "ValidationError":
        return cls([FieldViolation(field=field, reason=reason)])

    @property
    def fields(self) -> list[str]:
        return [v.field for v in self.violations]


class StorageError(MonitoringError):
    """Persistence backend failure. Fatal to the call that hit it."""

    def __init__(self, operation: str, cause: BaseException | None = None) -> None:
        self.operation = operation
        self.cause = cause
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"Storage operation '{operation}' failed{detail}")


class NotificationDeliveryError(MonitoringError):
    """External notification could not be delivered after all attempts."""

    def __init__(self, channel: str, attempts: int, cause: BaseException | None = None) -> None:
        self.channel = channel
        self.attempts = attempts
        self.cause = cause
        super().__init__(
            f"Delivery via {channel} failed after {attempts} attempt(s): {cause}"
        )
