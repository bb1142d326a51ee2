"""
Exponential backoff delays for retry loops.

Shared by the stream consumer (reconnect after Redis errors), the worker
supervisor, and the email notifier (spacing between send attempts).
"""

import random


class ExponentialBackoff:
    """
    Delay sequence ``base * multiplier**n``, capped at ``max_delay``.

    ``jitter_range`` spreads each delay by up to that fraction in either
    direction; pass 0 for a deterministic sequence. Call ``reset()`` once
    the guarded operation succeeds.

    Usage:
        backoff = ExponentialBackoff(base_delay=2.0, jitter_range=0.0)
        backoff.next_delay()  # 2.0
        backoff.next_delay()  # 4.0
    """

    def __init__(
        self,
        base_delay: float = 1.0,
        max_delay: float = 60.0,
        multiplier: float = 2.0,
        jitter_range: float = 0.5,
    ):
        if base_delay < 0 or max_delay < 0:
            raise ValueError("delays must be non-negative")
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.multiplier = multiplier
        self.jitter_range = jitter_range
        self._attempt = 0

    @property
    def attempt(self) -> int:
        """Delays handed out since the last reset."""
        return self._attempt

    def next_delay(self) -> float:
        delay = min(self.base_delay * (self.multiplier ** self._attempt), self.max_delay)
        if self.jitter_range:
            delay += delay * random.uniform(-self.jitter_range, self.jitter_range)
        self._attempt += 1
        return max(0.0, delay)

    def reset(self) -> None:
        self._attempt = 0
