from __future__ import annotations

import random
import time
from typing import Callable, Optional, Protocol

from tradier_client.settings import RetrySettings, get_retry_settings

# Returned by next_backoff() when the policy wants the caller to give up.
STOP: float = -1.0


class Backoff(Protocol):
    def next_backoff(self) -> float: ...

    def reset(self) -> None: ...


class ExponentialBackoff:
    """
    Jittered exponential backoff.

    Each call to ``next_backoff()`` returns the current interval randomized by
    ``+/- jitter`` and then multiplies the interval, capped at
    ``max_interval``. Once ``max_elapsed`` seconds have passed since the
    instance was created (or last reset) it returns :data:`STOP`.

    Instances hold mutable state; create one per logical call.
    """

    def __init__(
        self,
        initial_interval: float = 0.5,
        multiplier: float = 2.0,
        jitter: float = 0.5,
        max_interval: float = 60.0,
        max_elapsed: Optional[float] = 900.0,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.initial_interval = max(0.0, initial_interval)
        self.multiplier = max(1.0, multiplier)
        self.jitter = min(max(0.0, jitter), 1.0)
        self.max_interval = max(self.initial_interval, max_interval)
        self.max_elapsed = max_elapsed
        self._clock = clock
        self.reset()

    @classmethod
    def from_settings(cls, settings: RetrySettings | None = None) -> "ExponentialBackoff":
        cfg = settings or get_retry_settings()
        return cls(
            initial_interval=cfg.initial_interval,
            multiplier=cfg.multiplier,
            jitter=cfg.jitter,
            max_interval=cfg.max_interval,
            max_elapsed=cfg.max_elapsed or None,
        )

    def reset(self) -> None:
        self.current_interval = self.initial_interval
        self._started = self._clock()

    @property
    def elapsed(self) -> float:
        return self._clock() - self._started

    def next_backoff(self) -> float:
        if self.max_elapsed is not None and self.elapsed > self.max_elapsed:
            return STOP
        delay = self._randomize(self.current_interval)
        self.current_interval = min(
            self.current_interval * self.multiplier, self.max_interval
        )
        return delay

    def _randomize(self, interval: float) -> float:
        if not self.jitter:
            return interval
        delta = self.jitter * interval
        return random.uniform(interval - delta, interval + delta)


class ConstantBackoff:
    """Fixed delay, never stops. Useful for tests and scripted runs."""

    def __init__(self, interval: float = 0.0) -> None:
        self.interval = interval

    def next_backoff(self) -> float:
        return self.interval

    def reset(self) -> None:
        return None


__all__ = ["STOP", "Backoff", "ExponentialBackoff", "ConstantBackoff"]
