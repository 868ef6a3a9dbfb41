"""Exponential reconnect backoff with a cap and subtractive jitter."""

from __future__ import annotations

import random


class BackoffPolicy:
    """Delay schedule for reconnect attempts.

    The base delay for attempt ``n`` (0-based) is
    ``min(initial * factor ** n, maximum)``: non-decreasing, then flat at
    ``maximum``. Jitter removes up to ``jitter * base`` so clients that lost
    the server at the same moment spread out, and the applied delay never
    exceeds the cap.
    """

    def __init__(
        self,
        initial: float = 1.0,
        factor: float = 2.0,
        maximum: float = 30.0,
        jitter: float = 0.1,
        rng: random.Random | None = None,
    ):
        self.initial = initial
        self.factor = factor
        self.maximum = maximum
        self.jitter = jitter
        self._rng = rng or random.Random()
        self.attempt = 0

    def base_delay(self, attempt: int) -> float:
        delay = self.initial
        for _ in range(attempt):
            delay *= self.factor
            if delay >= self.maximum:
                return self.maximum
        return min(delay, self.maximum)

    def next_delay(self) -> float:
        """Delay before the next attempt; advances the attempt counter."""
        base = self.base_delay(self.attempt)
        self.attempt += 1
        if self.jitter <= 0:
            return base
        return base - base * self.jitter * self._rng.random()

    def reset(self) -> None:
        self.attempt = 0
