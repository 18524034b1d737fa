"""Reconnect and retry delays."""

from __future__ import annotations

import random


class Backoff:
    """Exponential backoff with a ceiling and proportional jitter.

    The first delay is `initial`; each further failure doubles it up to
    `maximum`. `reset()` after a success starts over.
    """

    def __init__(
        self,
        initial: float = 5.0,
        maximum: float = 300.0,
        jitter: float = 0.2,
        rng: random.Random | None = None,
    ) -> None:
        self._initial = initial
        self._maximum = max(initial, maximum)
        self._jitter = jitter
        self._rng = rng or random.Random()
        self._attempt = 0

    @property
    def attempt(self) -> int:
        return self._attempt

    def reset(self) -> None:
        self._attempt = 0

    def next_delay(self) -> float:
        base = min(self._maximum, self._initial * (2 ** self._attempt))
        self._attempt += 1
        if self._jitter <= 0:
            return base
        spread = base * self._jitter
        return max(0.0, base + self._rng.uniform(-spread, spread))
