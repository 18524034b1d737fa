"""Decoy rate-limit durations for users flagged as farmers."""

from __future__ import annotations

import random


def decoy_wait_seconds(user_id: str, window_seconds: int) -> int:
    """A fake remaining wait in [0, window_seconds), fixed per user.

    `random.Random` seeded with a str hashes it with SHA-512, so the value
    does not depend on PYTHONHASHSEED and is stable across restarts.
    """
    rng = random.Random(str(user_id))
    return int(rng.random() * window_seconds)
