"""BeaconAPI protocol - consensus node REST queries and the head stream."""

from __future__ import annotations

from typing import AsyncIterator, Protocol

from beacon_faucet.models.events import HeadEvent
from beacon_faucet.models.records import QueueStats


class BeaconAPI(Protocol):
    """Read-only access to a beacon node and a queue-statistics endpoint."""

    def head_events(self) -> AsyncIterator[HeadEvent]:
        """Subscribe to head events. Iteration ends or raises when the stream drops."""
        ...

    async def get_validator_inclusion(self, epoch: int) -> dict:
        """Global validator inclusion data for `epoch` (the `data` object)."""
        ...

    async def get_block(self, slot: int) -> dict | None:
        """Signed block at `slot` (the `data` object), None for an empty slot."""
        ...

    async def get_queue_stats(self, url: str) -> QueueStats:
        ...
