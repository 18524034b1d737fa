"""RequestStore protocol - durable per-user, per-network last request."""

from __future__ import annotations

from typing import Protocol

from beacon_faucet.models.records import LastRequestRecord


class RequestStore(Protocol):
    """Persists the last dispense for each (network table, user)."""

    async def initialize(self, tables: list[str]) -> None:
        """Create tables if missing and add any missing columns."""
        ...

    async def close(self) -> None:
        ...

    async def get_last_request(self, table: str, user_id: str) -> LastRequestRecord | None:
        ...

    async def store_last_request(
        self, table: str, user_id: str, address: str, now: int | None = None
    ) -> None:
        """Insert or update the user's row in one read-modify-write."""
        ...
