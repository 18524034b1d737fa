"""ChainClient protocol - account balances, name resolution, and transfers."""

from __future__ import annotations

from typing import Protocol


class ChainClient(Protocol):
    """Read and write access to one execution-layer network."""

    @property
    def faucet_address(self) -> str:
        """Address of the dispensing wallet."""
        ...

    def is_address(self, value: str) -> bool:
        """Whether `value` is a well-formed raw account address."""
        ...

    async def get_balance(self, address: str) -> int:
        """Balance of `address` in wei."""
        ...

    async def send(self, to: str, amount: int) -> str:
        """Sign and submit a transfer from the faucet wallet. Returns the tx hash."""
        ...

    async def wait_for_confirmation(self, tx_hash: str) -> None:
        """Block until the transaction is included with one confirmation."""
        ...

    async def close(self) -> None:
        ...


class NameResolver(Protocol):
    """Resolves human-readable names (ENS) against a reference network."""

    async def resolve_name(self, name: str) -> str | None:
        """Return the address the name points to, or None if unset."""
        ...
