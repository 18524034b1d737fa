"""Network registry - per-network dispensing configuration and request locks."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Callable, Iterator

from beacon_faucet.interfaces.chain import ChainClient
from beacon_faucet.models.config import (
    TRANSACTION_COST_BUFFER,
    DaemonConfig,
    NetworkSettings,
)
from beacon_faucet.timefmt import DAY, format_ether

log = logging.getLogger(__name__)


class PendingSet:
    """Users with a request in flight on one network.

    Only meaningful inside a single process; it is rebuilt empty on restart.
    """

    def __init__(self) -> None:
        self._users: set[str] = set()

    def __contains__(self, user_id: object) -> bool:
        return user_id in self._users

    def __len__(self) -> int:
        return len(self._users)

    @contextmanager
    def hold(self, user_id: str) -> Iterator[bool]:
        """Take the user's lock for the duration of the block.

        Yields False without touching the set when the user already holds
        it. Otherwise yields True and releases on every exit path.
        """
        if user_id in self._users:
            yield False
            return
        self._users.add(user_id)
        try:
            yield True
        finally:
            self._users.discard(user_id)


@dataclass(frozen=True)
class NetworkConfig:
    """Everything the orchestrator needs to dispense on one network."""

    key: str
    name: str
    currency: str
    table: str
    rate_limit_seconds: int
    request_amount: int  # wei
    min_reserve: int  # wei
    explorer_tx_root: str
    enough_reason: str
    chain: ChainClient
    channel: str | None = None
    info_message: str = ""
    cost_buffer: int = TRANSACTION_COST_BUFFER
    pending: PendingSet = field(default_factory=PendingSet, compare=False)

    @property
    def command(self) -> str:
        return f"request-{self.key}"

    def explorer_url(self, tx_hash: str) -> str:
        return f"{self.explorer_tx_root}{tx_hash}"

    @classmethod
    def from_settings(cls, settings: NetworkSettings, chain: ChainClient) -> NetworkConfig:
        return cls(
            key=settings.key,
            name=settings.name,
            currency=settings.currency,
            table=settings.table_name,
            rate_limit_seconds=int(settings.rate_limit_days * DAY),
            request_amount=settings.request_amount,
            min_reserve=settings.min_reserve,
            explorer_tx_root=settings.explorer_tx_root,
            enough_reason=settings.enough_reason,
            chain=chain,
            channel=settings.channel or None,
            info_message=settings.info_message,
        )


class NetworkRegistry:
    """All dispensing networks, keyed by their command suffix."""

    def __init__(self, networks: list[NetworkConfig] | None = None) -> None:
        self._networks: dict[str, NetworkConfig] = {}
        for network in networks or []:
            self.add(network)

    @classmethod
    def from_config(
        cls,
        cfg: DaemonConfig,
        chain_factory: Callable[[NetworkSettings], ChainClient],
    ) -> NetworkRegistry:
        registry = cls()
        for settings in cfg.networks.values():
            if not settings.rpc_url:
                log.warning("No RPC URL for %s, network disabled", settings.name)
                continue
            registry.add(NetworkConfig.from_settings(settings, chain_factory(settings)))
        return registry

    def add(self, network: NetworkConfig) -> None:
        self._networks[network.key] = network

    def get(self, key: str) -> NetworkConfig | None:
        return self._networks.get(key)

    def tables(self) -> list[str]:
        return [n.table for n in self._networks.values()]

    def __iter__(self) -> Iterator[NetworkConfig]:
        return iter(self._networks.values())

    def __len__(self) -> int:
        return len(self._networks)

    async def log_wallet_status(self) -> None:
        """Log each faucet wallet's balance and how many requests it can serve."""
        for network in self:
            address = network.chain.faucet_address
            log.info("%s faucet wallet loaded at address %s", network.name, address)
            try:
                balance = await network.chain.get_balance(address)
            except Exception as exc:
                log.warning("Could not read %s faucet balance: %s", network.name, exc)
                continue
            log.info("%s faucet wallet balance is %s", network.name, format_ether(balance))
            if balance < network.min_reserve:
                log.warning(
                    "Not enough %s to provide services for the %s faucet",
                    network.currency, network.name,
                )
            else:
                log.info(
                    "There are %d potential remaining requests for the %s faucet",
                    balance // network.request_amount, network.name,
                )
