"""Main daemon - wires all components together."""

from __future__ import annotations

import asyncio
import logging
import signal

from beacon_faucet.beacon.client import BeaconClient
from beacon_faucet.beacon.monitor import ChainHealthMonitor
from beacon_faucet.chain.web3_client import EnsNameResolver, Web3ChainClient
from beacon_faucet.chat.alerts import ChannelAlertSink
from beacon_faucet.chat.commands import CommandRouter
from beacon_faucet.chat.interactions import InteractionServer, SignatureVerifier
from beacon_faucet.chat.rest import DiscordRest
from beacon_faucet.faucet.orchestrator import RequestOrchestrator
from beacon_faucet.faucet.registry import NetworkRegistry
from beacon_faucet.models.config import DaemonConfig, NetworkSettings
from beacon_faucet.retry import Backoff
from beacon_faucet.storage.sqlite import SQLiteRequestStore

log = logging.getLogger(__name__)


class FaucetDaemon:
    """Faucet bot and chain health monitor in one process.

    Serves chat commands over the interactions endpoint while the monitor
    task follows the beacon node head stream.
    """

    def __init__(self, cfg: DaemonConfig) -> None:
        self._cfg = cfg
        self._stop = asyncio.Event()
        discord = cfg.discord

        # Core components
        self.rest = DiscordRest(discord.token, discord.api_base, cfg.upstream_timeout)
        self.store = SQLiteRequestStore(cfg.db_path)
        self.resolver = EnsNameResolver(cfg.ens_rpc_url, cfg.upstream_timeout)
        self.registry = NetworkRegistry.from_config(cfg, self._chain_client)

        # The one alert handle, resolved on first use
        self.alerts = ChannelAlertSink(self.rest, discord.alert_channel_id)

        self.beacon = BeaconClient(cfg.beacon.api_url, cfg.upstream_timeout)
        self.monitor = ChainHealthMonitor(
            self.beacon,
            self.alerts,
            cfg.beacon,
            backoff=Backoff(cfg.retry_delay, cfg.retry_max_delay),
        )
        if cfg.beacon.auto_post_channel_id:
            self.monitor.set_auto_post(ChannelAlertSink(self.rest, cfg.beacon.auto_post_channel_id))

        self.orchestrator = RequestOrchestrator(
            self.registry,
            self.store,
            self.resolver,
            channels=self.rest,
            allowed_role_ids=set(discord.allowed_role_ids),
            farmer_role_id=discord.farmer_role_id,
            alerts=self.alerts,
            verification_channel_ids=discord.verification_channel_ids,
        )
        self.router = CommandRouter(
            self.orchestrator,
            self.registry,
            self.beacon,
            cfg.queues,
            monitor=self.monitor if cfg.beacon.enabled else None,
            monitor_key=cfg.beacon.network_key,
            operator_user_id=discord.operator_user_id,
            channel_sink=lambda channel_id: ChannelAlertSink(self.rest, channel_id),
            verification_channel_ids=discord.verification_channel_ids,
        )
        self.server = InteractionServer(
            self.router, self.rest, SignatureVerifier(discord.public_key),
        )

    def _chain_client(self, settings: NetworkSettings) -> Web3ChainClient:
        return Web3ChainClient(
            settings.rpc_url,
            self._cfg.faucet_secret,
            network_name=settings.name,
            timeout=self._cfg.upstream_timeout,
            confirm_timeout=self._cfg.confirm_timeout,
        )

    async def start(self) -> None:
        """Initialize components and serve until stopped."""
        cfg = self._cfg
        log.info("Starting beacon_faucet daemon")
        log.info("  Networks: %s", ", ".join(n.name for n in self.registry) or "(none)")
        log.info("  Beacon node: %s", cfg.beacon.api_url if cfg.beacon.enabled else "(disabled)")
        log.info("  Endpoint: %s:%d", cfg.discord.listen_host, cfg.discord.listen_port)
        if not cfg.ens_rpc_url:
            log.warning("No ENS RPC URL configured, name resolution will fail")

        try:
            if not await self._login():
                return
            await self.store.initialize(self.registry.tables())
            await self.registry.log_wallet_status()
            await self.monitor.start()
            await self.server.start(cfg.discord.listen_host, cfg.discord.listen_port)
            await self._stop.wait()
        finally:
            await self.server.stop()
            await self.monitor.stop()
            await self.store.close()
            await self.close_clients()
            log.info("Daemon shut down cleanly")

    async def stop(self) -> None:
        """Signal the daemon to stop gracefully."""
        log.info("Stop requested")
        self._stop.set()

    async def _login(self) -> bool:
        """Check the bot token, retrying until it works or a stop arrives."""
        backoff = Backoff(self._cfg.retry_delay, self._cfg.retry_max_delay)
        while not self._stop.is_set():
            try:
                user = await self.rest.current_user()
            except Exception as exc:
                delay = backoff.next_delay()
                log.error("Discord login failed: %s. Retrying in %.1f seconds", exc, delay)
                try:
                    await asyncio.wait_for(self._stop.wait(), delay)
                except asyncio.TimeoutError:
                    pass
                continue
            log.info("Logged in as %s (%s)", user.get("username", "?"), user.get("id", "?"))
            return True
        return False

    async def close_clients(self) -> None:
        for network in self.registry:
            await network.chain.close()
        await self.resolver.close()
        await self.rest.close()


async def run_daemon(cfg: DaemonConfig) -> None:
    """Entry point for running the daemon."""
    daemon = FaucetDaemon(cfg)

    loop = asyncio.get_running_loop()

    def _signal_handler():
        asyncio.ensure_future(daemon.stop())

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _signal_handler)
        except NotImplementedError:
            # Windows doesn't support add_signal_handler
            pass

    await daemon.start()
