"""Command catalog and router for chat invocations."""

from __future__ import annotations

import logging
from typing import Awaitable, Callable

from beacon_faucet.beacon.monitor import ChainHealthMonitor
from beacon_faucet.beacon.queue import render_queue_message
from beacon_faucet.faucet.orchestrator import RequestOrchestrator
from beacon_faucet.faucet.registry import NetworkConfig, NetworkRegistry
from beacon_faucet.interfaces.beacon import BeaconAPI
from beacon_faucet.interfaces.chat import AlertSink, Interaction
from beacon_faucet.models.config import QueueTarget

log = logging.getLogger(__name__)

# Application command option types
OPTION_STRING = 3
OPTION_BOOLEAN = 5
OPTION_USER = 6

Handler = Callable[[Interaction], Awaitable[None]]


def _command(name: str, description: str, options: list[dict] | None = None) -> dict:
    return {"name": name, "type": 1, "description": description[:100], "options": options or []}


class CommandRouter:
    """Maps command names to handlers and describes them for registration."""

    def __init__(
        self,
        orchestrator: RequestOrchestrator,
        registry: NetworkRegistry,
        beacon: BeaconAPI,
        queues: dict[str, QueueTarget],
        monitor: ChainHealthMonitor | None = None,
        monitor_key: str = "mainnet",
        operator_user_id: str = "",
        channel_sink: Callable[[str], AlertSink] | None = None,
        verification_channel_ids: list[str] | None = None,
    ) -> None:
        self._orchestrator = orchestrator
        self._registry = registry
        self._beacon = beacon
        self._queues = queues
        self._monitor = monitor
        self._monitor_key = monitor_key
        self._operator = operator_user_id
        self._channel_sink = channel_sink
        self._verification_channels = verification_channel_ids or []
        self._handlers: dict[str, Handler] = {}
        self._catalog: list[dict] = []
        self._deferred: set[str] = set()
        self._build()

    # ── Catalog ───────────────────────────────────────────

    def _register(self, definition: dict, handler: Handler, deferred: bool = False) -> None:
        self._handlers[definition["name"]] = handler
        self._catalog.append(definition)
        if deferred:
            self._deferred.add(definition["name"])

    def _build(self) -> None:
        self._register(_command("ping", "Replies with pong!"), self._ping)

        for network in self._registry:
            self._register(
                _command(
                    network.command,
                    f"Request {network.currency} on {network.name} to be transferred into your wallet.",
                    [{
                        "type": OPTION_STRING,
                        "name": "address",
                        "description": "A valid Ethereum address. It can be a full address or an ENS.",
                        "required": True,
                    }],
                ),
                self._request_handler(network),
                deferred=True,
            )
            if network.info_message:
                self._register(
                    _command(
                        f"{network.key}-msg",
                        f"Explain how to get {network.currency} to someone else.",
                        [{
                            "type": OPTION_USER,
                            "name": "user",
                            "description": "An optional user to ping with the message.",
                            "required": False,
                        }],
                    ),
                    self._info_handler(network),
                )

        for target in self._queues.values():
            self._register(
                _command(
                    f"queue-{target.key}",
                    f"Get validators activation and exit queue details from {target.name}.",
                ),
                self._queue_handler(target),
                deferred=True,
            )

        if self._monitor is not None:
            key = self._monitor_key
            self._register(
                _command(
                    f"participation-{key}",
                    f"Get the current participation rate on {self._monitor.network_name}.",
                ),
                self._participation,
            )
            self._register(
                _command(
                    f"participation-{key}-auto",
                    f"Automatically post the participation rate on {self._monitor.network_name}.",
                    [{
                        "type": OPTION_BOOLEAN,
                        "name": "enabled",
                        "description": "Whether auto posting is enabled.",
                        "required": True,
                    }],
                ),
                self._participation_auto,
            )

    def catalog(self) -> list[dict]:
        return list(self._catalog)

    def names(self) -> list[str]:
        return [c["name"] for c in self._catalog]

    def is_deferred(self, name: str) -> bool:
        """Whether the command answers with private progress before its result."""
        return name in self._deferred

    async def dispatch(self, interaction: Interaction) -> bool:
        handler = self._handlers.get(interaction.command)
        if handler is None:
            log.warning("Unknown command %s from %s", interaction.command, interaction.caller)
            await interaction.reply(f"Unknown command ({interaction.command}).", ephemeral=True)
            return False
        await handler(interaction)
        return True

    # ── Handlers ──────────────────────────────────────────

    async def _ping(self, interaction: Interaction) -> None:
        log.info("Ping from %s", interaction.caller)
        await interaction.reply("Pong!")

    def _request_handler(self, network: NetworkConfig) -> Handler:
        async def _handle(interaction: Interaction) -> None:
            caller = interaction.caller
            target = str(interaction.option("address", "")).strip()
            await interaction.reply(f"Processing your {network.currency} request...", ephemeral=True)
            result = await self._orchestrator.handle_request(
                network.key, caller, target, progress=interaction.edit_reply,
            )
            await interaction.follow_up(
                f"{result.message} For {caller.mention}.", suppress_embeds=True,
            )
        return _handle

    def _info_handler(self, network: NetworkConfig) -> Handler:
        async def _handle(interaction: Interaction) -> None:
            log.info("%s-msg from %s", network.key, interaction.caller)
            user = interaction.option("user")
            who = f"<@{user}>" if user else "You"
            message = f"{who} {network.info_message}"
            if self._verification_channels:
                channels = " or ".join(f"<#{c}>" for c in self._verification_channels)
                message += f" Get verified in {channels} first."
            await interaction.reply(message)
        return _handle

    def _queue_handler(self, target: QueueTarget) -> Handler:
        async def _handle(interaction: Interaction) -> None:
            caller = interaction.caller
            log.info("queue-%s from %s", target.key, caller)
            await interaction.reply(
                f"Querying the explorer API for {target.name} queue details...", ephemeral=True,
            )
            try:
                stats = await self._beacon.get_queue_stats(target.api_queue_url)
            except Exception as exc:
                log.warning("Queue query for %s failed: %s", target.name, exc)
                await interaction.follow_up(
                    f"Error while trying to query {target.name} queue details for "
                    f"{caller.mention}. {exc}",
                )
                return
            await interaction.follow_up(
                f"{render_queue_message(target.name, stats)}\n\nFor {caller.mention}.",
                suppress_embeds=True,
            )
        return _handle

    async def _participation(self, interaction: Interaction) -> None:
        assert self._monitor is not None
        log.info("participation from %s", interaction.caller)
        await interaction.reply(
            f"{self._monitor.participation_message()} For {interaction.caller.mention}.",
        )

    async def _participation_auto(self, interaction: Interaction) -> None:
        assert self._monitor is not None
        caller = interaction.caller
        if not self._operator or caller.user_id != self._operator:
            log.info("%s tried %s without permission", caller, interaction.command)
            await interaction.reply(
                f"You cannot use this command ({interaction.command}). "
                f"You are not my operator {caller.mention}.",
            )
            return

        enabled = bool(interaction.option("enabled", False))
        if enabled and self._channel_sink is not None:
            self._monitor.set_auto_post(self._channel_sink(caller.channel_id))
            await interaction.reply(
                f"Participation rate auto post for {self._monitor.network_name} enabled "
                f"on <#{caller.channel_id}> for {caller.mention}.",
            )
        else:
            self._monitor.set_auto_post(None)
            await interaction.reply(
                f"Participation rate auto post for {self._monitor.network_name} disabled "
                f"for {caller.mention}.",
            )
