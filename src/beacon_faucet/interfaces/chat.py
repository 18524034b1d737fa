"""Chat platform protocols - command invocations, alert sink, channel lookups."""

from __future__ import annotations

from typing import Any, Protocol

from beacon_faucet.models.records import Caller


class Interaction(Protocol):
    """One command invocation from the chat platform.

    The first `reply` answers the invocation; `edit_reply` replaces that
    answer (progress updates) and `follow_up` posts a further message.
    """

    command: str
    caller: Caller

    def option(self, name: str, default: Any = None) -> Any:
        ...

    async def reply(self, content: str, ephemeral: bool = False) -> None:
        ...

    async def edit_reply(self, content: str) -> None:
        ...

    async def follow_up(self, content: str, suppress_embeds: bool = False) -> None:
        ...


class AlertSink(Protocol):
    """Where operator-facing alerts are written."""

    async def send(self, message: str) -> None:
        ...


class ChannelResolver(Protocol):
    """Looks up channels by name for channel-restricted commands."""

    async def channel_id_by_name(self, guild_id: str, name: str) -> str | None:
        ...
