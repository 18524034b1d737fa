"""Alert sinks backed by Discord channels."""

from __future__ import annotations

import asyncio
import logging

from beacon_faucet.chat.rest import DiscordRest
from beacon_faucet.errors import UpstreamError

log = logging.getLogger(__name__)


class ChannelAlertSink:
    """Sends alerts to one channel, resolved on first use and cached.

    The sink is owned by the daemon and handed to both the orchestrator
    side and the monitor; nothing else holds the channel.
    """

    def __init__(self, rest: DiscordRest, channel_id: str) -> None:
        self._rest = rest
        self._channel_id = channel_id
        self._channel: dict | None = None
        self._lock = asyncio.Lock()

    @property
    def channel_id(self) -> str:
        return self._channel_id

    async def channel(self) -> dict:
        if self._channel is None:
            async with self._lock:
                if self._channel is None:
                    if not self._channel_id:
                        raise UpstreamError("alert channel lookup", "no channel configured")
                    self._channel = await self._rest.get_channel(self._channel_id)
                    log.info(
                        "Alert channel resolved: #%s (%s)",
                        self._channel.get("name", "?"), self._channel_id,
                    )
        return self._channel

    async def send(self, message: str) -> None:
        channel = await self.channel()
        await self._rest.send_message(channel["id"], message, suppress_embeds=True)
