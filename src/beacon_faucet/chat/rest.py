"""Discord REST client over httpx."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from beacon_faucet.errors import UpstreamError

log = logging.getLogger(__name__)

# Message flags
SUPPRESS_EMBEDS = 1 << 2
EPHEMERAL = 1 << 6

# Only user mentions ping, and replies never ping the author.
ALLOWED_MENTIONS = {"parse": ["users"], "replied_user": False}

MAX_MESSAGE_LEN = 2000


def _payload(content: str, suppress_embeds: bool = False, ephemeral: bool = False) -> dict:
    flags = (SUPPRESS_EMBEDS if suppress_embeds else 0) | (EPHEMERAL if ephemeral else 0)
    body: dict[str, Any] = {
        "content": content[:MAX_MESSAGE_LEN],
        "allowed_mentions": ALLOWED_MENTIONS,
    }
    if flags:
        body["flags"] = flags
    return body


class DiscordRest:
    """Bot-authenticated calls to the Discord HTTP API.

    Also implements the ChannelResolver protocol, caching guild channel
    names after the first lookup.
    """

    def __init__(
        self,
        token: str,
        api_base: str = "https://discord.com/api/v10",
        timeout: float = 30.0,
    ) -> None:
        self._token = token
        self._api_base = api_base.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self._api_base,
            timeout=timeout,
            headers={
                "Authorization": f"Bot {token}",
                "User-Agent": "DiscordBot (beacon_faucet, 0.1.0)",
            },
        )
        self._channel_names: dict[str, dict[str, str]] = {}

    async def close(self) -> None:
        await self._client.aclose()

    def _redact(self, text: str) -> str:
        return text.replace(self._token, "<redacted>") if self._token else text

    async def _request(self, method: str, path: str, what: str, **kwargs: Any) -> Any:
        try:
            resp = await self._client.request(method, path, **kwargs)
        except httpx.TimeoutException as exc:
            raise UpstreamError(what, "timeout") from exc
        except httpx.HTTPError as exc:
            raise UpstreamError(what, self._redact(str(exc))) from exc
        if resp.status_code >= 400:
            raise UpstreamError(what, f"status code {resp.status_code}: {resp.text[:200]}")
        if resp.status_code == 204 or not resp.content:
            return None
        return resp.json()

    # ── Identity ──────────────────────────────────────────

    async def current_user(self) -> dict:
        return await self._request("GET", "/users/@me", "Discord login")

    # ── Channels ──────────────────────────────────────────

    async def get_channel(self, channel_id: str) -> dict:
        return await self._request("GET", f"/channels/{channel_id}", f"channel {channel_id} lookup")

    async def send_message(
        self, channel_id: str, content: str, suppress_embeds: bool = False,
    ) -> dict:
        return await self._request(
            "POST",
            f"/channels/{channel_id}/messages",
            f"message to channel {channel_id}",
            json=_payload(content, suppress_embeds=suppress_embeds),
        )

    async def channel_id_by_name(self, guild_id: str, name: str) -> str | None:
        if not guild_id:
            return None
        names = self._channel_names.get(guild_id)
        if names is None or name not in names:
            channels = await self._request(
                "GET", f"/guilds/{guild_id}/channels", f"guild {guild_id} channels",
            )
            names = {c["name"]: c["id"] for c in channels or [] if "name" in c}
            self._channel_names[guild_id] = names
        return names.get(name)

    # ── Interaction responses ─────────────────────────────

    async def edit_original(self, application_id: str, token: str, content: str) -> None:
        await self._request(
            "PATCH",
            f"/webhooks/{application_id}/{token}/messages/@original",
            "interaction reply edit",
            json=_payload(content),
        )

    async def create_followup(
        self,
        application_id: str,
        token: str,
        content: str,
        suppress_embeds: bool = False,
        ephemeral: bool = False,
    ) -> None:
        await self._request(
            "POST",
            f"/webhooks/{application_id}/{token}",
            "interaction follow-up",
            json=_payload(content, suppress_embeds=suppress_embeds, ephemeral=ephemeral),
        )

    # ── Command registration ──────────────────────────────

    async def put_guild_commands(
        self, application_id: str, guild_id: str, commands: list[dict],
    ) -> list[dict]:
        """Replace the guild's whole command catalog."""
        return await self._request(
            "PUT",
            f"/applications/{application_id}/guilds/{guild_id}/commands",
            "guild command registration",
            json=commands,
        ) or []
