"""HTTP interactions endpoint - signature check, deferral, and dispatch."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

from aiohttp import web
from nacl.exceptions import BadSignatureError
from nacl.signing import VerifyKey

from beacon_faucet.chat.commands import CommandRouter
from beacon_faucet.chat.rest import EPHEMERAL, DiscordRest
from beacon_faucet.errors import SignatureError
from beacon_faucet.models.records import Caller

log = logging.getLogger(__name__)

# Interaction types
PING = 1
APPLICATION_COMMAND = 2

# Interaction callback types
PONG = 1
DEFERRED_CHANNEL_MESSAGE = 5


class SignatureVerifier:
    """Checks the ed25519 signature the platform puts on every request."""

    def __init__(self, public_key_hex: str) -> None:
        try:
            self._key = VerifyKey(bytes.fromhex(public_key_hex))
        except ValueError as exc:
            raise SignatureError(f"Invalid application public key: {exc}") from exc

    def verify(self, signature_hex: str, timestamp: str, body: bytes) -> None:
        try:
            self._key.verify(timestamp.encode() + body, bytes.fromhex(signature_hex))
        except (BadSignatureError, ValueError) as exc:
            raise SignatureError("Invalid request signature") from exc


def caller_from_payload(payload: dict) -> Caller:
    member = payload.get("member") or {}
    user = member.get("user") or payload.get("user") or {}
    return Caller(
        user_id=str(user.get("id", "")),
        user_tag=str(user.get("username", "")),
        channel_id=str(payload.get("channel_id", "")),
        guild_id=str(payload.get("guild_id", "")),
        role_ids=frozenset(str(r) for r in member.get("roles", [])),
    )


class DiscordInteraction:
    """One deferred command invocation answered through webhook calls.

    The HTTP response already deferred the answer, so the first `reply`
    fills in the deferred message. Later replies become follow-ups.
    """

    def __init__(self, payload: dict, rest: DiscordRest) -> None:
        data = payload.get("data") or {}
        self.command: str = data.get("name", "")
        self.caller = caller_from_payload(payload)
        self._options = {o["name"]: o.get("value") for o in data.get("options", [])}
        self._application_id = str(payload.get("application_id", ""))
        self._token = payload.get("token", "")
        self._rest = rest
        self._replied = False

    def option(self, name: str, default: Any = None) -> Any:
        return self._options.get(name, default)

    async def reply(self, content: str, ephemeral: bool = False) -> None:
        if not self._replied:
            self._replied = True
            await self._rest.edit_original(self._application_id, self._token, content)
            return
        await self._rest.create_followup(
            self._application_id, self._token, content, ephemeral=ephemeral,
        )

    async def edit_reply(self, content: str) -> None:
        self._replied = True
        await self._rest.edit_original(self._application_id, self._token, content)

    async def follow_up(self, content: str, suppress_embeds: bool = False) -> None:
        await self._rest.create_followup(
            self._application_id, self._token, content, suppress_embeds=suppress_embeds,
        )


class InteractionServer:
    """aiohttp application receiving interaction webhooks."""

    def __init__(
        self,
        router: CommandRouter,
        rest: DiscordRest,
        verifier: SignatureVerifier,
    ) -> None:
        self._router = router
        self._rest = rest
        self._verifier = verifier
        self._tasks: set[asyncio.Task] = set()
        self._runner: web.AppRunner | None = None
        self.app = web.Application()
        self.app.router.add_post("/interactions", self.handle)
        self.app.router.add_get("/health", self.health)

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    async def health(self, request: web.Request) -> web.Response:
        return web.json_response({"status": "ok", "in_flight": self.in_flight})

    async def handle(self, request: web.Request) -> web.Response:
        body = await request.read()
        try:
            self._verifier.verify(
                request.headers.get("X-Signature-Ed25519", ""),
                request.headers.get("X-Signature-Timestamp", ""),
                body,
            )
        except SignatureError as exc:
            log.warning("Rejected interaction: %s", exc)
            return web.json_response({"error": "invalid request signature"}, status=401)

        try:
            payload = json.loads(body)
        except ValueError:
            return web.json_response({"error": "malformed body"}, status=400)

        kind = payload.get("type")
        if kind == PING:
            return web.json_response({"type": PONG})
        if kind != APPLICATION_COMMAND:
            log.debug("Ignoring interaction type %s", kind)
            return web.json_response({"error": "unsupported interaction"}, status=400)

        interaction = DiscordInteraction(payload, self._rest)
        flags = EPHEMERAL if self._router.is_deferred(interaction.command) else 0
        self._spawn(interaction)
        response: dict[str, Any] = {"type": DEFERRED_CHANNEL_MESSAGE}
        if flags:
            response["data"] = {"flags": flags}
        return web.json_response(response)

    def _spawn(self, interaction: DiscordInteraction) -> None:
        task = asyncio.create_task(self._dispatch(interaction))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _dispatch(self, interaction: DiscordInteraction) -> None:
        try:
            await self._router.dispatch(interaction)
        except Exception as exc:
            log.error(
                "Command %s from %s failed: %s",
                interaction.command, interaction.caller, exc, exc_info=True,
            )

    async def start(self, host: str, port: int) -> None:
        self._runner = web.AppRunner(self.app)
        await self._runner.setup()
        site = web.TCPSite(self._runner, host, port)
        await site.start()
        log.info("Interactions endpoint listening on %s:%d", host, port)

    async def stop(self) -> None:
        if self._tasks:
            log.info("Waiting for %d command(s) in flight", len(self._tasks))
            await asyncio.gather(*self._tasks, return_exceptions=True)
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None
