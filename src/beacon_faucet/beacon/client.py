"""Beacon node REST client and server-sent head event stream."""

from __future__ import annotations

import json
import logging
from typing import AsyncIterator

import httpx

from beacon_faucet.errors import UpstreamError
from beacon_faucet.models.events import HeadEvent
from beacon_faucet.models.records import QueueStats

log = logging.getLogger(__name__)

_JSON = {"accept": "application/json"}


async def iter_sse(lines: AsyncIterator[str]) -> AsyncIterator[tuple[str, str]]:
    """Group server-sent event lines into (event, data) pairs."""
    event = "message"
    data: list[str] = []
    async for line in lines:
        if not line:
            if data:
                yield event, "\n".join(data)
            event, data = "message", []
            continue
        if line.startswith(":"):
            continue
        name, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]
        if name == "event":
            event = value
        elif name == "data":
            data.append(value)
    if data:
        yield event, "\n".join(data)


def parse_head_event(data: str) -> HeadEvent | None:
    try:
        raw = json.loads(data)
        return HeadEvent(
            slot=int(raw["slot"]),
            block=str(raw.get("block", "")),
            epoch_transition=bool(raw.get("epoch_transition", False)),
        )
    except (ValueError, KeyError, TypeError) as exc:
        log.warning("Malformed head event %r: %s", data[:200], exc)
        return None


class BeaconClient:
    """Read-only access to a beacon node and an explorer queue API.

    `timeout` bounds every REST call. The event stream has no overall
    deadline but drops when no bytes arrive for `stream_idle_timeout`.
    """

    def __init__(
        self,
        api_url: str,
        timeout: float = 30.0,
        stream_idle_timeout: float = 120.0,
    ) -> None:
        self._base_url = api_url.rstrip("/")
        self._timeout = timeout
        self._stream_idle_timeout = stream_idle_timeout

    def _url(self, path: str) -> str:
        return f"{self._base_url}{path}"

    async def _get_json(self, url: str, what: str, allow_missing: bool = False) -> dict | None:
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.get(url, headers=_JSON)
        except httpx.TimeoutException as exc:
            raise UpstreamError(what, f"timeout after {self._timeout:g}s") from exc
        except httpx.HTTPError as exc:
            raise UpstreamError(what, exc) from exc

        if allow_missing and resp.status_code == 404:
            return None
        if resp.status_code != 200:
            raise UpstreamError(what, f"unexpected status code {resp.status_code}")
        try:
            return resp.json()
        except ValueError as exc:
            raise UpstreamError(what, "response is not JSON") from exc

    async def head_events(self) -> AsyncIterator[HeadEvent]:
        url = self._url("/eth/v1/events?topics=head")
        timeout = httpx.Timeout(self._timeout, read=self._stream_idle_timeout)
        async with httpx.AsyncClient(timeout=timeout) as client:
            async with client.stream(
                "GET", url, headers={"accept": "text/event-stream"},
            ) as resp:
                if resp.status_code != 200:
                    raise UpstreamError("head event subscription", f"status code {resp.status_code}")
                log.info("Subscribed to head events at %s", url)
                async for event, data in iter_sse(resp.aiter_lines()):
                    if event != "head":
                        continue
                    head = parse_head_event(data)
                    if head is not None:
                        yield head

    async def get_validator_inclusion(self, epoch: int) -> dict:
        body = await self._get_json(
            self._url(f"/lighthouse/validator_inclusion/{epoch}/global"),
            f"validator inclusion for epoch {epoch}",
        )
        if not isinstance(body, dict) or "data" not in body:
            raise UpstreamError(f"validator inclusion for epoch {epoch}", "missing data")
        return body["data"]

    async def get_block(self, slot: int) -> dict | None:
        body = await self._get_json(
            self._url(f"/eth/v2/beacon/blocks/{slot}"),
            f"block at slot {slot}",
            allow_missing=True,
        )
        if body is None:
            return None
        if "data" not in body:
            raise UpstreamError(f"block at slot {slot}", "missing data")
        return body["data"]

    async def get_queue_stats(self, url: str) -> QueueStats:
        what = "validator queue details"
        body = await self._get_json(url, what)
        if not isinstance(body, dict) or body.get("status") != "OK":
            status = body.get("status") if isinstance(body, dict) else None
            raise UpstreamError(what, f"unexpected body status {status}")
        data = body.get("data") or {}
        return QueueStats(
            entering=int(data.get("beaconchain_entering", 0)),
            exiting=int(data.get("beaconchain_exiting", 0)),
            active_validators=int(data.get("validatorscount", 0)),
            extra=data,
        )
