"""Exception types shared across the faucet and the monitor."""

from __future__ import annotations

import asyncio
from typing import Awaitable, TypeVar

T = TypeVar("T")


class FaucetError(Exception):
    """Base class for errors raised by beacon_faucet components."""


class UpstreamError(FaucetError):
    """An RPC or HTTP dependency failed."""

    def __init__(self, what: str, cause: BaseException | str | None = None) -> None:
        self.what = what
        self.cause = cause
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"{what} failed{detail}")


class UpstreamTimeout(UpstreamError):
    """An external call did not complete before its deadline."""

    def __init__(self, what: str, seconds: float) -> None:
        self.seconds = seconds
        super().__init__(what, f"no response after {seconds:g}s")


class StoreError(FaucetError):
    """The rate-limit store could not be used as configured."""


class SignatureError(FaucetError):
    """An inbound interaction failed signature verification."""


async def with_deadline(aw: Awaitable[T], seconds: float | None, what: str) -> T:
    """Await `aw`, raising UpstreamTimeout once `seconds` have elapsed."""
    if seconds is None:
        return await aw
    try:
        return await asyncio.wait_for(aw, timeout=seconds)
    except asyncio.TimeoutError as exc:
        raise UpstreamTimeout(what, seconds) from exc
