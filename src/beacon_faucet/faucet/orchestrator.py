"""Request orchestrator - drives one faucet request from gate to confirmation."""

from __future__ import annotations

import logging
import time
from typing import Awaitable, Callable

from beacon_faucet.faucet.decoy import decoy_wait_seconds
from beacon_faucet.faucet.registry import NetworkConfig, NetworkRegistry
from beacon_faucet.interfaces.chain import NameResolver
from beacon_faucet.interfaces.chat import AlertSink, ChannelResolver
from beacon_faucet.interfaces.store import RequestStore
from beacon_faucet.models.records import Caller, RequestResult, RequestStatus
from beacon_faucet.timefmt import DAY, format_ether, human_duration

log = logging.getLogger(__name__)

QUICK_NEW_REQUEST = DAY

Progress = Callable[[str], Awaitable[None]]


async def _no_progress(message: str) -> None:
    return None


def _best_effort(progress: Progress) -> Progress:
    """Wrap `progress` so a failed update is logged instead of raised."""
    async def _update(message: str) -> None:
        try:
            await progress(message)
        except Exception as exc:
            log.warning("Progress update failed: %s", exc)
    return _update


class RequestOrchestrator:
    """Gates, rate-limits, and executes faucet transfers.

    Steps, each a possible exit: channel gate, per-user lock, role gate,
    decoy check, rate limit, address resolution, self-sufficiency check,
    reserve check, transfer and confirmation. Every exit after the lock is
    taken releases it. An unknown network key raises `KeyError`; any
    other failure comes back as a `RequestResult`. Progress updates are
    best effort and never interrupt a request.

    An empty faucet and failed transfers are also reported to `alerts`,
    the operator channel shared with the chain health monitor.
    """

    def __init__(
        self,
        registry: NetworkRegistry,
        store: RequestStore,
        resolver: NameResolver,
        channels: ChannelResolver | None = None,
        allowed_role_ids: set[str] | frozenset[str] = frozenset(),
        farmer_role_id: str = "",
        alerts: AlertSink | None = None,
        verification_channel_ids: list[str] | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._registry = registry
        self._store = store
        self._resolver = resolver
        self._channels = channels
        self._allowed_roles = frozenset(r.strip() for r in allowed_role_ids if r.strip())
        self._farmer_role = farmer_role_id.strip()
        self._alerts = alerts
        self._verification_channels = [c for c in verification_channel_ids or [] if c]
        self._clock = clock

    async def handle_request(
        self,
        network_key: str,
        caller: Caller,
        target: str,
        progress: Progress | None = None,
    ) -> RequestResult:
        network = self._registry.get(network_key)
        if network is None:
            raise KeyError(f"Unknown network: {network_key}")
        progress = _best_effort(progress) if progress else _no_progress
        target = target.strip()
        log.info("%s from %s to %s", network.command, caller, target)

        redirect = await self._check_channel(network, caller)
        if redirect is not None:
            return redirect

        with network.pending.hold(caller.user_id) as acquired:
            if not acquired:
                log.info("Pending request already in flight for %s on %s", caller, network.name)
                return self._result(
                    network, caller, RequestStatus.PENDING,
                    "You already have a pending request. "
                    "Please wait until your request is completed.",
                )
            try:
                return await self._process(network, caller, target, progress)
            except Exception as exc:
                log.error(
                    "Unexpected error while using the %s command for %s: %s",
                    network.command, caller, exc, exc_info=True,
                )
                await self._alert(
                    f"Unexpected error while processing {network.command} for {caller}: {exc}",
                )
                return self._result(
                    network, caller, RequestStatus.UPSTREAM_ERROR,
                    f"Unexpected error while using the {network.command} command. {exc}",
                )

    # ── Gates ─────────────────────────────────────────────

    async def _check_channel(self, network: NetworkConfig, caller: Caller) -> RequestResult | None:
        if not network.channel or self._channels is None:
            return None
        try:
            channel_id = await self._channels.channel_id_by_name(caller.guild_id, network.channel)
        except Exception as exc:
            log.warning("Could not look up channel #%s: %s", network.channel, exc)
            return None
        if channel_id is None or channel_id == caller.channel_id:
            return None
        log.info("%s used %s in the wrong channel", caller, network.command)
        return self._result(
            network, caller, RequestStatus.WRONG_CHANNEL,
            f"This is the wrong channel for this bot command ({network.command}). "
            f"You should try in <#{channel_id}>.",
        )

    def _has_role(self, caller: Caller) -> bool:
        return not self._allowed_roles or bool(self._allowed_roles & caller.role_ids)

    def _is_farmer(self, caller: Caller) -> bool:
        return bool(self._farmer_role) and self._farmer_role in caller.role_ids

    @staticmethod
    def _rate_limited_message(wait_seconds: int) -> str:
        return (
            "You cannot do another request this soon. You will need to wait at least "
            f"{human_duration(wait_seconds)} before you can request again."
        )

    def _missing_role_message(self) -> str:
        message = "You cannot use this command without the correct role."
        if self._verification_channels:
            channels = " or ".join(f"<#{c}>" for c in self._verification_channels)
            return f"{message} Get verified in {channels} first to be able to request funds."
        return f"{message} Get verified first to be able to request funds."

    async def _alert(self, message: str) -> None:
        if self._alerts is None:
            return
        try:
            await self._alerts.send(message)
        except Exception as exc:
            log.error("Unable to send operator alert: %s", exc)

    # ── Pipeline ──────────────────────────────────────────

    async def _process(
        self, network: NetworkConfig, caller: Caller, target: str, progress: Progress,
    ) -> RequestResult:
        await progress("Checking if you have the proper role...")
        if not self._has_role(caller):
            log.info("%s lacks a required role for %s", caller, network.command)
            return self._result(
                network, caller, RequestStatus.MISSING_ROLE,
                self._missing_role_message(),
            )

        await progress("Checking if you are rate-limited...")
        if self._is_farmer(caller):
            wait = decoy_wait_seconds(caller.user_id, network.rate_limit_seconds)
            log.info("Decoy rate limit for %s on %s (%ds)", caller, network.name, wait)
            return self._result(
                network, caller, RequestStatus.RATE_LIMITED,
                self._rate_limited_message(wait), wait_seconds=wait, decoy=True,
            )

        now = int(self._clock())
        note = ""
        last = await self._store.get_last_request(network.table, caller.user_id)
        if last is not None:
            available_at = last.last_requested + network.rate_limit_seconds
            if now < available_at:
                wait = available_at - now
                log.info("Rate limited %s on %s for %ds", caller, network.name, wait)
                return self._result(
                    network, caller, RequestStatus.RATE_LIMITED,
                    self._rate_limited_message(wait), wait_seconds=wait,
                )
            since = now - available_at
            note = f" Your new request was available {human_duration(since)} ago."
            if since <= QUICK_NEW_REQUEST:
                note += " That was a quick new request! You should consider leaving some for the others."

        address = await self._resolve_target(network, caller, target, progress)
        if isinstance(address, RequestResult):
            return address

        chain = network.chain
        await progress(f"Checking if you already have enough {network.currency}...")
        try:
            balance = await chain.get_balance(address)
        except Exception as exc:
            log.warning("Balance check for %s on %s failed: %s", address, network.name, exc)
            return self._result(
                network, caller, RequestStatus.UPSTREAM_ERROR,
                f"Error while trying to get balance from {address}. {exc}",
                target_address=address,
            )

        if balance >= network.request_amount:
            await self._store.store_last_request(network.table, caller.user_id, address, now)
            log.info("%s already holds %s %s", address, format_ether(balance), network.currency)
            return self._result(
                network, caller, RequestStatus.ALREADY_FUNDED,
                f"You already have {format_ether(balance)} {network.currency} in {address}. "
                f"{network.enough_reason}.",
                target_address=address, amount=0,
            )
        sending = network.request_amount - balance

        await progress("Checking if we have enough fund for this request...")
        try:
            faucet_balance = await chain.get_balance(chain.faucet_address)
        except Exception as exc:
            log.warning("Faucet balance check on %s failed: %s", network.name, exc)
            return self._result(
                network, caller, RequestStatus.UPSTREAM_ERROR,
                f"Error while trying to get balance from the {network.name} faucet. {exc}",
                target_address=address,
            )
        if faucet_balance < sending + network.cost_buffer:
            log.warning(
                "%s faucet is empty (%s %s left)",
                network.name, format_ether(faucet_balance), network.currency,
            )
            await self._alert(
                f"The {network.name} faucet is empty "
                f"({format_ether(faucet_balance)} {network.currency} left in {chain.faucet_address}).",
            )
            return self._result(
                network, caller, RequestStatus.FAUCET_EMPTY,
                f"The {network.name} faucet is empty. "
                "Please contact an administrator to fill it up.",
                target_address=address,
            )

        return await self._transfer(network, caller, address, sending, faucet_balance, note, progress)

    async def _resolve_target(
        self, network: NetworkConfig, caller: Caller, target: str, progress: Progress,
    ) -> str | RequestResult:
        if "." in target:
            await progress(f"Resolving ENS {target}...")
            try:
                resolved = await self._resolver.resolve_name(target)
            except Exception as exc:
                log.warning("ENS resolution of %s failed: %s", target, exc)
                return self._result(
                    network, caller, RequestStatus.UPSTREAM_ERROR,
                    f"Error while trying to resolve ENS {target}. {exc}",
                )
            if not resolved:
                log.info("No address found for ENS %s", target)
                return self._result(
                    network, caller, RequestStatus.NAME_NOT_FOUND,
                    f"No address found for ENS {target}.",
                )
            return resolved

        await progress(f"Checking if {target} is a valid address...")
        if not network.chain.is_address(target):
            log.info("Invalid address %r from %s", target, caller)
            return self._result(
                network, caller, RequestStatus.INVALID_ADDRESS,
                f"The wallet address provided ({target}) is not valid.",
            )
        return target

    async def _transfer(
        self,
        network: NetworkConfig,
        caller: Caller,
        address: str,
        sending: int,
        faucet_balance: int,
        note: str,
        progress: Progress,
    ) -> RequestResult:
        chain = network.chain
        amount_text = f"{format_ether(sending)} {network.currency}"
        await progress(f"Sending {amount_text} to {address}...")
        try:
            tx_hash = await chain.send(address, sending)
        except Exception as exc:
            log.error("Error while trying to send %s to %s for %s: %s", amount_text, address, caller, exc)
            await self._alert(f"Sending {amount_text} to {address} on {network.name} failed: {exc}")
            return self._result(
                network, caller, RequestStatus.TRANSFER_FAILED,
                f"Error while trying to send {amount_text} to {address}. {exc}",
                target_address=address, amount=sending,
            )

        # Recorded before confirmation.
        try:
            await self._store.store_last_request(
                network.table, caller.user_id, address, int(self._clock()),
            )
        except Exception as exc:
            log.error("Could not record request for %s on %s: %s", caller, network.name, exc, exc_info=True)

        explorer_url = network.explorer_url(tx_hash)
        await progress(
            f"{amount_text} have been sent to {address}. "
            f"Explore that transaction on {explorer_url}. Waiting for 1 confirm...",
        )
        try:
            await chain.wait_for_confirmation(tx_hash)
        except Exception as exc:
            log.error("Confirmation of %s on %s failed: %s", tx_hash, network.name, exc)
            await self._alert(f"Confirmation of {explorer_url} on {network.name} failed: {exc}")
            return self._result(
                network, caller, RequestStatus.TRANSFER_FAILED,
                f"Error while waiting for {amount_text} to reach {address}. {exc} "
                f"Explore that transaction on {explorer_url}",
                target_address=address, amount=sending, tx_hash=tx_hash,
                explorer_url=explorer_url,
            )
        await progress("Transaction confirmed with 1 block confirmation.")

        remaining = (faucet_balance - sending) // network.request_amount
        log.info("%s have been sent to %s for %s.%s", amount_text, address, caller, note)
        log.info("There are %d remaining requests with the current %s balance", remaining, network.name)
        return self._result(
            network, caller, RequestStatus.SENT,
            f"{amount_text} have been sent to {address}.{note} "
            f"Explore that transaction on {explorer_url}\n\n"
            f"There are {remaining} remaining requests with the current balance.",
            target_address=address, amount=sending, tx_hash=tx_hash,
            explorer_url=explorer_url, remaining_requests=remaining, note=note,
        )

    @staticmethod
    def _result(
        network: NetworkConfig,
        caller: Caller,
        status: RequestStatus,
        message: str,
        **kwargs,
    ) -> RequestResult:
        return RequestResult(
            status=status,
            message=message,
            network=network.key,
            user_id=caller.user_id,
            **kwargs,
        )
