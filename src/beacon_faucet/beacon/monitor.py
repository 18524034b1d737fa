"""Chain health monitor - participation alerts and slashing detection."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable

from beacon_faucet.beacon.participation import (
    ParticipationAlerts,
    participation_message,
    participation_rates,
)
from beacon_faucet.beacon.slashings import find_slashings, render_slashing_alert
from beacon_faucet.interfaces.beacon import BeaconAPI
from beacon_faucet.interfaces.chat import AlertSink
from beacon_faucet.models.config import BeaconSettings
from beacon_faucet.models.events import HeadEvent, SlashingFinding
from beacon_faucet.models.records import AlertHysteresisState, ParticipationSample
from beacon_faucet.retry import Backoff

log = logging.getLogger(__name__)


class ChainHealthMonitor:
    """Consumes the beacon node head stream for the life of the process.

    Every head event triggers a slashing scan of its block. Events that
    mark an epoch transition also refresh the participation sample and run
    the threshold alerts. A dropped stream is resubscribed after a backoff
    delay, forever.
    """

    def __init__(
        self,
        beacon: BeaconAPI,
        alerts: AlertSink,
        settings: BeaconSettings,
        backoff: Backoff | None = None,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._beacon = beacon
        self._alerts = alerts
        self._settings = settings
        self._backoff = backoff or Backoff()
        self._clock = clock
        self._sleep = sleep
        self._participation = ParticipationAlerts(settings.network_name)
        self._sample: ParticipationSample | None = None
        self._auto_post: AlertSink | None = None
        self._running = False
        self._task: asyncio.Task | None = None

    # ── State ─────────────────────────────────────────────

    @property
    def sample(self) -> ParticipationSample | None:
        return self._sample

    @property
    def hysteresis(self) -> AlertHysteresisState:
        return self._participation.state

    @property
    def network_name(self) -> str:
        return self._settings.network_name

    @property
    def auto_post_enabled(self) -> bool:
        return self._auto_post is not None

    def set_auto_post(self, sink: AlertSink | None) -> None:
        """Post every new participation sample to `sink`, or stop when None."""
        self._auto_post = sink

    def participation_message(self) -> str:
        return participation_message(self._sample, self._settings.network_name, self._clock())

    # ── Lifecycle ─────────────────────────────────────────

    async def start(self) -> None:
        if not self._settings.enabled:
            log.info("Chain health monitor is disabled")
            return
        self._running = True
        self._task = asyncio.create_task(self.run())
        log.info("Chain health monitor started (%s)", self._settings.api_url)

    async def stop(self) -> None:
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        log.info("Chain health monitor stopped")

    async def run(self) -> None:
        """Subscribe, consume, and resubscribe until stopped."""
        self._running = True
        while self._running:
            try:
                async for event in self._beacon.head_events():
                    self._backoff.reset()
                    await self.on_head_event(event)
                log.warning("Head event stream ended")
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                log.error("Head event stream error: %s", exc, exc_info=True)

            if not self._running:
                break
            delay = self._backoff.next_delay()
            log.info("Retrying head event stream in %.1f seconds", delay)
            await self._sleep(delay)

    # ── Event handling ────────────────────────────────────

    async def on_head_event(self, event: HeadEvent) -> None:
        if event.epoch_transition:
            epoch = event.slot // self._settings.slots_per_epoch
            log.info("Epoch transition on slot %d for epoch %d", event.slot, epoch)
            await self.check_participation(epoch - 1)
        await self.scan_block(event.slot)

    async def check_participation(self, epoch: int) -> ParticipationSample | None:
        """Refresh the sample for `epoch` and run the threshold alerts.

        A failed query skips the epoch and leaves the alert state untouched.
        """
        try:
            inclusion = await self._beacon.get_validator_inclusion(epoch)
            previous, current = participation_rates(inclusion)
        except Exception as exc:
            log.error("Validator inclusion query for epoch %d failed: %s", epoch, exc)
            return None

        log.info(
            "Participation rate for epoch %d is %.4f, provisional rate for epoch %d is %.4f",
            epoch - 1, previous, epoch, current,
        )
        message = self._participation.evaluate(previous, epoch)
        if message is not None:
            log.warning("%s", message)
            await self._alert(message)

        self._sample = ParticipationSample(
            epoch=epoch,
            previous_rate=previous,
            current_rate=current,
            sampled_at=self._clock(),
        )
        await self._post_sample()
        return self._sample

    async def _post_sample(self) -> None:
        sink = self._auto_post
        if sink is None:
            return
        try:
            await sink.send(self.participation_message())
        except Exception as exc:
            log.error("Unable to auto post participation rate: %s", exc)

    async def scan_block(self, slot: int) -> list[SlashingFinding]:
        try:
            block = await self._beacon.get_block(slot)
        except Exception as exc:
            log.error("Block query for slot %d failed: %s", slot, exc)
            return []
        if block is None:
            log.debug("No block at slot %d", slot)
            return []

        try:
            findings = find_slashings(block)
        except (KeyError, TypeError, ValueError) as exc:
            log.error("Malformed block at slot %d: %s", slot, exc)
            return []

        for finding in findings:
            log.warning(
                "%s slashing for validator %d at slot %d",
                finding.kind.value.capitalize(), finding.validator_index, slot,
            )
        message = render_slashing_alert(
            slot, findings, self._settings.network_name, self._settings.validator_explorer_root,
        )
        if message is not None:
            await self._alert(message)
        return findings

    async def _alert(self, message: str) -> None:
        try:
            await self._alerts.send(message)
        except Exception as exc:
            log.error("Unable to send alert: %s", exc)
