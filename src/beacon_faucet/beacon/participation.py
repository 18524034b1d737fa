"""Participation rate computation and threshold alerting."""

from __future__ import annotations

from beacon_faucet.models.records import (
    PARTICIPATION_THRESHOLDS,
    AlertHysteresisState,
    ParticipationSample,
)
from beacon_faucet.timefmt import format_rate, human_duration

_LABELS = {
    "below90": "90%",
    "below80": "80%",
    "below70": "70%",
    "below_two_thirds": "2 / 3",
}


def participation_rates(inclusion: dict) -> tuple[float, float]:
    """(completed epoch rate, current epoch rate) from validator inclusion data.

    Rates are target-attesting stake over active stake.
    """
    previous = int(inclusion["previous_epoch_target_attesting_gwei"]) / int(
        inclusion["previous_epoch_active_gwei"]
    )
    current = int(inclusion["current_epoch_target_attesting_gwei"]) / int(
        inclusion["current_epoch_active_gwei"]
    )
    return previous, current


class ParticipationAlerts:
    """Hysteresis over the 90%, 80%, 70% and 2/3 participation thresholds.

    After every evaluation the set flags are exactly the thresholds the rate
    is below, so the nesting below_two_thirds => below70 => below80 =>
    below90 always holds. A drop emits one alert naming the strictest
    threshold newly crossed; a recovery emits one alert naming the
    strictest threshold cleared, however many bands the rate moved.
    """

    def __init__(self, network_name: str = "Mainnet") -> None:
        self.state = AlertHysteresisState()
        self._network_name = network_name

    def evaluate(self, rate: float, epoch: int) -> str | None:
        before = {name: getattr(self.state, name) for _, name in PARTICIPATION_THRESHOLDS}
        after = {name: rate < threshold for threshold, name in PARTICIPATION_THRESHOLDS}
        for name, value in after.items():
            setattr(self.state, name, value)

        newly_set = [n for _, n in PARTICIPATION_THRESHOLDS if after[n] and not before[n]]
        cleared = [n for _, n in PARTICIPATION_THRESHOLDS if before[n] and not after[n]]
        rate_text = format_rate(rate)

        if newly_set:
            strictest = newly_set[-1]
            message = (
                f"Participation rate on {self._network_name} is below {_LABELS[strictest]} "
                f"(current: {rate_text} for epoch {epoch})."
            )
            if strictest == "below_two_thirds":
                message += " Finality is compromised."
            return message

        if cleared:
            strictest = cleared[-1]
            message = (
                f"Participation rate on {self._network_name} is back above {_LABELS[strictest]} "
                f"(current: {rate_text} for epoch {epoch})."
            )
            if strictest == "below_two_thirds":
                message += " Finality should resume."
            return message

        return None


def participation_message(
    sample: ParticipationSample | None, network_name: str, now: float,
) -> str:
    """Reply for the participation query and the auto post."""
    if sample is None:
        return (
            f"We don't have the current participation rate for {network_name}. "
            "It should be available in a few minutes if you want to retry."
        )
    age = human_duration(max(0.0, now - sample.sampled_at))
    return (
        f"Participation rate for epoch **{sample.epoch - 1}** ({age} ago) is "
        f"**{format_rate(sample.previous_rate)}** on {network_name}. "
        f"Current participation rate for epoch {sample.epoch} is "
        f"{format_rate(sample.current_rate)} (this is subject to change and probably "
        "incomplete as validators can continue to include attestations for the "
        "*current* epoch in the *next* epoch) on "
        f"{network_name}."
    )
