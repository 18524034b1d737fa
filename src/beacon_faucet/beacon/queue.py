"""Validator activation and exit queue wait estimates."""

from __future__ import annotations

from beacon_faucet.models.records import QueueEstimate, QueueStats
from beacon_faucet.timefmt import DAY, HOUR, human_duration

EPOCHS_PER_DAY = 225
MIN_PER_EPOCH_CHURN_LIMIT = 4
CHURN_LIMIT_QUOTIENT = 65536

ACTIVATION_BASELINE = 24 * HOUR
ACTIVATION_NORMAL_MSG = (
    "It should only take 16-24 hours for a new deposit to be processed "
    "and an associated validator to be activated."
)
EXIT_EMPTY_MSG = (
    "The **exit queue** is empty. It should only take a few minutes "
    "for a validator to complete a voluntary exit."
)


def churn_per_day(active_validators: int) -> int:
    per_epoch = max(MIN_PER_EPOCH_CHURN_LIMIT, active_validators // CHURN_LIMIT_QUOTIENT)
    return per_epoch * EPOCHS_PER_DAY


def estimate_wait(queued: int, active_validators: int, baseline: float = 0) -> QueueEstimate:
    churn = churn_per_day(active_validators)
    seconds = queued / churn * DAY
    return QueueEstimate(
        queued=queued,
        churn_per_day=churn,
        seconds=seconds,
        within_baseline=seconds <= baseline,
    )


def activation_message(stats: QueueStats) -> str:
    if stats.entering <= 0:
        return f"The **activation queue** is empty. {ACTIVATION_NORMAL_MSG}"
    estimate = estimate_wait(stats.entering, stats.active_validators, ACTIVATION_BASELINE)
    head = f"There are **{stats.entering} validators awaiting to be activated**."
    if estimate.within_baseline:
        return (
            f"{head} The queue should clear out in {human_duration(estimate.seconds)} "
            f"if there is no new deposit. {ACTIVATION_NORMAL_MSG}"
        )
    return (
        f"{head} It should take at least {human_duration(estimate.seconds)} for a new "
        "deposit to be processed and an associated validator to be activated."
    )


def exit_message(stats: QueueStats) -> str:
    if stats.exiting <= 0:
        return EXIT_EMPTY_MSG
    estimate = estimate_wait(stats.exiting, stats.active_validators)
    return (
        f"There are **{stats.exiting} validators awaiting to exit** the network. "
        f"It should take at least {human_duration(estimate.seconds)} for a voluntary exit "
        "to be processed and an associated validator to leave the network."
    )


def render_queue_message(network_name: str, stats: QueueStats) -> str:
    return (
        f"Current queue details for **{network_name}**\n\n"
        f"- {activation_message(stats)}\n"
        f"- {exit_message(stats)}"
    )
