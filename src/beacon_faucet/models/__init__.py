"""Data models for the beacon_faucet daemon."""

from beacon_faucet.models.config import (
    BeaconSettings,
    DaemonConfig,
    DiscordSettings,
    NetworkSettings,
    QueueTarget,
)
from beacon_faucet.models.events import HeadEvent, SlashingFinding, SlashingKind
from beacon_faucet.models.records import (
    AlertHysteresisState,
    Caller,
    LastRequestRecord,
    ParticipationSample,
    QueueEstimate,
    QueueStats,
    RequestResult,
    RequestStatus,
)

__all__ = [
    "BeaconSettings", "DaemonConfig", "DiscordSettings", "NetworkSettings", "QueueTarget",
    "HeadEvent", "SlashingFinding", "SlashingKind",
    "AlertHysteresisState", "Caller", "LastRequestRecord", "ParticipationSample",
    "QueueEstimate", "QueueStats", "RequestResult", "RequestStatus",
]
