"""Internal record types for state persistence and operation results."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


@dataclass
class LastRequestRecord:
    """Last dispense (or self-sufficiency check) for one user on one network."""

    user_id: str
    last_requested: int  # seconds since epoch, UTC
    last_address: str


class RequestStatus(str, Enum):
    """Terminal state of a faucet request."""

    SENT = "sent"
    ALREADY_FUNDED = "already_funded"
    WRONG_CHANNEL = "wrong_channel"
    PENDING = "pending"
    MISSING_ROLE = "missing_role"
    RATE_LIMITED = "rate_limited"
    INVALID_ADDRESS = "invalid_address"
    NAME_NOT_FOUND = "name_not_found"
    FAUCET_EMPTY = "faucet_empty"
    UPSTREAM_ERROR = "upstream_error"
    TRANSFER_FAILED = "transfer_failed"


@dataclass
class RequestResult:
    """Outcome of one request-<network> invocation."""

    status: RequestStatus
    message: str
    network: str
    user_id: str
    target_address: str | None = None
    amount: int | None = None  # wei actually sent
    tx_hash: str | None = None
    explorer_url: str | None = None
    remaining_requests: int | None = None
    wait_seconds: int | None = None  # rate limited: time until next request
    note: str = ""  # quick-repeat annotation
    decoy: bool = False  # never shown to the caller

    @property
    def success(self) -> bool:
        return self.status in (RequestStatus.SENT, RequestStatus.ALREADY_FUNDED)


@dataclass
class ParticipationSample:
    """Latest participation figures, overwritten at every epoch transition."""

    epoch: int  # epoch still accumulating votes
    previous_rate: float  # completed epoch (epoch - 1)
    current_rate: float
    sampled_at: float  # wall clock seconds


# Threshold -> flag attribute, loosest first.
PARTICIPATION_THRESHOLDS: tuple[tuple[float, str], ...] = (
    (0.90, "below90"),
    (0.80, "below80"),
    (0.70, "below70"),
    (2 / 3, "below_two_thirds"),
)


@dataclass
class AlertHysteresisState:
    """Nested alert flags: below_two_thirds => below70 => below80 => below90."""

    below90: bool = False
    below80: bool = False
    below70: bool = False
    below_two_thirds: bool = False

    def flags(self) -> tuple[bool, ...]:
        return tuple(getattr(self, name) for _, name in PARTICIPATION_THRESHOLDS)

    def is_nested(self) -> bool:
        flags = self.flags()
        # Once a flag is clear, every stricter flag must be clear too.
        return all(looser or not stricter for looser, stricter in zip(flags, flags[1:]))


@dataclass
class QueueEstimate:
    """Estimated wait for one validator queue."""

    queued: int
    churn_per_day: int
    seconds: float
    within_baseline: bool


@dataclass
class QueueStats:
    """Raw queue statistics from the explorer API."""

    entering: int
    exiting: int
    active_validators: int = 0
    extra: dict = field(default_factory=dict)


@dataclass(frozen=True)
class Caller:
    """Who invoked a command, and from where."""

    user_id: str
    user_tag: str = ""
    channel_id: str = ""
    guild_id: str = ""
    role_ids: frozenset[str] = field(default_factory=frozenset)

    @property
    def mention(self) -> str:
        return f"<@{self.user_id}>"

    def __str__(self) -> str:
        return f"@{self.user_tag} ({self.user_id})" if self.user_tag else self.user_id
