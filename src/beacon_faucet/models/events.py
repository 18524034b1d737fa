"""Beacon node event models."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


@dataclass(frozen=True)
class HeadEvent:
    """A `head` event from the beacon node event stream."""

    slot: int
    block: str
    epoch_transition: bool


class SlashingKind(str, Enum):
    ATTESTER = "attester"
    PROPOSER = "proposer"


@dataclass(frozen=True)
class SlashingFinding:
    """A validator found in a slashing included in a block."""

    validator_index: int
    kind: SlashingKind
