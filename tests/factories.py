"""Synthetic payload factories for testing."""

from __future__ import annotations

from beacon_faucet.faucet.registry import NetworkConfig
from beacon_faucet.models.config import TRANSACTION_COST_BUFFER, WEI_PER_ETHER
from beacon_faucet.models.events import HeadEvent
from beacon_faucet.models.records import Caller
from beacon_faucet.timefmt import DAY

USER_ADDRESS = "0x" + "11" * 20
OTHER_ADDRESS = "0x" + "22" * 20
ENS_ADDRESS = "0x" + "33" * 20

VERIFIED_ROLE = "role-verified"
FARMER_ROLE = "role-farmer"
FAUCET_CHANNEL_ID = "chan-faucet"


def make_caller(
    user_id: str = "1001",
    user_tag: str = "alice",
    channel_id: str = FAUCET_CHANNEL_ID,
    guild_id: str = "guild-1",
    roles: tuple[str, ...] = (VERIFIED_ROLE,),
) -> Caller:
    return Caller(
        user_id=user_id,
        user_tag=user_tag,
        channel_id=channel_id,
        guild_id=guild_id,
        role_ids=frozenset(roles),
    )


def make_network(
    chain,
    key: str = "sepolia-eth",
    name: str = "Sepolia",
    currency: str = "Sepolia ETH",
    table: str = "request_sepolia",
    rate_limit_days: float = 7,
    request_amount: int = WEI_PER_ETHER,
    channel: str | None = None,
    info_message: str = "can request Sepolia ETH once verified.",
) -> NetworkConfig:
    return NetworkConfig(
        key=key,
        name=name,
        currency=currency,
        table=table,
        rate_limit_seconds=int(rate_limit_days * DAY),
        request_amount=request_amount,
        min_reserve=request_amount + 2 * TRANSACTION_COST_BUFFER,
        explorer_tx_root=f"https://{name.lower()}.etherscan.io/tx/",
        enough_reason="It should be plenty already for a few transactions",
        chain=chain,
        channel=channel,
        info_message=info_message,
    )


def make_inclusion(previous_rate: float, current_rate: float | None = None) -> dict:
    """Validator inclusion data for the given rates over 1,000,000 gwei of stake."""
    active = 1_000_000
    current = previous_rate if current_rate is None else current_rate
    return {
        "current_epoch_active_gwei": active,
        "previous_epoch_active_gwei": active,
        "current_epoch_target_attesting_gwei": int(round(current * active)),
        "previous_epoch_target_attesting_gwei": int(round(previous_rate * active)),
    }


def _attestation(indices: list[int]) -> dict:
    return {"attesting_indices": [str(i) for i in indices], "data": {}, "signature": "0x"}


def _header(proposer: int) -> dict:
    return {"message": {"proposer_index": str(proposer), "slot": "1"}, "signature": "0x"}


def make_block(
    attester: list[tuple[list[int], list[int]]] | None = None,
    proposer: list[tuple[int, int]] | None = None,
) -> dict:
    """`data` object of a signed beacon block carrying the given slashings."""
    return {
        "message": {
            "slot": "1",
            "body": {
                "attester_slashings": [
                    {"attestation_1": _attestation(a), "attestation_2": _attestation(b)}
                    for a, b in attester or []
                ],
                "proposer_slashings": [
                    {"signed_header_1": _header(a), "signed_header_2": _header(b)}
                    for a, b in proposer or []
                ],
            },
        },
    }


def make_head_event(slot: int, epoch_transition: bool = False) -> HeadEvent:
    return HeadEvent(slot=slot, block="0x" + f"{slot:064x}", epoch_transition=epoch_transition)


def make_interaction_payload(
    command: str,
    options: dict | None = None,
    user_id: str = "1001",
    roles: tuple[str, ...] = (VERIFIED_ROLE,),
    channel_id: str = FAUCET_CHANNEL_ID,
) -> dict:
    return {
        "type": 2,
        "id": "interaction-1",
        "application_id": "app-1",
        "token": "interaction-token",
        "guild_id": "guild-1",
        "channel_id": channel_id,
        "member": {
            "user": {"id": user_id, "username": "alice"},
            "roles": list(roles),
        },
        "data": {
            "name": command,
            "options": [{"name": k, "value": v} for k, v in (options or {}).items()],
        },
    }
