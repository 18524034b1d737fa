"""Slashing detection in beacon blocks."""

from __future__ import annotations

from beacon_faucet.models.events import SlashingFinding, SlashingKind

MAX_RENDERED_PER_KIND = 5
TRUNCATION_MARKER = "[...]"


def _attester_indices(slashing: dict) -> list[int]:
    first = {int(i) for i in slashing["attestation_1"]["attesting_indices"]}
    second = {int(i) for i in slashing["attestation_2"]["attesting_indices"]}
    return sorted(first & second)


def _proposer_index(slashing: dict) -> int | None:
    first = int(slashing["signed_header_1"]["message"]["proposer_index"])
    second = int(slashing["signed_header_2"]["message"]["proposer_index"])
    return first if first == second else None


def find_slashings(block: dict) -> list[SlashingFinding]:
    """Validators slashed by the attester and proposer slashings of `block`.

    `block` is the `data` object of a signed beacon block. Each validator
    appears at most once per kind.
    """
    body = block["message"]["body"]
    findings: list[SlashingFinding] = []
    seen: set[tuple[int, SlashingKind]] = set()

    def _add(index: int, kind: SlashingKind) -> None:
        if (index, kind) not in seen:
            seen.add((index, kind))
            findings.append(SlashingFinding(validator_index=index, kind=kind))

    for slashing in body.get("attester_slashings") or []:
        for index in _attester_indices(slashing):
            _add(index, SlashingKind.ATTESTER)

    for slashing in body.get("proposer_slashings") or []:
        index = _proposer_index(slashing)
        if index is not None:
            _add(index, SlashingKind.PROPOSER)

    return findings


def render_slashing_alert(
    slot: int,
    findings: list[SlashingFinding],
    network_name: str,
    validator_root: str,
) -> str | None:
    """One alert for every slashing in a slot, None when there are none."""
    if not findings:
        return None

    sections = []
    for kind, label in (
        (SlashingKind.ATTESTER, "an *attestation slashing*"),
        (SlashingKind.PROPOSER, "a *proposer slashing*"),
    ):
        indices = [f.validator_index for f in findings if f.kind == kind]
        lines = [
            f"- Validator **{index}** was part of {label}. "
            f"Explore this validator on <{validator_root}{index}>"
            for index in indices[:MAX_RENDERED_PER_KIND]
        ]
        if len(indices) > MAX_RENDERED_PER_KIND:
            lines.append(TRUNCATION_MARKER)
        sections.extend(lines)

    body = "\n".join(sections)
    return f"We just found **slashings** on {network_name} at slot {slot}\n{body}"
