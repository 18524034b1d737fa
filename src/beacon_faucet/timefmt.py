"""Human-readable rendering of durations and currency amounts."""

from __future__ import annotations

from decimal import Decimal

from beacon_faucet.models.config import WEI_PER_ETHER

MINUTE = 60
HOUR = 60 * MINUTE
DAY = 24 * HOUR


def _plural(value: int, unit: str) -> str:
    return f"{value} {unit}" if value == 1 else f"{value} {unit}s"


def human_duration(seconds: float) -> str:
    """Render a duration the way people read a countdown.

    Durations of a day or more are shown in days and hours, shorter ones in
    hours and minutes, and anything under a minute in seconds.
    """
    total = max(0, int(round(seconds)))
    if total >= DAY:
        days, rest = divmod(total, DAY)
        hours = rest // HOUR
        parts = [_plural(days, "day")]
        if hours:
            parts.append(_plural(hours, "hour"))
        return ", ".join(parts)
    if total >= MINUTE:
        hours, rest = divmod(total, HOUR)
        minutes = rest // MINUTE
        parts = []
        if hours:
            parts.append(_plural(hours, "hour"))
        if minutes or not hours:
            parts.append(_plural(minutes, "minute"))
        return ", ".join(parts)
    return _plural(total, "second")


def format_ether(wei: int) -> str:
    """Format a wei amount as a decimal ether string without trailing zeros."""
    value = Decimal(wei) / Decimal(WEI_PER_ETHER)
    text = format(value.normalize(), "f")
    return text if "." not in text else text.rstrip("0").rstrip(".")


def format_rate(rate: float) -> str:
    """Format a participation ratio as a percentage with up to two decimals."""
    text = f"{rate * 100:.2f}".rstrip("0").rstrip(".")
    return f"{text}%"
