"""Human-readable formatting for byte counts and ratios."""

from __future__ import annotations

import math

__all__ = ["format_size", "format_pct", "format4_pct", "round_half_up", "clamp_ratio"]

_SIZE_SUFFIXES: tuple[tuple[int, str], ...] = (
    (10, "K"),
    (20, "M"),
    (30, "G"),
    (40, "T"),
    (50, "P"),
)


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves away from zero.

    ``round()`` uses banker's rounding, which would put a slider at an even
    slot instead of the nearest one when a ratio lands exactly between two.
    """

    if value < 0:
        return -math.floor(-value + 0.5)
    return math.floor(value + 0.5)


def clamp_ratio(value: float) -> float:
    return min(max(value, 0.0), 1.0)


def format_size(size: float, zero: str = "0") -> str:
    """Format ``size`` bytes compactly, e.g. ``9999``, ``12K``, ``1.5G``."""

    count = int(size) if size > 0 else 0
    if count == 0:
        return zero
    if count < 9999:
        return str(count)
    for shift, suffix in _SIZE_SUFFIXES:
        scaled = count / float(1 << shift)
        if round_half_up(scaled) < 10:
            return f"{scaled:.1f}{suffix}"
        if round_half_up(scaled) < 1024:
            return f"{round_half_up(scaled)}{suffix}"
    return "INF"


def format_pct(ratio: float, zero: str = "0") -> str:
    """Format ``ratio`` as a percentage without the ``%`` sign."""

    pct = ratio * 100.0
    if pct < 0.05:
        return zero
    if pct < 9.95:
        return f"{pct:.1f}"
    return str(round_half_up(pct))


def format4_pct(ratio: float) -> str:
    """Percentage that always fits into four columns (``0``..``100``)."""

    return format_pct(min(ratio, 1.0))
