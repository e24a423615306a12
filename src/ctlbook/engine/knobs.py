"""Knob denormalization, read-back and engineering-unit readouts.

The UI always deals in ratios within ``[0, 1]``. Most knobs store the ratio
unchanged; the exceptions convert to bytes per second, keep an optional
override, or switch to an "unbounded" sentinel at the top of the range.
"""

from __future__ import annotations

from typing import Any

from ..control.agent import BenchReport
from ..control.state import DFL_ANON_ADDR_STDEV, DFL_FILE_ADDR_STDEV, ControlState, WorkloadParams
from ..documents.model import Knob
from ..utils.units import clamp_ratio, format4_pct, format_size, round_half_up

__all__ = [
    "store_knob",
    "load_knob",
    "format_knob",
    "slider_slot",
    "slot_ratio",
    "slider_steps",
    "UNBOUNDED_STDEV",
    "READOUT_WIDTH",
]

# Address stdev at the top of the slider means "uniform" to the workload.
UNBOUNDED_STDEV = 100.0
READOUT_WIDTH = 5
MIN_SLIDER_STEPS = 5
_SLIDER_CHROME = 13

_STDEV_DEFAULTS = {
    "file_addr_stdev": DFL_FILE_ADDR_STDEV,
    "anon_addr_stdev": DFL_ANON_ADDR_STDEV,
}


def _target(state: ControlState, knob: Knob) -> Any:
    index = knob.workload
    if index is None:
        return state
    return state.workloads[index]


def store_knob(state: ControlState, knob: Knob, ratio: float, *, wbps: int) -> None:
    """Overwrite the scalar behind ``knob`` with ``ratio`` in its stored unit."""

    target = _target(state, knob)
    name = knob.field
    if name == "mem_ratio":
        target.mem_ratio = ratio
    elif name in _STDEV_DEFAULTS:
        setattr(target, name, ratio if ratio < 1.0 else UNBOUNDED_STDEV)
    elif name == "log_bps":
        target.log_bps = round_half_up(wbps * ratio)
    else:
        setattr(target, name, ratio)


def load_knob(state: ControlState, knob: Knob, *, bench: BenchReport) -> float:
    """Ratio currently represented by the state (not yet clamped)."""

    target = _target(state, knob)
    name = knob.field
    if name == "mem_ratio":
        assert isinstance(target, WorkloadParams)
        return target.mem_ratio if target.mem_ratio is not None else bench.hashd_mem_frac
    if name in _STDEV_DEFAULTS:
        value = getattr(target, name)
        return min(value, 1.0) if value is not None else _STDEV_DEFAULTS[name]
    if name == "log_bps":
        if bench.iocost_wbps <= 0:
            return 0.0
        return target.log_bps / bench.iocost_wbps
    return float(getattr(target, name))


def format_knob(knob: Knob, ratio: float, *, bench: BenchReport, total_memory: int) -> str:
    """Readout for ``ratio`` in the knob's engineering unit, right-aligned."""

    name = knob.field
    if name == "lat_target":
        text = f"{round_half_up(ratio * 1000.0)}m"
    elif name == "mem_ratio":
        text = format_size(ratio * bench.hashd_mem_size)
    elif name == "log_bps":
        text = format_size(ratio * bench.iocost_wbps)
    elif name in ("mem_margin", "balloon_ratio"):
        text = format_size(ratio * total_memory)
    else:
        text = format4_pct(ratio) + "%"
    return f"{text:>{READOUT_WIDTH}}"


def slider_steps(width: int, label: str) -> int:
    """Number of slider positions that fit next to ``label`` in ``width`` columns."""

    return max(width - 2 - len(label) - _SLIDER_CHROME, MIN_SLIDER_STEPS)


def slider_slot(ratio: float, steps: int) -> int:
    return round_half_up(clamp_ratio(ratio) * (steps - 1))


def slot_ratio(slot: int, steps: int) -> float:
    if steps <= 1:
        return 0.0
    return clamp_ratio(slot / (steps - 1))
