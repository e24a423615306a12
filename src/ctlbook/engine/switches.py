"""Reading and writing boolean switches on the control state.

Every write is a single field flip or a single ``tag -> id`` insert/remove.
"""

from __future__ import annotations

from typing import assert_never

from ..control.state import UNBOUNDED_SEQ, ControlState
from ..documents.model import Switch, SwitchKind

__all__ = ["write_switch", "read_switch"]


def write_switch(state: ControlState, switch: Switch, on: bool) -> None:
    kind = switch.kind
    if kind is SwitchKind.BENCH_HASHD:
        state.bench_hashd_next = state.bench_hashd_cur + (1 if on else 0)
    elif kind is SwitchKind.BENCH_HASHD_LOOP:
        state.bench_hashd_next = UNBOUNDED_SEQ if on else state.bench_hashd_cur
    elif kind is SwitchKind.BENCH_IOCOST:
        state.bench_iocost_next = state.bench_iocost_cur + (1 if on else 0)
    elif kind is SwitchKind.BENCH_NEEDED:
        # Either direction requests whatever has never run.
        if state.bench_hashd_cur == 0:
            state.bench_hashd_next = 1
        if state.bench_iocost_cur == 0:
            state.bench_iocost_next = 1
    elif kind is SwitchKind.HASHD_A:
        state.workloads[0].active = on
    elif kind is SwitchKind.HASHD_B:
        state.workloads[1].active = on
    elif kind is SwitchKind.SIDELOAD:
        _write_secondary(state.sideloads, switch, on)
    elif kind is SwitchKind.SYSLOAD:
        _write_secondary(state.sysloads, switch, on)
    elif kind is SwitchKind.CPU_RESCTL:
        state.cpu = on
    elif kind is SwitchKind.MEM_RESCTL:
        state.mem = on
    elif kind is SwitchKind.IO_RESCTL:
        state.io = on
    elif kind is SwitchKind.OOMD:
        state.oomd = on
    elif kind is SwitchKind.OOMD_WORK_MEMPRESS:
        state.oomd_work_mempress = on
    elif kind is SwitchKind.OOMD_WORK_SENPAI:
        state.oomd_work_senpai = on
    elif kind is SwitchKind.OOMD_SYS_MEMPRESS:
        state.oomd_sys_mempress = on
    elif kind is SwitchKind.OOMD_SYS_SENPAI:
        state.oomd_sys_senpai = on
    else:
        assert_never(kind)


def read_switch(state: ControlState, switch: Switch) -> bool:
    kind = switch.kind
    if kind is SwitchKind.BENCH_HASHD:
        return state.bench_hashd_next > state.bench_hashd_cur
    if kind is SwitchKind.BENCH_HASHD_LOOP:
        return state.bench_hashd_next == UNBOUNDED_SEQ
    if kind is SwitchKind.BENCH_IOCOST:
        return state.bench_iocost_next > state.bench_iocost_cur
    if kind is SwitchKind.BENCH_NEEDED:
        return state.bench_hashd_cur == 0 or state.bench_iocost_cur == 0
    if kind is SwitchKind.HASHD_A:
        return state.workloads[0].active
    if kind is SwitchKind.HASHD_B:
        return state.workloads[1].active
    if kind is SwitchKind.SIDELOAD:
        return switch.tag in state.sideloads
    if kind is SwitchKind.SYSLOAD:
        return switch.tag in state.sysloads
    if kind is SwitchKind.CPU_RESCTL:
        return state.cpu
    if kind is SwitchKind.MEM_RESCTL:
        return state.mem
    if kind is SwitchKind.IO_RESCTL:
        return state.io
    if kind is SwitchKind.OOMD:
        return state.oomd
    if kind is SwitchKind.OOMD_WORK_MEMPRESS:
        return state.oomd_work_mempress
    if kind is SwitchKind.OOMD_WORK_SENPAI:
        return state.oomd_work_senpai
    if kind is SwitchKind.OOMD_SYS_MEMPRESS:
        return state.oomd_sys_mempress
    if kind is SwitchKind.OOMD_SYS_SENPAI:
        return state.oomd_sys_senpai
    assert_never(kind)


def _write_secondary(instances: dict[str, str], switch: Switch, on: bool) -> None:
    if on:
        instances[switch.tag] = switch.instance_id
    else:
        instances.pop(switch.tag, None)
