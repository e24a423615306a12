"""Reset policies, composed from a handful of primitive resets."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Mapping

from ..control.state import (
    DFL_BALLOON_RATIO,
    DFL_CPU_HEADROOM,
    DFL_SYS_CPU_RATIO,
    DFL_SYS_IO_RATIO,
    ControlState,
    SystemInfo,
    WorkloadParams,
    default_mem_margin,
)
from ..documents.model import ResetPolicy

__all__ = ["ResetTarget", "RESET_STEPS", "apply_reset"]

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class ResetTarget:
    """Everything a reset may touch."""

    state: ControlState
    system: SystemInfo
    clear_graph: Callable[[], None]


Step = Callable[[ResetTarget], None]


def reset_benches(target: ResetTarget) -> None:
    state = target.state
    state.bench_hashd_next = state.bench_hashd_cur
    state.bench_iocost_next = state.bench_iocost_cur


def reset_workloads(target: ResetTarget) -> None:
    for workload in target.state.workloads:
        workload.active = False


def reset_workload_params(target: ResetTarget) -> None:
    state = target.state
    state.workloads = [WorkloadParams(active=workload.active) for workload in state.workloads]


def reset_sideloads(target: ResetTarget) -> None:
    target.state.sideloads.clear()


def reset_sysloads(target: ResetTarget) -> None:
    target.state.sysloads.clear()


def reset_resctl(target: ResetTarget) -> None:
    state = target.state
    state.cpu = True
    state.mem = True
    state.io = True


def reset_resctl_params(target: ResetTarget) -> None:
    state = target.state
    state.sys_cpu_ratio = DFL_SYS_CPU_RATIO
    state.sys_io_ratio = DFL_SYS_IO_RATIO
    state.mem_margin = default_mem_margin(target.system)
    state.balloon_ratio = DFL_BALLOON_RATIO
    state.cpu_headroom = DFL_CPU_HEADROOM


def reset_oomd(target: ResetTarget) -> None:
    state = target.state
    state.oomd = True
    state.oomd_work_mempress = True
    state.oomd_work_senpai = False
    state.oomd_sys_mempress = True
    state.oomd_sys_senpai = False


def reset_graph(target: ResetTarget) -> None:
    target.clear_graph()


_SECONDARIES: tuple[Step, ...] = (reset_sideloads, reset_sysloads)
_PROTECTIONS: tuple[Step, ...] = (reset_resctl, reset_oomd)
_PARAMS: tuple[Step, ...] = (reset_workload_params, reset_resctl_params)
_ALL: tuple[Step, ...] = (reset_benches, reset_workloads, *_SECONDARIES, *_PROTECTIONS, reset_graph)

RESET_STEPS: Mapping[ResetPolicy, tuple[Step, ...]] = {
    ResetPolicy.BENCHES: (reset_benches,),
    ResetPolicy.WORKLOADS: (reset_workloads,),
    ResetPolicy.WORKLOAD_PARAMS: (reset_workload_params,),
    ResetPolicy.SIDELOADS: (reset_sideloads,),
    ResetPolicy.SYSLOADS: (reset_sysloads,),
    ResetPolicy.SECONDARIES: _SECONDARIES,
    ResetPolicy.RESCTL: (reset_resctl,),
    ResetPolicy.RESCTL_PARAMS: (reset_resctl_params,),
    ResetPolicy.OOMD: (reset_oomd,),
    ResetPolicy.GRAPH: (reset_graph,),
    ResetPolicy.ALL_WORKLOADS: (reset_workloads, *_SECONDARIES),
    ResetPolicy.PROTECTIONS: _PROTECTIONS,
    ResetPolicy.ALL: _ALL,
    ResetPolicy.PARAMS: _PARAMS,
    ResetPolicy.ALL_WITH_PARAMS: (*_ALL, *_PARAMS),
    ResetPolicy.PREP: (*_SECONDARIES, *_PROTECTIONS, *_PARAMS, reset_graph),
}


def apply_reset(policy: ResetPolicy, target: ResetTarget) -> None:
    steps = RESET_STEPS[policy]
    LOGGER.debug("Reset %s: %s", policy.value, ", ".join(step.__name__ for step in steps))
    for step in steps:
        step(target)
