"""Desired configuration submitted to the control agent."""

from __future__ import annotations

import copy
import logging
import os
from dataclasses import asdict, dataclass, field
from typing import Any, Dict

__all__ = [
    "UNBOUNDED_SEQ",
    "BENCH_BALLOON_SIZE",
    "DFL_SYS_CPU_RATIO",
    "DFL_SYS_IO_RATIO",
    "DFL_BALLOON_RATIO",
    "DFL_CPU_HEADROOM",
    "DFL_FILE_ADDR_STDEV",
    "DFL_ANON_ADDR_STDEV",
    "SystemInfo",
    "WorkloadParams",
    "ControlState",
    "default_mem_margin",
]

LOGGER = logging.getLogger(__name__)

# A benchmark "next" sequence at this value keeps the benchmark looping.
UNBOUNDED_SEQ = 2**64 - 1

DFL_SYS_CPU_RATIO = 0.1
DFL_SYS_IO_RATIO = 0.1
DFL_MEM_MARGIN_RATIO = 0.25
PROD_MEM_MARGIN_FLOOR = 8 << 30
DFL_BALLOON_RATIO = 0.0
DFL_CPU_HEADROOM = 0.2
BENCH_BALLOON_SIZE = 4 << 30

DFL_RPS_TARGET_RATIO = 0.5
DFL_LAT_TARGET_PCT = 0.9
DFL_LAT_TARGET = 0.1
DFL_FILE_RATIO = 0.25
DFL_FILE_MAX_RATIO = 1.0
DFL_LOG_BPS = 1 << 20
DFL_WEIGHT = 1.0
DFL_FILE_ADDR_STDEV = 0.25
DFL_ANON_ADDR_STDEV = 0.1


@dataclass(frozen=True, slots=True)
class SystemInfo:
    """Host facts the defaults depend on."""

    total_memory: int
    prod_environment: bool = False

    @classmethod
    def detect(cls, *, total_memory: int = 0, prod_environment: bool = False) -> SystemInfo:
        """Use ``total_memory`` when positive, otherwise ask the OS."""

        if total_memory <= 0:
            total_memory = _physical_memory()
        return cls(total_memory=total_memory, prod_environment=prod_environment)


def _physical_memory() -> int:
    try:
        return os.sysconf("SC_PAGE_SIZE") * os.sysconf("SC_PHYS_PAGES")
    except (AttributeError, OSError, ValueError):  # pragma: no cover - non-POSIX hosts
        LOGGER.warning("Unable to detect physical memory; assuming 16G")
        return 16 << 30


def default_mem_margin(system: SystemInfo) -> float:
    """Memory margin as a ratio of total memory.

    Production hosts keep at least :data:`PROD_MEM_MARGIN_FLOOR` bytes (capped
    at half of memory) free for host-critical services.
    """

    total = max(system.total_memory, 1)
    margin = total * DFL_MEM_MARGIN_RATIO
    if system.prod_environment:
        margin = max(margin, min(PROD_MEM_MARGIN_FLOOR, total / 2))
    return float(int(margin)) / total


@dataclass(slots=True)
class WorkloadParams:
    """Tunables for one latency-sensitive generator workload."""

    active: bool = False
    rps_target_ratio: float = DFL_RPS_TARGET_RATIO
    lat_target_pct: float = DFL_LAT_TARGET_PCT
    lat_target: float = DFL_LAT_TARGET
    mem_ratio: float | None = None
    file_addr_stdev: float | None = None
    anon_addr_stdev: float | None = None
    file_ratio: float = DFL_FILE_RATIO
    file_max_ratio: float = DFL_FILE_MAX_RATIO
    log_bps: int = DFL_LOG_BPS
    weight: float = DFL_WEIGHT


def _two_workloads() -> list[WorkloadParams]:
    return [WorkloadParams(), WorkloadParams()]


@dataclass(slots=True)
class ControlState:
    """Process-wide desired configuration.

    ``bench_*_next > bench_*_cur`` means a benchmark run is pending;
    ``bench_*_next == UNBOUNDED_SEQ`` keeps it looping. Secondary workloads
    are tracked as ``tag -> instance id`` so several can run at once.
    """

    workloads: list[WorkloadParams] = field(default_factory=_two_workloads)
    sideloads: Dict[str, str] = field(default_factory=dict)
    sysloads: Dict[str, str] = field(default_factory=dict)
    cpu: bool = True
    mem: bool = True
    io: bool = True
    oomd: bool = True
    oomd_work_mempress: bool = True
    oomd_work_senpai: bool = False
    oomd_sys_mempress: bool = True
    oomd_sys_senpai: bool = False
    bench_hashd_cur: int = 0
    bench_hashd_next: int = 0
    bench_iocost_cur: int = 0
    bench_iocost_next: int = 0
    sys_cpu_ratio: float = DFL_SYS_CPU_RATIO
    sys_io_ratio: float = DFL_SYS_IO_RATIO
    mem_margin: float = DFL_MEM_MARGIN_RATIO
    balloon_ratio: float = DFL_BALLOON_RATIO
    cpu_headroom: float = DFL_CPU_HEADROOM

    @classmethod
    def initial(cls, system: SystemInfo) -> ControlState:
        return cls(mem_margin=default_mem_margin(system))

    def copy(self) -> ControlState:
        return copy.deepcopy(self)

    def to_payload(self) -> Dict[str, Any]:
        """Serializable view submitted to the agent."""

        payload = asdict(self)
        payload["hashd"] = payload.pop("workloads")
        return payload
