"""Interfaces to the external control agent and its file-based channel.

The agent runs as a separate process and talks to the panel through JSON
files in one directory:

* ``cmd.json`` - written by :meth:`FileAgent.submit`, carries ``cmd_seq``
* ``cmd-ack.json`` - written by the agent once it applied a ``cmd_seq``
* ``bench.json`` - benchmark sequence numbers and results
* ``sysreqs.json`` - which system requirements are satisfied or missed

Report files are validated with JSON schema; a bad or missing report is
logged and the last good (or default) report is kept.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Mapping, Protocol

from jsonschema import Draft7Validator

from ..errors import AgentError
from ..utils.file_io import read_json, write_json

__all__ = [
    "Requirement",
    "BenchReport",
    "SysReqReport",
    "StatusProvider",
    "AgentChannel",
    "FileAgent",
    "CMD_FILE",
    "ACK_FILE",
    "BENCH_FILE",
    "SYSREQS_FILE",
]

LOGGER = logging.getLogger(__name__)

CMD_FILE = "cmd.json"
ACK_FILE = "cmd-ack.json"
BENCH_FILE = "bench.json"
SYSREQS_FILE = "sysreqs.json"


class Requirement(str, Enum):
    """System requirements the agent checks before it can enforce control."""

    CONTROLLERS = "Controllers"
    FREEZER = "Freezer"
    MEM_CG_RECURSIVE_PROT = "MemCgRecursiveProt"
    IO_COST = "IoCost"
    IO_COST_VER = "IoCostVer"
    NO_OTHER_IO_CONTROLLERS = "NoOtherIoControllers"
    ANON_BALANCE = "AnonBalance"
    BTRFS = "Btrfs"
    BTRFS_ASYNC_DISCARD = "BtrfsAsyncDiscard"
    NO_COMPOSITE_STORAGE = "NoCompositeStorage"
    IO_SCHED = "IoSched"
    NO_WBT = "NoWbt"
    SWAP_ON_SCRATCH = "SwapOnScratch"
    SWAP = "Swap"
    OOMD = "Oomd"
    NO_SYS_OOMD = "NoSysOomd"
    HOST_CRITICAL_SERVICES = "HostCriticalServices"
    DEPS_BASE = "DepsBase"
    DEPS_IO_COST_COEF_GEN = "DepsIoCostCoefGen"
    DEPS_SIDE = "DepsSide"
    DEPS_LINUX_BUILD = "DepsLinuxBuild"


@dataclass(frozen=True, slots=True)
class BenchReport:
    """Benchmark completion counters and the results used for unit conversion."""

    hashd_seq: int = 0
    iocost_seq: int = 0
    hashd_mem_size: int = 0
    hashd_mem_frac: float = 0.0
    iocost_wbps: int = 0

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> BenchReport:
        hashd = payload.get("hashd") or {}
        model = (payload.get("iocost") or {}).get("model") or {}
        return cls(
            hashd_seq=int(payload.get("hashd_seq", 0)),
            iocost_seq=int(payload.get("iocost_seq", 0)),
            hashd_mem_size=int(hashd.get("mem_size", 0)),
            hashd_mem_frac=float(hashd.get("mem_frac", 0.0)),
            iocost_wbps=int(model.get("wbps", 0)),
        )


@dataclass(frozen=True, slots=True)
class SysReqReport:
    satisfied: frozenset[Requirement] = frozenset()
    missed: tuple[str, ...] = ()

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> SysReqReport:
        satisfied = set()
        for name in payload.get("satisfied", []):
            try:
                satisfied.add(Requirement(name))
            except ValueError:
                LOGGER.debug("Ignoring unknown requirement %r", name)
        return cls(satisfied=frozenset(satisfied), missed=tuple(payload.get("missed", [])))


class StatusProvider(Protocol):
    """Read-only view of what the agent reports."""

    def refresh(self) -> None:
        ...

    def bench(self) -> BenchReport:
        ...

    def sysreqs(self) -> SysReqReport:
        ...


class AgentChannel(Protocol):
    """Command path to the agent.

    ``submit`` hands over one full state snapshot tagged with ``seq``;
    ``acked_seq`` reports the highest sequence the agent has applied.
    Both raise :class:`~ctlbook.errors.AgentError` on failure.
    """

    def submit(self, seq: int, payload: Mapping[str, Any]) -> None:
        ...

    def acked_seq(self) -> int:
        ...


_BENCH_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "hashd_seq": {"type": "integer", "minimum": 0},
        "iocost_seq": {"type": "integer", "minimum": 0},
        "hashd": {
            "type": "object",
            "properties": {
                "mem_size": {"type": "integer", "minimum": 0},
                "mem_frac": {"type": "number", "minimum": 0, "maximum": 1},
            },
        },
        "iocost": {
            "type": "object",
            "properties": {
                "model": {
                    "type": "object",
                    "properties": {"wbps": {"type": "integer", "minimum": 0}},
                }
            },
        },
    },
}
_SYSREQS_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "satisfied": {"type": "array", "items": {"type": "string"}},
        "missed": {"type": "array", "items": {"type": "string"}},
    },
}
_ACK_SCHEMA: dict[str, Any] = {
    "type": "object",
    "required": ["cmd_seq"],
    "properties": {"cmd_seq": {"type": "integer", "minimum": 0}},
}
_BENCH_VALIDATOR = Draft7Validator(_BENCH_SCHEMA)
_SYSREQS_VALIDATOR = Draft7Validator(_SYSREQS_SCHEMA)
_ACK_VALIDATOR = Draft7Validator(_ACK_SCHEMA)


class FileAgent:
    """:class:`AgentChannel` and :class:`StatusProvider` over an agent directory."""

    def __init__(self, agent_dir: Path | str) -> None:
        self._dir = Path(agent_dir).expanduser()
        self._bench = BenchReport()
        self._sysreqs = SysReqReport()

    @property
    def directory(self) -> Path:
        return self._dir

    # ------------------------------------------------------------------
    # AgentChannel
    # ------------------------------------------------------------------

    def submit(self, seq: int, payload: Mapping[str, Any]) -> None:
        body = dict(payload)
        body["cmd_seq"] = seq
        try:
            write_json(self._dir / CMD_FILE, body)
        except OSError as exc:
            raise AgentError(f"failed to write {CMD_FILE}: {exc}") from exc
        LOGGER.debug("Submitted cmd_seq %d", seq)

    def acked_seq(self) -> int:
        path = self._dir / ACK_FILE
        try:
            payload = read_json(path)
        except FileNotFoundError:
            return 0
        except (OSError, ValueError) as exc:
            raise AgentError(f"failed to read {ACK_FILE}: {exc}") from exc
        errors = sorted(_ACK_VALIDATOR.iter_errors(payload), key=str)
        if errors:
            raise AgentError(f"invalid {ACK_FILE}: {errors[0].message}")
        return int(payload["cmd_seq"])

    # ------------------------------------------------------------------
    # StatusProvider
    # ------------------------------------------------------------------

    def refresh(self) -> None:
        bench = self._load_report(BENCH_FILE, _BENCH_VALIDATOR)
        if bench is not None:
            self._bench = BenchReport.from_payload(bench)
        sysreqs = self._load_report(SYSREQS_FILE, _SYSREQS_VALIDATOR)
        if sysreqs is not None:
            self._sysreqs = SysReqReport.from_payload(sysreqs)

    def bench(self) -> BenchReport:
        return self._bench

    def sysreqs(self) -> SysReqReport:
        return self._sysreqs

    def _load_report(self, name: str, validator: Draft7Validator) -> Mapping[str, Any] | None:
        path = self._dir / name
        try:
            payload = read_json(path)
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as exc:
            LOGGER.warning("Agent report %s is unreadable: %s", path, exc)
            return None
        errors = sorted(validator.iter_errors(payload), key=str)
        if errors:
            LOGGER.warning("Agent report %s failed validation: %s", path, errors[0].message)
            return None
        return payload
