"""Immutable data model for parsed control documents.

A :class:`Document` is built once by the parser and never edited; navigation
replaces the current document wholesale. Commands are plain frozen values so
widgets can hold them directly and the interpreter can be handed copies.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterator, Union

__all__ = [
    "SwitchKind",
    "Switch",
    "Knob",
    "ResetPolicy",
    "GraphTag",
    "Span",
    "TextParagraph",
    "PromptParagraph",
    "Paragraph",
    "Enable",
    "Disable",
    "Toggle",
    "SetKnob",
    "SelectGraph",
    "Reset",
    "Jump",
    "Group",
    "Command",
    "Document",
    "iter_commands",
]


# =============================================================================
# Controls
# =============================================================================


class SwitchKind(str, Enum):
    """Boolean controls a document can flip."""

    BENCH_HASHD = "bench-hashd"
    BENCH_HASHD_LOOP = "bench-hashd-loop"
    BENCH_IOCOST = "bench-iocost"
    BENCH_NEEDED = "bench-needed"
    HASHD_A = "hashd-A"
    HASHD_B = "hashd-B"
    SIDELOAD = "sideload"
    SYSLOAD = "sysload"
    CPU_RESCTL = "cpu-resctl"
    MEM_RESCTL = "mem-resctl"
    IO_RESCTL = "io-resctl"
    OOMD = "oomd"
    OOMD_WORK_MEMPRESS = "oomd-work-mempress"
    OOMD_WORK_SENPAI = "oomd-work-senpai"
    OOMD_SYS_MEMPRESS = "oomd-sys-mempress"
    OOMD_SYS_SENPAI = "oomd-sys-senpai"

    @property
    def is_secondary(self) -> bool:
        """Sideload/sysload switches carry a (tag, instance id) pair."""

        return self in (SwitchKind.SIDELOAD, SwitchKind.SYSLOAD)


@dataclass(frozen=True, slots=True)
class Switch:
    """A boolean control, optionally naming a secondary workload instance."""

    kind: SwitchKind
    tag: str = ""
    instance_id: str = ""

    def __post_init__(self) -> None:
        if self.kind.is_secondary and not self.tag:
            raise ValueError(f"{self.kind.value} switch requires a tag")
        if not self.kind.is_secondary and (self.tag or self.instance_id):
            raise ValueError(f"{self.kind.value} switch takes no tag or instance id")

    @property
    def widget_key(self) -> str:
        """Stable presentation key; all instances of one tag share a checkbox."""

        if self.kind.is_secondary:
            return f"switch:{self.kind.value}:{self.tag}"
        return f"switch:{self.kind.value}"

    def __str__(self) -> str:
        if self.kind.is_secondary:
            return f"{self.kind.value}({self.tag}, {self.instance_id or '-'})"
        return self.kind.value


class Knob(str, Enum):
    """Continuous controls, each backed by one Control State scalar."""

    HASHD_A_LOAD = "hashd-load"
    HASHD_B_LOAD = "hashd-B-load"
    HASHD_A_LAT_TARGET_PCT = "hashd-lat-target-pct"
    HASHD_B_LAT_TARGET_PCT = "hashd-B-lat-target-pct"
    HASHD_A_LAT_TARGET = "hashd-lat-target"
    HASHD_B_LAT_TARGET = "hashd-B-lat-target"
    HASHD_A_MEM = "hashd-mem"
    HASHD_B_MEM = "hashd-B-mem"
    HASHD_A_FILE_ADDR_STDEV = "hashd-file-addr-stdev"
    HASHD_B_FILE_ADDR_STDEV = "hashd-B-file-addr-stdev"
    HASHD_A_ANON_ADDR_STDEV = "hashd-anon-addr-stdev"
    HASHD_B_ANON_ADDR_STDEV = "hashd-B-anon-addr-stdev"
    HASHD_A_FILE = "hashd-file"
    HASHD_B_FILE = "hashd-B-file"
    HASHD_A_FILE_MAX = "hashd-file-max"
    HASHD_B_FILE_MAX = "hashd-B-file-max"
    HASHD_A_LOG_BPS = "hashd-write"
    HASHD_B_LOG_BPS = "hashd-B-write"
    HASHD_A_WEIGHT = "hashd-weight"
    HASHD_B_WEIGHT = "hashd-B-weight"
    SYS_CPU_RATIO = "sys-cpu-ratio"
    SYS_IO_RATIO = "sys-io-ratio"
    MEM_MARGIN = "mem-margin"
    BALLOON = "balloon"
    CPU_HEADROOM = "cpu-headroom"

    @property
    def workload(self) -> int | None:
        """Index of the workload parameter block, ``None`` for global tunables."""

        if self.name.startswith("HASHD_A_"):
            return 0
        if self.name.startswith("HASHD_B_"):
            return 1
        return None

    @property
    def field(self) -> str:
        """Name of the backing attribute on the workload block or the state."""

        return _KNOB_FIELDS[self]

    @property
    def digit_key(self) -> str:
        return f"knob:{self.value}:digit"

    @property
    def slider_key(self) -> str:
        return f"knob:{self.value}:slider"


_KNOB_FIELDS: dict[Knob, str] = {
    Knob.HASHD_A_LOAD: "rps_target_ratio",
    Knob.HASHD_B_LOAD: "rps_target_ratio",
    Knob.HASHD_A_LAT_TARGET_PCT: "lat_target_pct",
    Knob.HASHD_B_LAT_TARGET_PCT: "lat_target_pct",
    Knob.HASHD_A_LAT_TARGET: "lat_target",
    Knob.HASHD_B_LAT_TARGET: "lat_target",
    Knob.HASHD_A_MEM: "mem_ratio",
    Knob.HASHD_B_MEM: "mem_ratio",
    Knob.HASHD_A_FILE_ADDR_STDEV: "file_addr_stdev",
    Knob.HASHD_B_FILE_ADDR_STDEV: "file_addr_stdev",
    Knob.HASHD_A_ANON_ADDR_STDEV: "anon_addr_stdev",
    Knob.HASHD_B_ANON_ADDR_STDEV: "anon_addr_stdev",
    Knob.HASHD_A_FILE: "file_ratio",
    Knob.HASHD_B_FILE: "file_ratio",
    Knob.HASHD_A_FILE_MAX: "file_max_ratio",
    Knob.HASHD_B_FILE_MAX: "file_max_ratio",
    Knob.HASHD_A_LOG_BPS: "log_bps",
    Knob.HASHD_B_LOG_BPS: "log_bps",
    Knob.HASHD_A_WEIGHT: "weight",
    Knob.HASHD_B_WEIGHT: "weight",
    Knob.SYS_CPU_RATIO: "sys_cpu_ratio",
    Knob.SYS_IO_RATIO: "sys_io_ratio",
    Knob.MEM_MARGIN: "mem_margin",
    Knob.BALLOON: "balloon_ratio",
    Knob.CPU_HEADROOM: "cpu_headroom",
}


class ResetPolicy(str, Enum):
    """Named composite resets; see :mod:`ctlbook.engine.resets`."""

    BENCHES = "benches"
    WORKLOADS = "hashds"
    WORKLOAD_PARAMS = "hashd-params"
    SIDELOADS = "sideloads"
    SYSLOADS = "sysloads"
    SECONDARIES = "secondaries"
    RESCTL = "resctl"
    RESCTL_PARAMS = "resctl-params"
    OOMD = "oomd"
    GRAPH = "graph"
    ALL_WORKLOADS = "all-workloads"
    PROTECTIONS = "protections"
    ALL = "all"
    PARAMS = "params"
    ALL_WITH_PARAMS = "all-with-params"
    PREP = "prep"


class GraphTag(str, Enum):
    """Live views the main graph panel can show."""

    HASHD_A = "HashdA"
    HASHD_B = "HashdB"
    WORK_CPU = "WorkCpu"
    SIDE_CPU = "SideCpu"
    SYS_CPU = "SysCpu"
    WORK_MEM = "WorkMem"
    SIDE_MEM = "SideMem"
    SYS_MEM = "SysMem"
    WORK_IO = "WorkIo"
    SIDE_IO = "SideIo"
    SYS_IO = "SysIo"
    WORK_SWAP = "WorkSwap"
    SIDE_SWAP = "SideSwap"
    SYS_SWAP = "SysSwap"
    WORK_PSI_CPU = "WorkPsiCpu"
    SIDE_PSI_CPU = "SidePsiCpu"
    SYS_PSI_CPU = "SysPsiCpu"
    WORK_PSI_MEM = "WorkPsiMem"
    SIDE_PSI_MEM = "SidePsiMem"
    SYS_PSI_MEM = "SysPsiMem"
    WORK_PSI_IO = "WorkPsiIo"
    SIDE_PSI_IO = "SidePsiIo"
    SYS_PSI_IO = "SysPsiIo"
    IO_LAT = "IoLat"
    IO_COST = "IoCost"


# =============================================================================
# Commands
# =============================================================================


@dataclass(frozen=True, slots=True)
class Enable:
    switch: Switch


@dataclass(frozen=True, slots=True)
class Disable:
    switch: Switch


@dataclass(frozen=True, slots=True)
class Toggle:
    """Checkbox directive; converted to Enable/Disable from the widget state."""

    switch: Switch


@dataclass(frozen=True, slots=True)
class SetKnob:
    """Set ``knob`` to ``value``; ``value=None`` marks a display-only slider."""

    knob: Knob
    value: float | None = None

    @property
    def is_slider(self) -> bool:
        return self.value is None


@dataclass(frozen=True, slots=True)
class SelectGraph:
    """Show the named graph; an empty tag clears the graph panel."""

    tag: str = ""


@dataclass(frozen=True, slots=True)
class Reset:
    policy: ResetPolicy


@dataclass(frozen=True, slots=True)
class Jump:
    target: str


@dataclass(frozen=True, slots=True)
class Group:
    """Ordered members, executed one by one without rollback."""

    commands: tuple["Command", ...]


Command = Union[Enable, Disable, Toggle, SetKnob, SelectGraph, Reset, Jump, Group]


def iter_commands(command: Command) -> Iterator[Command]:
    """Yield ``command`` itself, or each member when it is a :class:`Group`."""

    if isinstance(command, Group):
        yield from command.commands
    else:
        yield command


# =============================================================================
# Paragraphs & documents
# =============================================================================


@dataclass(frozen=True, slots=True)
class Span:
    """A run of text with a rich style, or an unresolved ``%tag%`` reference."""

    text: str
    style: str = ""
    tag: str | None = None


@dataclass(frozen=True, slots=True)
class TextParagraph:
    spans: tuple[Span, ...]
    indent: str | None = None

    @property
    def tags(self) -> tuple[str, ...]:
        return tuple(span.tag for span in self.spans if span.tag is not None)

    @property
    def plain(self) -> str:
        return "".join(f"%{span.tag}%" if span.tag is not None else span.text for span in self.spans)


@dataclass(frozen=True, slots=True)
class PromptParagraph:
    label: str
    command: Command


Paragraph = Union[TextParagraph, PromptParagraph]


@dataclass(frozen=True, slots=True)
class Document:
    """One navigable unit: narrative body plus entry and exit commands."""

    id: str
    description: str = ""
    body: tuple[Paragraph, ...] = ()
    pre_commands: tuple[Command, ...] = ()
    post_commands: tuple[Command, ...] = ()

    @property
    def title(self) -> str:
        return f"[{self.id}] {self.description} - 'i': index, 'b': back"

    @property
    def prompts(self) -> tuple[PromptParagraph, ...]:
        return tuple(para for para in self.body if isinstance(para, PromptParagraph))

    @property
    def toggles(self) -> tuple[Switch, ...]:
        """Switches shown as checkboxes, one per widget key in body order."""

        seen: dict[str, Switch] = {}
        for prompt in self.prompts:
            command = prompt.command
            if isinstance(command, Toggle):
                seen.setdefault(command.switch.widget_key, command.switch)
        return tuple(seen.values())

    @property
    def knobs(self) -> tuple[Knob, ...]:
        """Knobs shown as sliders, in body order without duplicates."""

        seen: dict[Knob, None] = {}
        for prompt in self.prompts:
            command = prompt.command
            if isinstance(command, SetKnob) and command.is_slider:
                seen.setdefault(command.knob, None)
        return tuple(seen)

    def all_commands(self) -> Iterator[Command]:
        """Every command the document can issue, with groups flattened."""

        sources: list[Command] = list(self.pre_commands)
        sources.extend(prompt.command for prompt in self.prompts)
        sources.extend(self.post_commands)
        for command in sources:
            yield from iter_commands(command)
