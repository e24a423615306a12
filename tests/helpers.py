"""Shared test helpers and fake collaborators.

Import from here instead of duplicating fakes in individual test files::

    from tests.helpers import FakeAgent, build_engine
"""

from __future__ import annotations

import copy
from typing import Any, Mapping

from ctlbook.control.agent import BenchReport, SysReqReport
from ctlbook.control.state import SystemInfo
from ctlbook.documents.registry import DocumentRegistry
from ctlbook.engine.context import EngineContext
from ctlbook.errors import AgentError
from ctlbook.ui.events import Event, EventBus
from ctlbook.ui.surface import WidgetBoard

GIB = 1 << 30
TEST_SYSTEM = SystemInfo(total_memory=16 * GIB)


class FakeAgent:
    """In-memory :class:`AgentChannel` + :class:`StatusProvider`.

    ``auto_ack`` acknowledges every submission immediately; turn it off to
    simulate an agent that has not caught up yet. ``log`` records the order
    of ``submit``/``ack`` calls for sequencing assertions.
    """

    def __init__(
        self,
        *,
        bench: BenchReport | None = None,
        sysreqs: SysReqReport | None = None,
        auto_ack: bool = True,
    ) -> None:
        self.bench_report = bench or BenchReport()
        self.sysreq_report = sysreqs or SysReqReport()
        self.auto_ack = auto_ack
        self.fail_submit = False
        self.fail_ack = False
        self.acked = 0
        self.submissions: list[tuple[int, dict[str, Any]]] = []
        self.refresh_count = 0
        self.log: list[str] = []

    # AgentChannel
    def submit(self, seq: int, payload: Mapping[str, Any]) -> None:
        self.log.append(f"submit:{seq}")
        if self.fail_submit:
            raise AgentError("agent directory is read-only")
        self.submissions.append((seq, copy.deepcopy(dict(payload))))
        if self.auto_ack:
            self.acked = seq

    def acked_seq(self) -> int:
        self.log.append(f"ack:{self.acked}")
        if self.fail_ack:
            raise AgentError("cmd-ack.json is garbage")
        return self.acked

    # StatusProvider
    def refresh(self) -> None:
        self.refresh_count += 1

    def bench(self) -> BenchReport:
        return self.bench_report

    def sysreqs(self) -> SysReqReport:
        return self.sysreq_report

    @property
    def last_payload(self) -> dict[str, Any]:
        return self.submissions[-1][1]


class RecordingBus(EventBus):
    """Event bus that also keeps every published event."""

    __slots__ = ("events",)

    def __init__(self) -> None:
        super().__init__()
        self.events: list[Event] = []

    def publish(self, event: Event) -> None:
        self.events.append(event)
        super().publish(event)

    def of_type(self, event_type: type) -> list[Any]:
        return [event for event in self.events if isinstance(event, event_type)]


def build_engine(
    sources: Mapping[str, str],
    *,
    agent: FakeAgent | None = None,
    width: int = 80,
    sync_timeout: float = 0.05,
    system: SystemInfo = TEST_SYSTEM,
) -> tuple[EngineContext, FakeAgent, WidgetBoard, RecordingBus]:
    """Engine over an in-memory corpus with a headless surface."""

    agent = agent or FakeAgent()
    board = WidgetBoard()
    bus = RecordingBus()
    registry = DocumentRegistry.from_mapping(sources)
    engine = EngineContext.build(
        registry,
        agent,
        agent,
        board,
        system=system,
        bus=bus,
        width=width,
        sync_timeout=sync_timeout,
        poll_interval=0.001,
        sleep=lambda _seconds: None,
    )
    return engine, agent, board, bus


def doc(doc_id: str, *lines: str, description: str = "") -> str:
    """Markup source for a small test document."""

    header = f"%% id {doc_id}: {description or doc_id}"
    return "\n".join([header, *lines]) + "\n"
