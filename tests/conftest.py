"""Shared pytest fixtures."""

from __future__ import annotations

import pytest

from ctlbook.control.agent import BenchReport

from tests.helpers import GIB, FakeAgent, doc


@pytest.fixture
def bench_report() -> BenchReport:
    return BenchReport(
        hashd_seq=1,
        iocost_seq=1,
        hashd_mem_size=8 * GIB,
        hashd_mem_frac=0.5,
        iocost_wbps=400 << 20,
    )


@pytest.fixture
def agent(bench_report: BenchReport) -> FakeAgent:
    return FakeAgent(bench=bench_report)


@pytest.fixture
def tour_corpus() -> dict[str, str]:
    """Three linked documents with entry and exit effects."""

    return {
        "index": doc(
            "index",
            "Start here.",
            "",
            "%% jump a : [ A ]",
        ),
        "a": doc(
            "a",
            "%% on hashd",
            "Page A runs rd-hashd A.",
            "",
            "%% toggle hashd : rd-hashd A",
            "%% knob hashd-load : Load",
            "%% jump b : [ B ]",
            "%% off hashd",
        ),
        "b": doc(
            "b",
            "%% on hashd-B",
            "%% graph HashdB",
            "Page B runs rd-hashd B.",
            "",
            "%% toggle hashd-B : rd-hashd B",
            "%% jump c : [ C ]",
            "%% off hashd-B",
        ),
        "c": doc(
            "c",
            "%% on sideload build build-1",
            "Page C runs a sideload.",
            "",
            "%% toggle sideload build build-1 : Build",
            "%% off sideload build",
        ),
    }
