"""Tests for the file-based agent channel."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from ctlbook.control.agent import (
    ACK_FILE,
    BENCH_FILE,
    CMD_FILE,
    SYSREQS_FILE,
    BenchReport,
    FileAgent,
    Requirement,
)
from ctlbook.errors import AgentError


def _write(directory: Path, name: str, payload: object) -> None:
    (directory / name).write_text(json.dumps(payload), encoding="utf-8")


def test_submit_writes_cmd_with_seq(tmp_path: Path) -> None:
    agent = FileAgent(tmp_path / "agent")

    agent.submit(7, {"cpu": True})

    written = json.loads((tmp_path / "agent" / CMD_FILE).read_text(encoding="utf-8"))
    assert written == {"cpu": True, "cmd_seq": 7}


def test_acked_seq(tmp_path: Path) -> None:
    agent = FileAgent(tmp_path)
    assert agent.acked_seq() == 0

    _write(tmp_path, ACK_FILE, {"cmd_seq": 5})
    assert agent.acked_seq() == 5


@pytest.mark.parametrize("payload", [{"cmd_seq": -1}, {"seq": 2}, ["cmd_seq"]])
def test_invalid_ack_raises(tmp_path: Path, payload: object) -> None:
    _write(tmp_path, ACK_FILE, payload)

    with pytest.raises(AgentError, match="invalid cmd-ack.json"):
        FileAgent(tmp_path).acked_seq()


def test_unparseable_ack_raises(tmp_path: Path) -> None:
    (tmp_path / ACK_FILE).write_text("{", encoding="utf-8")

    with pytest.raises(AgentError, match="failed to read"):
        FileAgent(tmp_path).acked_seq()


def test_refresh_reads_reports(tmp_path: Path) -> None:
    _write(
        tmp_path,
        BENCH_FILE,
        {
            "hashd_seq": 2,
            "iocost_seq": 1,
            "hashd": {"mem_size": 1 << 33, "mem_frac": 0.75},
            "iocost": {"model": {"wbps": 1 << 28}},
        },
    )
    _write(tmp_path, SYSREQS_FILE, {"satisfied": ["IoCost", "Warp"], "missed": ["Btrfs"]})
    agent = FileAgent(tmp_path)

    agent.refresh()

    assert agent.bench() == BenchReport(
        hashd_seq=2, iocost_seq=1, hashd_mem_size=1 << 33, hashd_mem_frac=0.75, iocost_wbps=1 << 28
    )
    assert agent.sysreqs().satisfied == frozenset({Requirement.IO_COST})
    assert agent.sysreqs().missed == ("Btrfs",)


def test_invalid_report_keeps_last_good(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    agent = FileAgent(tmp_path)
    _write(tmp_path, BENCH_FILE, {"hashd_seq": 3})
    agent.refresh()

    _write(tmp_path, BENCH_FILE, {"hashd_seq": "three"})
    with caplog.at_level("WARNING", logger="ctlbook.control.agent"):
        agent.refresh()

    assert agent.bench().hashd_seq == 3
    assert "failed validation" in caplog.text


def test_missing_reports_use_defaults(tmp_path: Path) -> None:
    agent = FileAgent(tmp_path)

    agent.refresh()

    assert agent.bench() == BenchReport()
    assert agent.sysreqs().missed == ()
