"""Tests for the command-line bootstrap in :mod:`ctlbook.app`."""

from __future__ import annotations

import io
import json
from pathlib import Path

import pytest

from ctlbook import app
from ctlbook.services.settings import Settings, SettingsStore

from tests.helpers import doc


@pytest.fixture(autouse=True)
def _isolate(monkeypatch: pytest.MonkeyPatch) -> list[tuple[bool, bool]]:
    calls: list[tuple[bool, bool]] = []

    def _record(debug: bool = False, *, console: bool = True, force: bool = False) -> None:
        calls.append((debug, console))

    monkeypatch.setattr(app, "configure_logging", _record)
    for name in ("CTLBOOK_DEBUG", "CTLBOOK_SETTINGS_PATH", "CTLBOOK_DOC_DIR", "CTLBOOK_DOC_WIDTH"):
        monkeypatch.delenv(name, raising=False)
    return calls


def test_coerce_cli_overrides() -> None:
    overrides = app._coerce_cli_overrides(
        [
            "doc_width=100",
            "sync_timeout=2.5",
            "prod_environment=on",
            "doc_dir=none",
            "agent_dir= /srv/agent ",
        ]
    )

    assert overrides == {
        "doc_width": 100,
        "sync_timeout": 2.5,
        "prod_environment": True,
        "doc_dir": None,
        "agent_dir": "/srv/agent",
    }


@pytest.mark.parametrize(
    ("entry", "message"),
    [
        ("doc_width", "KEY=VALUE"),
        ("=3", "missing a field name"),
        ("colour=blue", "Unknown setting"),
        ("prod_environment=maybe", "boolean"),
    ],
)
def test_coerce_cli_overrides_rejects(entry: str, message: str) -> None:
    with pytest.raises(ValueError, match=message):
        app._coerce_cli_overrides([entry])


def test_invalid_override_exits(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(SystemExit) as excinfo:
        app.main(["--settings-path", str(tmp_path / "s.json"), "--set", "doc_width=wide", "--dump-settings"])

    assert excinfo.value.code == 2
    assert "Invalid --set override" in capsys.readouterr().err


def test_dump_settings(tmp_path: Path, capsys: pytest.CaptureFixture[str], monkeypatch: pytest.MonkeyPatch) -> None:
    path = tmp_path / "settings.json"
    SettingsStore(path).save(Settings(agent_dir="/srv/agent"))
    monkeypatch.setenv("CTLBOOK_DOC_WIDTH", "90")

    app.main(["--settings-path", str(path), "--set", "sync_timeout=4", "--dump-settings"])

    output = json.loads(capsys.readouterr().out)
    assert output["settings"]["agent_dir"] == "/srv/agent"
    assert output["settings"]["sync_timeout"] == 4.0
    assert output["settings"]["doc_width"] == 90
    assert output["meta"]["path"] == str(path)
    assert output["meta"]["cli_overrides"] == ["sync_timeout"]
    assert output["meta"]["environment_variables"] == ["CTLBOOK_DOC_WIDTH"]


def test_check_prints_shipped_corpus_summary(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    app.main(["--settings-path", str(tmp_path / "settings.json"), "--check"])

    out = capsys.readouterr().out
    assert "documents OK (start: index)" in out
    assert "compile-job" in out


def test_check_custom_corpus_and_start(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    docs = tmp_path / "docs"
    docs.mkdir()
    (docs / "home.rd").write_text(doc("home", "Home page."), encoding="utf-8")

    app.main(
        [
            "--settings-path",
            str(tmp_path / "settings.json"),
            "--set",
            f"doc_dir={docs}",
            "--start",
            "home",
            "--check",
        ]
    )

    out = capsys.readouterr().out
    assert out.startswith("1 documents OK (start: home)")
    assert "sideloads:    -" in out


def test_broken_corpus_exits_with_problems(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    docs = tmp_path / "docs"
    docs.mkdir()
    (docs / "index.rd").write_text(doc("index", "%% jump nowhere : [ Go ]"), encoding="utf-8")

    with pytest.raises(SystemExit) as excinfo:
        app.main(["--settings-path", str(tmp_path / "settings.json"), "--set", f"doc_dir={docs}", "--check"])

    assert excinfo.value.code == 2
    assert "invalid jump target 'nowhere'" in capsys.readouterr().err


def test_debug_logging_setting_reconfigures(
    tmp_path: Path, capsys: pytest.CaptureFixture[str], _isolate: list[tuple[bool, bool]]
) -> None:
    app.main(["--settings-path", str(tmp_path / "settings.json"), "--set", "debug_logging=true", "--check"])

    assert _isolate == [(False, True), (True, True)]
    capsys.readouterr()
