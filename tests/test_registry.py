"""Tests for corpus loading and load-time validation."""

from __future__ import annotations

from pathlib import Path

import pytest

from ctlbook.documents.model import GraphTag, Jump
from ctlbook.documents.registry import DocumentRegistry
from ctlbook.errors import CorpusError, DocumentNotFound

from tests.helpers import doc


def test_shipped_corpus_is_valid() -> None:
    registry = DocumentRegistry.from_package()

    assert "index" in registry
    assert registry.start_id == "index"
    assert registry.summary.jump_targets <= set(registry.ids)
    assert registry.summary.graph_tags <= {tag.value for tag in GraphTag}
    assert "compile-job" in registry.summary.sideload_tags


def test_lookup_returns_source_and_document_is_fresh() -> None:
    source = doc("index", "Hello.")
    registry = DocumentRegistry.from_mapping({"index": source})

    assert registry.lookup("index") == source
    first = registry.document("index")
    second = registry.document("index")
    assert first == second
    assert first is not second


def test_lookup_unknown_id_raises_key_error() -> None:
    registry = DocumentRegistry.from_mapping({"index": doc("index", "Hello.")})

    with pytest.raises(DocumentNotFound) as excinfo:
        registry.lookup("nope")
    assert isinstance(excinfo.value, KeyError)
    assert excinfo.value.doc_id == "nope"


def test_collects_every_problem_before_failing() -> None:
    sources = {
        "index": doc("index", "%% jump missing : [ Go ]", "%% graph NotAGraph : [ Show ]"),
        "broken": "%% id broken\n%% knob hashd-load 7\n",
        "dup": doc("index", "Second index."),
    }

    with pytest.raises(CorpusError) as excinfo:
        DocumentRegistry.from_mapping(sources)

    problems = excinfo.value.problems
    assert any("invalid jump target 'missing'" in problem for problem in problems)
    assert any("invalid graph tag 'NotAGraph'" in problem for problem in problems)
    assert any(problem.startswith("broken:") and "line 2" in problem for problem in problems)
    assert any("duplicate document id 'index'" in problem for problem in problems)


def test_missing_start_document() -> None:
    with pytest.raises(CorpusError, match="missing start document 'index'"):
        DocumentRegistry.from_mapping({"a": doc("a", "Only a.")})


def test_custom_start_document() -> None:
    registry = DocumentRegistry.from_mapping({"a": doc("a", "Only a.")}, start_id="a")
    assert registry.start_id == "a"


def test_empty_corpus() -> None:
    with pytest.raises(CorpusError, match="corpus is empty"):
        DocumentRegistry.from_mapping({})


def test_redirect_loop_is_rejected() -> None:
    sources = {
        "index": doc("index", "Hi.", "", "%% jump a : [ A ]"),
        "a": doc("a", "%% jump b", "Never shown."),
        "b": doc("b", "%% reset graph", "%% jump a", "Never shown."),
    }

    with pytest.raises(CorpusError) as excinfo:
        DocumentRegistry.from_mapping(sources)
    assert any("redirect loop a -> b -> a" in problem for problem in excinfo.value.problems)


def test_redirect_chain_is_allowed() -> None:
    sources = {
        "index": doc("index", "%% jump a", "Never shown."),
        "a": doc("a", "%% jump b", "Never shown."),
        "b": doc("b", "Landing."),
    }

    registry = DocumentRegistry.from_mapping(sources)
    assert registry.document("index").pre_commands == (Jump("a"),)


def test_from_directory(tmp_path: Path) -> None:
    (tmp_path / "nested").mkdir()
    (tmp_path / "index.rd").write_text(doc("index", "Hi.", "", "%% jump deep : [ Deep ]"), encoding="utf-8")
    (tmp_path / "nested" / "deep.rd").write_text(doc("deep", "Deep."), encoding="utf-8")
    (tmp_path / "notes.txt").write_text("ignored", encoding="utf-8")

    registry = DocumentRegistry.from_directory(tmp_path)

    assert registry.ids == ("deep", "index")
    assert len(registry) == 2
    assert list(registry) == ["deep", "index"]


def test_from_missing_directory(tmp_path: Path) -> None:
    with pytest.raises(CorpusError, match="does not exist"):
        DocumentRegistry.from_directory(tmp_path / "absent")
