"""Tests for document transitions and back-history."""

from __future__ import annotations

from typing import Mapping

import pytest

from ctlbook.documents.model import Disable, Document, GraphTag, Jump, Switch, SwitchKind
from ctlbook.documents.parser import parse
from ctlbook.engine.navigation import Navigator
from ctlbook.errors import DocumentNotFound, NavigationError
from ctlbook.ui.events import DocumentShown, HistoryChanged
from ctlbook.ui.render import PressAction, RenderedDocument, SliderBlock

from tests.helpers import build_engine, doc


def _jump(engine, target: str) -> None:
    engine.press(PressAction(Jump(target)))


def _slider_steps(rendered: RenderedDocument) -> int:
    (slider,) = [block for block in rendered.blocks if isinstance(block, SliderBlock)]
    return slider.action.steps


def test_start_document_is_shown_without_history(tour_corpus: dict[str, str]) -> None:
    engine, agent, board, bus = build_engine(tour_corpus)

    engine.navigator.post_layout_init()

    assert engine.navigator.current.id == "index"
    assert engine.navigator.history == ()
    assert board.title.startswith("[index]")
    assert bus.of_type(DocumentShown)[0].jumped is True
    assert bus.of_type(HistoryChanged) == []
    assert agent.submissions == []


def test_forward_and_back_replays_entry_and_exit_effects(tour_corpus: dict[str, str]) -> None:
    engine, agent, board, _bus = build_engine(tour_corpus)
    navigator = engine.navigator
    navigator.post_layout_init()

    _jump(engine, "a")
    assert agent.last_payload["hashd"][0]["active"] is True
    assert navigator.history == ("index",)

    _jump(engine, "b")
    payload = agent.last_payload
    assert payload["hashd"][0]["active"] is False
    assert payload["hashd"][1]["active"] is True
    assert board.graph is GraphTag.HASHD_B
    assert navigator.history == ("index", "a")

    _jump(engine, "c")
    assert agent.last_payload["hashd"][1]["active"] is False
    assert agent.last_payload["sideloads"] == {"build": "build-1"}
    assert navigator.history == ("index", "a", "b")

    assert navigator.back() is True
    assert navigator.current.id == "b"
    assert agent.last_payload["sideloads"] == {}
    assert agent.last_payload["hashd"][1]["active"] is True
    assert navigator.history == ("index", "a")

    assert navigator.back() is True
    assert navigator.current.id == "a"
    assert agent.last_payload["hashd"][0]["active"] is True
    assert agent.last_payload["hashd"][1]["active"] is False
    assert navigator.history == ("index",)

    assert navigator.back() is True
    assert navigator.current.id == "index"
    assert agent.last_payload["hashd"][0]["active"] is False
    assert navigator.history == ()

    assert navigator.back() is False
    assert navigator.current.id == "index"


def test_repeat_layout_rerenders_current_document(tour_corpus: dict[str, str]) -> None:
    engine, agent, board, bus = build_engine(tour_corpus)
    navigator = engine.navigator
    navigator.post_layout_init()
    _jump(engine, "a")
    submissions = len(agent.submissions)
    shown = len(bus.of_type(DocumentShown))

    navigator.post_layout_init()

    assert navigator.current.id == "a"
    assert navigator.history == ("index",)
    assert len(agent.submissions) == submissions
    assert agent.last_payload["hashd"][0]["active"] is True
    assert board.checks == {"switch:hashd-A": True}
    assert bus.of_type(DocumentShown)[shown:][0].jumped is False


def test_repeat_layout_uses_new_render_width(tour_corpus: dict[str, str]) -> None:
    engine, _agent, _board, _bus = build_engine(tour_corpus, width=60)
    engine.navigator.post_layout_init()
    _jump(engine, "a")
    narrow = engine.navigator.view.rendered

    assert engine.renderer.resize(100) is True
    assert engine.renderer.resize(100) is False
    engine.navigator.post_layout_init()

    wide = engine.navigator.view.rendered
    assert wide is not narrow
    assert _slider_steps(wide) == _slider_steps(narrow) + 40


def test_back_events(tour_corpus: dict[str, str]) -> None:
    engine, _agent, _board, bus = build_engine(tour_corpus)
    engine.navigator.post_layout_init()
    _jump(engine, "a")
    engine.navigator.back()

    shown = bus.of_type(DocumentShown)
    assert [(event.doc_id, event.back) for event in shown] == [("index", False), ("a", False), ("index", True)]
    assert [event.depth for event in bus.of_type(HistoryChanged)] == [1, 0]


def test_index_pushes_history(tour_corpus: dict[str, str]) -> None:
    engine, _agent, _board, _bus = build_engine(tour_corpus)
    engine.navigator.post_layout_init()
    _jump(engine, "a")

    engine.navigator.index()

    assert engine.navigator.current.id == "index"
    assert engine.navigator.history == ("index", "a")


def test_non_jump_show_only_renders(tour_corpus: dict[str, str]) -> None:
    engine, agent, board, _bus = build_engine(tour_corpus)

    document = engine.navigator.show("a", jump=False)

    assert document.id == "a"
    assert agent.submissions == []
    assert engine.navigator.history == ()
    assert board.checks == {"switch:hashd-A": False}


def test_redirect_runs_commands_up_to_the_jump() -> None:
    sources = {
        "index": doc("index", "Hi.", "", "%% jump a : [ A ]"),
        "a": doc("a", "%% off oomd", "%% jump b", "%% on cpu-resctl", "Never shown."),
        "b": doc("b", "%% off io-resctl", "Landing."),
    }
    engine, agent, _board, _bus = build_engine(sources)
    engine.navigator.post_layout_init()
    engine.interpreter.execute(Disable(Switch(SwitchKind.CPU_RESCTL)))

    _jump(engine, "a")

    assert engine.navigator.current.id == "b"
    assert engine.navigator.history == ("index",)
    payload = agent.last_payload
    assert payload["oomd"] is False
    assert payload["io"] is False
    assert payload["cpu"] is False


def test_start_document_may_redirect() -> None:
    sources = {
        "index": doc("index", "%% jump landing", "Never shown."),
        "landing": doc("landing", "Welcome."),
    }
    engine, _agent, _board, _bus = build_engine(sources)

    engine.navigator.post_layout_init()

    assert engine.navigator.current.id == "landing"
    assert engine.navigator.history == ()


class _UncheckedRegistry:
    """Registry stand-in that skips load-time redirect validation."""

    def __init__(self, sources: Mapping[str, str]) -> None:
        self._sources = dict(sources)

    @property
    def start_id(self) -> str:
        return "index"

    def document(self, doc_id: str) -> Document:
        if doc_id not in self._sources:
            raise DocumentNotFound(doc_id)
        return parse(self._sources[doc_id])


def test_redirect_loop_at_runtime_raises() -> None:
    engine, _agent, board, _bus = build_engine({"index": doc("index", "Hi.")})
    registry = _UncheckedRegistry(
        {
            "index": doc("index", "Hi."),
            "a": doc("a", "%% jump b", "Never."),
            "b": doc("b", "%% jump a", "Never."),
        }
    )
    navigator = Navigator(
        registry,  # type: ignore[arg-type]
        engine.interpreter,
        engine.renderer,
        engine.reconciler,
        board,
    )
    navigator.post_layout_init()

    with pytest.raises(NavigationError, match="redirect loop: a -> b -> a"):
        navigator.show("a", jump=True)

    assert navigator.current.id == "index"


def test_unknown_target_leaves_current_document(tour_corpus: dict[str, str]) -> None:
    engine, _agent, _board, _bus = build_engine(tour_corpus)
    engine.navigator.post_layout_init()

    with pytest.raises(DocumentNotFound):
        engine.navigator.show("missing", jump=True)

    assert engine.navigator.current.id == "index"
    assert engine.navigator.history == ()
