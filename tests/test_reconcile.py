"""Tests for widget reconciliation and the engine's input dispatch."""

from __future__ import annotations

from ctlbook.control.agent import BenchReport
from ctlbook.documents.model import Enable, Group, Knob, SetKnob, Switch, SwitchKind
from ctlbook.engine.knobs import slider_slot
from ctlbook.ui.render import ButtonBlock, CheckAction, SlideAction

from tests.helpers import FakeAgent, build_engine, doc

LOAD_SLIDER = Knob.HASHD_A_LOAD.slider_key
LOAD_DIGIT = Knob.HASHD_A_LOAD.digit_key
HASHD_A_KEY = Switch(SwitchKind.HASHD_A).widget_key

PANEL = {
    "index": doc(
        "index",
        "Drive rd-hashd from here.",
        "",
        "%% toggle hashd : rd-hashd A",
        "%% knob hashd-load : Load",
        "%% ( : [ Start at a quarter load ]",
        "%% on hashd",
        "%% knob hashd-load 0.25",
        "%% )",
        "%% toggle sideload build build-1 : Build job",
    ),
}


def _button(board, label: str) -> ButtonBlock:
    return next(block for block in board.body.blocks if isinstance(block, ButtonBlock) and block.label == label)


def test_initial_widgets_reflect_default_state() -> None:
    engine, _agent, board, _bus = build_engine(PANEL)

    engine.navigator.post_layout_init()

    steps = board.steps(LOAD_SLIDER)
    assert steps == 80 - 2 - len("Load") - 13
    assert board.checks == {HASHD_A_KEY: False, "switch:sideload:build": False}
    assert board.texts[LOAD_DIGIT] == "  50%"
    assert board.slots[LOAD_SLIDER] == slider_slot(0.5, steps)


def test_reconcile_is_idempotent() -> None:
    engine, _agent, board, _bus = build_engine(PANEL)
    engine.navigator.post_layout_init()
    before = board.snapshot()

    engine.reconciler.run()
    engine.reconciler.run()

    assert board.snapshot() == before


def test_group_button_updates_checkbox_and_slider() -> None:
    engine, agent, board, _bus = build_engine(PANEL)
    engine.navigator.post_layout_init()

    engine.press(_button(board, "[ Start at a quarter load ]").action)

    assert board.checks[HASHD_A_KEY] is True
    assert board.slots[LOAD_SLIDER] == slider_slot(0.25, board.steps(LOAD_SLIDER))
    assert board.texts[LOAD_DIGIT] == "  25%"
    assert agent.last_payload["hashd"][0]["rps_target_ratio"] == 0.25


def test_checkbox_dispatch() -> None:
    engine, agent, board, _bus = build_engine(PANEL)
    engine.navigator.post_layout_init()

    engine.check(CheckAction(Switch(SwitchKind.SIDELOAD, "build", "build-1")), True)
    assert board.checks["switch:sideload:build"] is True
    assert agent.last_payload["sideloads"] == {"build": "build-1"}

    engine.check(CheckAction(Switch(SwitchKind.SIDELOAD, "build", "build-1")), False)
    assert board.checks["switch:sideload:build"] is False
    assert agent.last_payload["sideloads"] == {}


def test_slider_dispatch_sets_ratio_from_slot() -> None:
    engine, agent, board, _bus = build_engine(PANEL)
    engine.navigator.post_layout_init()
    steps = board.steps(LOAD_SLIDER)

    engine.slide(SlideAction(Knob.HASHD_A_LOAD, steps), steps - 1)

    assert agent.last_payload["hashd"][0]["rps_target_ratio"] == 1.0
    assert board.slots[LOAD_SLIDER] == steps - 1
    assert board.texts[LOAD_DIGIT] == " 100%"


def test_reconcile_picks_up_agent_benchmark_progress() -> None:
    agent = FakeAgent()
    sources = {"index": doc("index", "%% toggle bench-hashd : Run the hashd benchmark")}
    engine, _agent, board, _bus = build_engine(sources, agent=agent)
    engine.navigator.post_layout_init()

    engine.check(CheckAction(Switch(SwitchKind.BENCH_HASHD)), True)
    assert board.checks["switch:bench-hashd"] is True

    agent.bench_report = BenchReport(hashd_seq=1)
    engine.reconciler.run()

    assert board.checks["switch:bench-hashd"] is False


def test_reconcile_without_document_is_a_noop() -> None:
    engine, agent, board, _bus = build_engine(PANEL)

    engine.reconciler.run()

    assert agent.refresh_count == 0
    assert board.snapshot()["checks"] == {}


def test_group_enable_and_half_load_end_to_end() -> None:
    engine, agent, board, _bus = build_engine(PANEL)
    engine.navigator.post_layout_init()
    with engine.session.locked() as state:
        state.workloads[0].rps_target_ratio = 0.9

    engine.interpreter.execute(
        Group((Enable(Switch(SwitchKind.HASHD_A)), SetKnob(Knob.HASHD_A_LOAD, 0.5)))
    )

    state = engine.session.snapshot()
    assert state.workloads[0].active is True
    assert state.workloads[0].rps_target_ratio == 0.5
    assert board.checks[HASHD_A_KEY] is True
    steps = board.steps(LOAD_SLIDER)
    assert board.slots[LOAD_SLIDER] == slider_slot(0.5, steps) == (steps - 1) // 2
    assert agent.last_payload["hashd"][0]["rps_target_ratio"] == 0.5
