"""Textual terminal surface for the document engine.

The app is the :class:`RenderSurface`: the engine pushes titles, bodies and
widget values into it, and user input is handed back to the
:class:`EngineContext` as the action values the renderer attached to each
widget. Widgets are tracked by engine key rather than DOM id because one key
may appear more than once on a page.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Callable

from rich.text import Text
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, VerticalScroll
from textual.events import Click, Resize
from textual.message import Message
from textual.widget import Widget
from textual.widgets import Button, Checkbox, Footer, Header, Label, Static

from ..documents.model import GraphTag
from ..engine.context import EngineContext
from ..engine.knobs import slider_slot
from ..errors import DocumentNotFound, NavigationError
from .events import AgentApplyFailed, AgentSyncFailed, StatusMessage
from .render import (
    ButtonBlock,
    CheckAction,
    CheckboxBlock,
    PressAction,
    RenderedDocument,
    SlideAction,
    SliderBlock,
    TextBlock,
)

__all__ = ["CtlbookApp", "SliderBar"]

LOGGER = logging.getLogger(__name__)

EngineFactory = Callable[["CtlbookApp"], EngineContext]


class SliderBar(Widget, can_focus=True):
    """Discrete horizontal slider with ``steps`` positions."""

    BINDINGS = [
        Binding("left", "nudge(-1)", "Less", show=False),
        Binding("right", "nudge(1)", "More", show=False),
        Binding("home", "jump(0)", "Min", show=False),
        Binding("end", "jump(-1)", "Max", show=False),
    ]

    DEFAULT_CSS = """
    SliderBar {
        height: 1;
        width: 1fr;
    }
    SliderBar:focus {
        text-style: bold;
    }
    """

    class Moved(Message):
        """The user moved the slider to ``slot``."""

        def __init__(self, slider: SliderBar, slot: int) -> None:
            super().__init__()
            self.slider = slider
            self.slot = slot

        @property
        def control(self) -> SliderBar:
            return self.slider

    def __init__(self, action: SlideAction, *, key: str) -> None:
        super().__init__()
        self.intent = action
        self.widget_key = key
        self.steps = action.steps
        self.slot = 0

    def set_ratio(self, ratio: float) -> None:
        self.slot = slider_slot(ratio, self.steps)
        self.refresh()

    def render(self) -> Text:
        bar = Text("[")
        for index in range(self.steps):
            if index == self.slot:
                bar.append("█", style="bold cyan")
            else:
                bar.append("─", style="dim")
        bar.append("]")
        return bar

    def action_nudge(self, delta: int) -> None:
        self._move(self.slot + delta)

    def action_jump(self, slot: int) -> None:
        self._move(slot if slot >= 0 else self.steps - 1)

    def on_click(self, event: Click) -> None:
        self._move(event.x - 1)

    def _move(self, slot: int) -> None:
        slot = min(max(slot, 0), self.steps - 1)
        if slot == self.slot:
            return
        self.slot = slot
        self.refresh()
        self.post_message(self.Moved(self, slot))


class PromptButton(Button):
    def __init__(self, label: str, action: PressAction) -> None:
        super().__init__(label)
        self.intent = action


class SwitchBox(Checkbox):
    def __init__(self, label: str, action: CheckAction, *, key: str) -> None:
        super().__init__(label, value=False)
        self.intent = action
        self.widget_key = key


class CtlbookApp(App):
    """Terminal control panel driven by an :class:`EngineContext`."""

    TITLE = "ctlbook"

    CSS = """
    #graph {
        height: auto;
        padding: 0 1;
        color: $accent;
    }

    #doc-body {
        height: 1fr;
        padding: 0 1;
    }

    .gap {
        margin-top: 1;
    }

    .slider-row {
        height: 1;
    }

    .prompt-row {
        height: auto;
    }

    .slider-row Label {
        width: auto;
        margin-right: 1;
    }

    .digit {
        width: 6;
    }

    #status {
        height: 1;
        padding: 0 1;
        background: $boost;
    }
    """

    BINDINGS = [
        Binding("i", "show_index", "Index"),
        Binding("b", "go_back", "Back"),
        Binding("q", "quit", "Quit"),
    ]

    def __init__(self, engine_factory: EngineFactory, *, start_id: str | None = None) -> None:
        super().__init__()
        self._start_id = start_id
        self.status_text = ""
        self._checkboxes: dict[str, list[SwitchBox]] = defaultdict(list)
        self._digits: dict[str, list[Static]] = defaultdict(list)
        self._sliders: dict[str, list[SliderBar]] = defaultdict(list)
        self.engine = engine_factory(self)
        bus = self.engine.bus
        bus.subscribe(StatusMessage, self._on_status_message)
        bus.subscribe(AgentSyncFailed, self._on_sync_failed)
        bus.subscribe(AgentApplyFailed, self._on_apply_failed)

    def compose(self) -> ComposeResult:
        yield Header()
        yield Static("", id="graph")
        yield VerticalScroll(id="doc-body")
        yield Static("", id="status")
        yield Footer()

    def on_mount(self) -> None:
        self.call_after_refresh(self._dispatch, lambda: self.engine.navigator.post_layout_init(self._start_id))

    def on_resize(self, event: Resize) -> None:
        # Slider resolution follows the body width (minus its padding).
        if not self.engine.renderer.resize(max(event.size.width - 2, 1)):
            return
        if self.engine.navigator.current is not None:
            self._dispatch(self.engine.navigator.post_layout_init)

    # ------------------------------------------------------------------
    # RenderSurface
    # ------------------------------------------------------------------

    def set_title(self, title: str) -> None:
        self.title = title

    def set_body(self, rendered: RenderedDocument) -> None:
        self._checkboxes.clear()
        self._digits.clear()
        self._sliders.clear()
        body = self.query_one("#doc-body", VerticalScroll)
        body.remove_children()
        body.mount_all([self._build(block) for block in rendered.blocks])
        body.scroll_home(animate=False)

    def set_text(self, key: str, text: str) -> None:
        for digit in self._digits.get(key, ()):
            digit.update(text)

    def set_checked(self, key: str, value: bool) -> None:
        for checkbox in self._checkboxes.get(key, ()):
            with checkbox.prevent(Checkbox.Changed):
                checkbox.value = value

    def set_slider(self, key: str, ratio: float) -> None:
        for slider in self._sliders.get(key, ()):
            slider.set_ratio(ratio)

    def show_graph(self, tag: GraphTag | None) -> None:
        graph = self.query_one("#graph", Static)
        graph.update(f"graph: {tag.value}" if tag is not None else "")

    # ------------------------------------------------------------------
    # Input
    # ------------------------------------------------------------------

    def action_show_index(self) -> None:
        self._dispatch(self.engine.navigator.index)

    def action_go_back(self) -> None:
        def _back() -> None:
            if not self.engine.navigator.back():
                self.engine.bus.publish(StatusMessage("No previous document"))

        self._dispatch(_back)

    def on_button_pressed(self, event: Button.Pressed) -> None:
        button = event.button
        if isinstance(button, PromptButton):
            event.stop()
            self._dispatch(lambda: self.engine.press(button.intent))

    def on_checkbox_changed(self, event: Checkbox.Changed) -> None:
        checkbox = event.checkbox
        if isinstance(checkbox, SwitchBox):
            event.stop()
            self._dispatch(lambda: self.engine.check(checkbox.intent, event.value))

    def on_slider_bar_moved(self, event: SliderBar.Moved) -> None:
        event.stop()
        self._dispatch(lambda: self.engine.slide(event.slider.intent, event.slot))

    def _dispatch(self, operation: Callable[[], object]) -> None:
        try:
            operation()
        except (NavigationError, DocumentNotFound) as exc:
            LOGGER.error("Navigation failed: %s", exc)
            self.engine.bus.publish(StatusMessage(f"Navigation failed: {exc}"))

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _build(self, block) -> Widget:
        if isinstance(block, TextBlock):
            text = block.text
            if block.indent:
                text = Text(block.indent + " ").append_text(text)
            widget: Widget = Static(text)
        elif isinstance(block, ButtonBlock):
            widget = Horizontal(Label(block.indent), PromptButton(block.label, block.action), classes="prompt-row")
        elif isinstance(block, CheckboxBlock):
            widget = SwitchBox(block.label, block.action, key=block.key)
            self._checkboxes[block.key].append(widget)
        elif isinstance(block, SliderBlock):
            digit = Static(block.readout, classes="digit")
            slider = SliderBar(block.action, key=block.slider_key)
            self._digits[block.digit_key].append(digit)
            self._sliders[block.slider_key].append(slider)
            widget = Horizontal(Label(block.label), digit, slider, classes="slider-row")
        else:
            raise TypeError(f"unsupported block {block!r}")
        if block.gap_before:
            widget.add_class("gap")
        return widget

    def _set_status(self, message: str) -> None:
        self.status_text = message
        self.query_one("#status", Static).update(message)

    def _on_status_message(self, event: StatusMessage) -> None:
        self._set_status(event.message)

    def _on_sync_failed(self, event: AgentSyncFailed) -> None:
        self._set_status(f"agent sync: {event.error}")

    def _on_apply_failed(self, event: AgentApplyFailed) -> None:
        self._set_status(f"agent apply: {event.error}")
