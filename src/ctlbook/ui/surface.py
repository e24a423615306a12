"""Presentation surface contract and a headless implementation.

The engine never touches widgets directly. It pushes a rendered body and then
addresses widgets by their stable keys (``switch:...``, ``knob:...:digit``,
``knob:...:slider``). Keys that are not on screen are ignored, and several
widgets may share one key.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Protocol

from ..documents.model import GraphTag
from ..engine.knobs import slider_slot
from .render import CheckboxBlock, RenderedDocument, SliderBlock

__all__ = ["RenderSurface", "WidgetBoard"]

LOGGER = logging.getLogger(__name__)


class RenderSurface(Protocol):
    """Sink for everything the engine wants to show."""

    def set_title(self, title: str) -> None:
        ...

    def set_body(self, rendered: RenderedDocument) -> None:
        ...

    def set_text(self, key: str, text: str) -> None:
        ...

    def set_checked(self, key: str, value: bool) -> None:
        ...

    def set_slider(self, key: str, ratio: float) -> None:
        """Move every slider under ``key`` to the slot nearest ``ratio``."""

    def show_graph(self, tag: GraphTag | None) -> None:
        ...


@dataclass(slots=True)
class WidgetBoard:
    """In-memory :class:`RenderSurface` used headless and in tests."""

    title: str = ""
    body: RenderedDocument | None = None
    graph: GraphTag | None = None
    texts: dict[str, str] = field(default_factory=dict)
    checks: dict[str, bool] = field(default_factory=dict)
    slots: dict[str, int] = field(default_factory=dict)
    _steps: dict[str, int] = field(default_factory=dict)

    def set_title(self, title: str) -> None:
        self.title = title

    def set_body(self, rendered: RenderedDocument) -> None:
        self.body = rendered
        self.texts.clear()
        self.checks.clear()
        self.slots.clear()
        self._steps.clear()
        for block in rendered.blocks:
            if isinstance(block, CheckboxBlock):
                self.checks.setdefault(block.key, False)
            elif isinstance(block, SliderBlock):
                self.texts.setdefault(block.digit_key, block.readout)
                self.slots.setdefault(block.slider_key, 0)
                self._steps.setdefault(block.slider_key, block.action.steps)

    def set_text(self, key: str, text: str) -> None:
        if key in self.texts:
            self.texts[key] = text

    def set_checked(self, key: str, value: bool) -> None:
        if key in self.checks:
            self.checks[key] = value

    def set_slider(self, key: str, ratio: float) -> None:
        steps = self._steps.get(key)
        if steps is not None:
            self.slots[key] = slider_slot(ratio, steps)

    def show_graph(self, tag: GraphTag | None) -> None:
        self.graph = tag

    def steps(self, key: str) -> int | None:
        return self._steps.get(key)

    def snapshot(self) -> dict[str, Any]:
        """Everything currently displayed, for comparisons."""

        return {
            "title": self.title,
            "graph": self.graph,
            "texts": dict(self.texts),
            "checks": dict(self.checks),
            "slots": dict(self.slots),
        }
