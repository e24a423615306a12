"""Push the authoritative control state into the current document's widgets."""

from __future__ import annotations

import logging
from typing import Callable

from ..control.session import ControlSession
from ..control.state import SystemInfo
from ..documents.model import Document, Knob
from ..ui.surface import RenderSurface
from ..utils.units import clamp_ratio
from .knobs import format_knob, load_knob
from .switches import read_switch

__all__ = ["Reconciler"]

LOGGER = logging.getLogger(__name__)


class Reconciler:
    """Recompute every checkbox, readout and slider from the control state.

    The pass only reads: it refreshes agent counters, copies a snapshot under
    the session lock and releases it before touching the surface. Running it
    twice without a state change produces identical widget values.
    """

    def __init__(
        self,
        session: ControlSession,
        surface: RenderSurface,
        *,
        system: SystemInfo,
        document: Callable[[], Document | None],
    ) -> None:
        self._session = session
        self._surface = surface
        self._system = system
        self._document = document

    def readout(self, knob: Knob, ratio: float) -> str:
        return format_knob(knob, ratio, bench=self._session.bench(), total_memory=self._system.total_memory)

    def run(self) -> None:
        document = self._document()
        if document is None:
            return
        self._session.refresh()
        state = self._session.snapshot()
        bench = self._session.bench()

        for switch in document.toggles:
            self._surface.set_checked(switch.widget_key, read_switch(state, switch))

        for knob in document.knobs:
            ratio = clamp_ratio(load_knob(state, knob, bench=bench))
            self._surface.set_text(
                knob.digit_key,
                format_knob(knob, ratio, bench=bench, total_memory=self._system.total_memory),
            )
            self._surface.set_slider(knob.slider_key, ratio)

        LOGGER.debug(
            "Reconciled %s: %d switches, %d knobs",
            document.id,
            len(document.toggles),
            len(document.knobs),
        )
