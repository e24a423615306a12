"""Explicit wiring of the document engine's collaborators.

Everything that used to be process-wide (the corpus, the control state, the
navigation history) lives on one :class:`EngineContext` built at startup and
handed to whichever surface drives it.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable

from ..control.agent import AgentChannel, StatusProvider
from ..control.session import DEFAULT_POLL_INTERVAL, DEFAULT_SYNC_TIMEOUT, ControlSession
from ..control.state import ControlState, SystemInfo
from ..documents.model import Jump, SetKnob, Toggle
from ..documents.registry import DocumentRegistry
from ..documents.tags import TagResolver
from ..ui.events import EventBus
from ..ui.render import CheckAction, DocumentRenderer, PressAction, SlideAction
from ..ui.surface import RenderSurface
from .interpreter import CommandInterpreter
from .knobs import slot_ratio
from .navigation import Navigator, ViewState
from .reconcile import Reconciler

__all__ = ["EngineContext", "ViewState", "DEFAULT_DOC_WIDTH"]

LOGGER = logging.getLogger(__name__)

DEFAULT_DOC_WIDTH = 80


@dataclass(slots=True)
class EngineContext:
    """Shared context for one running document engine."""

    registry: DocumentRegistry
    system: SystemInfo
    session: ControlSession
    surface: RenderSurface
    bus: EventBus
    interpreter: CommandInterpreter
    reconciler: Reconciler
    renderer: DocumentRenderer
    navigator: Navigator

    @classmethod
    def build(
        cls,
        registry: DocumentRegistry,
        channel: AgentChannel,
        status: StatusProvider,
        surface: RenderSurface,
        *,
        system: SystemInfo,
        bus: EventBus | None = None,
        width: int = DEFAULT_DOC_WIDTH,
        sync_timeout: float = DEFAULT_SYNC_TIMEOUT,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        sleep: Callable[[float], None] = time.sleep,
    ) -> EngineContext:
        bus = bus or EventBus()
        session = ControlSession(
            channel,
            status,
            state=ControlState.initial(system),
            sync_timeout=sync_timeout,
            poll_interval=poll_interval,
            sleep=sleep,
        )
        view = ViewState()
        reconciler = Reconciler(session, surface, system=system, document=lambda: view.document)
        interpreter = CommandInterpreter(session, surface, system=system, bus=bus, reconcile=reconciler.run)
        renderer = DocumentRenderer(TagResolver(status), width=width, readout=reconciler.readout)
        navigator = Navigator(registry, interpreter, renderer, reconciler, surface, view=view, bus=bus)
        LOGGER.debug("Engine context ready: %d documents, width %d", len(registry), width)
        return cls(
            registry=registry,
            system=system,
            session=session,
            surface=surface,
            bus=bus,
            interpreter=interpreter,
            reconciler=reconciler,
            renderer=renderer,
            navigator=navigator,
        )

    # ------------------------------------------------------------------
    # Surface input
    # ------------------------------------------------------------------

    def press(self, action: PressAction) -> None:
        command = action.command
        if isinstance(command, Jump):
            self.navigator.show(command.target, jump=True)
        else:
            self.interpreter.execute(command)

    def check(self, action: CheckAction, checked: bool) -> None:
        self.interpreter.execute_toggle(Toggle(action.switch), checked)

    def slide(self, action: SlideAction, slot: int) -> None:
        knob = action.knob
        ratio = slot_ratio(slot, action.steps)
        self.surface.set_text(knob.digit_key, self.reconciler.readout(knob, ratio))
        self.interpreter.execute(SetKnob(knob, ratio))
