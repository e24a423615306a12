"""Command interpreter: apply document commands to the shared control state.

Each single command is one mutate + submit cycle under the session lock,
followed by reconciliation of the visible widgets. Agent failures are logged
and published but never raised; interpretation always completes.
"""

from __future__ import annotations

import logging
from typing import Callable, assert_never

from ..control.session import ControlSession
from ..control.state import SystemInfo
from ..documents.model import (
    Command,
    Disable,
    Enable,
    GraphTag,
    Group,
    Jump,
    Reset,
    SelectGraph,
    SetKnob,
    Toggle,
)
from ..errors import AgentError, AgentTimeoutError, InterpreterError
from ..ui.events import (
    AgentApplyFailed,
    AgentSyncFailed,
    CommandExecuted,
    EventBus,
    GraphChanged,
)
from ..ui.surface import RenderSurface
from .knobs import store_knob
from .resets import ResetTarget, apply_reset
from .switches import write_switch

__all__ = ["CommandInterpreter"]

LOGGER = logging.getLogger(__name__)


class CommandInterpreter:
    """Execute commands against a :class:`ControlSession`.

    ``reconcile`` is invoked after every executed single command so the
    surface reflects the state the agent was just sent.
    """

    def __init__(
        self,
        session: ControlSession,
        surface: RenderSurface,
        *,
        system: SystemInfo,
        bus: EventBus | None = None,
        reconcile: Callable[[], None] | None = None,
    ) -> None:
        self._session = session
        self._surface = surface
        self._system = system
        self._bus = bus
        self._reconcile = reconcile or (lambda: None)

    def set_reconcile(self, reconcile: Callable[[], None]) -> None:
        self._reconcile = reconcile

    def execute(self, command: Command) -> None:
        """Run ``command``; group members run in order without rollback.

        Raises:
            InterpreterError: a Jump, Toggle or display-only knob reached the
                interpreter. These are routed elsewhere and indicate a bug.
        """

        if isinstance(command, Group):
            for member in command.commands:
                self.execute(member)
            return
        self._execute_one(command)

    def execute_toggle(self, toggle: Toggle, checked: bool) -> None:
        """Resolve a checkbox change into an explicit Enable/Disable."""

        command: Command = Enable(toggle.switch) if checked else Disable(toggle.switch)
        self.execute(command)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _execute_one(self, command: Command) -> None:
        if isinstance(command, (Jump, Toggle, Group)):
            raise InterpreterError(f"{type(command).__name__} cannot be executed directly: {command!r}")
        if isinstance(command, SetKnob) and command.is_slider:
            raise InterpreterError(f"display-only knob {command.knob.value} has no value to set")

        if isinstance(command, Enable):
            # An enable must not overtake a disable the agent has not seen yet.
            self._sync()

        with self._session.locked() as state:
            if isinstance(command, Enable):
                write_switch(state, command.switch, True)
            elif isinstance(command, Disable):
                write_switch(state, command.switch, False)
            elif isinstance(command, SetKnob):
                assert command.value is not None
                store_knob(state, command.knob, command.value, wbps=self._session.bench().iocost_wbps)
            elif isinstance(command, SelectGraph):
                self._show_graph(command.tag)
            elif isinstance(command, Reset):
                target = ResetTarget(state=state, system=self._system, clear_graph=lambda: self._show_graph(""))
                apply_reset(command.policy, target)
            else:
                assert_never(command)
            self._apply(command)

        LOGGER.debug("Executed %s", command)
        self._publish(CommandExecuted(command=command))
        self._reconcile()

    def _sync(self) -> None:
        try:
            self._session.sync()
        except AgentTimeoutError as exc:
            LOGGER.warning("Agent sync timed out, proceeding (%s)", exc)
            self._publish(AgentSyncFailed(error=str(exc)))
        except AgentError as exc:
            LOGGER.warning("Agent sync failed, proceeding (%s)", exc)
            self._publish(AgentSyncFailed(error=str(exc)))

    def _apply(self, command: Command) -> None:
        try:
            seq = self._session.apply()
        except AgentError as exc:
            LOGGER.error("Failed to submit control state after %s: %s", command, exc)
            self._publish(AgentApplyFailed(command=command, error=str(exc)))
            return
        LOGGER.debug("Submitted control state as cmd_seq %d", seq)

    def _show_graph(self, tag: str) -> None:
        if not tag:
            self._surface.show_graph(None)
            self._publish(GraphChanged(tag=None))
            return
        try:
            graph = GraphTag(tag)
        except ValueError:
            raise InterpreterError(f"graph tag {tag!r} escaped corpus validation") from None
        self._surface.show_graph(graph)
        self._publish(GraphChanged(tag=graph.value))

    def _publish(self, event) -> None:
        if self._bus is not None:
            self._bus.publish(event)
