"""Event bus for decoupled notifications from the document engine.

The engine publishes what happened (a document was shown, a command ran, the
agent refused a submission) and presentation code subscribes to whatever it
wants to surface. Publishing is synchronous and happens on the UI thread.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Callable, Generic, TypeVar
from weakref import WeakMethod

logger = logging.getLogger(__name__)

E = TypeVar("E", bound="Event")

Handler = Callable[[E], None]


@dataclass(slots=True)
class Event:
    """Base class for all engine events."""


# Published once per slider step; not logged on publish.
_QUIET_EVENT_TYPES: set[type] = set()


# =============================================================================
# Navigation events
# =============================================================================


@dataclass(slots=True)
class DocumentShown(Event):
    """A document became current.

    Attributes:
        doc_id: Id of the new current document.
        title: Title line pushed to the surface.
        jumped: Whether entry/exit commands ran for this transition.
        back: Whether the transition came from the history stack.
    """

    doc_id: str
    title: str
    jumped: bool
    back: bool = False


@dataclass(slots=True)
class HistoryChanged(Event):
    """The back-history stack grew or shrank."""

    depth: int


# =============================================================================
# Command events
# =============================================================================


@dataclass(slots=True)
class CommandExecuted(Event):
    """A single (non-group) command finished mutating the control state."""

    command: object


_QUIET_EVENT_TYPES.add(CommandExecuted)


@dataclass(slots=True)
class GraphChanged(Event):
    """The main graph panel now shows ``tag`` (``None`` when cleared)."""

    tag: str | None


@dataclass(slots=True)
class AgentSyncFailed(Event):
    """Waiting for the agent to acknowledge the last submission failed."""

    error: str


@dataclass(slots=True)
class AgentApplyFailed(Event):
    """Submitting the control state after ``command`` failed."""

    command: object
    error: str


@dataclass(slots=True)
class StatusMessage(Event):
    """Short message for the status line; it stays until replaced."""

    message: str


class EventBus(Generic[E]):
    """Typed publish-subscribe bus.

    Bound-method handlers are held through :class:`weakref.WeakMethod` so a
    widget that goes away stops receiving events without unsubscribing.
    Plain functions and lambdas are held strongly. A handler that raises is
    logged and the remaining handlers still run.
    """

    __slots__ = ("_handlers",)

    def __init__(self) -> None:
        self._handlers: defaultdict[type[Event], list[_HandlerRef]] = defaultdict(list)

    def subscribe(self, event_type: type[E], handler: Handler[E]) -> None:
        self._handlers[event_type].append(_HandlerRef.create(handler))
        logger.debug("Subscribed %s to %s", _handler_name(handler), event_type.__name__)

    def unsubscribe(self, event_type: type[E], handler: Handler[E]) -> None:
        """Remove the first registration of ``handler``; unknown handlers are ignored."""

        handlers = self._handlers.get(event_type)
        if handlers is None:
            return
        for index, handler_ref in enumerate(handlers):
            if handler_ref.matches(handler):
                handlers.pop(index)
                logger.debug("Unsubscribed %s from %s", _handler_name(handler), event_type.__name__)
                return

    def publish(self, event: E) -> None:
        """Invoke every handler registered for ``type(event)`` in order."""

        event_type = type(event)
        handlers = self._handlers.get(event_type)
        if not handlers:
            return
        if event_type not in _QUIET_EVENT_TYPES:
            logger.debug("Publishing %s to %d handler(s)", event_type.__name__, len(handlers))

        dead: list[int] = []
        for index, handler_ref in enumerate(list(handlers)):
            handler = handler_ref.resolve()
            if handler is None:
                dead.append(index)
                continue
            try:
                handler(event)
            except Exception:
                logger.exception(
                    "Handler %s raised for %s", _handler_name(handler), event_type.__name__
                )
        for index in reversed(dead):
            handlers.pop(index)

    def clear(self) -> None:
        self._handlers.clear()

    def handler_count(self, event_type: type[E] | None = None) -> int:
        if event_type is not None:
            return len(self._handlers.get(event_type, []))
        return sum(len(handlers) for handlers in self._handlers.values())


class _HandlerRef:
    """Weak reference for bound methods, strong reference otherwise."""

    __slots__ = ("_ref", "_is_weak")

    def __init__(self, handler_ref: WeakMethod | Handler, is_weak: bool) -> None:
        self._ref = handler_ref
        self._is_weak = is_weak

    @classmethod
    def create(cls, handler: Handler) -> _HandlerRef:
        if hasattr(handler, "__self__") and hasattr(handler, "__func__"):
            try:
                return cls(WeakMethod(handler), is_weak=True)
            except TypeError:
                pass
        return cls(handler, is_weak=False)

    def resolve(self) -> Handler | None:
        if not self._is_weak:
            return self._ref  # type: ignore[return-value]
        return self._ref()  # type: ignore[operator]

    def matches(self, handler: Handler) -> bool:
        resolved = self.resolve()
        return resolved is not None and resolved == handler


def _handler_name(handler: Handler) -> str:
    if hasattr(handler, "__self__") and hasattr(handler, "__func__"):
        return f"{type(handler.__self__).__name__}.{handler.__func__.__name__}"
    return getattr(handler, "__name__", repr(handler))


__all__ = [
    "Event",
    "EventBus",
    "Handler",
    "DocumentShown",
    "HistoryChanged",
    "CommandExecuted",
    "GraphChanged",
    "AgentSyncFailed",
    "AgentApplyFailed",
    "StatusMessage",
]
