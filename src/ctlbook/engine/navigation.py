"""Document transitions: exit/entry commands, redirects and back-history."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from ..documents.model import Document, Jump
from ..documents.registry import DocumentRegistry
from ..errors import NavigationError
from ..ui.events import DocumentShown, EventBus, HistoryChanged
from ..ui.render import DocumentRenderer, RenderedDocument
from ..ui.surface import RenderSurface
from .interpreter import CommandInterpreter
from .reconcile import Reconciler

__all__ = ["ViewState", "Navigator"]

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class ViewState:
    """The current document and the ids that :meth:`Navigator.back` returns to."""

    document: Document | None = None
    history: list[str] = field(default_factory=list)
    rendered: RenderedDocument | None = None

    @property
    def current_id(self) -> str:
        return self.document.id if self.document is not None else ""


class Navigator:
    """Sequence document transitions.

    A jump runs the outgoing document's post-commands, then the target's
    pre-commands. A ``Jump`` among the pre-commands redirects to another
    document and skips the rest; exit effects are not repeated for the
    redirect. Non-jump shows only re-render the target.
    """

    def __init__(
        self,
        registry: DocumentRegistry,
        interpreter: CommandInterpreter,
        renderer: DocumentRenderer,
        reconciler: Reconciler,
        surface: RenderSurface,
        *,
        view: ViewState | None = None,
        bus: EventBus | None = None,
    ) -> None:
        self._registry = registry
        self._interpreter = interpreter
        self._renderer = renderer
        self._reconciler = reconciler
        self._surface = surface
        self._view = view if view is not None else ViewState()
        self._bus = bus

    @property
    def view(self) -> ViewState:
        return self._view

    @property
    def current(self) -> Document | None:
        return self._view.document

    @property
    def history(self) -> tuple[str, ...]:
        return tuple(self._view.history)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def post_layout_init(self, start_id: str | None = None) -> None:
        """Lay out the surface after it was created or resized.

        The first call jumps to ``start_id`` (the corpus start by default).
        Later calls re-render the current document in place: no exit or entry
        commands run and history is untouched.
        """

        if self._view.document is not None:
            self.show(self._view.current_id, jump=False)
            return
        self.show(start_id or self._registry.start_id, jump=True)

    def index(self) -> None:
        self.show(self._registry.start_id, jump=True)

    def back(self) -> bool:
        """Return to the previous document; ``False`` when history is empty."""

        if not self._view.history:
            return False
        self.show(self._view.history[-1], jump=True, back=True)
        return True

    def show(self, target_id: str, *, jump: bool, back: bool = False) -> Document:
        """Make ``target_id`` current and return the document actually shown.

        Raises:
            DocumentNotFound: ``target_id`` (or a redirect) is not in the corpus.
            NavigationError: the pre-command redirects form a loop.
        """

        view = self._view
        history_depth = len(view.history)
        if jump:
            outgoing = view.document
            if outgoing is not None:
                for command in outgoing.post_commands:
                    self._interpreter.execute(command)
            document = self._enter(target_id)
            if back:
                view.history.pop()
            elif view.current_id:
                view.history.append(view.current_id)
        else:
            document = self._registry.document(target_id)

        view.document = document
        rendered = self._renderer.render(document)
        view.rendered = rendered
        self._surface.set_title(rendered.title)
        self._surface.set_body(rendered)
        LOGGER.info("Showing %s (jump=%s, back=%s)", document.id, jump, back)

        self._publish(DocumentShown(doc_id=document.id, title=rendered.title, jumped=jump, back=back))
        if len(view.history) != history_depth:
            self._publish(HistoryChanged(depth=len(view.history)))
        self._reconciler.run()
        return document

    def _enter(self, target_id: str) -> Document:
        visited = [target_id]
        document = self._registry.document(target_id)
        while True:
            redirect: str | None = None
            for command in document.pre_commands:
                if isinstance(command, Jump):
                    redirect = command.target
                    break
                self._interpreter.execute(command)
            if redirect is None:
                return document
            if redirect in visited:
                chain = " -> ".join([*visited, redirect])
                raise NavigationError(f"redirect loop: {chain}")
            LOGGER.debug("%s redirects to %s", document.id, redirect)
            visited.append(redirect)
            document = self._registry.document(redirect)

    def _publish(self, event) -> None:
        if self._bus is not None:
            self._bus.publish(event)
