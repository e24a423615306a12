"""Turn a :class:`Document` into presentation blocks with input actions.

Rendering is where substitution tags are materialized: a paragraph whose
tag resolves to nothing is left out entirely. Widgets carry small action
values (the command to run, the switch to flip, the knob to slide) instead
of closures, so any surface can hand them back to the engine.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Union

from rich.text import Text

from ..documents.model import (
    Command,
    Document,
    Knob,
    PromptParagraph,
    SetKnob,
    Switch,
    TextParagraph,
    Toggle,
)
from ..documents.tags import TagResolver
from ..engine.knobs import slider_steps

__all__ = [
    "PressAction",
    "CheckAction",
    "SlideAction",
    "TextBlock",
    "ButtonBlock",
    "CheckboxBlock",
    "SliderBlock",
    "Block",
    "RenderedDocument",
    "DocumentRenderer",
]

LOGGER = logging.getLogger(__name__)


# =============================================================================
# Input actions
# =============================================================================


@dataclass(frozen=True, slots=True)
class PressAction:
    """Button press: run ``command`` (a jump navigates instead)."""

    command: Command


@dataclass(frozen=True, slots=True)
class CheckAction:
    """Checkbox change: enable or disable ``switch``."""

    switch: Switch


@dataclass(frozen=True, slots=True)
class SlideAction:
    """Slider move: set ``knob`` to ``slot / (steps - 1)``."""

    knob: Knob
    steps: int


# =============================================================================
# Blocks
# =============================================================================


@dataclass(frozen=True, slots=True)
class TextBlock:
    text: Text
    indent: str | None = None
    gap_before: bool = False


@dataclass(frozen=True, slots=True)
class ButtonBlock:
    label: str
    action: PressAction
    indent: str = ""
    gap_before: bool = False


@dataclass(frozen=True, slots=True)
class CheckboxBlock:
    label: str
    key: str
    action: CheckAction
    gap_before: bool = False


@dataclass(frozen=True, slots=True)
class SliderBlock:
    label: str
    digit_key: str
    slider_key: str
    readout: str
    action: SlideAction
    gap_before: bool = False


Block = Union[TextBlock, ButtonBlock, CheckboxBlock, SliderBlock]


@dataclass(frozen=True, slots=True)
class RenderedDocument:
    doc_id: str
    title: str
    blocks: tuple[Block, ...]


class DocumentRenderer:
    """Materialize documents for a surface ``width`` columns wide."""

    def __init__(
        self,
        resolver: TagResolver,
        *,
        width: int,
        readout: Callable[[Knob, float], str],
    ) -> None:
        self._resolver = resolver
        self._width = width
        self._readout = readout

    @property
    def width(self) -> int:
        return self._width

    def resize(self, width: int) -> bool:
        """Use ``width`` for later renders; ``True`` when it changed."""

        if width == self._width:
            return False
        LOGGER.debug("Render width %d -> %d", self._width, width)
        self._width = width
        return True

    def render(self, document: Document) -> RenderedDocument:
        blocks: list[Block] = []
        previous_was_text = False
        if any(isinstance(para, TextParagraph) and para.tags for para in document.body):
            self._resolver.refresh()
        for paragraph in document.body:
            if isinstance(paragraph, TextParagraph):
                text = self._materialize(paragraph)
                if text is None:
                    continue
                blocks.append(TextBlock(text=text, indent=paragraph.indent, gap_before=bool(blocks)))
                previous_was_text = True
            else:
                blocks.append(self._prompt_block(paragraph, gap_before=previous_was_text))
                previous_was_text = False
        return RenderedDocument(doc_id=document.id, title=document.title, blocks=tuple(blocks))

    def _materialize(self, paragraph: TextParagraph) -> Text | None:
        text = Text()
        for span in paragraph.spans:
            if span.tag is None:
                text.append(span.text, style=span.style or None)
                continue
            resolved = self._resolver.resolve(span.tag, refresh=False)
            if resolved is None:
                LOGGER.debug("Hiding paragraph gated on %%%s%%", span.tag)
                return None
            text.append_text(resolved)
        return text

    def _prompt_block(self, prompt: PromptParagraph, *, gap_before: bool) -> Block:
        command = prompt.command
        if isinstance(command, Toggle):
            return CheckboxBlock(
                label=prompt.label,
                key=command.switch.widget_key,
                action=CheckAction(command.switch),
                gap_before=gap_before,
            )
        if isinstance(command, SetKnob) and command.is_slider:
            knob = command.knob
            return SliderBlock(
                label=prompt.label,
                digit_key=knob.digit_key,
                slider_key=knob.slider_key,
                readout=self._readout(knob, 0.0),
                action=SlideAction(knob, slider_steps(self._width, prompt.label)),
                gap_before=gap_before,
            )
        trimmed = prompt.label.lstrip()
        indent = prompt.label[: len(prompt.label) - len(trimmed)]
        return ButtonBlock(label=trimmed, action=PressAction(command), indent=indent, gap_before=gap_before)
