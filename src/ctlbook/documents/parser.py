"""Line-oriented parser for control-document markup.

A document is plain text interleaved with ``%%`` directives::

    ## comment lines are dropped
    %% id intro.hashd: The rd-hashd workload
    %% reset prep
    %% graph HashdA

    Narrative with *emphasis*, **strong**, `code` and %Tag% substitutions.

    %% toggle hashd                 : rd-hashd workload
    %% knob hashd-load              : Load level
    %% (                            : [ Start both workloads ]
    %% on hashd
    %% on hashd-B
    %% )
    %% jump index                   : [ Back to index ]

Directives without a ``: prompt`` are bare commands; they run on entry when
they appear before the first body paragraph and on exit afterwards.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

from markdown_it import MarkdownIt

from ..errors import ParseError
from .model import (
    Command,
    Disable,
    Document,
    Enable,
    Group,
    Jump,
    Knob,
    Paragraph,
    PromptParagraph,
    Reset,
    ResetPolicy,
    SelectGraph,
    SetKnob,
    Span,
    Switch,
    SwitchKind,
    TextParagraph,
    Toggle,
)

__all__ = ["parse", "parse_inline"]

LOGGER = logging.getLogger(__name__)

_DIRECTIVE_PREFIX = "%%"
_COMMENT_PREFIX = "##"
_TAG_RE = re.compile(r"%([A-Za-z][A-Za-z0-9_]*(?:::[A-Za-z0-9_]+)?)%")
_INDENT_RE = re.compile(r"^(\s*(?:[*-]|\d+\.)\s+)")
_SWITCH_ALIASES = {"hashd": SwitchKind.HASHD_A.value}
_STYLE_FOR_TOKEN = {
    "em_open": "underline",
    "strong_open": "bold",
}
_CODE_STYLE = "cyan"

_INLINE = MarkdownIt("zero").enable(["emphasis", "backticks"])


@dataclass(slots=True)
class _OpenGroup:
    label: str | None
    line: int
    members: list[Command] = field(default_factory=list)


@dataclass(slots=True)
class _Builder:
    doc_id: str | None = None
    description: str = ""
    body: list[Paragraph] = field(default_factory=list)
    pre: list[Command] = field(default_factory=list)
    post: list[Command] = field(default_factory=list)
    pending_text: list[str] = field(default_factory=list)
    group: _OpenGroup | None = None

    def fail(self, message: str, line: int) -> ParseError:
        return ParseError(message, line=line, doc_id=self.doc_id)


def parse(source: str) -> Document:
    """Parse markup ``source`` into a :class:`Document`.

    Raises:
        ParseError: for any malformed directive, unknown name or structure
            problem, carrying the 1-based line number.
    """

    builder = _Builder()
    lineno = 0
    for lineno, raw_line in enumerate(source.splitlines(), start=1):
        line = raw_line.rstrip()
        if line.startswith(_COMMENT_PREFIX):
            continue
        if line.startswith(_DIRECTIVE_PREFIX):
            _flush_text(builder)
            _handle_directive(builder, line[len(_DIRECTIVE_PREFIX) :], lineno)
            continue
        if not line.strip():
            _flush_text(builder)
            continue
        if builder.doc_id is None:
            raise builder.fail("text before '%% id' directive", lineno)
        if builder.group is not None:
            raise builder.fail("text inside a command group", lineno)
        builder.pending_text.append(line)

    _flush_text(builder)
    if builder.group is not None:
        raise builder.fail("unterminated command group", builder.group.line)
    if builder.doc_id is None:
        raise ParseError("missing '%% id' directive", line=lineno or None)

    document = Document(
        id=builder.doc_id,
        description=builder.description,
        body=tuple(builder.body),
        pre_commands=tuple(builder.pre),
        post_commands=tuple(builder.post),
    )
    LOGGER.debug(
        "Parsed %s: %d paragraph(s), %d pre, %d post",
        document.id,
        len(document.body),
        len(document.pre_commands),
        len(document.post_commands),
    )
    return document


def parse_inline(text: str) -> tuple[Span, ...]:
    """Split ``text`` into styled spans and ``%Tag%`` references."""

    spans: list[Span] = []
    cursor = 0
    for match in _TAG_RE.finditer(text):
        if match.start() > cursor:
            spans.extend(_styled_spans(text[cursor : match.start()]))
        spans.append(Span(text="", tag=match.group(1)))
        cursor = match.end()
    if cursor < len(text):
        spans.extend(_styled_spans(text[cursor:]))
    return _merge_spans(spans)


# ---------------------------------------------------------------------------
# Directives
# ---------------------------------------------------------------------------
def _handle_directive(builder: _Builder, body: str, lineno: int) -> None:
    head, sep, tail = body.partition(":")
    tokens = head.split()
    if not tokens:
        raise builder.fail("empty directive", lineno)
    verb, args = tokens[0], tokens[1:]
    label = _prompt_label(tail) if sep else None

    if verb == "id":
        _handle_id(builder, args, tail if sep else "", lineno)
        return
    if builder.doc_id is None:
        raise builder.fail(f"'{verb}' before '%% id' directive", lineno)

    if verb == "(":
        if builder.group is not None:
            raise builder.fail("command groups cannot nest", lineno)
        if args:
            raise builder.fail("'(' takes no arguments", lineno)
        builder.group = _OpenGroup(label=label, line=lineno)
        return
    if verb == ")":
        group = builder.group
        if group is None:
            raise builder.fail("')' without matching '('", lineno)
        if not group.members:
            raise builder.fail("empty command group", group.line)
        builder.group = None
        _place(builder, Group(tuple(group.members)), group.label, group.line)
        return

    command = _parse_command(builder, verb, args, lineno)
    if builder.group is not None:
        if label is not None:
            raise builder.fail("prompts are not allowed inside a command group", lineno)
        if isinstance(command, (Jump, Toggle)) or (isinstance(command, SetKnob) and command.is_slider):
            raise builder.fail(f"'{verb}' cannot be part of a command group", lineno)
        builder.group.members.append(command)
        return
    _place(builder, command, label, lineno)


def _handle_id(builder: _Builder, args: list[str], description: str, lineno: int) -> None:
    if builder.doc_id is not None:
        raise builder.fail("duplicate '%% id' directive", lineno)
    if len(args) != 1:
        raise ParseError("'%% id' takes exactly one document id", line=lineno)
    builder.doc_id = args[0]
    builder.description = description.strip()


def _place(builder: _Builder, command: Command, label: str | None, lineno: int) -> None:
    if label is not None:
        builder.body.append(PromptParagraph(label=label, command=command))
        return
    if isinstance(command, Toggle) or (isinstance(command, SetKnob) and command.is_slider):
        raise builder.fail("checkbox and slider directives need a prompt", lineno)
    if builder.body:
        builder.post.append(command)
    else:
        builder.pre.append(command)


def _prompt_label(tail: str) -> str:
    label = tail[1:] if tail.startswith(" ") else tail
    return label.rstrip()


def _parse_command(builder: _Builder, verb: str, args: list[str], lineno: int) -> Command:
    if verb in ("on", "off", "toggle"):
        switch = _parse_switch(builder, args, lineno, require_id=verb != "off")
        if verb == "on":
            return Enable(switch)
        if verb == "off":
            return Disable(switch)
        return Toggle(switch)
    if verb == "knob":
        return _parse_knob(builder, args, lineno)
    if verb == "graph":
        if len(args) > 1:
            raise builder.fail("'graph' takes at most one tag", lineno)
        return SelectGraph(args[0] if args else "")
    if verb == "reset":
        if len(args) != 1:
            raise builder.fail("'reset' takes exactly one policy", lineno)
        try:
            return Reset(ResetPolicy(args[0]))
        except ValueError:
            raise builder.fail(f"unknown reset policy {args[0]!r}", lineno) from None
    if verb == "jump":
        if len(args) != 1:
            raise builder.fail("'jump' takes exactly one document id", lineno)
        return Jump(args[0])
    raise builder.fail(f"unknown directive {verb!r}", lineno)


def _parse_switch(builder: _Builder, args: list[str], lineno: int, *, require_id: bool) -> Switch:
    if not args:
        raise builder.fail("missing switch name", lineno)
    name = _SWITCH_ALIASES.get(args[0], args[0])
    try:
        kind = SwitchKind(name)
    except ValueError:
        raise builder.fail(f"unknown switch {args[0]!r}", lineno) from None

    rest = args[1:]
    if not kind.is_secondary:
        if rest:
            raise builder.fail(f"switch {name!r} takes no arguments", lineno)
        return Switch(kind)

    expected = 2 if require_id else 1
    if len(rest) < expected or len(rest) > 2:
        usage = "TAG ID" if require_id else "TAG [ID]"
        raise builder.fail(f"{name} expects {usage}", lineno)
    return Switch(kind, tag=rest[0], instance_id=rest[1] if len(rest) > 1 else "")


def _parse_knob(builder: _Builder, args: list[str], lineno: int) -> SetKnob:
    if not args or len(args) > 2:
        raise builder.fail("'knob' expects KNOB [VALUE]", lineno)
    name = args[0].replace("hashd-A-", "hashd-")
    try:
        knob = Knob(name)
    except ValueError:
        raise builder.fail(f"unknown knob {args[0]!r}", lineno) from None
    if len(args) == 1:
        return SetKnob(knob)
    try:
        value = float(args[1])
    except ValueError:
        raise builder.fail(f"knob value {args[1]!r} is not a number", lineno) from None
    if not 0.0 <= value <= 1.0:
        raise builder.fail(f"knob value {value} outside [0, 1]", lineno)
    return SetKnob(knob, value)


# ---------------------------------------------------------------------------
# Text paragraphs
# ---------------------------------------------------------------------------
def _flush_text(builder: _Builder) -> None:
    if not builder.pending_text:
        return
    lines = builder.pending_text
    builder.pending_text = []

    first = lines[0]
    indent: str | None = None
    match = _INDENT_RE.match(first)
    if match:
        indent = match.group(1)
        first = first[match.end() :]
    text = " ".join([first.strip(), *(line.strip() for line in lines[1:])]).strip()
    builder.body.append(TextParagraph(spans=parse_inline(text), indent=indent))


def _styled_spans(segment: str) -> list[Span]:
    tokens = _INLINE.parseInline(segment)
    if not tokens or not tokens[0].children:
        return [Span(text=segment)] if segment else []

    spans: list[Span] = []
    styles: list[str] = []
    for token in tokens[0].children:
        kind = token.type
        if kind in _STYLE_FOR_TOKEN:
            styles.append(_STYLE_FOR_TOKEN[kind])
        elif kind in ("em_close", "strong_close"):
            if styles:
                styles.pop()
        elif kind == "code_inline":
            spans.append(Span(text=token.content, style=" ".join([*styles, _CODE_STYLE])))
        elif kind in ("softbreak", "hardbreak"):
            spans.append(Span(text=" ", style=" ".join(styles)))
        else:
            spans.append(Span(text=token.content, style=" ".join(styles)))
    return spans


def _merge_spans(spans: list[Span]) -> tuple[Span, ...]:
    merged: list[Span] = []
    for span in spans:
        if span.tag is None and not span.text:
            continue
        previous = merged[-1] if merged else None
        if (
            previous is not None
            and previous.tag is None
            and span.tag is None
            and previous.style == span.style
        ):
            merged[-1] = Span(text=previous.text + span.text, style=span.style)
        else:
            merged.append(span)
    return tuple(merged)
