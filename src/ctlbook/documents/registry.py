"""Corpus registry: loads, validates and serves control documents."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from importlib import resources
from pathlib import Path
from typing import Iterable, Iterator, Mapping

from ..errors import CorpusError, DocumentNotFound, ParseError
from ..utils.file_io import read_text
from .model import Document, Enable, GraphTag, Jump, SelectGraph, SwitchKind, Toggle
from .parser import parse

__all__ = ["DocumentRegistry", "CorpusSummary", "DOCUMENT_SUFFIX", "INDEX_ID"]

LOGGER = logging.getLogger(__name__)

DOCUMENT_SUFFIX = ".rd"
INDEX_ID = "index"
_GRAPH_TAGS = frozenset(tag.value for tag in GraphTag)


@dataclass(slots=True)
class CorpusSummary:
    """References collected while validating a corpus."""

    sideload_tags: set[str] = field(default_factory=set)
    sysload_tags: set[str] = field(default_factory=set)
    graph_tags: set[str] = field(default_factory=set)
    jump_targets: set[str] = field(default_factory=set)


class DocumentRegistry:
    """Read-only map of document id to markup source.

    Documents are re-parsed on every :meth:`document` call so each navigation
    gets a fresh immutable value. Construction validates the whole corpus and
    raises :class:`CorpusError` listing every problem found.
    """

    def __init__(self, sources: Iterable[tuple[str, str]], *, start_id: str = INDEX_ID) -> None:
        self._sources: dict[str, str] = {}
        self._summary = CorpusSummary()
        self._start_id = start_id
        self._load(sources, start_id)

    # ------------------------------------------------------------------
    # Construction helpers
    # ------------------------------------------------------------------

    @classmethod
    def from_package(cls, **kwargs) -> DocumentRegistry:
        """Load the corpus shipped inside :mod:`ctlbook.documents.corpus`."""

        root = resources.files("ctlbook.documents") / "corpus"
        entries = sorted(
            (entry for entry in root.iterdir() if entry.name.endswith(DOCUMENT_SUFFIX)),
            key=lambda entry: entry.name,
        )
        return cls(((entry.name, entry.read_text(encoding="utf-8")) for entry in entries), **kwargs)

    @classmethod
    def from_directory(cls, path: Path | str, **kwargs) -> DocumentRegistry:
        """Load every ``*.rd`` file below ``path``."""

        root = Path(path).expanduser()
        if not root.is_dir():
            raise CorpusError([f"document directory {root} does not exist"])
        files = sorted(root.rglob(f"*{DOCUMENT_SUFFIX}"))
        return cls(((str(item), read_text(item)) for item in files), **kwargs)

    @classmethod
    def from_mapping(cls, sources: Mapping[str, str], **kwargs) -> DocumentRegistry:
        return cls(sources.items(), **kwargs)

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def lookup(self, doc_id: str) -> str:
        """Return the markup source for ``doc_id``."""

        try:
            return self._sources[doc_id]
        except KeyError:
            raise DocumentNotFound(doc_id) from None

    def document(self, doc_id: str) -> Document:
        """Parse ``doc_id`` afresh; the source was validated at load time."""

        return parse(self.lookup(doc_id))

    @property
    def start_id(self) -> str:
        return self._start_id

    @property
    def summary(self) -> CorpusSummary:
        return self._summary

    @property
    def ids(self) -> tuple[str, ...]:
        return tuple(sorted(self._sources))

    def __contains__(self, doc_id: object) -> bool:
        return doc_id in self._sources

    def __iter__(self) -> Iterator[str]:
        return iter(self.ids)

    def __len__(self) -> int:
        return len(self._sources)

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def _load(self, sources: Iterable[tuple[str, str]], start_id: str) -> None:
        problems: list[str] = []
        documents: dict[str, Document] = {}
        origins: dict[str, str] = {}

        for origin, text in sources:
            LOGGER.debug("Loading document from %s", origin)
            try:
                document = parse(text)
            except ParseError as exc:
                problems.append(f"{origin}: {exc}")
                continue
            if document.id in documents:
                problems.append(
                    f"{origin}: duplicate document id {document.id!r} (first in {origins[document.id]})"
                )
                continue
            documents[document.id] = document
            origins[document.id] = origin
            self._sources[document.id] = text
            self._collect(document)

        summary = self._summary
        for tag in sorted(summary.graph_tags - _GRAPH_TAGS):
            problems.append(f"invalid graph tag {tag!r}")
        for target in sorted(summary.jump_targets):
            if target not in documents:
                problems.append(f"invalid jump target {target!r}")
        if documents and start_id not in documents:
            problems.append(f"missing start document {start_id!r}")
        if not documents and not problems:
            problems.append("corpus is empty")
        problems.extend(_redirect_loops(documents))

        LOGGER.info("Sideload tags: %s", sorted(summary.sideload_tags))
        LOGGER.info("Sysload tags: %s", sorted(summary.sysload_tags))

        if problems:
            for problem in problems:
                LOGGER.error("doc: %s", problem)
            raise CorpusError(problems)
        LOGGER.info("Loaded %d document(s)", len(documents))

    def _collect(self, document: Document) -> None:
        summary = self._summary
        for command in document.all_commands():
            if isinstance(command, (Enable, Toggle)):
                switch = command.switch
                if switch.kind is SwitchKind.SIDELOAD:
                    summary.sideload_tags.add(switch.tag)
                elif switch.kind is SwitchKind.SYSLOAD:
                    summary.sysload_tags.add(switch.tag)
            elif isinstance(command, SelectGraph):
                if command.tag:
                    summary.graph_tags.add(command.tag)
            elif isinstance(command, Jump):
                summary.jump_targets.add(command.target)


def _redirect_loops(documents: Mapping[str, Document]) -> list[str]:
    """Report entry redirects (a ``jump`` among pre-commands) that never settle."""

    problems: list[str] = []
    for doc_id in sorted(documents):
        seen = [doc_id]
        current = documents[doc_id]
        while True:
            target = _first_redirect(current)
            if target is None or target not in documents:
                break
            if target in seen:
                problems.append(f"redirect loop {' -> '.join([*seen, target])}")
                break
            seen.append(target)
            current = documents[target]
    return problems


def _first_redirect(document: Document) -> str | None:
    for command in document.pre_commands:
        if isinstance(command, Jump):
            return command.target
    return None
