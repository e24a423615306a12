"""Exception hierarchy for the control-document engine.

Load-time structural problems (:class:`ParseError`, :class:`CorpusError`) are
fatal and abort startup. Agent problems (:class:`AgentError`) are logged by the
interpreter and never propagate out of command execution.
:class:`InterpreterError` marks a broken internal invariant, never bad input.
"""

from __future__ import annotations

from typing import Sequence


class CtlbookError(Exception):
    """Base class for all ctlbook errors."""


# -----------------------------------------------------------------------------
# Document errors
# -----------------------------------------------------------------------------


class ParseError(CtlbookError):
    """Raised when markup text cannot be turned into a document."""

    def __init__(self, message: str, *, line: int | None = None, doc_id: str | None = None) -> None:
        self.message = message
        self.line = line
        self.doc_id = doc_id
        super().__init__(self._render())

    def _render(self) -> str:
        where = []
        if self.doc_id:
            where.append(self.doc_id)
        if self.line is not None:
            where.append(f"line {self.line}")
        if not where:
            return self.message
        return f"{':'.join(where)}: {self.message}"


class CorpusError(CtlbookError):
    """Raised when the document corpus fails load-time validation.

    Every unresolved reference is collected before raising so that a single
    startup run reports all of them.
    """

    def __init__(self, problems: Sequence[str]) -> None:
        self.problems = tuple(problems)
        summary = "; ".join(self.problems) if self.problems else "invalid corpus"
        super().__init__(f"{len(self.problems)} corpus problem(s): {summary}")


class DocumentNotFound(CtlbookError, KeyError):
    """Raised by registry lookups for an unknown document id."""

    def __init__(self, doc_id: str) -> None:
        self.doc_id = doc_id
        super().__init__(doc_id)

    def __str__(self) -> str:
        return f"unknown document {self.doc_id!r}"


# -----------------------------------------------------------------------------
# Agent errors
# -----------------------------------------------------------------------------


class AgentError(CtlbookError):
    """Submission to or acknowledgement from the control agent failed."""


class AgentTimeoutError(AgentError):
    """The agent did not acknowledge a submission within the sync timeout."""

    def __init__(self, seq: int, timeout: float) -> None:
        self.seq = seq
        self.timeout = timeout
        super().__init__(f"agent did not acknowledge cmd_seq {seq} within {timeout:.1f}s")


# -----------------------------------------------------------------------------
# Engine errors
# -----------------------------------------------------------------------------


class InterpreterError(CtlbookError):
    """A command reached an entry point that must never see it."""


class NavigationError(CtlbookError):
    """Navigation could not settle on a document (e.g. a redirect loop)."""


__all__ = [
    "CtlbookError",
    "ParseError",
    "CorpusError",
    "DocumentNotFound",
    "AgentError",
    "AgentTimeoutError",
    "InterpreterError",
    "NavigationError",
]
