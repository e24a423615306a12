"""Substitution tags resolved against live agent status at render time."""

from __future__ import annotations

import logging

from rich.text import Text

from ..control.agent import Requirement, StatusProvider
from ..control.state import BENCH_BALLOON_SIZE
from ..utils.units import format_size

__all__ = ["TagResolver", "ACTIVE_STYLE", "ALERT_STYLE", "REQUIREMENT_PREFIX"]

LOGGER = logging.getLogger(__name__)

ACTIVE_STYLE = "bold green"
ALERT_STYLE = "bold red"
REQUIREMENT_PREFIX = "Req::"


class TagResolver:
    """Map ``%Tag%`` names to styled text.

    :meth:`resolve` returns ``None`` when the tag asks for its paragraph to
    be hidden, an empty :class:`~rich.text.Text` for a zero-width marker,
    and ``%Tag%`` itself for names it does not know.
    """

    def __init__(self, status: StatusProvider, *, balloon_size: int = BENCH_BALLOON_SIZE) -> None:
        self._status = status
        self._balloon_size = balloon_size

    def refresh(self) -> None:
        self._status.refresh()

    def resolve(self, tag: str, *, refresh: bool = True) -> Text | None:
        if refresh:
            self.refresh()

        if tag.startswith(REQUIREMENT_PREFIX):
            name = tag[len(REQUIREMENT_PREFIX) :]
            try:
                requirement = Requirement(name)
            except ValueError:
                LOGGER.warning("Unknown requirement tag %r", tag)
                return _placeholder(tag)
            satisfied = requirement in self._status.sysreqs().satisfied
            return Text(tag, style=ACTIVE_STYLE if satisfied else ALERT_STYLE)

        bench = self._status.bench()
        have_hashd = bench.hashd_seq > 0
        have_iocost = bench.iocost_seq > 0
        if tag == "MissedSysReqs":
            missed = len(self._status.sysreqs().missed)
            return Text(str(missed)) if missed > 0 else None
        if tag == "NeedBenchHashd":
            return None if have_hashd else Text()
        if tag == "NeedBenchIoCost":
            return None if have_iocost else Text()
        if tag == "NeedBench":
            return None if have_hashd and have_iocost else Text()
        if tag == "HaveBench":
            return Text() if have_hashd and have_iocost else None
        if tag == "BenchBalloonSize":
            return Text(format_size(self._balloon_size))
        if tag == "HashdMemSize":
            return Text(format_size(bench.hashd_mem_size * bench.hashd_mem_frac))

        LOGGER.warning("Unknown markup tag %r", tag)
        return _placeholder(tag)


def _placeholder(tag: str) -> Text:
    return Text(f"%{tag}%")
