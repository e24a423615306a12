"""Exclusive access to the control state plus the agent sync protocol."""

from __future__ import annotations

import logging
import threading
import time
from contextlib import contextmanager
from typing import Callable, Iterator

from ..errors import AgentError, AgentTimeoutError
from .agent import AgentChannel, BenchReport, StatusProvider
from .state import ControlState

__all__ = ["ControlSession", "DEFAULT_SYNC_TIMEOUT"]

LOGGER = logging.getLogger(__name__)

DEFAULT_SYNC_TIMEOUT = 10.0
DEFAULT_POLL_INTERVAL = 0.05


class ControlSession:
    """Owns the :class:`ControlState` and talks to the agent on its behalf.

    One lock guards the state. The interpreter holds it for a single
    command's mutate + :meth:`apply`; reconciliation only takes it long
    enough to :meth:`refresh` and copy a :meth:`snapshot`.
    """

    def __init__(
        self,
        channel: AgentChannel,
        status: StatusProvider,
        *,
        state: ControlState | None = None,
        sync_timeout: float = DEFAULT_SYNC_TIMEOUT,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._channel = channel
        self._status = status
        self._state = state or ControlState()
        self._lock = threading.RLock()
        self._sync_timeout = max(0.0, sync_timeout)
        self._poll_interval = max(0.001, poll_interval)
        self._clock = clock
        self._sleep = sleep
        self._submitted_seq = 0

    @property
    def submitted_seq(self) -> int:
        return self._submitted_seq

    @contextmanager
    def locked(self) -> Iterator[ControlState]:
        """Hold the state lock and yield the live, mutable state."""

        with self._lock:
            yield self._state

    def snapshot(self) -> ControlState:
        with self._lock:
            return self._state.copy()

    def sync(self) -> None:
        """Block until the agent acknowledged the last submission.

        Raises:
            AgentTimeoutError: no acknowledgement within ``sync_timeout``.
            AgentError: the acknowledgement could not be read.
        """

        target = self._submitted_seq
        if target == 0:
            return
        deadline = self._clock() + self._sync_timeout
        while True:
            acked = self._channel.acked_seq()
            if acked >= target:
                return
            if self._clock() >= deadline:
                raise AgentTimeoutError(target, self._sync_timeout)
            self._sleep(self._poll_interval)

    def apply(self) -> int:
        """Submit the current state; returns the sequence number used.

        Raises:
            AgentError: the submission failed; the local state is kept as is.
        """

        with self._lock:
            seq = self._submitted_seq + 1
            self._channel.submit(seq, self._state.to_payload())
            self._submitted_seq = seq
            return seq

    def bench(self) -> BenchReport:
        """Latest benchmark report known to the status provider."""

        return self._status.bench()

    def refresh(self) -> None:
        """Pull benchmark counters the agent advanced on its own."""

        try:
            self._status.refresh()
        except AgentError as exc:
            LOGGER.warning("Failed to refresh agent status (%s)", exc)
        bench = self._status.bench()
        with self._lock:
            state = self._state
            state.bench_hashd_cur = bench.hashd_seq
            state.bench_iocost_cur = bench.iocost_seq
            state.bench_hashd_next = max(state.bench_hashd_next, state.bench_hashd_cur)
            state.bench_iocost_next = max(state.bench_iocost_next, state.bench_iocost_cur)
