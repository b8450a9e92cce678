#!/usr/bin/env python3
"""
Shared propagation gate for echo suppression.

Writing a selection on a display makes that display report a change,
just like a user copy would. Without suppression every propagated write
would be observed and propagated again, forever. The gate records
whether any propagation round is in flight; watchers discard changes
observed while it is closed.

The gate is reference-counted. Each round calls set_propagating() before
its first write and set_idle() after its settle delay. The gate opens
only when the last overlapping round finishes, so a short round cannot
reopen echo detection while a longer one is still writing.

Every transition is appended to a bounded history of (timestamp, state,
active_rounds) records for diagnostics.
"""

from __future__ import annotations

import enum
import logging
import threading
import time
from collections import deque
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass

from multiclip.sync_constants import GATE_HISTORY_SIZE

logger = logging.getLogger(__name__)


class SyncState(enum.Enum):
    """Whether the system is watching or writing."""

    IDLE = "idle"
    PROPAGATING = "propagating"


@dataclass(frozen=True)
class GateTransition:
    """
    One recorded gate operation.

    Attributes:
        timestamp: time.monotonic() when the operation ran.
        state: Gate state after the operation.
        active_rounds: Rounds in flight after the operation.
    """

    timestamp: float
    state: SyncState
    active_rounds: int


class SyncGate:
    """
    Process-wide gate shared by all watchers and propagation rounds.

    All operations run under one lock, so no caller observes a count
    and state that disagree.
    """

    def __init__(self, history_size: int = GATE_HISTORY_SIZE) -> None:
        self._lock = threading.Lock()
        self._active_rounds = 0
        self._history: deque[GateTransition] = deque(maxlen=history_size)
        self._record()

    def set_propagating(self) -> None:
        """
        Open a propagation round and close the gate to echoes.

        Idempotent in effect: the gate stays PROPAGATING however many
        rounds are open.
        """
        with self._lock:
            self._active_rounds += 1
            self._record()
            logger.debug("Gate propagating (%d active rounds)", self._active_rounds)

    def set_idle(self) -> None:
        """
        Close a propagation round.

        The gate returns to IDLE when no other round is open. Calling
        this with no open round leaves the gate IDLE.
        """
        with self._lock:
            if self._active_rounds == 0:
                logger.warning("Gate set idle with no propagation round open")
                return
            self._active_rounds -= 1
            self._record()
            logger.debug("Gate %s (%d active rounds)", self._state().value, self._active_rounds)

    def is_propagating(self) -> bool:
        """
        Return True while any propagation round is open.
        """
        with self._lock:
            return self._active_rounds > 0

    @property
    def state(self) -> SyncState:
        with self._lock:
            return self._state()

    @property
    def active_rounds(self) -> int:
        with self._lock:
            return self._active_rounds

    def history(self) -> tuple[GateTransition, ...]:
        """
        Return recorded transitions, oldest first.
        """
        with self._lock:
            return tuple(self._history)

    @contextmanager
    def propagating(self) -> Iterator[None]:
        """
        Hold the gate closed for the duration of the block.

        set_idle() runs even if the block raises or is cancelled, so a
        failed round never leaves the gate closed for good.
        """
        self.set_propagating()
        try:
            yield
        finally:
            self.set_idle()

    def _state(self) -> SyncState:
        if self._active_rounds > 0:
            return SyncState.PROPAGATING
        return SyncState.IDLE

    def _record(self) -> None:
        self._history.append(
            GateTransition(time.monotonic(), self._state(), self._active_rounds)
        )
