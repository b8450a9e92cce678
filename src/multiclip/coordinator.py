#!/usr/bin/env python3
"""Wiring of watchers and propagation rounds.

The coordinator starts one ChangeWatcher per display, all feeding one
event queue, and runs a propagation round as a separate task for every
event taken off the queue. Rounds may overlap; the consumer never waits
for one to finish before taking the next event.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from contextlib import suppress
from typing import TYPE_CHECKING

from multiclip.propagator import Propagator
from multiclip.selection import ChangeEvent
from multiclip.sync_constants import SETTLE_DELAY
from multiclip.sync_gate import SyncGate
from multiclip.watcher import ChangeWatcher

if TYPE_CHECKING:
    from multiclip.selection_io import SelectionIO
    from multiclip.selection_notify import ChangeNotifier

logger = logging.getLogger(__name__)


class Coordinator:
    """Own the watchers and dispatch their events to propagation rounds.

    Attributes:
        display_source: Returns the current display list. Called once at
            start and again by every propagation round.
        gate: The gate shared by all watchers and rounds.
        events: Queue the watchers emit ChangeEvents into.
        watchers: One ChangeWatcher per display found at start.
    """

    def __init__(
        self,
        display_source: Callable[[], list[str]],
        notifier: ChangeNotifier,
        selection_io: SelectionIO,
        settle_delay: float = SETTLE_DELAY,
    ) -> None:
        self.display_source = display_source
        self.notifier = notifier
        self.selection_io = selection_io
        self.settle_delay = settle_delay
        self.gate = SyncGate()
        self.events: asyncio.Queue[ChangeEvent] = asyncio.Queue()
        self.watchers: list[ChangeWatcher] = []
        self.propagator = Propagator(selection_io, self.gate, display_source, settle_delay)
        self._rounds: set[asyncio.Task[None]] = set()

    def start(self) -> list[str]:
        """Enumerate displays and build one watcher for each.

        Returns:
            The displays being watched.

        Raises:
            DiscoveryError: If no displays can be found.
        """
        displays = self.display_source()
        self.watchers = [
            ChangeWatcher(display, self.notifier, self.selection_io, self.gate, self.events)
            for display in displays
        ]
        self.propagator.known_displays = list(displays)
        return displays

    async def run(self, shutdown: asyncio.Event) -> None:
        """Run watchers and propagation rounds.

        Returns when shutdown is set or when every watcher has exited.
        In-flight rounds are awaited before returning so the gate ends
        up idle.

        Args:
            shutdown: Event that stops all watchers when set.

        Raises:
            DiscoveryError: If start() was not called and no displays
                can be found.
        """
        if not self.watchers:
            self.start()

        running = {
            asyncio.create_task(watcher.run(shutdown), name=f"watch {watcher.display}")
            for watcher in self.watchers
        }
        shutdown_task = asyncio.create_task(shutdown.wait())
        get_task = asyncio.create_task(self.events.get())
        try:
            while running:
                done, _ = await asyncio.wait(
                    {get_task, shutdown_task, *running},
                    return_when=asyncio.FIRST_COMPLETED,
                )
                if get_task in done:
                    self._spawn_round(get_task.result())
                    get_task = asyncio.create_task(self.events.get())
                for task in done & running:
                    running.discard(task)
                    self._watcher_finished(task, shutdown, len(running))
                if shutdown_task in done:
                    break
        finally:
            for task in (get_task, shutdown_task, *running):
                task.cancel()
                with suppress(asyncio.CancelledError):
                    await task

        if not shutdown.is_set():
            # Events emitted just before the last watcher exited
            while not self.events.empty():
                self._spawn_round(self.events.get_nowait())

        if self._rounds:
            await asyncio.gather(*self._rounds, return_exceptions=True)

    def _spawn_round(self, event: ChangeEvent) -> None:
        task = asyncio.create_task(self.propagator.propagate(event))
        self._rounds.add(task)
        task.add_done_callback(self._round_finished)

    def _round_finished(self, task: asyncio.Task[None]) -> None:
        self._rounds.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error("Propagation round failed: %s", error, exc_info=error)

    def _watcher_finished(
        self, task: asyncio.Task[None], shutdown: asyncio.Event, remaining: int
    ) -> None:
        error = None if task.cancelled() else task.exception()
        if error is not None:
            logger.error("%s crashed: %s", task.get_name(), error, exc_info=error)
        if not shutdown.is_set():
            logger.warning(
                "%s exited, %d display(s) still watched", task.get_name(), remaining
            )
