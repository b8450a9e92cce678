#!/usr/bin/env python3
"""Per-display clipboard change watcher.

One ChangeWatcher runs for every display. It waits for the display to
report a selection change, snapshots both selections, and forwards the
snapshot unless a propagation round holds the gate closed. Changes seen
while the gate is closed are echoes of our own writes and are dropped.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import suppress
from typing import TYPE_CHECKING

from multiclip.errors import NotificationError, ReadError, SelectionTimeoutError
from multiclip.hashing import describe_content
from multiclip.selection import ChangeEvent, Selection

if TYPE_CHECKING:
    from multiclip.selection_io import SelectionIO
    from multiclip.selection_notify import ChangeNotifier
    from multiclip.sync_gate import SyncGate

logger = logging.getLogger(__name__)


class ChangeWatcher:
    """Watch one display and emit ChangeEvents for external changes.

    Attributes:
        display: The display this watcher observes.
        notifier: Blocks until a selection changes on the display.
        selection_io: Reads selection content.
        gate: Shared gate consulted before forwarding.
        events: Queue receiving forwarded ChangeEvents.
    """

    def __init__(
        self,
        display: str,
        notifier: ChangeNotifier,
        selection_io: SelectionIO,
        gate: SyncGate,
        events: asyncio.Queue[ChangeEvent],
    ) -> None:
        self.display = display
        self.notifier = notifier
        self.selection_io = selection_io
        self.gate = gate
        self.events = events

    async def run(self, shutdown: asyncio.Event) -> None:
        """Watch until shutdown is set or the display fails.

        Notification and read failures end the watcher; they are logged
        and not retried. A read that times out only skips that change.

        Args:
            shutdown: Event that stops the loop when set.
        """
        logger.info("Watching %s", self.display)
        try:
            while not shutdown.is_set():
                if not await self._wait_for_change(shutdown):
                    break
                await self._handle_change()
        except NotificationError as e:
            logger.error("Change notification failed on %s: %s", self.display, e)
        except ReadError as e:
            logger.error("Clipboard read failed on %s: %s", self.display, e)
        finally:
            logger.info("Stopped watching %s", self.display)

    async def _wait_for_change(self, shutdown: asyncio.Event) -> bool:
        """Wait for a change notification or shutdown.

        Returns:
            True if the display reported a change, False on shutdown.
        """
        change_task = asyncio.create_task(self.notifier.wait_for_change(self.display))
        shutdown_task = asyncio.create_task(shutdown.wait())
        try:
            done, _ = await asyncio.wait(
                {change_task, shutdown_task}, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            for task in (change_task, shutdown_task):
                if not task.done():
                    task.cancel()
                    with suppress(asyncio.CancelledError):
                        await task

        if change_task in done:
            # Re-raises NotificationError from the notifier
            change_task.result()
            return True
        return False

    async def _handle_change(self) -> None:
        """Snapshot both selections and forward them if the gate is open."""
        if self.gate.is_propagating():
            logger.debug("Dropping echo on %s before read", self.display)
            return

        try:
            primary = await self.selection_io.read_selection(self.display, Selection.PRIMARY)
            clipboard = await self.selection_io.read_selection(self.display, Selection.CLIPBOARD)
        except SelectionTimeoutError as e:
            logger.warning("Skipping change on %s: %s", self.display, e)
            return

        # No await between the gate read and the put
        if self.gate.is_propagating():
            logger.debug("Dropping echo on %s", self.display)
            return
        event = ChangeEvent(origin=self.display, primary=primary, clipboard=clipboard)
        self.events.put_nowait(event)
        logger.debug(
            "Change on %s: primary=%s clipboard=%s",
            self.display, describe_content(primary), describe_content(clipboard),
        )
