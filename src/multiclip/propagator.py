#!/usr/bin/env python3
"""Fan-out of one captured change to every other display.

A propagation round closes the shared gate, writes the snapshot to all
displays except the origin, waits for the settle delay so the resulting
change notifications are seen and discarded, and reopens the gate.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING

from multiclip.errors import DiscoveryError, WriteError
from multiclip.hashing import describe_content
from multiclip.selection import ChangeEvent, Selection
from multiclip.sync_constants import SETTLE_DELAY

if TYPE_CHECKING:
    from multiclip.selection_io import SelectionIO
    from multiclip.sync_gate import SyncGate

logger = logging.getLogger(__name__)


class Propagator:
    """Write ChangeEvents to every display other than their origin.

    The display list is fetched again for every round, so rounds follow
    the current display set rather than the one seen at startup.
    """

    def __init__(
        self,
        selection_io: SelectionIO,
        gate: SyncGate,
        list_displays: Callable[[], list[str]],
        settle_delay: float = SETTLE_DELAY,
        known_displays: Sequence[str] = (),
    ) -> None:
        self.selection_io = selection_io
        self.gate = gate
        self.list_displays = list_displays
        self.settle_delay = settle_delay
        self.known_displays = list(known_displays)

    async def propagate(self, event: ChangeEvent) -> None:
        """Run one propagation round for event.

        Write failures are logged per target and never abort the round.
        Every target finishes before the settle delay starts, even when
        one of them fails unexpectedly.

        Args:
            event: The snapshot to apply.
        """
        with self.gate.propagating():
            targets = [d for d in self._current_displays() if d != event.origin]
            results = await asyncio.gather(
                *(self._sync_display(target, event) for target in targets),
                return_exceptions=True,
            )
            for target, result in zip(targets, results):
                if isinstance(result, Exception):
                    logger.error(
                        "Unexpected error syncing %s: %s", target, result, exc_info=result
                    )
            await asyncio.sleep(self.settle_delay)

    def _current_displays(self) -> list[str]:
        try:
            self.known_displays = self.list_displays()
        except DiscoveryError as e:
            logger.warning("Display discovery failed, using last known displays: %s", e)
        return list(self.known_displays)

    async def _sync_display(self, display: str, event: ChangeEvent) -> None:
        """Write CLIPBOARD then PRIMARY to display."""
        try:
            await self.selection_io.write_selection(display, Selection.CLIPBOARD, event.clipboard)
            await self.selection_io.write_selection(display, Selection.PRIMARY, event.primary)
        except WriteError as e:
            logger.error("Failed to sync %s: %s", display, e)
            return
        logger.info(
            "sync DISPLAY=%s with DISPLAY=%s values: primary=%s clipboard=%s",
            display, event.origin,
            describe_content(event.primary), describe_content(event.clipboard),
        )
