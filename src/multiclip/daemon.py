#!/usr/bin/env python3
"""Daemon entry point for multiclip.

This module builds the external collaborators (display discovery,
change notifier, xclip selection access), installs signal handlers and
runs the coordinator until shutdown or until every watcher has exited.
"""

from __future__ import annotations

import asyncio
import logging
import signal
from collections.abc import Sequence

from multiclip.coordinator import Coordinator
from multiclip.displays import DisplaySource
from multiclip.selection_io import XclipSelectionIO
from multiclip.selection_notify import create_notifier
from multiclip.sync_constants import SETTLE_DELAY, X11_SOCKET_DIR

logger = logging.getLogger(__name__)


async def run_daemon(
    displays: Sequence[str] = (),
    socket_dir: str = X11_SOCKET_DIR,
    notifier_name: str = "xfixes",
    settle_delay: float = SETTLE_DELAY,
) -> bool:
    """Synchronize clipboards until SIGINT/SIGTERM or all watchers exit.

    Args:
        displays: Displays to sync. Scans socket_dir when empty.
        socket_dir: Directory holding X11 server sockets.
        notifier_name: "xfixes" or "clipnotify".
        settle_delay: Seconds to suppress echoes after each round.

    Returns:
        True if stopped by a signal, False if every watcher exited.

    Raises:
        DiscoveryError: If no displays can be found at startup.
    """
    source = DisplaySource(socket_dir=socket_dir, displays=displays)
    notifier = create_notifier(notifier_name)
    coordinator = Coordinator(source, notifier, XclipSelectionIO(), settle_delay)

    found = coordinator.start()
    logger.info("Found displays: %s", ", ".join(found))

    # Register signal handlers for clean shutdown
    shutdown_requested = asyncio.Event()
    loop = asyncio.get_running_loop()
    loop.add_signal_handler(signal.SIGINT, shutdown_requested.set)
    loop.add_signal_handler(signal.SIGTERM, shutdown_requested.set)

    try:
        await coordinator.run(shutdown_requested)
    finally:
        loop.remove_signal_handler(signal.SIGINT)
        loop.remove_signal_handler(signal.SIGTERM)
        notifier.close()
    return shutdown_requested.is_set()
