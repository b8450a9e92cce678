#!/usr/bin/env python3
"""Clipboard change notification for a named display.

This module defines the ChangeNotifier interface used by watchers and
two implementations:
- XFixesNotifier: subscribes to XFixes selection-owner events through
  python-xlib and waits on the connection's file descriptor
- ClipnotifyNotifier: runs the clipnotify tool, which exits on the next
  selection change

Both are signal-only: they report that something changed, and the
watcher reads the new content afterwards.
"""

from __future__ import annotations

import asyncio
import logging
import os
from contextlib import suppress
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol

from multiclip.errors import NotificationError
from multiclip.selection_io import kill_process

if TYPE_CHECKING:
    from Xlib.display import Display
    from Xlib.xobject.drawable import Window

logger = logging.getLogger(__name__)


class ChangeNotifier(Protocol):
    """Block until a selection changes on a display."""

    async def wait_for_change(self, display: str) -> None:
        ...


class ClipnotifyNotifier:
    """ChangeNotifier running one clipnotify process per wait.

    clipnotify has no display argument, so DISPLAY is set in the child's
    environment only.
    """

    def __init__(self, clipnotify: str = "clipnotify") -> None:
        self.clipnotify = clipnotify

    async def wait_for_change(self, display: str) -> None:
        """Wait for the next selection change on display.

        Raises:
            NotificationError: If clipnotify cannot run or fails.
        """
        env = dict(os.environ, DISPLAY=display)
        try:
            process = await asyncio.create_subprocess_exec(
                self.clipnotify,
                env=env,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise NotificationError(f"Cannot run {self.clipnotify}: {e}", display) from e

        try:
            _, stderr = await process.communicate()
        except asyncio.CancelledError:
            await kill_process(process)
            raise

        if process.returncode != 0:
            message = stderr.decode("utf-8", errors="replace").strip()
            raise NotificationError(
                f"{self.clipnotify} failed on {display} with status "
                f"{process.returncode}: {message}",
                display,
            )

    def close(self) -> None:
        """Nothing to release; each wait owns its process."""


@dataclass
class XFixesConnection:
    """One X connection subscribed to selection-owner changes.

    Attributes:
        name: Display name the connection was opened with.
        display: The X11 display connection.
        window: Hidden window the XFixes events are delivered to.
        fd: Socket descriptor registered with the event loop.
            python-xlib raises from fileno() once the server hangs up.
        readable: Set by the event loop when the connection's socket
            has data.
    """

    name: str
    display: Display
    window: Window
    fd: int
    readable: asyncio.Event = field(default_factory=asyncio.Event)

    def drain(self) -> bool:
        """Consume pending X events without blocking.

        Returns:
            True if any of them was a selection-owner change.

        Raises:
            NotificationError: If the X connection was closed. The
                connection is released before raising.
        """
        from Xlib import error as xerror

        changed = False
        try:
            while self.display.pending_events() > 0:
                event = self.display.next_event()
                logger.debug("X11 event on %s class=%s", self.name, type(event).__name__)
                if type(event).__name__ == "SetSelectionOwnerNotify":
                    changed = True
        except (xerror.ConnectionClosedError, OSError) as e:
            self.release()
            raise NotificationError(f"Lost X connection to {self.name}: {e}", self.name) from e
        return changed

    async def wait(self) -> None:
        """Return after the next selection-owner change."""
        while not self.drain():
            self.readable.clear()
            await self.readable.wait()

    def release(self) -> None:
        """Unregister the descriptor and close the connection.

        Safe to call after the server has gone away. The descriptor must
        leave the event loop before its number is reused by another pipe.
        """
        from Xlib import error as xerror

        asyncio.get_running_loop().remove_reader(self.fd)
        with suppress(xerror.ConnectionClosedError, OSError):
            self.display.close()


class XFixesNotifier:
    """ChangeNotifier using the XFixes extension via python-xlib.

    A connection per display is opened on first use and kept until it
    fails or the notifier is closed. Its file descriptor is registered
    with the running event loop, the same way a sync loop integrates X11
    events with asyncio.
    """

    def __init__(self) -> None:
        self._connections: dict[str, XFixesConnection] = {}

    async def wait_for_change(self, display: str) -> None:
        """Wait for the next PRIMARY or CLIPBOARD owner change on display.

        Raises:
            NotificationError: If the display cannot be opened, lacks
                XFixes, or the connection drops.
        """
        connection = self._connections.get(display)
        if connection is None:
            connection = open_xfixes_connection(display)
            self._connections[display] = connection
        try:
            await connection.wait()
        except NotificationError:
            del self._connections[display]
            raise

    def close(self) -> None:
        """Unregister file descriptors and close every connection."""
        for connection in self._connections.values():
            connection.release()
        self._connections.clear()


def open_xfixes_connection(name: str) -> XFixesConnection:
    """Open display name and subscribe to selection-owner changes.

    Must be called from within the running event loop.

    Args:
        name: Display name, e.g. ":0".

    Returns:
        The subscribed connection, registered with the event loop.

    Raises:
        NotificationError: If the display cannot be opened or has no
            XFixes extension.
    """
    from Xlib import error as xerror
    from Xlib.display import Display as XDisplay

    try:
        display = XDisplay(name)
    except (xerror.DisplayError, xerror.ConnectionClosedError, OSError) as e:
        raise NotificationError(f"Failed to connect to X11 display {name}: {e}", name) from e

    if not display.has_extension("XFIXES"):
        display.close()
        raise NotificationError(f"Display {name} lacks the XFIXES extension", name)

    window = create_hidden_window(display)
    register_xfixes_events(display, window)

    fd = display.fileno()
    connection = XFixesConnection(name=name, display=display, window=window, fd=fd)
    loop = asyncio.get_running_loop()
    loop.add_reader(fd, connection.readable.set)
    return connection


def create_hidden_window(display: Display) -> Window:
    """Create a 1x1 unmapped window to receive XFixes events.

    Args:
        display: The X11 display connection.

    Returns:
        A Window object selected for selection-owner notifications.
    """
    from Xlib import X

    screen = display.screen()
    return screen.root.create_window(
        0, 0, 1, 1, 0, screen.root_depth, event_mask=X.PropertyChangeMask,
    )


def register_xfixes_events(display: Display, window: Window) -> None:
    """Register for XFixes selection change notifications.

    Registers for SetSelectionOwnerNotify on both CLIPBOARD and PRIMARY
    so that any new owner of either slot wakes the watcher.

    Args:
        display: The X11 display connection.
        window: The window to receive selection events.
    """
    from Xlib import Xatom
    from Xlib.ext import xfixes

    xfixes.query_version(display)

    clipboard_atom = display.intern_atom("CLIPBOARD")
    mask = xfixes.XFixesSetSelectionOwnerNotifyMask
    xfixes.select_selection_input(display, window.id, clipboard_atom, mask)
    xfixes.select_selection_input(display, window.id, Xatom.PRIMARY, mask)
    display.flush()


def create_notifier(name: str) -> XFixesNotifier | ClipnotifyNotifier:
    """Build the notifier selected on the command line.

    Args:
        name: "xfixes" or "clipnotify".

    Raises:
        ValueError: For any other name.
    """
    if name == "xfixes":
        return XFixesNotifier()
    if name == "clipnotify":
        return ClipnotifyNotifier()
    raise ValueError(f"Unknown notifier: {name}")
