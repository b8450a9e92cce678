#!/usr/bin/env python3
"""Error types raised by display discovery and selection access.

Each error records the display it concerns so that log lines and the
coordinator can report which session degraded. Discovery errors are not
tied to a display and carry None.
"""

from __future__ import annotations


class SyncError(Exception):
    """Base class for clipboard synchronization errors."""

    def __init__(self, message: str, display: str | None = None) -> None:
        super().__init__(message)
        self.display = display


class DiscoveryError(SyncError):
    """Display enumeration failed or found no displays. Fatal at startup."""


class NotificationError(SyncError):
    """Waiting for a clipboard change failed. Fatal to one watcher."""


class ReadError(SyncError):
    """Reading a selection failed. Fatal to one watcher."""


class SelectionTimeoutError(ReadError):
    """The selection owner did not answer within READ_TIMEOUT.

    Unlike other read errors the display is still reachable, so watchers
    skip the notification instead of exiting.
    """


class WriteError(SyncError):
    """Writing a selection failed. The target is skipped for this round."""
