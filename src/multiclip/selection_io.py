#!/usr/bin/env python3
"""Selection content access for a named display.

This module defines the SelectionIO interface used by watchers and
propagators, and its xclip-backed implementation. Each call targets one
display through xclip's -display argument, so no process-global
DISPLAY variable is involved.

The module handles:
- Reading a selection's current content
- Writing content into a selection (xclip forks to serve it)
- Mapping tool failures onto ReadError and WriteError
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import suppress
from typing import Protocol

from multiclip.errors import ReadError, SelectionTimeoutError, WriteError
from multiclip.selection import Selection
from multiclip.sync_constants import READ_TIMEOUT, WRITE_TIMEOUT

logger = logging.getLogger(__name__)

# xclip reports this on stderr when the X server is unreachable. Any
# other failure on read means the selection holds nothing we can fetch.
_DISPLAY_UNREACHABLE = "Can't open display"


class SelectionIO(Protocol):
    """Read and write selection slots on a named display."""

    async def read_selection(self, display: str, selection: Selection) -> bytes:
        ...

    async def write_selection(
        self, display: str, selection: Selection, value: bytes
    ) -> None:
        ...


class XclipSelectionIO:
    """SelectionIO implementation shelling out to xclip."""

    def __init__(
        self,
        xclip: str = "xclip",
        read_timeout: float = READ_TIMEOUT,
        write_timeout: float = WRITE_TIMEOUT,
    ) -> None:
        self.xclip = xclip
        self.read_timeout = read_timeout
        self.write_timeout = write_timeout

    async def read_selection(self, display: str, selection: Selection) -> bytes:
        """Return the content of selection on display.

        Args:
            display: Display name, e.g. ":0".
            selection: The selection slot to read.

        Returns:
            Content bytes. Empty when the selection has no owner or no
            text target.

        Raises:
            ReadError: If xclip cannot run or the display is unreachable.
            SelectionTimeoutError: If the selection owner does not answer
                within the read timeout.
        """
        try:
            process = await asyncio.create_subprocess_exec(
                self.xclip, "-selection", selection.value, "-out", "-display", display,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise ReadError(f"Cannot run {self.xclip}: {e}", display) from e

        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(), timeout=self.read_timeout
            )
        except asyncio.TimeoutError as e:
            await kill_process(process)
            raise SelectionTimeoutError(
                f"Reading {selection.value} on {display} timed out after "
                f"{self.read_timeout} seconds",
                display,
            ) from e

        if process.returncode != 0:
            message = stderr.decode("utf-8", errors="replace").strip()
            if _DISPLAY_UNREACHABLE in message:
                raise ReadError(f"Cannot read {selection.value} on {display}: {message}", display)
            logger.debug("No %s content on %s: %s", selection.value, display, message)
            return b""
        return stdout

    async def write_selection(
        self, display: str, selection: Selection, value: bytes
    ) -> None:
        """Set the content of selection on display.

        xclip reads the value from stdin, forks a child that owns the
        selection and serves requests, and the parent exits. The child
        inherits stdout and stderr, so they are not piped here: a pipe
        would stay open for the child's whole lifetime.

        Args:
            display: Display name, e.g. ":1".
            selection: The selection slot to write.
            value: Content bytes to store.

        Raises:
            WriteError: If xclip cannot run, fails, or times out.
        """
        try:
            process = await asyncio.create_subprocess_exec(
                self.xclip, "-selection", selection.value, "-in", "-display", display,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
            )
        except OSError as e:
            raise WriteError(f"Cannot run {self.xclip}: {e}", display) from e

        try:
            await asyncio.wait_for(
                process.communicate(value), timeout=self.write_timeout
            )
        except asyncio.TimeoutError as e:
            await kill_process(process)
            raise WriteError(
                f"Writing {selection.value} on {display} timed out after "
                f"{self.write_timeout} seconds",
                display,
            ) from e

        if process.returncode != 0:
            raise WriteError(
                f"{self.xclip} exited with status {process.returncode} writing "
                f"{selection.value} on {display}",
                display,
            )


async def kill_process(process: asyncio.subprocess.Process) -> None:
    """Kill a tool process that is still running and reap it."""
    with suppress(ProcessLookupError):
        process.kill()
    await process.wait()
