#!/usr/bin/env python3
"""X11 display discovery.

Every running X server listens on a Unix socket named X<n> in the
socket directory. Display ":<n>" is derived from each such entry. The
scan is cheap and may be repeated for every propagation round so that
rounds reflect the current display set.
"""

from __future__ import annotations

import logging
import os
import re
from collections.abc import Sequence

from multiclip.errors import DiscoveryError
from multiclip.sync_constants import X11_SOCKET_DIR

logger = logging.getLogger(__name__)

_SOCKET_NAME = re.compile(r"^X(\d+)$")


def enumerate_displays(socket_dir: str = X11_SOCKET_DIR) -> list[str]:
    """List displays with a server socket in socket_dir.

    Args:
        socket_dir: Directory holding X11 server sockets.

    Returns:
        Display names such as [":0", ":1"], ordered by display number.

    Raises:
        DiscoveryError: If the directory cannot be read or holds no
            server sockets.
    """
    try:
        entries = os.listdir(socket_dir)
    except OSError as e:
        raise DiscoveryError(f"Cannot list X11 sockets in {socket_dir}: {e}") from e

    numbers = []
    for entry in entries:
        match = _SOCKET_NAME.match(entry)
        if match:
            numbers.append(int(match.group(1)))
        else:
            logger.debug("Ignoring %s in %s", entry, socket_dir)

    if not numbers:
        raise DiscoveryError(f"No X11 displays found in {socket_dir}")
    return [f":{number}" for number in sorted(numbers)]


class DisplaySource:
    """Callable returning the current display set.

    Either scans the socket directory on every call, or returns a fixed
    list given on the command line.
    """

    def __init__(
        self,
        socket_dir: str = X11_SOCKET_DIR,
        displays: Sequence[str] | None = None,
    ) -> None:
        self.socket_dir = socket_dir
        # One entry per display, in first-seen order
        self.displays = list(dict.fromkeys(displays)) if displays else None

    def __call__(self) -> list[str]:
        if self.displays is not None:
            return list(self.displays)
        return enumerate_displays(self.socket_dir)
