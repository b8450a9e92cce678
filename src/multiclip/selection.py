#!/usr/bin/env python3
"""Selection slots and the change snapshot passed between components."""

from __future__ import annotations

import enum
from dataclasses import dataclass


class Selection(str, enum.Enum):
    """The two selection slots kept in sync.

    The value is the name xclip expects for its -selection argument.
    """

    PRIMARY = "primary"
    CLIPBOARD = "clipboard"


@dataclass(frozen=True)
class ChangeEvent:
    """Snapshot of both selections taken after a change on one display.

    The byte buffers are captured at read time and never re-read, so a
    later change on the origin does not alter an in-flight propagation.

    Attributes:
        origin: Display the change was observed on, e.g. ":0".
        primary: Content of the PRIMARY selection.
        clipboard: Content of the CLIPBOARD selection.
    """

    origin: str
    primary: bytes
    clipboard: bytes
