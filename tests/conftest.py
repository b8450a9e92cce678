#!/usr/bin/env python3
"""Pytest fixtures for multiclip tests.

Provides in-memory displays, a fresh gate, and Xvfb-backed displays for
integration tests.
"""

import shutil
import subprocess
import time
from collections.abc import Generator

import pytest

from conftest_displays import FakeDisplays
from multiclip.sync_gate import SyncGate


@pytest.fixture
def gate() -> SyncGate:
    """Create a fresh SyncGate instance for testing."""
    return SyncGate()


@pytest.fixture
def two_displays() -> FakeDisplays:
    """Two displays that both hold ("A", "A")."""
    return FakeDisplays({":0": (b"A", b"A"), ":1": (b"A", b"A")})


@pytest.fixture
def three_displays() -> FakeDisplays:
    """Three displays that all hold ("A", "A")."""
    return FakeDisplays(
        {":0": (b"A", b"A"), ":1": (b"A", b"A"), ":2": (b"A", b"A")}
    )


@pytest.fixture
def xvfb_displays() -> Generator[list[str] | None, None, None]:
    """Start two Xvfb virtual displays if available, yield their names.

    Yields None if Xvfb or xclip is not installed. Tests using this
    fixture should skip if the value is None.
    """
    if shutil.which("Xvfb") is None or shutil.which("xclip") is None:
        yield None
        return

    displays = [":97", ":98"]
    procs = [
        subprocess.Popen(
            ["Xvfb", display, "-screen", "0", "640x480x24"],
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
        )
        for display in displays
    ]
    try:
        time.sleep(0.5)
        if any(proc.poll() is not None for proc in procs):
            yield None
            return
        yield displays
    finally:
        for proc in procs:
            proc.terminate()
            proc.wait()
