#!/usr/bin/env python3
"""Tests for clipnotify and XFixes change notifiers."""
import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from Xlib import error as xerror

from multiclip.errors import NotificationError
from multiclip.selection_notify import (
    ClipnotifyNotifier,
    XFixesConnection,
    XFixesNotifier,
    create_notifier,
    open_xfixes_connection,
)

SetSelectionOwnerNotify = type("SetSelectionOwnerNotify", (), {})
PropertyNotify = type("PropertyNotify", (), {})


def make_process(returncode: int = 0, stderr: bytes = b"") -> MagicMock:
    """Create a mock clipnotify process."""
    process = MagicMock()
    process.communicate = AsyncMock(return_value=(b"", stderr))
    process.wait = AsyncMock(return_value=returncode)
    process.kill = MagicMock()
    process.returncode = returncode
    return process


def make_connection(events: list[object], name: str = ":0", fd: int = 42) -> XFixesConnection:
    """Create a connection whose display yields events once."""
    display = MagicMock()
    pending = list(events)
    display.pending_events.side_effect = lambda: len(pending)
    display.next_event.side_effect = lambda: pending.pop(0)
    return XFixesConnection(name=name, display=display, window=MagicMock(), fd=fd)


@pytest.mark.asyncio
async def test_clipnotify_sets_display_for_child_only() -> None:
    """Test DISPLAY is passed in the child environment."""
    process = make_process()

    with patch("asyncio.create_subprocess_exec", new_callable=AsyncMock) as mock_exec:
        mock_exec.return_value = process
        await ClipnotifyNotifier().wait_for_change(":3")

    assert mock_exec.call_args.args == ("clipnotify",)
    assert mock_exec.call_args.kwargs["env"]["DISPLAY"] == ":3"


@pytest.mark.asyncio
async def test_clipnotify_failure_raises() -> None:
    """Test a non-zero clipnotify exit raises NotificationError."""
    process = make_process(returncode=1, stderr=b"Can't open X display\n")

    with patch("asyncio.create_subprocess_exec", new_callable=AsyncMock) as mock_exec:
        mock_exec.return_value = process
        with pytest.raises(NotificationError) as exc_info:
            await ClipnotifyNotifier().wait_for_change(":3")

    assert exc_info.value.display == ":3"
    assert "Can't open X display" in str(exc_info.value)


@pytest.mark.asyncio
async def test_clipnotify_missing_tool_raises() -> None:
    """Test a missing clipnotify binary raises NotificationError."""
    with patch("asyncio.create_subprocess_exec", new_callable=AsyncMock) as mock_exec:
        mock_exec.side_effect = FileNotFoundError("clipnotify")
        with pytest.raises(NotificationError):
            await ClipnotifyNotifier().wait_for_change(":0")


@pytest.mark.asyncio
async def test_clipnotify_cancel_kills_process() -> None:
    """Test cancelling a wait does not leak the clipnotify process."""
    process = make_process()

    async def wait_forever() -> tuple[bytes, bytes]:
        await asyncio.sleep(10)
        return b"", b""

    process.communicate = wait_forever

    with patch("asyncio.create_subprocess_exec", new_callable=AsyncMock) as mock_exec:
        mock_exec.return_value = process
        task = asyncio.create_task(ClipnotifyNotifier().wait_for_change(":0"))
        await asyncio.sleep(0.01)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    process.kill.assert_called_once()


def test_drain_reports_owner_change() -> None:
    """Test drain returns True when a SetSelectionOwnerNotify is pending."""
    connection = make_connection([PropertyNotify(), SetSelectionOwnerNotify()])

    assert connection.drain() is True
    assert connection.display.next_event.call_count == 2


def test_drain_ignores_other_events() -> None:
    """Test unrelated X events are consumed without reporting a change."""
    connection = make_connection([PropertyNotify()])

    assert connection.drain() is False


@pytest.mark.asyncio
async def test_drain_closed_connection_releases_and_raises() -> None:
    """Test a dropped X connection leaves the event loop and raises."""
    connection = make_connection([], fd=42)
    connection.display.pending_events.side_effect = xerror.ConnectionClosedError("server")
    connection.display.close.side_effect = xerror.ConnectionClosedError("server")
    loop = asyncio.get_running_loop()

    with patch.object(loop, "remove_reader") as mock_remove:
        with pytest.raises(NotificationError):
            connection.drain()

    mock_remove.assert_called_once_with(42)
    connection.display.close.assert_called_once()
    connection.display.fileno.assert_not_called()


@pytest.mark.asyncio
async def test_xfixes_notifier_forgets_lost_connection() -> None:
    """Test a failed connection is dropped and reopened on the next wait."""
    lost = MagicMock()
    lost.wait = AsyncMock(side_effect=NotificationError("Lost X connection", ":0"))
    fresh = MagicMock()
    fresh.wait = AsyncMock()
    notifier = XFixesNotifier()

    with patch(
        "multiclip.selection_notify.open_xfixes_connection", side_effect=[lost, fresh]
    ) as mock_open:
        with pytest.raises(NotificationError):
            await notifier.wait_for_change(":0")
        await notifier.wait_for_change(":0")

    assert mock_open.call_count == 2
    fresh.wait.assert_awaited_once()


@pytest.mark.asyncio
async def test_xfixes_notifier_close_after_lost_connection() -> None:
    """Test close releases every connection even if one server hung up."""
    dead = make_connection([], name=":0", fd=42)
    dead.display.fileno.side_effect = xerror.ConnectionClosedError("server")
    dead.display.close.side_effect = xerror.ConnectionClosedError("server")
    alive = make_connection([], name=":1", fd=43)
    notifier = XFixesNotifier()
    notifier._connections = {":0": dead, ":1": alive}
    loop = asyncio.get_running_loop()

    with patch.object(loop, "remove_reader") as mock_remove:
        notifier.close()

    assert [c.args for c in mock_remove.call_args_list] == [(42,), (43,)]
    alive.display.close.assert_called_once()
    assert notifier._connections == {}


@pytest.mark.asyncio
async def test_connection_wait_blocks_until_readable() -> None:
    """Test wait sleeps until the socket is readable and an event arrives."""
    connection = make_connection([])

    with patch.object(XFixesConnection, "drain", side_effect=[False, True]):
        task = asyncio.create_task(connection.wait())
        await asyncio.sleep(0.01)
        assert not task.done()

        connection.readable.set()
        await asyncio.wait_for(task, timeout=1.0)


@pytest.mark.asyncio
async def test_open_connection_unreachable_display_raises() -> None:
    """Test a display that cannot be opened raises NotificationError."""
    with patch("Xlib.display.Display", side_effect=xerror.DisplayNameError(":9")):
        with pytest.raises(NotificationError) as exc_info:
            open_xfixes_connection(":9")

    assert exc_info.value.display == ":9"


@pytest.mark.asyncio
async def test_open_connection_without_xfixes_raises() -> None:
    """Test a server lacking XFIXES is rejected and closed."""
    display = MagicMock()
    display.has_extension.return_value = False

    with patch("Xlib.display.Display", return_value=display):
        with pytest.raises(NotificationError):
            open_xfixes_connection(":0")

    display.close.assert_called_once()


@pytest.mark.asyncio
async def test_xfixes_notifier_reuses_connection() -> None:
    """Test one connection per display is opened and kept."""
    connection = MagicMock()
    connection.wait = AsyncMock()
    notifier = XFixesNotifier()

    with patch(
        "multiclip.selection_notify.open_xfixes_connection", return_value=connection
    ) as mock_open:
        await notifier.wait_for_change(":0")
        await notifier.wait_for_change(":0")

    mock_open.assert_called_once_with(":0")
    assert connection.wait.await_count == 2


def test_create_notifier_by_name() -> None:
    """Test notifier names map to implementations."""
    assert isinstance(create_notifier("xfixes"), XFixesNotifier)
    assert isinstance(create_notifier("clipnotify"), ClipnotifyNotifier)
    with pytest.raises(ValueError):
        create_notifier("inotify")
