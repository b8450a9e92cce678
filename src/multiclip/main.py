"""CLI handling for multiclip.

This module provides the command-line interface for multiclip, handling
argument parsing via click, logging configuration, and running the
synchronization daemon.

Usage:
    multiclip [--display :N ...] [--socket-dir PATH]
              [--notifier xfixes|clipnotify] [--settle-delay MS] [--verbose]
"""

import sys

import click

from multiclip.main_logging import configure_logging
from multiclip.main_options import DisplayNameType, MutuallyExclusiveOption
from multiclip.sync_constants import SETTLE_DELAY, X11_SOCKET_DIR


@click.command()
@click.option(
    "--display",
    "-d",
    multiple=True,
    type=DisplayNameType(),
    cls=MutuallyExclusiveOption,
    not_required_if=["socket_dir"],
    help="Display to sync (repeatable). Default: every display in --socket-dir",
)
@click.option(
    "--socket-dir",
    default=X11_SOCKET_DIR,
    show_default=True,
    type=click.Path(file_okay=False),
    cls=MutuallyExclusiveOption,
    not_required_if=["display"],
    help="Directory scanned for X11 server sockets",
)
@click.option(
    "--notifier",
    type=click.Choice(["xfixes", "clipnotify"]),
    default="xfixes",
    show_default=True,
    help="How clipboard changes are detected",
)
@click.option(
    "--settle-delay",
    type=click.IntRange(min=0),
    default=round(SETTLE_DELAY * 1000),
    show_default=True,
    help="Milliseconds to ignore changes caused by our own writes",
)
@click.option(
    "--verbose",
    is_flag=True,
    help="Enable DEBUG-level logging",
)
def main(
    display: tuple[str, ...],
    socket_dir: str,
    notifier: str,
    settle_delay: int,
    verbose: bool,
) -> None:
    """Keep PRIMARY and CLIPBOARD identical across local X11 displays."""
    if len(set(display)) == 1:
        raise click.UsageError("At least two distinct displays are needed to sync")

    configure_logging(verbose)

    _run_daemon(list(dict.fromkeys(display)), socket_dir, notifier, settle_delay / 1000)


def _run_daemon(
    displays: list[str], socket_dir: str, notifier: str, settle_delay: float
) -> None:
    """Run the daemon and map fatal errors to exit status 1.

    Args:
        displays: Displays given on the command line, possibly empty.
        socket_dir: Directory scanned when no displays were given.
        notifier: Name of the change notifier.
        settle_delay: Settle delay in seconds.
    """
    import asyncio

    from multiclip.daemon import run_daemon
    from multiclip.errors import DiscoveryError

    try:
        stopped_by_signal = asyncio.run(
            run_daemon(displays, socket_dir, notifier, settle_delay)
        )
    except DiscoveryError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if not stopped_by_signal:
        click.echo("Error: all display watchers stopped", err=True)
        sys.exit(1)
