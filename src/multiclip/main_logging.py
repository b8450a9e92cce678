"""Logging setup for the multiclip daemon.

The daemon runs for days, so records carry a timestamp and the module
that emitted them (watcher, propagator, gate).
"""
import logging

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(verbose: bool) -> None:
    """Send log records to stderr.

    INFO shows watcher start/stop and one line per synced display.
    DEBUG adds gate transitions, dropped echoes and raw X11 events.

    Args:
        verbose: If True, log at DEBUG level.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=LOG_FORMAT,
        datefmt=DATE_FORMAT,
    )
