#!/usr/bin/env python3
"""Default settings for clipboard propagation.

These constants control display discovery, external tool timeouts and
the settle window that suppresses echoes of our own writes.
"""

# Directory holding one X<n> socket per running X server.
X11_SOCKET_DIR: str = "/tmp/.X11-unix"

# Seconds to hold the gate closed after a round's writes so that the
# change notifications they cause are observed and discarded.
SETTLE_DELAY: float = 0.3

# Timeout in seconds for a single xclip read. An unresponsive selection
# owner would otherwise stall the watcher forever.
READ_TIMEOUT: float = 2.0

# Timeout in seconds for a single xclip write (until xclip has forked
# its selection server and the parent exited).
WRITE_TIMEOUT: float = 2.0

# Number of gate transitions retained for diagnostics.
GATE_HISTORY_SIZE: int = 256
