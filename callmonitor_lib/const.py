"""Protocol and timing constants for the call monitor."""

from __future__ import annotations

from typing import Final

# Call monitor port of the router (enabled by dialing #96*5*)
DEFAULT_MONITOR_PORT: Final = 1012

RECONNECT_BASE_DELAY_S: Final = 60.0
DISPATCH_PACING_S: Final = 0.1
CONNECT_TIMEOUT_S: Final = 10.0
STOP_JOIN_TIMEOUT_S: Final = 1.0

FIELD_DELIMITER: Final = ";"
LINE_TERMINATOR: Final = b"\n"
RECV_MAX_BYTES: Final = 4096
# Longest partial line kept while waiting for a terminator
MAX_LINE_BYTES: Final = 4 * RECV_MAX_BYTES
