"""Exception taxonomy for the call monitor library."""

from __future__ import annotations


class CallMonitorError(RuntimeError):
    """Base exception for call monitor failures."""


class CallMonitorStateError(CallMonitorError):
    """Raised when a lifecycle operation is not valid in the current state."""


class CallMonitorConnectError(CallMonitorError):
    """Raised when the notification socket cannot be opened."""


class CallMonitorReadError(CallMonitorError):
    """Raised when reading from an open connection fails or the peer closes it."""


class CallMonitorDispatchError(CallMonitorError):
    """Raised by an update sink that rejects a published value."""


class CallEventParseError(CallMonitorError):
    """Describes a notification line that could not be parsed.

    The parser returns this as a value instead of raising it.
    """

    def __init__(self, message: str, *, line: str) -> None:
        super().__init__(message)
        self.line = line
