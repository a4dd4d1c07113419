"""Call monitor client for home-gateway call notification ports."""

from __future__ import annotations

from .endpoint import host_from_url
from .errors import (
    CallEventParseError,
    CallMonitorConnectError,
    CallMonitorDispatchError,
    CallMonitorError,
    CallMonitorReadError,
    CallMonitorStateError,
)
from .mapping import map_event
from .monitor import CallMonitor
from .parser import parse_call_event
from .supervisor import (
    BackoffState,
    CallMonitorSupervisor,
    ConnectionState,
    check_connection,
)
from .types import (
    CallDetail,
    CallEvent,
    CallType,
    MonitorConfig,
    PresenceState,
    Result,
    Subscriber,
    SubscriberProvider,
    TargetKind,
    UpdateSink,
    UpdateValue,
)

__all__ = [
    "BackoffState",
    "CallDetail",
    "CallEvent",
    "CallEventParseError",
    "CallMonitor",
    "CallMonitorConnectError",
    "CallMonitorDispatchError",
    "CallMonitorError",
    "CallMonitorReadError",
    "CallMonitorStateError",
    "CallMonitorSupervisor",
    "CallType",
    "ConnectionState",
    "MonitorConfig",
    "PresenceState",
    "Result",
    "Subscriber",
    "SubscriberProvider",
    "TargetKind",
    "UpdateSink",
    "UpdateValue",
    "check_connection",
    "host_from_url",
    "map_event",
    "parse_call_event",
]
