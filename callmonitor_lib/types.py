"""Public types for the call monitor (host-agnostic surface)."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from typing import Generic, Optional, Protocol, TypeVar, Union

from .const import (
    CONNECT_TIMEOUT_S,
    DEFAULT_MONITOR_PORT,
    DISPATCH_PACING_S,
    RECONNECT_BASE_DELAY_S,
    STOP_JOIN_TIMEOUT_S,
)
from .errors import CallMonitorError

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class MonitorConfig:
    """
    Immutable monitor configuration.

    Provided once at construction time; the endpoint is not re-resolved while
    a supervisor is running.
    """

    host: str
    port: int = DEFAULT_MONITOR_PORT
    reconnect_base_delay_s: float = RECONNECT_BASE_DELAY_S
    dispatch_pacing_s: float = DISPATCH_PACING_S
    connect_timeout_s: float = CONNECT_TIMEOUT_S
    encoding: str = "utf-8"
    tcp_keepalive: bool = True
    stop_join_timeout_s: float = STOP_JOIN_TIMEOUT_S


class CallType(str, Enum):
    """Call state changes reported by the router."""

    RING = "RING"
    CALL = "CALL"
    CONNECT = "CONNECT"
    DISCONNECT = "DISCONNECT"


@dataclass(frozen=True, slots=True)
class CallEvent:
    """
    Immutable, parsed notification line.

    external_number is the remote party and internal_number the local one,
    regardless of the direction of the call.
    """

    timestamp: str
    call_type: CallType
    connection_id: str
    external_number: str = ""
    internal_number: str = ""
    line: str = ""
    duration_s: Optional[int] = None
    raw: str = ""


class TargetKind(str, Enum):
    """Representation a subscriber wants for call state."""

    BOOLEAN_PRESENCE = "boolean_presence"
    CALL_DETAIL = "call_detail"


@dataclass(frozen=True, slots=True)
class Subscriber:
    identifier: str
    target_kind: TargetKind


class PresenceState(str, Enum):
    ON = "on"
    OFF = "off"


@dataclass(frozen=True, slots=True)
class CallDetail:
    """Call detail value; both numbers empty means no call."""

    external_number: str = ""
    internal_number: str = ""

    @classmethod
    def empty(cls) -> "CallDetail":
        return cls()

    @property
    def is_empty(self) -> bool:
        return not self.external_number and not self.internal_number

    def __str__(self) -> str:
        return f"{self.external_number}##{self.internal_number}"


UpdateValue = Union[PresenceState, CallDetail]


@dataclass(frozen=True, slots=True)
class Result(Generic[T]):
    ok: bool
    data: Optional[T] = None
    error: Optional[BaseException] = None

    @classmethod
    def success(cls, value: T) -> "Result[T]":
        return cls(ok=True, data=value, error=None)

    @classmethod
    def failure(cls, error: BaseException) -> "Result[T]":
        return cls(ok=False, data=None, error=error)

    def unwrap(self) -> T:
        if self.ok:
            return self.data  # type: ignore[return-value]
        if self.error is not None:
            raise self.error
        raise CallMonitorError("Unknown error.")


class SubscriberProvider(Protocol):
    """Source of the subscribers that receive call state updates."""

    def list_subscribers(self) -> Iterable[Subscriber]:
        """Return the current subscribers; queried once per dispatched event."""
        ...


class UpdateSink(Protocol):
    """Destination for mapped values, fire-and-forget."""

    def publish(self, subscriber_id: str, value: UpdateValue) -> None:
        ...
