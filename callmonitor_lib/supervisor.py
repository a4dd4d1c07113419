"""
Call monitor connection supervisor.

Responsibilities:
- Own the TCP socket lifecycle for one run of the monitor.
- Read newline-delimited notification lines and parse them.
- Fan parsed events out to the current subscribers through the update sink.
- Retry failed connects with a linearly growing delay.

A supervisor runs once. After stop() it is STOPPED and cannot be restarted;
the controller creates a fresh instance instead.
"""

from __future__ import annotations

import logging
import socket
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from .const import LINE_TERMINATOR, MAX_LINE_BYTES, RECV_MAX_BYTES
from .errors import (
    CallMonitorConnectError,
    CallMonitorReadError,
    CallMonitorStateError,
)
from .mapping import map_event
from .parser import parse_call_event
from .types import (
    CallEvent,
    MonitorConfig,
    Subscriber,
    SubscriberProvider,
    UpdateSink,
)

logger = logging.getLogger(__name__)

ConnectFn = Callable[[tuple[str, int], float], socket.socket]
StateListener = Callable[["ConnectionState"], None]


class ConnectionState(str, Enum):
    """Connection lifecycle states of a supervisor."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    STOPPED = "stopped"


@dataclass(slots=True)
class BackoffState:
    """Delay before the next connect retry.

    Grows by the base delay after every failed connect and has no upper bound.
    """

    base_delay_s: float
    current_delay_s: float = field(init=False)

    def __post_init__(self) -> None:
        self.current_delay_s = self.base_delay_s

    def reset(self) -> None:
        self.current_delay_s = self.base_delay_s

    def advance(self) -> float:
        self.current_delay_s += self.base_delay_s
        return self.current_delay_s


def check_connection(host: str, port: int, timeout_s: float) -> None:
    """Open and close a connection to the monitor port.

    Raises CallMonitorConnectError when the port is unreachable.
    """
    try:
        sock = socket.create_connection((host, port), timeout_s)
    except OSError as e:
        raise CallMonitorConnectError(
            f"Failed to connect to {host}:{port}: {e}"
        ) from e
    sock.close()


def _enable_keepalive(sock: socket.socket) -> None:
    """Enable TCP keepalive (best-effort)."""
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_KEEPALIVE, 1)
    except OSError:
        return

    # Linux-specific tuning
    try:
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_KEEPIDLE, 60)
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_KEEPINTVL, 15)
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_KEEPCNT, 4)
    except (AttributeError, OSError):
        pass


class CallMonitorSupervisor:
    """
    One connect/read/reconnect loop on a dedicated thread.

    Other threads interact with it only by setting the stop flag and closing
    the socket; both happen in stop().
    """

    def __init__(
        self,
        cfg: MonitorConfig,
        *,
        subscribers: SubscriberProvider,
        sink: UpdateSink,
        connect: Optional[ConnectFn] = None,
        on_state_change: Optional[StateListener] = None,
    ) -> None:
        self.cfg = cfg
        self._subscribers = subscribers
        self._sink = sink
        self._connect = connect or socket.create_connection
        self._on_state_change = on_state_change

        self.backoff = BackoffState(cfg.reconnect_base_delay_s)
        self.state: ConnectionState = ConnectionState.DISCONNECTED

        self._stop_event = threading.Event()
        self._sock: Optional[socket.socket] = None
        self._sock_lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None

        self.connect_attempts = 0
        self.events_received = 0
        self.events_dispatched = 0
        self.parse_failures = 0
        self.dispatch_failures = 0
        self.connected_since: Optional[float] = None
        self.last_event: Optional[CallEvent] = None

    # --------------------------
    # Lifecycle (any thread)
    # --------------------------

    @property
    def stop_requested(self) -> bool:
        return self._stop_event.is_set()

    @property
    def is_alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Run the loop on a new daemon thread."""
        if self._thread is not None or self.state is ConnectionState.STOPPED:
            raise CallMonitorStateError(
                "Supervisor already started; create a new instance to resume."
            )
        self._thread = threading.Thread(
            target=self.run,
            name=f"callmonitor-{self.cfg.host}",
            daemon=True,
        )
        self._thread.start()

    def request_stop(self) -> None:
        """Set the stop flag and close the socket to unblock a pending read."""
        self._stop_event.set()
        self._close_socket()

    def stop(self, timeout_s: Optional[float] = None) -> None:
        """Request a stop and wait briefly for the loop thread to exit."""
        self.request_stop()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(
                timeout=self.cfg.stop_join_timeout_s if timeout_s is None else timeout_s
            )
            if thread.is_alive():
                logger.debug("Call monitor thread did not exit within the join timeout")

    @property
    def statistics(self) -> dict[str, Any]:
        return {
            "state": self.state.value,
            "connect_attempts": self.connect_attempts,
            "events_received": self.events_received,
            "events_dispatched": self.events_dispatched,
            "parse_failures": self.parse_failures,
            "dispatch_failures": self.dispatch_failures,
            "current_backoff_s": self.backoff.current_delay_s,
            "connected_since": self.connected_since,
            "last_event": self.last_event.raw if self.last_event else None,
        }

    # --------------------------
    # Loop (supervisor thread)
    # --------------------------

    def run(self) -> None:
        """Connect, read and reconnect until a stop is requested."""
        try:
            while not self._stop_event.is_set():
                self._set_state(ConnectionState.CONNECTING)
                try:
                    sock = self._open_connection()
                except CallMonitorConnectError as e:
                    if self._stop_event.is_set():
                        break
                    self._set_state(ConnectionState.DISCONNECTED)
                    delay = self.backoff.current_delay_s
                    logger.warning(
                        "Error connecting to %s:%s, retrying in %ss: %s",
                        self.cfg.host,
                        self.cfg.port,
                        delay,
                        e,
                    )
                    if self._wait(delay):
                        break
                    self.backoff.advance()
                    continue

                if sock is None:
                    break

                self.backoff.reset()
                self.connected_since = time.time()
                self._set_state(ConnectionState.CONNECTED)
                logger.info("Connected to call monitor on %s:%s", self.cfg.host, self.cfg.port)
                try:
                    self._read_loop(sock)
                except CallMonitorReadError as e:
                    if self._stop_event.is_set():
                        logger.info("Lost connection to %s because of stop request", self.cfg.host)
                    else:
                        logger.error("Lost connection to %s: %s", self.cfg.host, e)
                finally:
                    self._close_socket()
                    self.connected_since = None
                if not self._stop_event.is_set():
                    self._set_state(ConnectionState.DISCONNECTED)
        finally:
            self._close_socket()
            self._set_state(ConnectionState.STOPPED)

    def _open_connection(self) -> Optional[socket.socket]:
        """Open the device socket; None means a stop arrived while connecting."""
        self.connect_attempts += 1
        logger.info(
            "Attempting connection to call monitor on %s:%s...",
            self.cfg.host,
            self.cfg.port,
        )
        try:
            sock = self._connect((self.cfg.host, self.cfg.port), self.cfg.connect_timeout_s)
        except OSError as e:
            raise CallMonitorConnectError(
                f"Failed to connect to {self.cfg.host}:{self.cfg.port}: {e}"
            ) from e

        if self.cfg.tcp_keepalive:
            _enable_keepalive(sock)
        # Blocking reads; stop() unblocks them by closing the socket.
        sock.settimeout(None)

        with self._sock_lock:
            if self._stop_event.is_set():
                _shutdown(sock)
                return None
            self._sock = sock
        return sock

    def _close_socket(self) -> None:
        with self._sock_lock:
            sock = self._sock
            self._sock = None
        if sock is not None:
            _shutdown(sock)
            logger.debug("Socket to %s closed", self.cfg.host)

    def _recv_some(self, sock: socket.socket) -> bytes:
        try:
            data = sock.recv(RECV_MAX_BYTES)
        except OSError as e:
            raise CallMonitorReadError(
                f"Socket read failed from {self.cfg.host}:{self.cfg.port}: {e}"
            ) from e
        if not data:
            raise CallMonitorReadError(
                f"Connection closed by {self.cfg.host}:{self.cfg.port}."
            )
        return data

    def _read_loop(self, sock: socket.socket) -> None:
        buffer = b""
        while not self._stop_event.is_set():
            buffer += self._recv_some(sock)
            while LINE_TERMINATOR in buffer:
                raw, buffer = buffer.split(LINE_TERMINATOR, 1)
                line = raw.decode(self.cfg.encoding, errors="replace").strip()
                if not line:
                    continue
                if self._handle_line(line) and self._wait(self.cfg.dispatch_pacing_s):
                    return
            if len(buffer) > MAX_LINE_BYTES:
                raise CallMonitorReadError(
                    f"No line terminator from {self.cfg.host}:{self.cfg.port} "
                    f"within {MAX_LINE_BYTES} bytes."
                )

    def _handle_line(self, line: str) -> bool:
        """Parse and dispatch one line; True when an event was dispatched."""
        logger.debug("Received raw call line: %s", line)
        self.events_received += 1
        result = parse_call_event(line)
        if not result.ok or result.data is None:
            self.parse_failures += 1
            logger.error("Call event could not be parsed: %s", result.error)
            return False
        event = result.data
        self.last_event = event
        self._dispatch(event)
        self.events_dispatched += 1
        return True

    def _dispatch(self, event: CallEvent) -> None:
        logger.debug("Searching subscribers to receive call event %s", event)
        try:
            subscribers = tuple(self._subscribers.list_subscribers())
        except Exception as e:  # noqa: BLE001
            self.dispatch_failures += 1
            logger.warning("Could not list subscribers for %s: %s", event.call_type.value, e)
            return

        for subscriber in subscribers:
            try:
                self._dispatch_to(event, subscriber)
            except Exception as e:  # noqa: BLE001
                self.dispatch_failures += 1
                logger.warning(
                    "Update for %r was rejected (%s): %s",
                    getattr(subscriber, "identifier", subscriber),
                    type(e).__name__,
                    e,
                )

    def _dispatch_to(self, event: CallEvent, subscriber: Subscriber) -> None:
        value = map_event(event, subscriber.target_kind)
        if value is None:
            logger.debug(
                "No update for %s (target kind %s)",
                subscriber.identifier,
                subscriber.target_kind,
            )
            return
        logger.debug(
            "Dispatching call type %s to %s as %s",
            event.call_type.value,
            subscriber.identifier,
            value,
        )
        self._sink.publish(subscriber.identifier, value)

    def _wait(self, delay_s: float) -> bool:
        """Sleep up to delay_s; True if a stop was requested meanwhile."""
        return self._stop_event.wait(delay_s)

    def _set_state(self, state: ConnectionState) -> None:
        if self.state is state:
            return
        self.state = state
        if self._on_state_change is not None:
            try:
                self._on_state_change(state)
            except Exception as e:  # noqa: BLE001
                logger.debug("Connection state listener error: %s", e)


def _shutdown(sock: socket.socket) -> None:
    # shutdown() wakes a recv() blocked in another thread; close() alone may not.
    try:
        sock.shutdown(socket.SHUT_RDWR)
    except OSError:
        pass
    try:
        sock.close()
    except OSError as e:
        logger.warning("Existing connection cannot be closed: %s", e)


__all__ = [
    "BackoffState",
    "CallMonitorSupervisor",
    "ConnectionState",
    "check_connection",
]
