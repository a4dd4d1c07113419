from __future__ import annotations

import socket
import threading
import time

import pytest

from callmonitor_lib import (
    BackoffState,
    CallDetail,
    CallMonitorDispatchError,
    CallMonitorStateError,
    CallMonitorSupervisor,
    ConnectionState,
    MonitorConfig,
    PresenceState,
    Subscriber,
    TargetKind,
)
from callmonitor_lib.const import RECV_MAX_BYTES

RING = b"18.10.26 12:00:00;RING;0;0301234567;**610;SIP0;\n"
CONNECT = b"18.10.26 12:00:05;CONNECT;0;0301234567;**610;\n"
DISCONNECT = b"18.10.26 12:01:05;DISCONNECT;0;60;\n"


class _FakeSocket:
    def __init__(self, chunks: list[bytes]) -> None:
        self._chunks = list(chunks)
        self.closed = False

    def setsockopt(self, *args) -> None:
        return None

    def settimeout(self, value) -> None:
        return None

    def recv(self, max_bytes: int) -> bytes:
        if self.closed:
            raise OSError("Bad file descriptor")
        if not self._chunks:
            return b""
        return self._chunks.pop(0)

    def shutdown(self, how: int) -> None:
        return None

    def close(self) -> None:
        self.closed = True


class _Registry:
    def __init__(self, *subscribers: Subscriber) -> None:
        self.subscribers = list(subscribers)
        self.calls = 0

    def list_subscribers(self):
        self.calls += 1
        return tuple(self.subscribers)


class _Sink:
    def __init__(self, reject: set[str] | None = None) -> None:
        self.published: list[tuple[str, object]] = []
        self._reject = reject or set()

    def publish(self, subscriber_id: str, value) -> None:
        if subscriber_id in self._reject:
            raise CallMonitorDispatchError(f"{subscriber_id} is gone")
        self.published.append((subscriber_id, value))


class _Connector:
    """Plays back connect outcomes; stops the supervisor when exhausted."""

    def __init__(self, outcomes: list[object]) -> None:
        self._outcomes = list(outcomes)
        self.supervisor: CallMonitorSupervisor | None = None
        self.calls = 0

    def __call__(self, address, timeout):
        self.calls += 1
        if not self._outcomes:
            assert self.supervisor is not None
            self.supervisor.request_stop()
            raise ConnectionRefusedError("stopped")
        outcome = self._outcomes.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


def _config(**kwargs) -> MonitorConfig:
    params = {
        "host": "192.168.178.1",
        "reconnect_base_delay_s": 60.0,
        "dispatch_pacing_s": 0.1,
        "tcp_keepalive": False,
    }
    params.update(kwargs)
    return MonitorConfig(**params)


def _make_supervisor(outcomes, registry=None, sink=None, **cfg):
    connector = _Connector(outcomes)
    states: list[ConnectionState] = []
    supervisor = CallMonitorSupervisor(
        _config(**cfg),
        subscribers=registry or _Registry(),
        sink=sink or _Sink(),
        connect=connector,
        on_state_change=states.append,
    )
    connector.supervisor = supervisor
    waits: list[float] = []

    def _fake_wait(delay_s: float) -> bool:
        waits.append(delay_s)
        return supervisor.stop_requested

    supervisor._wait = _fake_wait  # type: ignore[assignment]
    return supervisor, connector, waits, states


def _wait_for(predicate, timeout_s: float = 2.0) -> bool:
    deadline = time.monotonic() + timeout_s
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


def test_backoff_grows_linearly_and_resets() -> None:
    backoff = BackoffState(60.0)
    assert backoff.current_delay_s == 60.0
    assert backoff.advance() == 120.0
    assert backoff.advance() == 180.0
    backoff.reset()
    assert backoff.current_delay_s == 60.0


def test_connect_failures_wait_base_then_double_then_reset() -> None:
    supervisor, connector, waits, _ = _make_supervisor(
        [OSError("refused"), OSError("refused"), _FakeSocket([]), OSError("refused")]
    )

    supervisor.run()

    assert waits == [60.0, 120.0, 60.0]
    assert connector.calls == 5
    assert supervisor.state is ConnectionState.STOPPED


def test_drop_after_connect_reconnects_without_delay() -> None:
    supervisor, connector, waits, states = _make_supervisor(
        [_FakeSocket([]), _FakeSocket([])]
    )

    supervisor.run()

    assert waits == []
    assert connector.calls == 3
    assert states == [
        ConnectionState.CONNECTING,
        ConnectionState.CONNECTED,
        ConnectionState.DISCONNECTED,
        ConnectionState.CONNECTING,
        ConnectionState.CONNECTED,
        ConnectionState.DISCONNECTED,
        ConnectionState.CONNECTING,
        ConnectionState.STOPPED,
    ]


def test_stop_during_backoff_does_not_advance_delay() -> None:
    supervisor, connector, waits, _ = _make_supervisor([OSError("refused")])

    def _stop_while_waiting(delay_s: float) -> bool:
        waits.append(delay_s)
        supervisor.request_stop()
        return True

    supervisor._wait = _stop_while_waiting  # type: ignore[assignment]
    supervisor.run()

    assert waits == [60.0]
    assert connector.calls == 1
    assert supervisor.backoff.current_delay_s == 60.0
    assert supervisor.state is ConnectionState.STOPPED


def test_stop_interrupts_backoff_sleep_on_thread() -> None:
    attempts: list[float] = []

    def _refuse(address, timeout):
        attempts.append(time.monotonic())
        raise ConnectionRefusedError("refused")

    supervisor = CallMonitorSupervisor(
        _config(reconnect_base_delay_s=30.0),
        subscribers=_Registry(),
        sink=_Sink(),
        connect=_refuse,
    )
    supervisor.start()
    assert _wait_for(
        lambda: attempts and supervisor.state is ConnectionState.DISCONNECTED
    )

    started = time.monotonic()
    supervisor.stop(timeout_s=2.0)

    assert time.monotonic() - started < 2.0
    assert supervisor.is_alive is False
    assert len(attempts) == 1
    assert supervisor.state is ConnectionState.STOPPED


def test_ring_connect_disconnect_end_to_end() -> None:
    registry = _Registry(
        Subscriber("call_detail", TargetKind.CALL_DETAIL),
        Subscriber("call_active", TargetKind.BOOLEAN_PRESENCE),
    )
    sink = _Sink()
    # split the CONNECT line across reads
    chunks = [RING + CONNECT[:10], CONNECT[10:], DISCONNECT]
    supervisor, _, waits, _ = _make_supervisor([_FakeSocket(chunks)], registry, sink)

    supervisor.run()

    detail = [value for sid, value in sink.published if sid == "call_detail"]
    presence = [value for sid, value in sink.published if sid == "call_active"]
    assert detail == [
        CallDetail("0301234567", "**610"),
        CallDetail("0301234567", "**610"),
        CallDetail.empty(),
    ]
    assert presence == [PresenceState.ON, PresenceState.ON, PresenceState.OFF]
    assert [sid for sid, _ in sink.published[:2]] == ["call_detail", "call_active"]
    assert registry.calls == 3
    assert waits == [0.1, 0.1, 0.1]
    assert supervisor.events_dispatched == 3
    assert supervisor.last_event.duration_s == 60


def test_unparseable_lines_are_skipped() -> None:
    registry = _Registry(Subscriber("call_active", TargetKind.BOOLEAN_PRESENCE))
    sink = _Sink()
    chunks = [b"garbage\n", b"\n", RING]
    supervisor, _, waits, _ = _make_supervisor([_FakeSocket(chunks)], registry, sink)

    supervisor.run()

    assert sink.published == [("call_active", PresenceState.ON)]
    assert supervisor.parse_failures == 1
    assert supervisor.events_received == 2
    assert waits == [0.1]


def test_rejected_update_does_not_block_other_subscribers() -> None:
    registry = _Registry(
        Subscriber("removed", TargetKind.BOOLEAN_PRESENCE),
        Subscriber("call_active", TargetKind.BOOLEAN_PRESENCE),
    )
    sink = _Sink(reject={"removed"})
    supervisor, _, _, _ = _make_supervisor([_FakeSocket([RING, DISCONNECT])], registry, sink)

    supervisor.run()

    assert sink.published == [
        ("call_active", PresenceState.ON),
        ("call_active", PresenceState.OFF),
    ]
    assert supervisor.dispatch_failures == 2
    assert supervisor.events_dispatched == 2


def test_subscribers_are_listed_per_event() -> None:
    registry = _Registry(Subscriber("first", TargetKind.BOOLEAN_PRESENCE))
    sink = _Sink()

    class _GrowingRegistry:
        def list_subscribers(self):
            current = tuple(registry.subscribers)
            registry.subscribers.append(Subscriber("late", TargetKind.CALL_DETAIL))
            return current

    supervisor, _, _, _ = _make_supervisor(
        [_FakeSocket([RING, DISCONNECT])], _GrowingRegistry(), sink
    )

    supervisor.run()

    assert sink.published == [
        ("first", PresenceState.ON),
        ("first", PresenceState.OFF),
        ("late", CallDetail.empty()),
    ]


def test_stop_during_pacing_ends_loop() -> None:
    sink = _Sink()
    registry = _Registry(Subscriber("call_active", TargetKind.BOOLEAN_PRESENCE))
    supervisor, connector, _, _ = _make_supervisor(
        [_FakeSocket([RING + DISCONNECT])], registry, sink
    )

    def _stop_while_pacing(delay_s: float) -> bool:
        supervisor.request_stop()
        return True

    supervisor._wait = _stop_while_pacing  # type: ignore[assignment]
    supervisor.run()

    assert sink.published == [("call_active", PresenceState.ON)]
    assert connector.calls == 1
    assert supervisor.state is ConnectionState.STOPPED


def test_stop_unblocks_pending_read() -> None:
    local, remote = socket.socketpair()
    registry = _Registry(Subscriber("call_active", TargetKind.BOOLEAN_PRESENCE))
    sink = _Sink()
    connected = threading.Event()

    def _connect(address, timeout):
        if connected.is_set():
            raise ConnectionRefusedError("single use")
        connected.set()
        return local

    supervisor = CallMonitorSupervisor(
        _config(dispatch_pacing_s=0.0),
        subscribers=registry,
        sink=sink,
        connect=_connect,
    )
    try:
        supervisor.start()
        assert _wait_for(lambda: supervisor.state is ConnectionState.CONNECTED)
        remote.sendall(RING)
        assert _wait_for(lambda: len(sink.published) == 1)

        supervisor.stop(timeout_s=2.0)

        assert supervisor.is_alive is False
        assert supervisor.state is ConnectionState.STOPPED
        assert sink.published == [("call_active", PresenceState.ON)]
    finally:
        remote.close()
        local.close()


def test_supervisor_cannot_be_restarted() -> None:
    supervisor, _, _, _ = _make_supervisor([])
    supervisor.run()

    with pytest.raises(CallMonitorStateError):
        supervisor.start()


def test_statistics_report_counters() -> None:
    registry = _Registry(Subscriber("call_detail", TargetKind.CALL_DETAIL))
    supervisor, _, _, _ = _make_supervisor([_FakeSocket([RING])], registry)

    supervisor.run()

    stats = supervisor.statistics
    assert stats["state"] == "stopped"
    assert stats["connect_attempts"] == 2
    assert stats["events_dispatched"] == 1
    assert stats["current_backoff_s"] == 60.0
    assert stats["last_event"] == "18.10.26 12:00:00;RING;0;0301234567;**610;SIP0;"
    assert supervisor.last_event.external_number == "0301234567"


def test_malformed_subscriber_entry_does_not_stop_dispatch() -> None:
    registry = _Registry(
        ("call_active", TargetKind.BOOLEAN_PRESENCE),  # type: ignore[arg-type]
        Subscriber("call_detail", TargetKind.CALL_DETAIL),
    )
    sink = _Sink()
    supervisor, connector, waits, _ = _make_supervisor(
        [_FakeSocket([RING, DISCONNECT])], registry, sink
    )

    supervisor.run()

    assert sink.published == [
        ("call_detail", CallDetail("0301234567", "**610")),
        ("call_detail", CallDetail.empty()),
    ]
    assert supervisor.dispatch_failures == 2
    assert supervisor.events_dispatched == 2
    assert waits == [0.1, 0.1]
    # the socket was drained and the loop went on to reconnect
    assert connector.calls == 2


def test_failing_mapping_is_contained(monkeypatch) -> None:
    registry = _Registry(Subscriber("call_active", TargetKind.BOOLEAN_PRESENCE))
    sink = _Sink()
    supervisor, _, _, _ = _make_supervisor([_FakeSocket([RING, CONNECT])], registry, sink)
    calls: list[str] = []

    def _map_event(event, target_kind):
        calls.append(event.call_type.value)
        if len(calls) == 1:
            raise ValueError("bad mapping")
        return PresenceState.ON

    monkeypatch.setattr("callmonitor_lib.supervisor.map_event", _map_event)

    supervisor.run()

    assert calls == ["RING", "CONNECT"]
    assert sink.published == [("call_active", PresenceState.ON)]
    assert supervisor.dispatch_failures == 1
    assert supervisor.state is ConnectionState.STOPPED


def test_line_without_terminator_drops_connection() -> None:
    registry = _Registry(Subscriber("call_active", TargetKind.BOOLEAN_PRESENCE))
    sink = _Sink()
    flood = [b"x" * RECV_MAX_BYTES] * 5
    supervisor, connector, waits, states = _make_supervisor(
        [_FakeSocket([*flood, RING])], registry, sink
    )

    supervisor.run()

    assert sink.published == []
    assert supervisor.events_received == 0
    assert waits == []
    assert connector.calls == 2
    assert states[:3] == [
        ConnectionState.CONNECTING,
        ConnectionState.CONNECTED,
        ConnectionState.DISCONNECTED,
    ]
