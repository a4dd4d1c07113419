"""
Call monitor controller.

Owns the handle of the single running supervisor. start() replaces a running
instance, stop() consumes the handle, forced_reconnect() does both and is the
entry point for a periodic external timer.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import Any, Optional

from .supervisor import (
    CallMonitorSupervisor,
    ConnectFn,
    ConnectionState,
    StateListener,
)
from .types import MonitorConfig, SubscriberProvider, UpdateSink

logger = logging.getLogger(__name__)


class CallMonitor:
    """
    Stable controller API for hosts (e.g., Home Assistant).

    All operations are safe to call from any thread except the supervisor's
    own loop thread.

    Typical usage:
        monitor = CallMonitor(MonitorConfig(host="192.168.178.1"),
                              subscribers=registry, sink=sink)
        monitor.start()
        ...
        monitor.forced_reconnect()   # daily
        monitor.stop()
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
        self._connect = connect
        self._on_state_change = on_state_change
        self._supervisor: Optional[CallMonitorSupervisor] = None
        self._lock = threading.RLock()

    @property
    def supervisor(self) -> Optional[CallMonitorSupervisor]:
        return self._supervisor

    @property
    def is_running(self) -> bool:
        return self._supervisor is not None

    @property
    def state(self) -> ConnectionState:
        supervisor = self._supervisor
        if supervisor is None:
            return ConnectionState.STOPPED
        return supervisor.state

    @property
    def statistics(self) -> dict[str, Any]:
        supervisor = self._supervisor
        if supervisor is None:
            return {"state": ConnectionState.STOPPED.value}
        return supervisor.statistics

    def start(self) -> None:
        """Launch a fresh supervisor, stopping a still-running one first."""
        with self._lock:
            logger.debug("Starting call monitor thread...")
            if self._supervisor is not None:
                logger.warning("Old call monitor thread was still running")
                self._supervisor.stop()
                self._supervisor = None
            supervisor = CallMonitorSupervisor(
                self.cfg,
                subscribers=self._subscribers,
                sink=self._sink,
                connect=self._connect,
                on_state_change=self._on_state_change,
            )
            supervisor.start()
            self._supervisor = supervisor

    def stop(self) -> None:
        """Stop the running supervisor, if any."""
        with self._lock:
            supervisor = self._supervisor
            self._supervisor = None
        if supervisor is None:
            return
        logger.debug("Stopping call monitor thread...")
        supervisor.stop()

    def forced_reconnect(self) -> None:
        """Restart the connection; invoked by the daily timer."""
        logger.info("Forced reconnect of call monitor on %s", self.cfg.host)
        with self._lock:
            self.stop()
            self.start()

    async def async_start(self) -> None:
        await asyncio.to_thread(self.start)

    async def async_stop(self) -> None:
        await asyncio.to_thread(self.stop)

    async def async_forced_reconnect(self) -> None:
        await asyncio.to_thread(self.forced_reconnect)


__all__ = ["CallMonitor"]
