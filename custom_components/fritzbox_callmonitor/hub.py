"""Hub wrapper for the call monitor lifecycle."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
import logging
from typing import Any

from callmonitor_lib import CallMonitor, ConnectionState, MonitorConfig

from homeassistant.core import HomeAssistant, callback
from homeassistant.helpers.event import async_track_time_change

from .const import RECONNECT_HOUR, RECONNECT_MINUTE, RECONNECT_SECOND
from .coordinator import CallMonitorDataUpdateCoordinator

_LOGGER = logging.getLogger(__name__)


class CallMonitorHub:
    """Manage a single call monitor instance and its daily reconnect."""

    def __init__(self, hass: HomeAssistant, host: str, port: int) -> None:
        """Initialize the hub wrapper."""
        self._hass = hass
        self._host = host
        self._port = port
        self._monitor: CallMonitor | None = None
        self._unsub_reconnect: Callable[[], None] | None = None

    @property
    def host(self) -> str:
        """Return the router host."""
        return self._host

    @property
    def port(self) -> int:
        """Return the call monitor port."""
        return self._port

    @property
    def monitor(self) -> CallMonitor | None:
        """Return the underlying monitor."""
        return self._monitor

    @property
    def is_running(self) -> bool:
        """Return if the monitor is running."""
        return self._monitor is not None and self._monitor.is_running

    @property
    def is_connected(self) -> bool:
        """Return if the monitor currently holds a connection."""
        if self._monitor is None:
            return False
        return self._monitor.state is ConnectionState.CONNECTED

    @property
    def statistics(self) -> dict[str, Any]:
        """Return the supervisor statistics."""
        if self._monitor is None:
            return {"state": ConnectionState.STOPPED.value}
        return self._monitor.statistics

    async def async_start(self, coordinator: CallMonitorDataUpdateCoordinator) -> None:
        """Start the monitor and schedule the daily forced reconnect."""
        if self._monitor is None:
            self._monitor = CallMonitor(
                MonitorConfig(host=self._host, port=self._port),
                subscribers=coordinator,
                sink=coordinator,
                on_state_change=coordinator.handle_connection_state,
            )
        await self._monitor.async_start()
        if self._unsub_reconnect is None:
            self._unsub_reconnect = async_track_time_change(
                self._hass,
                self._handle_forced_reconnect,
                hour=RECONNECT_HOUR,
                minute=RECONNECT_MINUTE,
                second=RECONNECT_SECOND,
            )
            _LOGGER.debug(
                "Scheduled a daily reconnection to %s at %02d:%02d:%02d",
                self._host,
                RECONNECT_HOUR,
                RECONNECT_MINUTE,
                RECONNECT_SECOND,
            )

    async def async_stop(self) -> None:
        """Cancel the daily reconnect and stop the monitor."""
        if self._unsub_reconnect is not None:
            self._unsub_reconnect()
            self._unsub_reconnect = None
        if self._monitor is not None:
            await self._monitor.async_stop()

    @callback
    def _handle_forced_reconnect(self, now: datetime) -> None:
        """Restart the monitor connection from the daily timer."""
        if self._monitor is None:
            return
        _LOGGER.info("Daily reconnect of call monitor on %s", self._host)
        self._hass.async_create_background_task(
            self._monitor.async_forced_reconnect(),
            f"callmonitor_reconnect_{self._host}",
        )
