"""Data update coordinator for the call monitor integration."""

from __future__ import annotations

from collections.abc import Callable
import logging
import threading
from typing import Any

from callmonitor_lib import (
    CallMonitorDispatchError,
    ConnectionState,
    Subscriber,
    UpdateValue,
)

from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant, callback
from homeassistant.helpers.update_coordinator import DataUpdateCoordinator

from .const import DOMAIN

_LOGGER = logging.getLogger(__name__)

type SubscriberValues = dict[str, UpdateValue]


class CallMonitorDataUpdateCoordinator(DataUpdateCoordinator[SubscriberValues]):
    """Keep the subscriber registry and push monitor updates to entities.

    list_subscribers() and publish() are called from the monitor thread;
    state is only mutated on the event loop.
    """

    def __init__(self, hass: HomeAssistant, entry: ConfigEntry) -> None:
        """Initialize the coordinator."""
        super().__init__(hass, _LOGGER, name=DOMAIN, config_entry=entry)
        self._subscribers: dict[str, Subscriber] = {}
        self._subscriber_lock = threading.Lock()
        self.connection_state = ConnectionState.STOPPED
        self.data = {}

    def register_subscriber(self, subscriber: Subscriber) -> Callable[[], None]:
        """Register an entity to receive values; returns the unregister callable."""
        with self._subscriber_lock:
            self._subscribers[subscriber.identifier] = subscriber
        _LOGGER.debug(
            "Registered subscriber %s (%s)",
            subscriber.identifier,
            subscriber.target_kind.value,
        )
        return lambda: self.unregister_subscriber(subscriber.identifier)

    def unregister_subscriber(self, identifier: str) -> bool:
        """Remove a subscriber and forget its last value."""
        with self._subscriber_lock:
            removed = self._subscribers.pop(identifier, None)
        if removed is None:
            return False
        self.data.pop(identifier, None)
        return True

    def list_subscribers(self) -> tuple[Subscriber, ...]:
        """Return a snapshot of the current subscribers."""
        with self._subscriber_lock:
            return tuple(self._subscribers.values())

    def publish(self, subscriber_id: str, value: UpdateValue) -> None:
        """Hand a value from the monitor thread to the event loop."""
        with self._subscriber_lock:
            known = subscriber_id in self._subscribers
        if not known:
            raise CallMonitorDispatchError(f"Unknown subscriber {subscriber_id}")
        self.hass.loop.call_soon_threadsafe(self._apply_update, subscriber_id, value)

    def handle_connection_state(self, state: ConnectionState) -> None:
        """Handle connection state changes from the monitor thread."""
        self.hass.loop.call_soon_threadsafe(self._apply_connection_state, state)

    @callback
    def _apply_update(self, subscriber_id: str, value: UpdateValue) -> None:
        with self._subscriber_lock:
            if subscriber_id not in self._subscribers:
                return
        values: dict[str, Any] = dict(self.data or {})
        values[subscriber_id] = value
        self.async_set_updated_data(values)

    @callback
    def _apply_connection_state(self, state: ConnectionState) -> None:
        if state is self.connection_state:
            return
        _LOGGER.debug("Call monitor connection is %s", state.value)
        self.connection_state = state
        self.async_update_listeners()
