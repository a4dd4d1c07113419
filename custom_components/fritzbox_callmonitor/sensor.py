"""Sensors for the call monitor integration."""

from __future__ import annotations

from typing import Any

from callmonitor_lib import CallDetail, ConnectionState, TargetKind

from homeassistant.components.sensor import SensorDeviceClass, SensorEntity
from homeassistant.config_entries import ConfigEntry
from homeassistant.const import EntityCategory
from homeassistant.core import HomeAssistant
from homeassistant.helpers.entity_platform import AddConfigEntryEntitiesCallback
from homeassistant.helpers.update_coordinator import CoordinatorEntity

from .const import DATA_COORDINATOR, DATA_HUB, DOMAIN
from .coordinator import CallMonitorDataUpdateCoordinator
from .entity import (
    CallMonitorSubscriberEntity,
    build_unique_id,
    device_info_for_entry,
)
from .hub import CallMonitorHub

ATTR_EXTERNAL_NUMBER = "external_number"
ATTR_INTERNAL_NUMBER = "internal_number"
ATTR_RAW = "raw"


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddConfigEntryEntitiesCallback,
) -> None:
    """Set up call monitor sensors from a config entry."""
    data = hass.data[DOMAIN][entry.entry_id]
    hub: CallMonitorHub = data[DATA_HUB]
    coordinator: CallMonitorDataUpdateCoordinator = data[DATA_COORDINATOR]
    async_add_entities(
        [
            CallDetailSensor(coordinator, hub, entry),
            ConnectionStateSensor(coordinator, hub, entry),
        ]
    )


class CallDetailSensor(CallMonitorSubscriberEntity, SensorEntity):
    """Numbers of the current call; empty when idle."""

    _attr_icon = "mdi:phone-log"
    _target_kind = TargetKind.CALL_DETAIL

    def __init__(
        self,
        coordinator: CallMonitorDataUpdateCoordinator,
        hub: CallMonitorHub,
        entry: ConfigEntry,
    ) -> None:
        """Initialize the call detail sensor."""
        super().__init__(coordinator, hub, entry, "call_detail")

    @property
    def _detail(self) -> CallDetail:
        value = self.subscriber_value
        if isinstance(value, CallDetail):
            return value
        return CallDetail.empty()

    @property
    def native_value(self) -> str | None:
        """Return the external party, or None while idle."""
        detail = self._detail
        if detail.is_empty:
            return None
        return detail.external_number or detail.internal_number

    @property
    def extra_state_attributes(self) -> dict[str, Any]:
        """Expose both numbers and the combined form."""
        detail = self._detail
        return {
            ATTR_EXTERNAL_NUMBER: detail.external_number,
            ATTR_INTERNAL_NUMBER: detail.internal_number,
            ATTR_RAW: str(detail),
        }


class ConnectionStateSensor(
    CoordinatorEntity[CallMonitorDataUpdateCoordinator], SensorEntity
):
    """Connection state of the monitor socket."""

    _attr_device_class = SensorDeviceClass.ENUM
    _attr_entity_category = EntityCategory.DIAGNOSTIC
    _attr_has_entity_name = True
    _attr_options = [state.value for state in ConnectionState]
    _attr_translation_key = "connection"

    def __init__(
        self,
        coordinator: CallMonitorDataUpdateCoordinator,
        hub: CallMonitorHub,
        entry: ConfigEntry,
    ) -> None:
        """Initialize the connection sensor."""
        super().__init__(coordinator)
        self._hub = hub
        self._attr_unique_id = build_unique_id(
            entry.unique_id or entry.entry_id, "connection"
        )
        self._attr_device_info = device_info_for_entry(hub, entry)

    @property
    def native_value(self) -> str:
        """Return the current connection state."""
        return self.coordinator.connection_state.value
