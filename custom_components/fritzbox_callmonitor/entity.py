"""Shared entity helpers for the call monitor integration."""

from __future__ import annotations

from callmonitor_lib import Subscriber, TargetKind, UpdateValue

from homeassistant.config_entries import ConfigEntry
from homeassistant.helpers.device_registry import DeviceInfo
from homeassistant.helpers.update_coordinator import CoordinatorEntity

from .const import DEFAULT_NAME, DOMAIN, MANUFACTURER
from .coordinator import CallMonitorDataUpdateCoordinator
from .hub import CallMonitorHub


def device_info_for_entry(hub: CallMonitorHub, entry: ConfigEntry) -> DeviceInfo:
    """Build device info for entities tied to a config entry."""
    return DeviceInfo(
        identifiers={(DOMAIN, entry.unique_id or entry.entry_id)},
        name=entry.title or DEFAULT_NAME,
        manufacturer=MANUFACTURER,
        configuration_url=f"http://{hub.host}",
    )


def build_unique_id(base: str, key: str) -> str:
    """Build a stable unique ID in <entry>:<key> format."""
    return f"{base}:{key}"


class CallMonitorSubscriberEntity(CoordinatorEntity[CallMonitorDataUpdateCoordinator]):
    """Entity that registers itself as a call monitor subscriber while added."""

    _attr_has_entity_name = True
    _target_kind: TargetKind

    def __init__(
        self,
        coordinator: CallMonitorDataUpdateCoordinator,
        hub: CallMonitorHub,
        entry: ConfigEntry,
        key: str,
    ) -> None:
        """Initialize the subscriber entity."""
        super().__init__(coordinator)
        self._hub = hub
        self._attr_translation_key = key
        self._subscriber_id = build_unique_id(entry.unique_id or entry.entry_id, key)
        self._attr_unique_id = self._subscriber_id
        self._attr_device_info = device_info_for_entry(hub, entry)

    async def async_added_to_hass(self) -> None:
        """Register with the coordinator when added."""
        await super().async_added_to_hass()
        self.async_on_remove(
            self.coordinator.register_subscriber(self.subscriber)
        )

    @property
    def subscriber(self) -> Subscriber:
        """Return the registration for this entity."""
        return Subscriber(self._subscriber_id, self._target_kind)

    @property
    def subscriber_value(self) -> UpdateValue | None:
        """Return the last value published for this entity."""
        if not self.coordinator.data:
            return None
        return self.coordinator.data.get(self._subscriber_id)

    @property
    def available(self) -> bool:
        """Return if the monitor is running."""
        return self._hub.is_running
