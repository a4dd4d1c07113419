"""Binary sensor showing whether a call is in progress."""

from __future__ import annotations

from callmonitor_lib import PresenceState, TargetKind

from homeassistant.components.binary_sensor import BinarySensorEntity
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.helpers.entity_platform import AddConfigEntryEntitiesCallback

from .const import DATA_COORDINATOR, DATA_HUB, DOMAIN
from .coordinator import CallMonitorDataUpdateCoordinator
from .entity import CallMonitorSubscriberEntity
from .hub import CallMonitorHub


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddConfigEntryEntitiesCallback,
) -> None:
    """Set up the call presence sensor from a config entry."""
    data = hass.data[DOMAIN][entry.entry_id]
    hub: CallMonitorHub = data[DATA_HUB]
    coordinator: CallMonitorDataUpdateCoordinator = data[DATA_COORDINATOR]
    async_add_entities([CallPresenceBinarySensor(coordinator, hub, entry)])


class CallPresenceBinarySensor(CallMonitorSubscriberEntity, BinarySensorEntity):
    """On while the line is ringing, dialing or connected."""

    _attr_icon = "mdi:phone"
    _target_kind = TargetKind.BOOLEAN_PRESENCE

    def __init__(
        self,
        coordinator: CallMonitorDataUpdateCoordinator,
        hub: CallMonitorHub,
        entry: ConfigEntry,
    ) -> None:
        """Initialize the presence entity."""
        super().__init__(coordinator, hub, entry, "call_active")

    @property
    def is_on(self) -> bool:
        """Return true while a call is active."""
        return self.subscriber_value is PresenceState.ON
