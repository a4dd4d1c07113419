"""Set up the FRITZ!Box call monitor integration."""

from __future__ import annotations

import logging

from homeassistant.config_entries import ConfigEntry
from homeassistant.const import CONF_HOST, CONF_PORT, Platform
from homeassistant.core import HomeAssistant

from .const import DATA_COORDINATOR, DATA_HUB, DEFAULT_PORT, DOMAIN
from .coordinator import CallMonitorDataUpdateCoordinator
from .hub import CallMonitorHub

_LOGGER = logging.getLogger(__name__)

PLATFORMS: list[Platform] = [
    Platform.BINARY_SENSOR,
    Platform.SENSOR,
]


async def async_setup_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Set up the call monitor from a config entry."""
    host = entry.data[CONF_HOST]
    port = entry.data.get(CONF_PORT, DEFAULT_PORT)

    coordinator = CallMonitorDataUpdateCoordinator(hass, entry)
    hub = CallMonitorHub(hass, host, port)
    hass.data.setdefault(DOMAIN, {})[entry.entry_id] = {
        DATA_HUB: hub,
        DATA_COORDINATOR: coordinator,
    }
    # Entities register as subscribers before the first event can arrive.
    await hass.config_entries.async_forward_entry_setups(entry, PLATFORMS)

    _LOGGER.debug("Starting call monitor for %s:%s", host, port)
    await hub.async_start(coordinator)
    return True


async def async_unload_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Unload a call monitor config entry."""
    unload_ok = await hass.config_entries.async_unload_platforms(entry, PLATFORMS)
    data = hass.data.get(DOMAIN, {}).pop(entry.entry_id, None)
    if data is not None:
        hub: CallMonitorHub | None = data.get(DATA_HUB)
        if hub is not None:
            await hub.async_stop()
    return unload_ok
