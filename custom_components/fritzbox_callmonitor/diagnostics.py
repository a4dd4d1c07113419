"""Diagnostics support for the call monitor."""

from __future__ import annotations

from typing import Any

from callmonitor_lib import CallDetail, PresenceState

from homeassistant.components.diagnostics import async_redact_data
from homeassistant.config_entries import ConfigEntry
from homeassistant.const import CONF_HOST, CONF_PORT
from homeassistant.core import HomeAssistant

from .const import DATA_COORDINATOR, DATA_HUB, DOMAIN
from .coordinator import CallMonitorDataUpdateCoordinator
from .hub import CallMonitorHub

TO_REDACT = {
    CONF_HOST,
    "external_number",
    "internal_number",
    "last_event",
}


async def async_get_config_entry_diagnostics(
    hass: HomeAssistant, entry: ConfigEntry
) -> dict[str, Any]:
    """Return diagnostics for a config entry."""
    data = hass.data.get(DOMAIN, {}).get(entry.entry_id)
    hub: CallMonitorHub | None = data.get(DATA_HUB) if data else None
    coordinator: CallMonitorDataUpdateCoordinator | None = (
        data.get(DATA_COORDINATOR) if data else None
    )

    subscribers: list[dict[str, Any]] = []
    if coordinator is not None:
        values = coordinator.data or {}
        for subscriber in coordinator.list_subscribers():
            subscribers.append(
                {
                    "identifier": subscriber.identifier,
                    "target_kind": subscriber.target_kind.value,
                    "value": _value_to_dict(values.get(subscriber.identifier)),
                }
            )

    return async_redact_data(
        {
            "entry": {
                "entry_id": entry.entry_id,
                CONF_HOST: entry.data.get(CONF_HOST),
                CONF_PORT: entry.data.get(CONF_PORT),
            },
            "running": hub.is_running if hub is not None else False,
            "statistics": hub.statistics if hub is not None else None,
            "connection_state": (
                coordinator.connection_state.value if coordinator is not None else None
            ),
            "subscribers": subscribers,
        },
        TO_REDACT,
    )


def _value_to_dict(value: Any) -> Any:
    if isinstance(value, CallDetail):
        return {
            "external_number": value.external_number,
            "internal_number": value.internal_number,
        }
    if isinstance(value, PresenceState):
        return value.value
    return None
