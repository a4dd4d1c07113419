"""Config flow for the FRITZ!Box call monitor integration."""

from __future__ import annotations

import logging
from typing import Any

from callmonitor_lib import CallMonitorConnectError, check_connection, host_from_url
import voluptuous as vol

from homeassistant.config_entries import ConfigFlow, ConfigFlowResult
from homeassistant.const import CONF_HOST, CONF_PORT
from homeassistant.helpers import config_validation as cv

from .const import (
    CONF_ROUTER_URL,
    CONNECT_PROBE_TIMEOUT,
    DEFAULT_NAME,
    DEFAULT_PORT,
    DOMAIN,
)

_LOGGER = logging.getLogger(__name__)

STEP_USER_DATA_SCHEMA = vol.Schema(
    {
        vol.Required(CONF_ROUTER_URL): cv.string,
        vol.Optional(CONF_PORT, default=DEFAULT_PORT): cv.port,
    }
)


class CallMonitorConfigFlow(ConfigFlow, domain=DOMAIN):
    """Handle a config flow for the call monitor."""

    VERSION = 1
    MINOR_VERSION = 1

    async def async_step_user(
        self, user_input: dict[str, Any] | None = None
    ) -> ConfigFlowResult:
        """Ask for the router address and probe the monitor port."""
        errors: dict[str, str] = {}
        if user_input is not None:
            host = host_from_url(user_input[CONF_ROUTER_URL])
            port = user_input.get(CONF_PORT, DEFAULT_PORT)
            if host is None:
                errors[CONF_ROUTER_URL] = "invalid_host"
            else:
                self._async_abort_entries_match({CONF_HOST: host, CONF_PORT: port})
                try:
                    await self.hass.async_add_executor_job(
                        check_connection, host, port, CONNECT_PROBE_TIMEOUT
                    )
                except CallMonitorConnectError as err:
                    _LOGGER.debug("Probe of %s:%s failed: %s", host, port, err)
                    errors["base"] = "cannot_connect"
                else:
                    await self.async_set_unique_id(f"{host}:{port}")
                    self._abort_if_unique_id_configured()
                    return self.async_create_entry(
                        title=f"{DEFAULT_NAME} ({host})",
                        data={CONF_HOST: host, CONF_PORT: port},
                    )

        return self.async_show_form(
            step_id="user",
            data_schema=self.add_suggested_values_to_schema(
                STEP_USER_DATA_SCHEMA, user_input
            ),
            errors=errors,
        )
