"""Constants for fritzbox_callmonitor."""

from callmonitor_lib.const import DEFAULT_MONITOR_PORT

DOMAIN = "fritzbox_callmonitor"
MANUFACTURER = "AVM"
DEFAULT_NAME = "FRITZ!Box Call Monitor"
DEFAULT_PORT = DEFAULT_MONITOR_PORT

CONF_ROUTER_URL = "router_url"

DATA_HUB = "hub"
DATA_COORDINATOR = "coordinator"

# Daily forced reconnect (local time)
RECONNECT_HOUR = 0
RECONNECT_MINUTE = 0
RECONNECT_SECOND = 0

CONNECT_PROBE_TIMEOUT = 5.0
