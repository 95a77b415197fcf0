"""REST endpoints of the Syncthing GUI/API server."""

from dataclasses import dataclass


@dataclass
class Syncthing:
    PING: str = "/rest/system/ping"
    CONFIG: str = "/rest/system/config"
    CONFIG_INSYNC: str = "/rest/system/config/insync"
    ERROR: str = "/rest/system/error"
    EVENTS: str = "/rest/events"
    IGNORES: str = "/rest/db/ignores"
    SCAN: str = "/rest/db/scan"
