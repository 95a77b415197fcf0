"""Timeout values in seconds."""

from dataclasses import dataclass


@dataclass
class Timeouts:
    STANDARD: int = 30
    # Syncthing holds /rest/events open for up to 60 seconds
    EVENTS_LONG_POLL: int = 75
    # /rest/db/scan only answers once the requested scan has finished
    SCAN: int = 600
    CONFIG_SYNC: int = 5
