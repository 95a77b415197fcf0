"""Config constants for services."""

from .endpoints import Syncthing
from .timeouts import Timeouts

__all__ = ["Syncthing", "Timeouts"]
