"""API endpoints."""

from .syncthing import Syncthing

__all__ = ["Syncthing"]
