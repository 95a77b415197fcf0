from syncwatch.adapters.syncthing.client import SyncthingClient
from syncwatch.adapters.syncthing.discovery import GuiSettings, discover_gui_settings
from syncwatch.adapters.syncthing.notifier import SyncthingNotifier

__all__ = [
    "GuiSettings",
    "SyncthingClient",
    "SyncthingNotifier",
    "discover_gui_settings",
]
