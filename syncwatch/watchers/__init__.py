from syncwatch.watchers.folder import FolderWatcher
from syncwatch.watchers.supervisor import FolderSupervisor, select_folders

__all__ = ["FolderSupervisor", "FolderWatcher", "select_folders"]
