"""
Path Classifier

By the time a batch is aggregated the path may already be gone, so
classification never raises: anything that cannot be stat'ed is DELETED.
"""

import os
import stat
from abc import ABC, abstractmethod
from enum import Enum
from pathlib import Path


class PathKind(Enum):
    FILE = "file"
    DIRECTORY = "directory"
    DELETED = "deleted"


class PathClassifier(ABC):

    @abstractmethod
    def classify(self, path: Path) -> PathKind:
        """Classify an absolute path."""
        pass


class StatPathClassifier(PathClassifier):
    """Classifies with ``os.stat`` (symlinks are followed)."""

    def classify(self, path: Path) -> PathKind:
        try:
            mode = os.stat(path).st_mode
        except (OSError, ValueError):
            return PathKind.DELETED
        if stat.S_ISDIR(mode):
            return PathKind.DIRECTORY
        return PathKind.FILE
