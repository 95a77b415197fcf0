"""
Domain errors of the watcher core.
"""

from infra.exceptions import FatalValidationError


class IgnorePatternError(FatalValidationError):
    """An ignore pattern received from Syncthing does not compile."""
    pass


class WatchInstallError(FatalValidationError):
    """The inotify watch for a folder could not be installed."""
    pass


class AggregationError(ValueError):
    """Aggregation was asked to work on an empty batch."""
    pass
