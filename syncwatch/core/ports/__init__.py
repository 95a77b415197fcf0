from syncwatch.core.ports.notifier import Notifier

__all__ = ["Notifier"]
