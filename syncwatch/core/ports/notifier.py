"""
Notifier interface.

The only write path to the synchronization service. Implementations raise on
failure: ``AuthorizationError`` is fatal for the folder, anything else is
retried on the next accumulator cycle.
"""

from abc import ABC, abstractmethod
from typing import Sequence


class Notifier(ABC):

    @abstractmethod
    async def notify(self, folder_id: str, targets: Sequence[str]) -> None:
        """Ask for a rescan of ``targets``; ``""`` means the whole folder."""
        pass

    async def extend_rescan(self, folder_id: str) -> None:
        """Push the folder's next periodic full rescan further out."""
        pass
