import asyncio


class HealthFlag:
    """Last known readiness of a remote service."""

    def __init__(self) -> None:
        self._ready = asyncio.Event()

    @property
    def is_ready(self) -> bool:
        return self._ready.is_set()

    def set_ready(self) -> None:
        self._ready.set()

    def set_not_ready(self) -> None:
        self._ready.clear()
