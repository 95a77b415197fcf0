import asyncio
import random
from collections.abc import Awaitable, Callable
from typing import List, Type, TypeVar

from .logger import get_logger

log = get_logger("infra.reconnect")

T = TypeVar("T")


async def retry_forever(
        fn: Callable[[], Awaitable[T]],
        base_delay: float = 1.0,
        max_delay: float = 30.0,
        retryable_exceptions: List[Type[BaseException]] = None,
        jitter: bool = True,
        name: str = "reconnect",
) -> T:
    """
    Await ``fn`` until it succeeds and return its result.

    Exceptions outside ``retryable_exceptions`` propagate immediately.
    With ``base_delay == max_delay`` and ``jitter=False`` the retry interval
    is fixed.
    """
    if retryable_exceptions is None:
        retryable_exceptions = []
    delay = base_delay

    while True:
        try:
            return await fn()
        except Exception as e:
            if not any(isinstance(e, exc) for exc in retryable_exceptions):
                raise
            log.warning(
                f"{name}.failed",
                error=str(e),
                next_delay=round(delay, 3),
            )
            await asyncio.sleep(delay)
            delay = min(delay * 2, max_delay)
            if jitter:
                delay = delay * (0.8 + random.random() * 0.4)
