import asyncio
import logging
from collections.abc import Awaitable, Callable, Hashable
from typing import Any, TypeVar

T = TypeVar("T")

logger = logging.getLogger(__name__)


class MemoSlots:
    """Compute-once slots keyed by operation, scoped to one owner's lifetime.

    The first caller of a key starts exactly one task; every caller, concurrent
    or later, awaits that same task and sees its result or its exception.
    Waiters are shielded, so cancelling one of them leaves the shared work
    running for the others.
    """

    def __init__(self) -> None:
        self._tasks: dict[Hashable, asyncio.Future[Any]] = {}

    def __contains__(self, key: Hashable) -> bool:
        return key in self._tasks

    async def run(self, key: Hashable, factory: Callable[[], Awaitable[T]]) -> T:
        task = self._tasks.get(key)
        if task is None:
            # no await between lookup and assignment keeps this single-assignment
            logger.debug("Starting memo slot %r", key)
            task = asyncio.ensure_future(factory())
            self._tasks[key] = task
        result: T = await asyncio.shield(task)
        return result
