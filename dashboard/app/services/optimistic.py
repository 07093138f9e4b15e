"""Three-phase optimistic mutation: snapshot, apply, settle.

``begin`` captures the prior state and applies the new one synchronously so
the view can render it at once. ``settle`` awaits the backend call and either
confirms the mutation or restores the snapshot.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Coroutine
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from dashboard.app.core.errors import BackendError


logger = logging.getLogger(__name__)

S = TypeVar("S")
T = TypeVar("T")


@dataclass
class OptimisticMutation(Generic[S]):
    snapshot: S
    applied: S
    restore: Callable[[S], None]
    current: Callable[[], S]
    state: str = field(default="pending")

    def confirm(self) -> None:
        self.state = "confirmed"

    def rollback(self) -> bool:
        """Restore the snapshot unless a later mutation already replaced the applied state."""
        if self.current() != self.applied:
            logger.info("Skipping rollback, state changed since %r was applied", self.applied)
            self.state = "superseded"
            return False
        self.restore(self.snapshot)
        self.state = "rolled_back"
        return True


def begin(
    snapshot: Callable[[], S],
    apply: Callable[[], object],
    restore: Callable[[S], None],
) -> OptimisticMutation[S]:
    prior = snapshot()
    apply()
    return OptimisticMutation(snapshot=prior, applied=snapshot(), restore=restore, current=snapshot)


async def settle(mutation: OptimisticMutation[S], call: Awaitable[T]) -> T:
    try:
        result = await call
    except BackendError:
        mutation.rollback()
        raise
    mutation.confirm()
    return result


class InFlight:
    """Tracks backend calls running in the background after an optimistic update."""

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task] = set()

    def __len__(self) -> int:
        return len(self._tasks)

    def spawn(self, coro: Coroutine[Any, Any, T]) -> asyncio.Task[T]:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def drain(self) -> None:
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
