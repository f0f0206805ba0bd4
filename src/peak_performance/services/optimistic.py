"""Optimistic local changes with rollback."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Generic, TypeVar

S = TypeVar("S")
R = TypeVar("R")


@dataclass
class OptimisticUpdate(Generic[S]):
    """Apply a local change before the remote call and undo it on failure.

    ``snapshot`` captures the state to restore, ``apply`` performs the local
    change and ``restore`` puts a snapshot back. The remote exception is
    re-raised after the restore.
    """

    snapshot: Callable[[], S]
    apply: Callable[[], None]
    restore: Callable[[S], None]

    async def run(self, remote: Callable[[], Awaitable[R]]) -> R:
        saved = self.snapshot()
        self.apply()
        try:
            return await remote()
        except BaseException:
            self.restore(saved)
            raise
