"""Bounded fan-out wrapper for document stores."""

import asyncio

from content_resolver.store.base import DocumentSnapshot, DocumentStore


class ConcurrencyLimitedStore:
    """Limit how many reads against the wrapped store are in flight at once.

    The resolver fans out at every level of the tree; this wrapper keeps that
    fan-out bounded without changing the resolver itself.
    """

    def __init__(self, store: DocumentStore, limit: int) -> None:
        if limit < 1:
            raise ValueError(f"limit must be >= 1, got {limit}")
        self._store = store
        self._semaphore = asyncio.Semaphore(limit)
        self.limit = limit
        self.in_flight = 0
        self.peak_in_flight = 0

    async def _acquire(self) -> None:
        await self._semaphore.acquire()
        self.in_flight += 1
        self.peak_in_flight = max(self.peak_in_flight, self.in_flight)

    def _release(self) -> None:
        self.in_flight -= 1
        self._semaphore.release()

    async def get_doc(self, path: str) -> DocumentSnapshot:
        await self._acquire()
        try:
            return await self._store.get_doc(path)
        finally:
            self._release()

    async def get_ordered_collection(self, path: str, order_by: str) -> list[DocumentSnapshot]:
        await self._acquire()
        try:
            return await self._store.get_ordered_collection(path, order_by)
        finally:
            self._release()
