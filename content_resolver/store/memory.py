"""In-memory document store.

Backs tests and local tooling. Documents are kept in a flat dict keyed by
full path; a collection scan returns every document whose parent path is the
collection path.
"""

import asyncio
import copy
from collections.abc import Iterable, Mapping
from typing import Any

from loguru import logger

from content_resolver.store.base import DocumentSnapshot, DocumentStoreError, sort_key
from content_resolver.store.paths import parent


class InMemoryDocumentStore:
    """Dictionary-backed implementation of the DocumentStore contract."""

    def __init__(self, documents: Mapping[str, dict[str, Any]] | None = None) -> None:
        self._documents: dict[str, dict[str, Any]] = {}
        self._failing: set[str] = set()
        self.reads: list[str] = []
        if documents:
            self.load(documents)

    def put(self, path: str, data: dict[str, Any]) -> None:
        """Store a document, replacing whatever was at path."""
        self._documents[path.strip("/")] = copy.deepcopy(data)

    def load(self, documents: Mapping[str, dict[str, Any]]) -> None:
        """Store many documents at once, keyed by path."""
        for path, data in documents.items():
            self.put(path, data)

    def delete(self, path: str) -> None:
        self._documents.pop(path.strip("/"), None)

    def fail_on(self, *paths: str) -> None:
        """Make reads of the given document or collection paths raise DocumentStoreError."""
        self._failing.update(path.strip("/") for path in paths)

    def clear_failures(self) -> None:
        self._failing.clear()

    def _check(self, path: str) -> None:
        self.reads.append(path)
        if path in self._failing:
            raise DocumentStoreError(path, "simulated transport failure")

    async def get_doc(self, path: str) -> DocumentSnapshot:
        path = path.strip("/")
        # Yield so sibling fetches interleave like real I/O
        await asyncio.sleep(0)
        self._check(path)
        data = self._documents.get(path)
        if data is None:
            return DocumentSnapshot(path=path, exists=False)
        return DocumentSnapshot(path=path, exists=True, fields=copy.deepcopy(data))

    async def get_ordered_collection(self, path: str, order_by: str) -> list[DocumentSnapshot]:
        path = path.strip("/")
        await asyncio.sleep(0)
        self._check(path)
        snapshots = [
            DocumentSnapshot(path=doc_path, exists=True, fields=copy.deepcopy(data))
            for doc_path, data in self._documents.items()
            if parent(doc_path) == path
        ]
        snapshots.sort(key=sort_key(order_by))
        logger.bind(collection=path, count=len(snapshots)).debug("Scanned in-memory collection")
        return snapshots

    def paths(self) -> Iterable[str]:
        return list(self._documents)
