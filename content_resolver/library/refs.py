"""Explicit library references.

A libraryModuleRef or librarySessionRef is dereferenced exactly once into a
LibraryRef, which carries either the referenced document or nothing.
"""

from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from content_resolver.store import paths
from content_resolver.store.base import DocumentStore

T = TypeVar("T")


@dataclass(frozen=True)
class LibraryRef(Generic[T]):
    id: str
    resolved: T | None = None

    @property
    def found(self) -> bool:
        return self.resolved is not None


async def fetch_library_module(store: DocumentStore, creator_id: str, module_id: str) -> LibraryRef[dict[str, Any]]:
    snapshot = await store.get_doc(paths.library_module(creator_id, module_id))
    return LibraryRef(id=module_id, resolved=snapshot.data() if snapshot.exists else None)


async def fetch_library_session(store: DocumentStore, creator_id: str, session_id: str) -> LibraryRef[dict[str, Any]]:
    snapshot = await store.get_doc(paths.library_session(creator_id, session_id))
    return LibraryRef(id=session_id, resolved=snapshot.data() if snapshot.exists else None)
