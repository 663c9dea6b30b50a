"""Document store adapters.

The resolver depends only on the DocumentStore contract; concrete stores
live here:
- InMemoryDocumentStore for tests and local tooling
- SqlDocumentStore for a SQLAlchemy-managed database
- ConcurrencyLimitedStore to bound read fan-out
"""

from content_resolver.store.base import DocumentSnapshot, DocumentStore, DocumentStoreError
from content_resolver.store.limits import ConcurrencyLimitedStore
from content_resolver.store.memory import InMemoryDocumentStore
from content_resolver.store.sql import SqlDocumentStore

__all__ = [
    "ConcurrencyLimitedStore",
    "DocumentSnapshot",
    "DocumentStore",
    "DocumentStoreError",
    "InMemoryDocumentStore",
    "SqlDocumentStore",
]
