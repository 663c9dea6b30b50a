"""Document store contract consumed by the resolver.

The resolver never talks to a database directly. It reads through this
contract: point reads by slash-separated path, and ordered scans of a
collection. No writes or transactions are required.
"""

import copy
from dataclasses import dataclass, field
from typing import Any, Protocol


class DocumentStoreError(Exception):
    """Raised when the underlying store cannot serve a read (transport failure)."""

    def __init__(self, path: str, message: str) -> None:
        self.path = path
        self.message = message
        super().__init__(f"{path}: {message}")


@dataclass(frozen=True)
class DocumentSnapshot:
    """Point-in-time view of one document.

    Attributes:
        path: Full document path (e.g. creator_libraries/c1/modules/m1)
        exists: Whether a document lives at that path
        fields: Stored fields; empty when the document does not exist
    """

    path: str
    exists: bool
    fields: dict[str, Any] = field(default_factory=dict)

    @property
    def id(self) -> str:
        return self.path.rsplit("/", 1)[-1]

    def data(self) -> dict[str, Any]:
        """Return a private copy of the document fields."""
        return copy.deepcopy(self.fields)

    def to_dict(self) -> dict[str, Any]:
        """Return the document fields with the document id folded in."""
        return {"id": self.id, **self.data()}


class DocumentStore(Protocol):
    async def get_doc(self, path: str) -> DocumentSnapshot:
        """Read a single document. Missing documents return exists=False."""
        ...

    async def get_ordered_collection(self, path: str, order_by: str) -> list[DocumentSnapshot]:
        """Read every document of a collection, ascending by order_by."""
        ...


def _type_rank(value: Any) -> tuple[int, Any]:
    # Mixed value types order by type first: booleans, numbers, strings, then
    # anything else by its text form.
    if isinstance(value, bool):
        return (0, value)
    if isinstance(value, (int, float)):
        return (1, value)
    if isinstance(value, str):
        return (2, value)
    return (3, str(value))


def sort_key(order_by: str):
    """Build an ascending sort key; documents missing the field sort last.

    Values of different types never compare directly, so a collection whose
    documents disagree on the type of order_by still sorts.
    """

    def _key(snapshot: DocumentSnapshot) -> tuple[int, tuple[int, Any], str]:
        value = snapshot.fields.get(order_by)
        if value is None:
            return (1, (0, 0), snapshot.id)
        return (0, _type_rank(value), snapshot.id)

    return _key
