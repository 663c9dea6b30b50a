"""SQLAlchemy-backed document store.

Each document is one row of the ``documents`` table. The document tree is
flattened: a row knows its own full path, the path of the collection it lives
in, and its id within that collection. Collection scans filter on
``collection_path`` and sort in Python so that any JSON ``order`` field works
on every backend.
"""

import asyncio
import contextlib
import threading
from typing import Any

from loguru import logger
from sqlalchemy import JSON, Engine, String, create_engine, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, sessionmaker
from sqlalchemy.pool import StaticPool

from content_resolver.store.base import DocumentSnapshot, DocumentStoreError, sort_key
from content_resolver.store.paths import parent


class Base(DeclarativeBase):
    pass


class DocumentRow(Base):
    """One stored document.

    Schema:
    - path: Full document path (primary key)
    - collection_path: Path of the owning collection, indexed for scans
    - doc_id: Last path segment
    - data: Document fields (JSON)
    """

    __tablename__ = "documents"

    path: Mapped[str] = mapped_column(String, primary_key=True)
    collection_path: Mapped[str] = mapped_column(String, nullable=False, index=True)
    doc_id: Mapped[str] = mapped_column(String, nullable=False)
    data: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)


def create_store_engine(database_url: str) -> Engine:
    """Create an engine suitable for the document store.

    SQLite connections are shared across executor threads; in-memory SQLite
    additionally needs a single static connection so every thread sees the
    same database.
    """
    if database_url.startswith("sqlite"):
        connect_args = {"check_same_thread": False}
        if database_url in {"sqlite://", "sqlite:///:memory:"}:
            return create_engine(database_url, connect_args=connect_args, poolclass=StaticPool)
        return create_engine(database_url, connect_args=connect_args)
    return create_engine(database_url, pool_pre_ping=True)


class SqlDocumentStore:
    """DocumentStore implementation over a relational database."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine
        self._session_factory = sessionmaker(bind=engine, expire_on_commit=False)
        # A static pool hands every executor thread the same connection
        self._lock = threading.Lock() if isinstance(engine.pool, StaticPool) else contextlib.nullcontext()

    @classmethod
    def from_url(cls, database_url: str, *, create_schema: bool = True) -> "SqlDocumentStore":
        store = cls(create_store_engine(database_url))
        if create_schema:
            store.create_schema()
        return store

    def create_schema(self) -> None:
        Base.metadata.create_all(self._engine)

    def put(self, path: str, data: dict[str, Any]) -> None:
        """Insert or replace a document (seeding and tooling only)."""
        path = path.strip("/")
        with self._lock, self._session_factory() as session:
            session.merge(
                DocumentRow(
                    path=path,
                    collection_path=parent(path),
                    doc_id=path.rsplit("/", 1)[-1],
                    data=data,
                )
            )
            session.commit()

    def load(self, documents: dict[str, dict[str, Any]]) -> None:
        for path, data in documents.items():
            self.put(path, data)

    def _read_doc(self, path: str) -> DocumentSnapshot:
        with self._lock, self._session_factory() as session:
            row = session.get(DocumentRow, path)
            if row is None:
                return DocumentSnapshot(path=path, exists=False)
            return DocumentSnapshot(path=path, exists=True, fields=dict(row.data or {}))

    def _read_collection(self, path: str, order_by: str) -> list[DocumentSnapshot]:
        with self._lock, self._session_factory() as session:
            rows = session.execute(select(DocumentRow).where(DocumentRow.collection_path == path)).scalars().all()
            snapshots = [DocumentSnapshot(path=row.path, exists=True, fields=dict(row.data or {})) for row in rows]
        snapshots.sort(key=sort_key(order_by))
        return snapshots

    async def _run(self, path: str, func, *args):
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, func, *args)
        except SQLAlchemyError as e:
            logger.bind(path=path, error=str(e)).error("Document store read failed")
            raise DocumentStoreError(path, str(e)) from e

    async def get_doc(self, path: str) -> DocumentSnapshot:
        path = path.strip("/")
        return await self._run(path, self._read_doc, path)

    async def get_ordered_collection(self, path: str, order_by: str) -> list[DocumentSnapshot]:
        path = path.strip("/")
        return await self._run(path, self._read_collection, path, order_by)
