"""
Document Store

Schemaless key-value document database over async SQLAlchemy. Documents are
addressed by slash-separated paths (``collection/key/subcollection/key``) and
hold JSON objects.

Operations:
    get(path)                         -> DocumentSnapshot | None
    set(path, data, merge, expected)  -> new version
    list(collection)                  -> [DocumentSnapshot]
    watch(path, callback)             -> unsubscribe()

Absent documents are reported as ``None``. Every I/O failure is raised as
``DocumentStoreError`` so callers can tell "missing" from "broken".
Conditional writes pass ``expected_version``: 0 means "must not exist yet",
any other value must equal the stored version.
"""
import inspect
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from okrdash.errors import DocumentConflictError, DocumentStoreError
from okrdash.infra.db.models.document import Document, utcnow

logger = logging.getLogger(__name__)

Listener = Callable[[str, Optional[Dict[str, Any]]], Union[None, Awaitable[None]]]


@dataclass(frozen=True)
class DocumentSnapshot:
    """Point-in-time copy of a stored document."""

    path: str
    data: Dict[str, Any]
    version: int
    updated_at: Optional[datetime] = None


def deep_merge(base: Dict[str, Any], updates: Dict[str, Any]) -> Dict[str, Any]:
    """Copy of ``base`` with ``updates`` merged in. Nested objects merge key by key."""
    merged = dict(base)
    for key, value in updates.items():
        current = merged.get(key)
        if isinstance(value, dict) and isinstance(current, dict):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = value
    return merged


def document_path(*segments: str) -> str:
    """Join path segments, rejecting empty segments and embedded slashes."""
    if not segments:
        raise ValueError("Document path needs at least one segment")
    for segment in segments:
        if not segment or "/" in segment:
            raise ValueError(f"Invalid document path segment: {segment!r}")
    return "/".join(segments)


def parent_path(path: str) -> str:
    """Collection part of a document path ('' for top-level documents)."""
    return path.rsplit("/", 1)[0] if "/" in path else ""


class DocumentStore:
    """Async document store backed by a SQLAlchemy session factory."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory
        self._listeners: Dict[str, List[Listener]] = {}

    async def get(self, path: str) -> Optional[DocumentSnapshot]:
        """Read one document. Returns None if it does not exist."""
        try:
            async with self._session_factory() as session:
                row = await session.get(Document, path)
                if row is None:
                    return None
                return DocumentSnapshot(
                    path=row.path,
                    data=dict(row.data),
                    version=row.version,
                    updated_at=row.updated_at,
                )
        except SQLAlchemyError as e:
            logger.error(f"[DocumentStore] Read failed for {path}: {e}")
            raise DocumentStoreError(f"Failed to read {path}: {e}", path=path) from e

    async def set(
        self,
        path: str,
        data: Dict[str, Any],
        merge: bool = False,
        expected_version: Optional[int] = None,
    ) -> int:
        """
        Write a document.

        Args:
            path: Document path
            data: JSON-serializable object
            merge: Merge ``data`` into the stored document (nested objects
                key by key, lists and scalars replaced) instead of replacing it
            expected_version: Fail with DocumentConflictError unless the stored
                version matches (0 = document must not exist)

        Returns:
            The document's new version
        """
        try:
            async with self._session_factory() as session:
                row = await session.get(Document, path)
                current_version = row.version if row is not None else 0

                if expected_version is not None and expected_version != current_version:
                    raise DocumentConflictError(path, expected_version, current_version)

                if row is None:
                    stored = dict(data)
                    session.add(
                        Document(path=path, parent=parent_path(path), data=stored, version=1)
                    )
                    new_version = 1
                else:
                    stored = deep_merge(row.data, data) if merge else dict(data)
                    stmt = (
                        update(Document)
                        .where(Document.path == path)
                        .values(data=stored, version=Document.version + 1, updated_at=utcnow())
                        .returning(Document.version)
                    )
                    if expected_version is not None:
                        stmt = stmt.where(Document.version == expected_version)
                    result = await session.execute(stmt)
                    new_version = result.scalar_one_or_none()
                    if new_version is None:
                        # Row changed between our read and the compare-and-set
                        raise DocumentConflictError(path, current_version, -1)

                await session.commit()
        except IntegrityError as e:
            # Concurrent insert of the same path
            raise DocumentConflictError(path, 0, -1) from e
        except SQLAlchemyError as e:
            logger.error(f"[DocumentStore] Write failed for {path}: {e}")
            raise DocumentStoreError(f"Failed to write {path}: {e}", path=path) from e
        except (TypeError, ValueError) as e:
            # JSON serialization of ``data`` failed
            raise DocumentStoreError(f"Document {path} is not serializable: {e}", path=path) from e

        logger.debug(f"[DocumentStore] Wrote {path} (version {new_version}, merge={merge})")
        await self._notify(path, stored)
        return new_version

    async def list(self, collection: str) -> List[DocumentSnapshot]:
        """List the documents directly inside a collection path."""
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(Document).where(Document.parent == collection).order_by(Document.path)
                )
                return [
                    DocumentSnapshot(
                        path=row.path,
                        data=dict(row.data),
                        version=row.version,
                        updated_at=row.updated_at,
                    )
                    for row in result.scalars().all()
                ]
        except SQLAlchemyError as e:
            logger.error(f"[DocumentStore] List failed for {collection}: {e}")
            raise DocumentStoreError(f"Failed to list {collection}: {e}", path=collection) from e

    def watch(self, path: str, callback: Listener) -> Callable[[], None]:
        """
        Subscribe to writes on ``path``.

        The callback receives ``(path, data)`` after every successful write made
        through this store instance. Returns a function that unsubscribes.
        """
        self._listeners.setdefault(path, []).append(callback)

        def unsubscribe() -> None:
            listeners = self._listeners.get(path, [])
            if callback in listeners:
                listeners.remove(callback)
            if not listeners:
                self._listeners.pop(path, None)

        return unsubscribe

    async def _notify(self, path: str, data: Optional[Dict[str, Any]]) -> None:
        for callback in list(self._listeners.get(path, [])):
            try:
                result = callback(path, data)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                # A broken subscriber must not fail the write that triggered it
                logger.error(f"[DocumentStore] Listener for {path} failed: {e}")
