"""
Document SQLAlchemy model.

A Document is one schemaless JSON record addressed by a slash-separated path
such as ``user_settings/{uid}/epics/ION-1``. ``parent`` holds the collection
path (everything before the last segment) so a collection can be listed.
"""
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import JSON, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from okrdash.infra.db.base import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Document(Base):
    """A JSON document in the store."""

    __tablename__ = "documents"

    path: Mapped[str] = mapped_column(String(1024), primary_key=True)
    parent: Mapped[str] = mapped_column(String(1024), nullable=False, index=True)
    data: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)

    # Incremented on every write; conditional writes compare against it
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    created_at: Mapped[datetime] = mapped_column(default=utcnow)
    updated_at: Mapped[Optional[datetime]] = mapped_column(default=None)

    def __repr__(self) -> str:
        return f"<Document(path={self.path}, version={self.version})>"
