"""
SQLAlchemy models for the okrdash document store.
"""
from okrdash.infra.db.base import Base
from okrdash.infra.db.models.document import Document

__all__ = [
    "Base",
    "Document",
]
