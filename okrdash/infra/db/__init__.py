"""
Document store infrastructure.
"""
from okrdash.infra.db.document_store import DocumentSnapshot, DocumentStore, document_path

__all__ = [
    "DocumentSnapshot",
    "DocumentStore",
    "document_path",
]
