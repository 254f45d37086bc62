"""Services layer for business logic separation."""

from .document_store import (
    BaseDocumentStore,
    MemoryDocumentStore,
    SQLiteDocumentStore,
    StorageBackend,
    create_document_store,
)
from .vocabulary_service import VocabularyService, VocabularySession

__all__ = [
    "BaseDocumentStore",
    "MemoryDocumentStore",
    "SQLiteDocumentStore",
    "StorageBackend",
    "create_document_store",
    "VocabularyService",
    "VocabularySession",
]
