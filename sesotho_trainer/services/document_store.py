"""
Document Store - local persistence for versioned documents.

Each store is scoped to one username and holds JSON documents keyed by id.
Every successful write is assigned a new revision token; writers must
present the revision they last saw (optimistic concurrency). Replicated
revisions from a remote copy enter through merge() instead of put().
"""

import json
import logging
import sqlite3
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime
from enum import Enum
from pathlib import Path
from threading import Lock
from typing import Any, Dict, Generator, List, Mapping, Optional

from ..config import Config
from ..errors import ConflictError, NotFoundError, StoreError
from ..models.document import Change, VocabularyDocument, next_revision
from ..utils.paths import StorePathGenerator

logger = logging.getLogger(__name__)


class StorageBackend(Enum):
    """Available storage backends."""
    SQLITE = "sqlite"
    MEMORY = "memory"


class BaseDocumentStore(ABC):
    """
    Abstract base class for local document stores.

    Defines the contract for all data access operations.
    Implementations can use SQLite, plain memory, etc.
    """

    def __init__(self, name: str):
        self.name = name
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def _check_open(self) -> None:
        if self._closed:
            raise StoreError(f"Store '{self.name}' is closed")

    @staticmethod
    def _check_write(doc_id: str, current: Optional[VocabularyDocument], revision: Optional[str]) -> None:
        """Raise if `revision` may not replace `current`."""
        if current is None:
            if revision is not None:
                raise NotFoundError(doc_id)
        elif revision != current.revision:
            raise ConflictError(doc_id, revision)

    @abstractmethod
    def get(self, doc_id: str) -> VocabularyDocument:
        """Fetch a document. Raises NotFoundError if absent."""
        pass

    @abstractmethod
    def put(self, doc_id: str, payload: Mapping[str, Any], revision: Optional[str] = None) -> str:
        """
        Write a document and return its new revision.

        `revision` must equal the stored revision, or be None when creating.
        Raises ConflictError on a mismatch and NotFoundError when a revision
        is given for a document that does not exist.
        """
        pass

    @abstractmethod
    def merge(self, document: VocabularyDocument) -> bool:
        """
        Store a replicated revision if it wins over the local one.

        Returns:
            True if the local document changed
        """
        pass

    @abstractmethod
    def changes(self, since: int = 0) -> List[Change]:
        """Latest revision of every document written after sequence `since`."""
        pass

    def close(self) -> None:
        """Release resources. Data stays on disk."""
        self._closed = True


class MemoryDocumentStore(BaseDocumentStore):
    """
    In-process store implementation.

    Stores are shared by name for the lifetime of the process, so reopening
    a username finds its data again. Used for tests and as a scratch backend.
    """

    _registry: Dict[str, "MemoryDocumentStore"] = {}
    _registry_lock: Lock = Lock()

    def __init__(self, name: str = "memory"):
        super().__init__(name)
        self._docs: Dict[str, VocabularyDocument] = {}
        self._seqs: Dict[str, int] = {}
        self._seq = 0
        self._lock = Lock()

    @classmethod
    def open(cls, name: str) -> "MemoryDocumentStore":
        """Get the shared store for a name, creating it on first use."""
        with cls._registry_lock:
            store = cls._registry.get(name)
            if store is None:
                store = cls(name)
                cls._registry[name] = store
            store._closed = False
            return store

    @classmethod
    def reset_all(cls) -> None:
        """Forget every shared store. Useful for testing."""
        with cls._registry_lock:
            cls._registry.clear()

    def _copy(self, doc: VocabularyDocument) -> VocabularyDocument:
        return VocabularyDocument(doc.id, json.loads(json.dumps(doc.payload)), doc.revision)

    def _write(self, doc: VocabularyDocument) -> None:
        self._seq += 1
        self._docs[doc.id] = self._copy(doc)
        self._seqs[doc.id] = self._seq

    def get(self, doc_id: str) -> VocabularyDocument:
        self._check_open()
        with self._lock:
            doc = self._docs.get(doc_id)
            if doc is None:
                raise NotFoundError(doc_id)
            return self._copy(doc)

    def put(self, doc_id: str, payload: Mapping[str, Any], revision: Optional[str] = None) -> str:
        self._check_open()
        with self._lock:
            self._check_write(doc_id, self._docs.get(doc_id), revision)
            new_rev = next_revision(revision, payload)
            self._write(VocabularyDocument(doc_id, dict(payload), new_rev))
            return new_rev

    def merge(self, document: VocabularyDocument) -> bool:
        self._check_open()
        if not document.revision:
            raise StoreError(f"Cannot merge '{document.id}' without a revision")
        with self._lock:
            current = self._docs.get(document.id)
            if current is not None and current.revision == document.revision:
                return False
            if not document.wins_over(current):
                return False
            self._write(document)
            return True

    def changes(self, since: int = 0) -> List[Change]:
        self._check_open()
        with self._lock:
            feed = [
                Change(seq, self._copy(self._docs[doc_id]))
                for doc_id, seq in self._seqs.items()
                if seq > since
            ]
        return sorted(feed, key=lambda change: change.seq)


class SQLiteDocumentStore(BaseDocumentStore):
    """
    SQLite-based store implementation.

    Provides:
    - Transactional compare-and-set writes
    - A monotonically increasing change sequence for replication
    - One file per username
    """

    # Schema version for migrations
    SCHEMA_VERSION = 1

    def __init__(self, db_path: str, name: Optional[str] = None):
        """
        Initialize SQLite store.

        Args:
            db_path: Path to SQLite database file
            name: Logical store name (defaults to the file stem)
        """
        self.db_path = Path(db_path)
        super().__init__(name or self.db_path.stem)
        self._write_lock = Lock()
        self._ensure_db_dir()
        self._init_schema()

    def _ensure_db_dir(self) -> None:
        """Ensure database directory exists."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    @contextmanager
    def _get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """Get database connection with context manager."""
        try:
            conn = sqlite3.connect(str(self.db_path), timeout=Config.TIMEOUT)
        except sqlite3.Error as e:
            raise StoreError(f"Cannot open store '{self.name}': {e}") from e
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        except sqlite3.Error as e:
            conn.rollback()
            logger.error("SQLite error in store '%s': %s", self.name, e)
            raise StoreError(f"Store '{self.name}' failed: {e}") from e
        finally:
            conn.close()

    def _init_schema(self) -> None:
        """Initialize database schema."""
        with self._get_connection() as conn:
            cursor = conn.cursor()

            # Schema versioning table
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS schema_version (
                    version INTEGER PRIMARY KEY,
                    applied_at TEXT NOT NULL
                )
            """)

            # One row per document, latest revision only
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS documents (
                    id TEXT PRIMARY KEY,
                    rev TEXT NOT NULL,
                    body TEXT NOT NULL,
                    seq INTEGER NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)

            cursor.execute("CREATE INDEX IF NOT EXISTS idx_documents_seq ON documents(seq)")

            # Record schema version
            cursor.execute("INSERT OR IGNORE INTO schema_version (version, applied_at) VALUES (?, ?)",
                          (self.SCHEMA_VERSION, datetime.now().isoformat()))

            conn.commit()

    @staticmethod
    def _row_to_document(row: sqlite3.Row) -> VocabularyDocument:
        return VocabularyDocument(row["id"], json.loads(row["body"]), row["rev"])

    def _fetch(self, conn: sqlite3.Connection, doc_id: str) -> Optional[VocabularyDocument]:
        row = conn.execute("SELECT id, rev, body FROM documents WHERE id = ?", (doc_id,)).fetchone()
        return self._row_to_document(row) if row else None

    def _write(self, conn: sqlite3.Connection, doc_id: str, payload: Mapping[str, Any], revision: str) -> None:
        conn.execute(
            """
            INSERT INTO documents (id, rev, body, seq, updated_at)
            VALUES (?, ?, ?, (SELECT COALESCE(MAX(seq), 0) + 1 FROM documents), ?)
            ON CONFLICT(id) DO UPDATE SET
                rev = excluded.rev,
                body = excluded.body,
                seq = excluded.seq,
                updated_at = excluded.updated_at
            """,
            (doc_id, revision, json.dumps(payload, ensure_ascii=False), datetime.now().isoformat()),
        )

    def get(self, doc_id: str) -> VocabularyDocument:
        self._check_open()
        with self._get_connection() as conn:
            doc = self._fetch(conn, doc_id)
        if doc is None:
            raise NotFoundError(doc_id)
        return doc

    def put(self, doc_id: str, payload: Mapping[str, Any], revision: Optional[str] = None) -> str:
        self._check_open()
        with self._write_lock, self._get_connection() as conn:
            conn.execute("BEGIN IMMEDIATE")
            try:
                self._check_write(doc_id, self._fetch(conn, doc_id), revision)
            except StoreError:
                conn.rollback()
                raise
            new_rev = next_revision(revision, payload)
            self._write(conn, doc_id, payload, new_rev)
            conn.commit()
            return new_rev

    def merge(self, document: VocabularyDocument) -> bool:
        self._check_open()
        if not document.revision:
            raise StoreError(f"Cannot merge '{document.id}' without a revision")
        with self._write_lock, self._get_connection() as conn:
            conn.execute("BEGIN IMMEDIATE")
            current = self._fetch(conn, document.id)
            if (current is not None and current.revision == document.revision) or not document.wins_over(current):
                conn.rollback()
                return False
            self._write(conn, document.id, document.payload, document.revision)
            conn.commit()
            return True

    def changes(self, since: int = 0) -> List[Change]:
        self._check_open()
        with self._get_connection() as conn:
            rows = conn.execute(
                "SELECT id, rev, body, seq FROM documents WHERE seq > ? ORDER BY seq",
                (since,),
            ).fetchall()
        return [Change(row["seq"], self._row_to_document(row)) for row in rows]

    def count(self) -> int:
        """Get total document count."""
        self._check_open()
        with self._get_connection() as conn:
            return conn.execute("SELECT COUNT(*) FROM documents").fetchone()[0]


def create_document_store(
    username: str,
    backend: StorageBackend = StorageBackend.SQLITE,
    data_dir: Optional[str] = None,
) -> BaseDocumentStore:
    """
    Open (or create) the local store scoped to a username.

    Args:
        username: Non-empty username
        backend: Storage backend to use
        data_dir: Directory for SQLite files (defaults to Config.DATA_DIR)

    Returns:
        Store instance
    """
    name = StorePathGenerator.database_name(username)
    if backend == StorageBackend.MEMORY:
        return MemoryDocumentStore.open(name)
    return SQLiteDocumentStore(StorePathGenerator.database_path(username, data_dir), name=name)
