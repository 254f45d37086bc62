"""
Vocabulary Service - binds one user's vocabulary to one versioned document.

Separates data access logic from UI layer, enabling:
- Per-user local stores (SQLite or memory)
- Optimistic concurrency through revision tokens
- Reload on remote changes when replication is enabled
"""

import asyncio
import functools
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, List, Mapping, Optional, Union, TYPE_CHECKING

import pandas as pd

from ..config import Config
from ..errors import ConflictError, NoUsernameError, NotFoundError, StoreError, ValidationError
from ..models.document import VocabularyDocument
from ..models.vocabulary import Category, VocabularySet, WordEntry
from ..utils.parsing import TextParser
from .document_store import BaseDocumentStore, StorageBackend, create_document_store

if TYPE_CHECKING:
    from ..sync import RemoteDocumentStore, Subscription, SyncCoordinator, SyncEvent

logger = logging.getLogger(__name__)


@dataclass
class VocabularySession:
    """Everything bound to the active username."""

    username: str
    store: BaseDocumentStore
    doc_id: str = Config.DOC_ID
    vocabulary: VocabularySet = field(default_factory=VocabularySet)
    revision: Optional[str] = None
    loaded: bool = False
    coordinator: Optional["SyncCoordinator"] = None


class VocabularyService:
    """
    Document store adapter for the vocabulary.

    Holds an explicit session (username, store, in-memory vocabulary, last
    seen revision). open() rebinds it, load() and save() move the
    vocabulary between memory and the store.

    Usage:
        service = VocabularyService()
        await service.open("thabo")
        await service.load()
        service.add_word("noun", {...})
        await service.save()
    """

    # Thread pool for blocking I/O operations
    _executor = ThreadPoolExecutor(max_workers=2)

    def __init__(
        self,
        backend: StorageBackend = StorageBackend.SQLITE,
        data_dir: Optional[str] = None,
        doc_id: Optional[str] = None,
    ):
        """
        Initialize vocabulary service.

        Args:
            backend: Storage backend to use (SQLite or memory)
            data_dir: Directory for SQLite stores (defaults to Config.DATA_DIR)
            doc_id: Id of the vocabulary document (defaults to Config.DOC_ID)
        """
        self.backend = backend
        self.data_dir = data_dir
        self.doc_id = doc_id or Config.DOC_ID

        self._session: Optional[VocabularySession] = None
        self._subscription: Optional["Subscription"] = None
        self._events_task: Optional[asyncio.Task] = None
        self._change_callbacks: List[Callable[[], None]] = []
        self.sync_status: str = "disabled"

    async def _run(self, func: Callable, *args: Any) -> Any:
        """Run a blocking store call in the thread pool."""
        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(self._executor, functools.partial(func, *args))

    # ==================== Session ====================

    @property
    def session(self) -> Optional[VocabularySession]:
        return self._session

    @property
    def username(self) -> Optional[str]:
        return self._session.username if self._session else None

    def require_session(self) -> VocabularySession:
        """Active session, or NoUsernameError."""
        if self._session is None:
            raise NoUsernameError()
        return self._session

    @property
    def vocabulary(self) -> VocabularySet:
        return self.require_session().vocabulary

    @property
    def revision(self) -> Optional[str]:
        return self.require_session().revision

    def on_change(self, callback: Callable[[], None]) -> None:
        """
        Register a callback for vocabulary or sync status changes.

        Args:
            callback: Function to call when data changes
        """
        self._change_callbacks.append(callback)

    def _notify_change(self) -> None:
        """Notify all registered callbacks of data change."""
        for callback in self._change_callbacks:
            try:
                callback()
            except Exception:
                logger.exception("Change callback %r failed", callback)

    async def open(self, username: Optional[str]) -> VocabularySession:
        """
        Bind the service to the local store of a username.

        Opening the active username again returns the same session. Opening
        another one stops replication and closes the previous store; its
        in-memory state is dropped, not migrated.

        Args:
            username: Free-text username

        Returns:
            The active session

        Raises:
            NoUsernameError: username is empty or missing
            StoreError: the local store cannot be opened
        """
        name = TextParser.clean_field(username)
        if not name:
            raise NoUsernameError("Please enter a username")

        current = self._session
        if current is not None and current.username == name and not current.store.closed:
            return current

        await self._discard_session()
        store = await self._run(create_document_store, name, self.backend, self.data_dir)
        self._session = VocabularySession(username=name, store=store, doc_id=self.doc_id)
        logger.info("Opened store %s for user %s", store.name, name)
        self._notify_change()
        return self._session

    async def _discard_session(self) -> None:
        session = self._session
        if session is None:
            return
        await self.stop_sync()
        session.store.close()
        self._session = None

    async def close(self) -> None:
        """Stop replication and close the active store."""
        await self._discard_session()

    # ==================== Load / Save ====================

    async def load(self) -> VocabularySet:
        """
        Load the vocabulary document into memory.

        A missing document is created empty, which also establishes its
        first revision. On any other failure the in-memory vocabulary is
        left as it was.

        Returns:
            The loaded vocabulary

        Raises:
            NoUsernameError: no session is open
            StoreError: the store could not be read
        """
        session = self.require_session()
        try:
            doc = await self._run(session.store.get, session.doc_id)
        except NotFoundError:
            doc = await self._create_empty(session)
        except StoreError as e:
            logger.error("Loading %s for %s failed: %s", session.doc_id, session.username, e)
            raise

        try:
            vocabulary = VocabularySet.from_dict(doc.payload)
        except Exception as e:
            logger.exception("Cannot read %s@%s for %s", doc.id, doc.revision, session.username)
            raise StoreError(f"Document '{doc.id}' is unreadable: {e}") from e

        session.vocabulary = vocabulary
        session.revision = doc.revision
        session.loaded = True
        logger.debug("Loaded %s@%s (%d words)", doc.id, doc.revision, session.vocabulary.count())
        self._notify_change()
        return session.vocabulary

    async def _create_empty(self, session: VocabularySession) -> VocabularyDocument:
        payload = VocabularySet().to_dict()
        try:
            revision = await self._run(session.store.put, session.doc_id, payload, None)
        except ConflictError:
            # Created by someone else (e.g. replication) since our get
            return await self._run(session.store.get, session.doc_id)
        except StoreError as e:
            logger.error("Creating %s for %s failed: %s", session.doc_id, session.username, e)
            raise
        logger.info("Created empty vocabulary for %s", session.username)
        return VocabularyDocument(session.doc_id, payload, revision)

    async def save(self) -> str:
        """
        Write the in-memory vocabulary with the last known revision.

        On success the cached revision advances. A missing document is
        retried once as a create. Failures leave the in-memory vocabulary
        untouched, so the edit can be saved later.

        Returns:
            The new revision

        Raises:
            NoUsernameError: no session is open
            ConflictError: the stored revision moved on (stale write)
            StoreError: any other store failure
        """
        session = self.require_session()
        payload = session.vocabulary.to_dict()
        try:
            try:
                revision = await self._run(session.store.put, session.doc_id, payload, session.revision)
            except NotFoundError:
                logger.info("%s vanished from %s, creating it", session.doc_id, session.store.name)
                revision = await self._run(session.store.put, session.doc_id, payload, None)
        except ConflictError as e:
            logger.warning("Save conflict for %s: %s", session.username, e)
            raise
        except StoreError as e:
            logger.error("Saving %s for %s failed: %s", session.doc_id, session.username, e)
            raise

        session.revision = revision
        return revision

    # ==================== Vocabulary ====================

    def add_word(self, category: Union[Category, str], entry: Union[WordEntry, Mapping[str, Any]]) -> WordEntry:
        """
        Append a word to the active vocabulary (not yet saved).

        Raises:
            NoUsernameError: no session is open
            ValidationError: the entry is incomplete
        """
        session = self.require_session()
        stored = session.vocabulary.add(category, entry)
        self._notify_change()
        return stored

    def get_statistics(self) -> dict:
        """Word counts per collection, zero when no session is open."""
        if self._session is None:
            return VocabularySet().statistics()
        return self._session.vocabulary.statistics()

    def export_to_csv(self, csv_path: str) -> int:
        """
        Export the active vocabulary to a '|' separated CSV file.

        Returns:
            Number of rows written
        """
        df = self.vocabulary.to_dataframe()
        try:
            Path(csv_path).parent.mkdir(parents=True, exist_ok=True)
            df.to_csv(csv_path, sep='|', index=False, encoding='utf-8-sig')
        except OSError as e:
            logger.error("Export to %s failed: %s", csv_path, e)
            raise StoreError(f"Cannot write {csv_path}: {e}") from e
        return len(df)

    async def import_from_csv(self, csv_path: str) -> int:
        """
        Append words from a CSV made by export_to_csv() and save.

        Invalid rows are skipped with a warning.

        Returns:
            Number of rows imported
        """
        session = self.require_session()
        try:
            df = await self._run(functools.partial(
                pd.read_csv, csv_path, sep='|', encoding='utf-8-sig', dtype=str, keep_default_na=False,
            ))
        except (OSError, pd.errors.ParserError) as e:
            logger.error("Import from %s failed: %s", csv_path, e)
            raise StoreError(f"Cannot read {csv_path}: {e}") from e

        imported = 0
        for line, (category, values) in enumerate(VocabularySet.iter_rows(df), start=2):
            try:
                session.vocabulary.add(category, values)
                imported += 1
            except ValidationError as e:
                logger.warning("Skipping %s line %d: %s", csv_path, line, e)

        if imported:
            self._notify_change()
            await self.save()
        return imported

    # ==================== Sync ====================

    async def start_sync(self, remote: Optional["RemoteDocumentStore"] = None, **options: Any) -> "SyncCoordinator":
        """
        Replicate the active store with a remote database.

        Remote changes to the vocabulary document trigger load().

        Args:
            remote: Remote client (defaults to the configured server)
            **options: Passed to SyncCoordinator

        Returns:
            The running coordinator
        """
        from ..sync import RemoteDocumentStore, SyncCoordinator

        session = self.require_session()
        if session.coordinator is not None:
            return session.coordinator

        if remote is None:
            if not Config.REMOTE_URL:
                raise StoreError("No remote URL configured (set COUCHDB_URL)")
            remote = RemoteDocumentStore.for_user(session.username)

        coordinator = SyncCoordinator(session.store, remote, **options)
        session.coordinator = coordinator
        self._subscription = coordinator.events.subscribe()
        self._events_task = asyncio.create_task(self._consume_events(session, self._subscription))
        self.sync_status = "starting"
        await coordinator.start()
        self._notify_change()
        return coordinator

    async def stop_sync(self) -> None:
        """Stop replication of the active session, if running."""
        session = self._session
        if session is None or session.coordinator is None:
            return
        coordinator, session.coordinator = session.coordinator, None
        await coordinator.stop()
        if self._events_task is not None:
            self._events_task.cancel()
            await asyncio.gather(self._events_task, return_exceptions=True)
        self._events_task = None
        self._subscription = None
        self.sync_status = "disabled"

    async def _consume_events(self, session: VocabularySession, subscription: "Subscription") -> None:
        async for event in subscription:
            await self.handle_sync_event(event, session)

    async def handle_sync_event(self, event: "SyncEvent", session: Optional[VocabularySession] = None) -> None:
        """
        React to one replication event.

        Changed for the tracked document reloads it (last writer wins, any
        unsaved in-memory additions are replaced). Status events update
        sync_status.
        """
        from ..sync import Active, Changed, Error, Paused

        session = session or self._session
        if session is None or session is not self._session:
            return

        if isinstance(event, Changed):
            if event.doc_id != session.doc_id or event.revision == session.revision:
                return
            logger.info("Remote change to %s (%s), reloading", event.doc_id, event.revision)
            try:
                await self.load()
            except StoreError:
                logger.warning("Reload after remote change failed, keeping current vocabulary")
            except Exception:
                logger.exception("Unexpected error reloading %s, keeping current vocabulary", event.doc_id)
            return

        if isinstance(event, Paused):
            self.sync_status = "paused"
        elif isinstance(event, Active):
            self.sync_status = "active"
        elif isinstance(event, Error):
            self.sync_status = "error"
        self._notify_change()
