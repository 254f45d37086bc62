"""
Sync Coordinator - continuous bidirectional replication.

Pull: remote change feed -> local store (merge, winner by revision).
Push: local change feed -> remote (_bulk_docs, revisions kept).

Both directions run as independent asyncio tasks with their own backoff.
Nothing here is fatal: connectivity problems pause replication, other
errors are logged and reported as events, and the local store stays
usable throughout.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

import aiohttp

from ..config import Config
from ..services.document_store import BaseDocumentStore
from .events import Active, Changed, Error, Paused, SyncEventStream
from .remote import RemoteDocumentStore

logger = logging.getLogger(__name__)

# Exceptions meaning "remote unreachable" rather than "remote said no"
OFFLINE_ERRORS = (aiohttp.ClientConnectionError, asyncio.TimeoutError, ConnectionError)

# (contacted_remote, made_progress)
StepResult = Tuple[bool, bool]


class SyncCoordinator:
    """
    Replicates one local store against one remote database.

    Usage:
        coordinator = SyncCoordinator(store, RemoteDocumentStore.for_user("thabo"))
        subscription = coordinator.events.subscribe()
        await coordinator.start()
        ...
        await coordinator.stop()   # teardown only
    """

    def __init__(
        self,
        local: BaseDocumentStore,
        remote: RemoteDocumentStore,
        events: Optional[SyncEventStream] = None,
        poll_interval: Optional[float] = None,
        longpoll_timeout: Optional[float] = None,
        backoff_base: float = 0.5,
        max_backoff: Optional[float] = None,
    ):
        """
        Initialize coordinator.

        Args:
            local: Local store to replicate
            remote: Remote database client (owned: closed on stop())
            events: Stream to publish on (a new one by default)
            poll_interval: Seconds to idle when a pass found nothing
            longpoll_timeout: Seconds the remote may hold a change request
            backoff_base: First retry delay in seconds
            max_backoff: Upper bound for retry delays
        """
        self.local = local
        self.remote = remote
        self.events = events or SyncEventStream()
        self.poll_interval = Config.POLL_INTERVAL if poll_interval is None else poll_interval
        self.longpoll_timeout = Config.LONGPOLL_TIMEOUT if longpoll_timeout is None else longpoll_timeout
        self.backoff_base = backoff_base
        self.max_backoff = Config.MAX_BACKOFF if max_backoff is None else max_backoff

        self._local_seq = 0
        self._remote_seq: Any = 0
        # Revisions received from the remote, not pushed back
        self._pulled: Dict[str, str] = {}
        self._db_ready = False
        self._status = "idle"
        self._tasks: List[asyncio.Task] = []

    @property
    def status(self) -> str:
        """One of "idle", "active", "paused", "error"."""
        return self._status

    @property
    def running(self) -> bool:
        return any(not task.done() for task in self._tasks)

    # ==================== Lifecycle ====================

    async def start(self) -> None:
        """Launch the pull and push loops. Calling it twice is a no-op."""
        if self.running:
            return
        logger.info("Starting replication of %s with %s", self.local.name, self.remote.db_name)
        self._tasks = [
            asyncio.create_task(self._run(self._pull, "pull")),
            asyncio.create_task(self._run(self._push, "push")),
        ]

    async def stop(self) -> None:
        """Cancel both loops, close the remote client and end the event stream."""
        for task in self._tasks:
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        await self.remote.close()
        self.events.close()
        self._status = "idle"

    async def replicate_once(self) -> Dict[str, int]:
        """
        Run one pull pass and one push pass.

        Errors propagate to the caller instead of being retried.

        Returns:
            {"pulled": documents received, "pushed": documents sent}
        """
        pulled = await self._pull_documents()
        pushed = await self._push_documents()
        self._on_success()
        return {"pulled": pulled, "pushed": pushed}

    # ==================== Loops ====================

    def _backoff_delay(self, failures: int) -> float:
        """Exponential backoff: 0.5s, 1s, 2s, 4s, 8s... capped at max_backoff."""
        if failures == 0:
            return 0.0
        return min(self.max_backoff, self.backoff_base * (2 ** min(failures - 1, 5)))

    async def _run(self, step: Callable[[], Awaitable[StepResult]], label: str) -> None:
        failures = 0
        while True:
            try:
                contacted, progressed = await step()
            except asyncio.CancelledError:
                raise
            except OFFLINE_ERRORS as e:
                failures += 1
                self._on_offline(e, label)
                await asyncio.sleep(self._backoff_delay(failures))
                continue
            except Exception as e:
                failures += 1
                self._on_error(e, label)
                await asyncio.sleep(self._backoff_delay(failures))
                continue

            failures = 0
            if contacted:
                self._on_success()
            if not progressed:
                await asyncio.sleep(self.poll_interval)

    async def _pull(self) -> StepResult:
        pulled = await self._pull_documents()
        return True, pulled > 0

    async def _push(self) -> StepResult:
        pushed = await self._push_documents()
        return pushed > 0, pushed > 0

    async def _pull_documents(self) -> int:
        """Merge remote changes into the local store; emit Changed per replaced document."""
        if not self._db_ready:
            await self.remote.ensure_database()
            self._db_ready = True

        documents, last_seq = await self.remote.changes(since=self._remote_seq, timeout=self.longpoll_timeout)
        loop = asyncio.get_event_loop()
        for doc in documents:
            changed = await loop.run_in_executor(None, self.local.merge, doc)
            self._pulled[doc.id] = doc.revision
            if changed:
                logger.debug("Pulled %s@%s into %s", doc.id, doc.revision, self.local.name)
                self.events.emit(Changed(doc_id=doc.id, revision=doc.revision))
        self._remote_seq = last_seq
        return len(documents)

    async def _push_documents(self) -> int:
        """Send local revisions written since the last push."""
        loop = asyncio.get_event_loop()
        changes = await loop.run_in_executor(None, self.local.changes, self._local_seq)
        if not changes:
            return 0
        outgoing = [c.document for c in changes if self._pulled.get(c.document.id) != c.document.revision]
        if not outgoing:
            self._local_seq = changes[-1].seq
            return 0

        if not self._db_ready:
            await self.remote.ensure_database()
            self._db_ready = True

        await self.remote.replicate(outgoing)
        self._local_seq = changes[-1].seq
        logger.debug("Pushed %d document(s) from %s", len(outgoing), self.local.name)
        return len(outgoing)

    # ==================== State & events ====================

    def _on_success(self) -> None:
        if self._status != "active":
            if self._status in ("paused", "error"):
                logger.info("Replication of %s resumed", self.local.name)
            self._status = "active"
            self.events.emit(Active())

    def _on_offline(self, error: BaseException, label: str) -> None:
        if self._status != "paused":
            logger.warning("Replication %s paused, remote unreachable: %s", label, error)
            self._status = "paused"
            self.events.emit(Paused(reason=str(error) or type(error).__name__))

    def _on_error(self, error: BaseException, label: str) -> None:
        logger.error("Replication %s failed: %s", label, error)
        self._status = "error"
        self.events.emit(Error(error=error))
