"""Remote document store - CouchDB HTTP API client used for replication."""

import asyncio
import logging
import urllib.parse
from typing import Any, Dict, List, Optional, Sequence, Tuple

import aiohttp

from ..config import Config
from ..errors import ConflictError, NotFoundError, SyncError
from ..models.document import VocabularyDocument
from ..utils.paths import StorePathGenerator

logger = logging.getLogger(__name__)


class RemoteDocumentStore:
    """
    Async client for one CouchDB (or PouchDB-server) database.

    Exposes the same get/put contract as the local stores plus the change
    feed and replicated bulk writes the Sync Coordinator needs. Connection
    failures surface as aiohttp/asyncio exceptions so the coordinator can
    tell "offline" apart from real errors.
    """

    def __init__(
        self,
        base_url: str,
        db_name: str,
        username: Optional[str] = None,
        password: Optional[str] = None,
        timeout: Optional[int] = None,
    ):
        """
        Initialize remote store.

        Args:
            base_url: Server URL, e.g. "https://couch.example.org"
            db_name: Database name
            username: Basic auth user (optional)
            password: Basic auth password (optional)
            timeout: Request timeout in seconds (defaults to Config.TIMEOUT)
        """
        self.base_url = base_url.rstrip("/")
        self.db_name = db_name
        self._auth = aiohttp.BasicAuth(username, password or "") if username else None
        self._timeout = timeout or Config.TIMEOUT
        self._session: Optional[aiohttp.ClientSession] = None
        self._session_lock = asyncio.Lock()

    @classmethod
    def for_user(
        cls,
        username: str,
        base_url: Optional[str] = None,
        remote_username: Optional[str] = None,
        remote_password: Optional[str] = None,
    ) -> "RemoteDocumentStore":
        """Create the client for the database scoped to a trainer username."""
        return cls(
            base_url or Config.REMOTE_URL,
            StorePathGenerator.database_name(username),
            username=remote_username if remote_username is not None else Config.REMOTE_USERNAME,
            password=remote_password if remote_password is not None else Config.REMOTE_PASSWORD,
        )

    @property
    def db_url(self) -> str:
        return f"{self.base_url}/{urllib.parse.quote(self.db_name, safe='')}"

    def _doc_url(self, doc_id: str) -> str:
        return f"{self.db_url}/{urllib.parse.quote(doc_id, safe='')}"

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create a shared aiohttp session (connection pooling)."""
        async with self._session_lock:
            if self._session is None or self._session.closed:
                # Long-poll requests stay open up to LONGPOLL_TIMEOUT, leave headroom
                timeout = aiohttp.ClientTimeout(total=self._timeout + Config.LONGPOLL_TIMEOUT)
                self._session = aiohttp.ClientSession(
                    auth=self._auth,
                    timeout=timeout,
                    headers={"Accept": "application/json"},
                )
            return self._session

    async def close(self) -> None:
        """Close the aiohttp session. Call this when done with the store."""
        async with self._session_lock:
            if self._session and not self._session.closed:
                await self._session.close()
                self._session = None

    async def __aenter__(self) -> "RemoteDocumentStore":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit - ensure session is closed."""
        await self.close()

    @staticmethod
    async def _error(response: aiohttp.ClientResponse, action: str) -> SyncError:
        text = await response.text()
        return SyncError(f"{action} failed with HTTP {response.status}: {text[:200]}", status=response.status)

    async def ensure_database(self) -> bool:
        """
        Create the database if it does not exist.

        Returns:
            True if it was created, False if it already existed
        """
        session = await self._get_session()
        async with session.put(self.db_url) as response:
            if response.status in (201, 202):
                logger.info("Created remote database %s", self.db_name)
                return True
            if response.status == 412:
                return False
            raise await self._error(response, f"Creating database {self.db_name}")

    async def get(self, doc_id: str) -> VocabularyDocument:
        """Fetch a document. Raises NotFoundError if absent."""
        session = await self._get_session()
        async with session.get(self._doc_url(doc_id)) as response:
            if response.status == 200:
                return VocabularyDocument.from_json(await response.json())
            if response.status == 404:
                raise NotFoundError(doc_id)
            raise await self._error(response, f"Fetching {doc_id}")

    async def put(self, doc_id: str, payload: Dict[str, Any], revision: Optional[str] = None) -> str:
        """Write a document with optimistic concurrency and return its new revision."""
        session = await self._get_session()
        body = VocabularyDocument(doc_id, payload, revision).to_json()
        async with session.put(self._doc_url(doc_id), json=body) as response:
            if response.status in (200, 201, 202):
                data = await response.json()
                return data["rev"]
            if response.status == 409:
                raise ConflictError(doc_id, revision)
            if response.status == 404:
                raise NotFoundError(doc_id)
            raise await self._error(response, f"Saving {doc_id}")

    async def changes(self, since: Any = 0, timeout: Optional[float] = None) -> Tuple[List[VocabularyDocument], Any]:
        """
        Read the change feed, long-polling until something changes.

        Args:
            since: Opaque sequence returned by the previous call
            timeout: Seconds the server may hold the request (defaults to
                     Config.LONGPOLL_TIMEOUT)

        Returns:
            (documents, last_seq) - deleted and design documents are skipped
        """
        wait = Config.LONGPOLL_TIMEOUT if timeout is None else timeout
        params = {
            "feed": "longpoll",
            "since": str(since),
            "include_docs": "true",
            "timeout": str(int(wait * 1000)),
        }
        session = await self._get_session()
        async with session.get(f"{self.db_url}/_changes", params=params) as response:
            if response.status != 200:
                raise await self._error(response, "Reading changes")
            data = await response.json()

        documents = []
        for result in data.get("results", []):
            doc = result.get("doc")
            if not doc or result.get("deleted") or str(result.get("id", "")).startswith("_design/"):
                continue
            documents.append(VocabularyDocument.from_json(doc))
        return documents, data.get("last_seq", since)

    async def replicate(self, documents: Sequence[VocabularyDocument]) -> None:
        """
        Write revisions produced elsewhere, keeping their revision ids.

        Uses _bulk_docs with new_edits=false, which never conflicts: the
        server stores the revision and picks the winner itself.
        """
        if not documents:
            return
        session = await self._get_session()
        body = {"docs": [doc.to_json() for doc in documents], "new_edits": False}
        async with session.post(f"{self.db_url}/_bulk_docs", json=body) as response:
            if response.status not in (200, 201, 202):
                raise await self._error(response, "Replicating documents")
