"""Exception hierarchy shared by the model, store, sync and UI layers."""

from typing import Optional


class TrainerError(Exception):
    """Base class for every error the trainer reports to the user."""


class NoUsernameError(TrainerError):
    """Raised when a store operation needs a username and none is active."""

    def __init__(self, message: str = "Please choose a username first!"):
        super().__init__(message)


class ValidationError(TrainerError):
    """Raised when a word entry misses a required field."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class InsufficientVocabularyError(TrainerError):
    """Raised when a phrase is requested without a pronoun, verb and noun."""

    def __init__(self, message: str = "Please add at least one pronoun, verb, and noun."):
        super().__init__(message)


class StoreError(TrainerError):
    """Generic local or remote document store failure."""


class NotFoundError(StoreError):
    """The requested document does not exist."""

    def __init__(self, doc_id: str):
        super().__init__(f"Document '{doc_id}' not found")
        self.doc_id = doc_id


class ConflictError(StoreError):
    """A write carried a stale or missing revision."""

    def __init__(self, doc_id: str, revision: Optional[str] = None):
        super().__init__(f"Document update conflict on '{doc_id}' (revision {revision!r})")
        self.doc_id = doc_id
        self.revision = revision


class SyncError(TrainerError):
    """Replication with the remote store failed."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status
