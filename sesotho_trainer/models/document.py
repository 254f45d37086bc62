"""Versioned document records and revision tokens."""

import hashlib
import json
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple


def revision_generation(revision: Optional[str]) -> int:
    """Generation number of a "N-digest" revision token (0 for None or malformed)."""
    if not revision:
        return 0
    head, _, _ = revision.partition("-")
    try:
        return int(head)
    except ValueError:
        return 0


def revision_sort_key(revision: Optional[str]) -> Tuple[int, str]:
    """
    Total order over revisions used when two replicas disagree.

    Higher generation wins; equal generations fall back to the token string
    so every replica picks the same winner.
    """
    return revision_generation(revision), revision or ""


def next_revision(previous: Optional[str], payload: Mapping[str, Any]) -> str:
    """
    Derive the revision assigned to a write.

    Args:
        previous: Revision being replaced (None on create)
        payload: Document body being written

    Returns:
        Token like "3-9f86d081884c7d659a2feaa0c55ad015"
    """
    body = json.dumps(payload, sort_keys=True, ensure_ascii=False)
    digest = hashlib.md5(f"{previous or ''}|{body}".encode("utf-8")).hexdigest()
    return f"{revision_generation(previous) + 1}-{digest}"


@dataclass
class VocabularyDocument:
    """One stored document: id, JSON payload and the revision assigned by the store."""

    id: str
    payload: Dict[str, Any] = field(default_factory=dict)
    revision: Optional[str] = None

    def to_json(self) -> Dict[str, Any]:
        """CouchDB wire form: {"_id", "_rev", "data"}."""
        doc: Dict[str, Any] = {"_id": self.id, "data": self.payload}
        if self.revision:
            doc["_rev"] = self.revision
        return doc

    @classmethod
    def from_json(cls, doc: Mapping[str, Any]) -> "VocabularyDocument":
        return cls(
            id=doc["_id"],
            payload=dict(doc.get("data") or {}),
            revision=doc.get("_rev"),
        )

    def wins_over(self, other: Optional["VocabularyDocument"]) -> bool:
        """True if this revision should replace `other` during replication."""
        if other is None:
            return True
        return revision_sort_key(self.revision) > revision_sort_key(other.revision)


@dataclass
class Change:
    """One entry of a store's change feed."""

    seq: int
    document: VocabularyDocument
