"""Replication between the local store and a remote CouchDB database."""

from .events import Active, Changed, Error, Paused, Subscription, SyncEvent, SyncEventStream
from .remote import RemoteDocumentStore
from .coordinator import SyncCoordinator

__all__ = [
    'Active',
    'Changed',
    'Error',
    'Paused',
    'Subscription',
    'SyncEvent',
    'SyncEventStream',
    'RemoteDocumentStore',
    'SyncCoordinator',
]
