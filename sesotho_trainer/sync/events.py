"""Replication events and the stream that fans them out to subscribers."""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional


@dataclass
class SyncEvent:
    """Base class for everything the Sync Coordinator reports."""

    at: datetime = field(default_factory=datetime.now, init=False)


@dataclass
class Changed(SyncEvent):
    """A remote revision replaced the local copy of a document."""

    doc_id: str = ""
    revision: Optional[str] = None


@dataclass
class Paused(SyncEvent):
    """Replication stopped making progress (usually connectivity)."""

    reason: str = ""


@dataclass
class Active(SyncEvent):
    """Replication is running again after a pause or an error."""


@dataclass
class Error(SyncEvent):
    """A replication step failed; the coordinator will retry."""

    error: Optional[BaseException] = None


class Subscription:
    """Async iterator over the events published after subscribing."""

    _CLOSED = object()

    def __init__(self, stream: "SyncEventStream"):
        self._stream = stream
        self._queue: asyncio.Queue = asyncio.Queue()

    def _push(self, item: object) -> None:
        self._queue.put_nowait(item)

    def __aiter__(self) -> "Subscription":
        return self

    async def __anext__(self) -> SyncEvent:
        item = await self._queue.get()
        if item is self._CLOSED:
            raise StopAsyncIteration
        return item

    def pending(self) -> List[SyncEvent]:
        """Drain events already queued without waiting."""
        items = []
        while not self._queue.empty():
            item = self._queue.get_nowait()
            if item is self._CLOSED:
                self._queue.put_nowait(item)
                break
            items.append(item)
        return items

    def close(self) -> None:
        """Stop receiving events; iteration ends once the queue drains."""
        self._stream.unsubscribe(self)
        self._push(self._CLOSED)


class SyncEventStream:
    """
    Publish/subscribe channel for SyncEvents.

    Every subscriber gets its own unbounded queue, so a slow consumer
    never blocks replication.
    """

    def __init__(self) -> None:
        self._subscribers: List[Subscription] = []

    def subscribe(self) -> Subscription:
        subscription = Subscription(self)
        self._subscribers.append(subscription)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        if subscription in self._subscribers:
            self._subscribers.remove(subscription)

    def emit(self, event: SyncEvent) -> None:
        for subscription in list(self._subscribers):
            subscription._push(event)

    def close(self) -> None:
        """End every subscription."""
        for subscription in list(self._subscribers):
            subscription.close()
