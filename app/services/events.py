"""In-process notifications about catalog changes."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Literal

logger = logging.getLogger(__name__)

EventKind = Literal["catalog", "movie", "sub_resources"]


@dataclass(frozen=True, slots=True)
class CatalogEvent:
    """Describes a committed change to the store."""

    kind: EventKind
    version: int
    movie_id: int | None = None


class Subscription:
    """A registered listener holding at most one undelivered event."""

    def __init__(self, hub: "CatalogEvents"):
        self._hub = hub
        self._mailbox: asyncio.Queue[CatalogEvent] = asyncio.Queue(maxsize=1)
        self._closed = False

    def _deliver(self, event: CatalogEvent) -> None:
        try:
            self._mailbox.get_nowait()
        except asyncio.QueueEmpty:
            pass
        self._mailbox.put_nowait(event)

    def pending(self) -> CatalogEvent | None:
        try:
            return self._mailbox.get_nowait()
        except asyncio.QueueEmpty:
            return None

    async def next(self) -> CatalogEvent:
        return await self._mailbox.get()

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            self._hub._unsubscribe(self)

    def __aiter__(self) -> "Subscription":
        return self

    async def __anext__(self) -> CatalogEvent:
        if self._closed:
            raise StopAsyncIteration
        return await self.next()

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class CatalogEvents:
    """Publish/subscribe hub with last-value-wins delivery.

    Publishing replaces whatever a subscriber has not consumed yet, so slow
    subscribers only ever see the newest event and missed events are never
    buffered.
    """

    def __init__(self) -> None:
        self._subscriptions: set[Subscription] = set()
        self._version = 0

    @property
    def version(self) -> int:
        return self._version

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    def subscribe(self) -> Subscription:
        subscription = Subscription(self)
        self._subscriptions.add(subscription)
        return subscription

    def _unsubscribe(self, subscription: Subscription) -> None:
        self._subscriptions.discard(subscription)

    def publish(self, kind: EventKind, movie_id: int | None = None) -> CatalogEvent:
        self._version += 1
        event = CatalogEvent(kind=kind, version=self._version, movie_id=movie_id)
        for subscription in tuple(self._subscriptions):
            subscription._deliver(event)
        logger.debug(
            "Published %s event v%d to %d subscribers",
            kind,
            event.version,
            len(self._subscriptions),
        )
        return event
