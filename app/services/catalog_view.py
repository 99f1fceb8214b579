"""Read-only merged listings over the cached catalog."""

from __future__ import annotations

import logging
from typing import AsyncIterator

from ..models import CatalogFilters, CatalogSnapshot, MovieRecord
from ..store import CatalogStore
from .events import CatalogEvents

logger = logging.getLogger(__name__)


class CatalogView:
    """Projects store contents through the enabled category filters."""

    def __init__(self, store: CatalogStore, events: CatalogEvents):
        self._store = store
        self._events = events

    async def query(self, filters: CatalogFilters | None = None) -> CatalogSnapshot:
        """Return the merged listing for ``filters``.

        Lists are concatenated popular, top rated, then favorites; a movie in
        more than one list keeps its first position.
        """

        filters = filters or CatalogFilters()
        version = self._events.version
        seen: set[int] = set()
        merged: list[MovieRecord] = []
        for name in filters.active():
            for movie in await self._load(name):
                if movie.id in seen:
                    continue
                seen.add(movie.id)
                merged.append(movie)
        return CatalogSnapshot(filters=filters, movies=tuple(merged), version=version)

    async def subscribe(
        self, filters: CatalogFilters | None = None
    ) -> AsyncIterator[CatalogSnapshot]:
        """Yield the current listing, then a fresh one after every change."""

        filters = filters or CatalogFilters()
        with self._events.subscribe() as subscription:
            yield await self.query(filters)
            async for event in subscription:
                logger.debug("Re-reading catalog after %s event v%d", event.kind, event.version)
                yield await self.query(filters)

    async def _load(self, name: str) -> list[MovieRecord]:
        if name == "popular":
            return await self._store.query_movies(popular=True)
        if name == "toprated":
            return await self._store.query_movies(toprated=True)
        if name == "favorites":
            return await self._store.query_movies(favorite=True)
        raise ValueError(f"Unknown catalog filter: {name}")
