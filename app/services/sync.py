"""Decides when to hit the network and keeps the local cache populated."""

from __future__ import annotations

import asyncio
import logging
from contextlib import suppress
from enum import Enum

from ..config import Settings
from ..errors import CatalogError
from ..models import MovieRecord, ReviewRecord, SubResources, VideoRecord
from ..store import CatalogStore
from .events import CatalogEvents
from .tmdb import TMDBClient

logger = logging.getLogger(__name__)


class ResolutionState(str, Enum):
    UNRESOLVED = "unresolved"
    RESOLVING = "resolving"
    RESOLVED = "resolved"


class SyncEngine:
    """Coordinates the remote catalog client with the local store.

    The engine keeps no record data of its own. It only tracks which movie
    ids are being resolved or have been resolved during this process, and
    whether the base catalog has been populated.
    """

    def __init__(
        self,
        settings: Settings,
        store: CatalogStore,
        tmdb_client: TMDBClient,
        events: CatalogEvents,
    ):
        self._settings = settings
        self._store = store
        self._tmdb = tmdb_client
        self._events = events
        self._catalog_lock = asyncio.Lock()
        self._catalog_ready = False
        self._resolving: dict[int, asyncio.Task[SubResources]] = {}
        self._resolved: set[int] = set()
        self._startup_task: asyncio.Task[int] | None = None

    @property
    def catalog_ready(self) -> bool:
        return self._catalog_ready

    async def start(self) -> None:
        """Populate the catalog in the background if the store is empty."""

        if self._startup_task is None:
            self._startup_task = asyncio.create_task(self._startup_sync())

    async def stop(self) -> None:
        """Cancel startup sync and any in-flight sub-resource resolution."""

        tasks = list(self._resolving.values())
        if self._startup_task is not None:
            tasks.append(self._startup_task)
            self._startup_task = None
        for task in tasks:
            task.cancel()
        for task in tasks:
            with suppress(asyncio.CancelledError):
                await task
        self._resolving.clear()

    async def _startup_sync(self) -> int:
        try:
            return await self.ensure_catalog()
        except Exception as exc:  # pragma: no cover - background safety net
            logger.exception("Startup catalog sync failed: %s", exc)
            return 0

    # Base catalog -------------------------------------------------------------

    async def ensure_catalog(self) -> int:
        """Fetch the category lists once if nothing is cached yet.

        Returns the number of movie records written. Concurrent callers are
        serialized so only the first one ever reaches the network; later
        callers see the populated store and return ``0``.
        """

        if self._catalog_ready:
            return 0
        async with self._catalog_lock:
            if self._catalog_ready:
                return 0
            if await self._store.count_movies() > 0:
                logger.info("Catalog already cached; skipping remote sync")
                self._catalog_ready = True
                return 0
            written = await self._sync_categories()
            self._catalog_ready = await self._store.count_movies() > 0
            return written

    async def refresh_catalog(self) -> int:
        """Re-fetch every category regardless of what is cached.

        Flags are merged on write, so favorites and flags from other
        categories survive the refresh.
        """

        async with self._catalog_lock:
            written = await self._sync_categories()
            self._catalog_ready = self._catalog_ready or await self._store.count_movies() > 0
            return written

    async def _sync_categories(self) -> int:
        written = 0
        for category in self._settings.catalog_categories:
            try:
                movies = await self._tmdb.fetch_category(category)
            except CatalogError as exc:
                logger.warning("Catalog sync for %s failed: %s", category, exc)
                continue
            for movie in movies:
                await self._store.upsert_movie(movie)
                written += 1
        if written:
            self._events.publish("catalog")
        logger.info("Catalog sync stored %d movie records", written)
        return written

    # Favorites ----------------------------------------------------------------

    async def toggle_favorite(self, movie_id: int) -> MovieRecord:
        """Flip the favorite flag atomically; raises ``NotFound`` for unknown ids."""

        record = await self._store.modify_movie(
            movie_id, lambda movie: movie.with_flags(favorite=not movie.favorite)
        )
        logger.info("Movie %s favorite set to %s", movie_id, record.favorite)
        self._events.publish("movie", movie_id)
        return record

    # Sub-resources ------------------------------------------------------------

    def resolution_state(self, movie_id: int) -> ResolutionState:
        if movie_id in self._resolved:
            return ResolutionState.RESOLVED
        if movie_id in self._resolving:
            return ResolutionState.RESOLVING
        return ResolutionState.UNRESOLVED

    async def ensure_sub_resources(self, movie_id: int) -> SubResources:
        """Return trailers and reviews, fetching them at most once per process.

        Concurrent callers for the same id share a single resolution task.
        Raises ``NotFound`` for ids that are not in the store.
        """

        if movie_id in self._resolved:
            return await self._load_cached(movie_id)

        task = self._resolving.get(movie_id)
        if task is None:
            task = asyncio.create_task(self._resolve(movie_id))
            self._resolving[movie_id] = task
            task.add_done_callback(lambda _, key=movie_id: self._resolving.pop(key, None))
        return await asyncio.shield(task)

    async def _resolve(self, movie_id: int) -> SubResources:
        await self._store.get_movie(movie_id)
        videos = await self._store.get_videos(movie_id)
        reviews = await self._store.get_reviews(movie_id)
        if videos and reviews:
            logger.debug("Serving cached sub-resources for movie %s", movie_id)
            self._resolved.add(movie_id)
            return SubResources(movie_id=movie_id, videos=tuple(videos), reviews=tuple(reviews))

        failed = False
        written = 0
        if not videos:
            try:
                fetched_videos = await self._tmdb.fetch_videos(movie_id)
            except CatalogError as exc:
                logger.warning("Video fetch for movie %s failed: %s", movie_id, exc)
                failed = True
            else:
                videos = await self._store_videos(fetched_videos)
                written += len(videos)
        if not reviews:
            try:
                fetched_reviews = await self._tmdb.fetch_reviews(movie_id)
            except CatalogError as exc:
                logger.warning("Review fetch for movie %s failed: %s", movie_id, exc)
                failed = True
            else:
                reviews = await self._store_reviews(fetched_reviews)
                written += len(reviews)

        if failed:
            # Leave the id unresolved so a later request can retry.
            logger.info("Sub-resources for movie %s remain unresolved", movie_id)
        else:
            self._resolved.add(movie_id)
        if written:
            self._events.publish("sub_resources", movie_id)
        return SubResources(movie_id=movie_id, videos=tuple(videos), reviews=tuple(reviews))

    async def _store_videos(self, videos: list[VideoRecord]) -> list[VideoRecord]:
        stored: list[VideoRecord] = []
        for video in videos:
            if not video.is_trailer or not video.image_url:
                continue
            stored.append(await self._store.add_video(video))
        return stored

    async def _store_reviews(self, reviews: list[ReviewRecord]) -> list[ReviewRecord]:
        return [await self._store.add_review(review) for review in reviews]

    async def _load_cached(self, movie_id: int) -> SubResources:
        videos, reviews = await asyncio.gather(
            self._store.get_videos(movie_id), self._store.get_reviews(movie_id)
        )
        return SubResources(movie_id=movie_id, videos=tuple(videos), reviews=tuple(reviews))
