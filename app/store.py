"""Durable storage for cached movies, trailers and reviews."""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable

from sqlalchemy import delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from .db_models import MovieRow, ReviewRow, VideoRow
from .errors import NotFound
from .models import TRAILER_TYPE, MovieRecord, ReviewRecord, VideoRecord

logger = logging.getLogger(__name__)

MovieMutation = Callable[[MovieRecord], MovieRecord]


class CatalogStore:
    """Keyed storage for the three record kinds backed by SQLAlchemy.

    Every public method runs in its own session and commits before returning,
    so callers always observe committed state. Writes that touch a movie row
    are serialized per movie id; writes for different ids and all reads
    proceed without waiting on each other.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory
        self._locks: dict[int, asyncio.Lock] = {}
        self._lock_users: dict[int, int] = {}

    @asynccontextmanager
    async def _movie_lock(self, movie_id: int) -> AsyncIterator[None]:
        lock = self._locks.setdefault(movie_id, asyncio.Lock())
        self._lock_users[movie_id] = self._lock_users.get(movie_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            # Forget the lock once nobody holds or waits for it.
            remaining = self._lock_users.pop(movie_id) - 1
            if remaining:
                self._lock_users[movie_id] = remaining
            else:
                del self._locks[movie_id]

    # Movies -----------------------------------------------------------------

    async def upsert_movie(self, record: MovieRecord) -> MovieRecord:
        """Insert or update a movie, OR-ing its flags with any stored copy."""

        async with self._movie_lock(record.id):
            async with self._session_factory() as session:
                row = await session.get(MovieRow, record.id)
                if row is not None:
                    record = record.merged_with(MovieRecord.model_validate(row))
                stored = await self._write_movie(session, record, row)
                await session.commit()
        return stored

    async def replace_movie(self, record: MovieRecord) -> MovieRecord:
        """Replace the stored movie by key without merging flags."""

        async with self._movie_lock(record.id):
            async with self._session_factory() as session:
                row = await session.get(MovieRow, record.id)
                stored = await self._write_movie(session, record, row)
                await session.commit()
        return stored

    async def modify_movie(self, movie_id: int, mutate: MovieMutation) -> MovieRecord:
        """Atomically read, transform and write back a movie."""

        async with self._movie_lock(movie_id):
            async with self._session_factory() as session:
                row = await session.get(MovieRow, movie_id)
                if row is None:
                    raise NotFound("Movie", movie_id)
                current = MovieRecord.model_validate(row)
                updated = mutate(current)
                if updated.id != movie_id:
                    raise ValueError("Movie mutations may not change the id")
                stored = await self._write_movie(session, updated, row)
                await session.commit()
        return stored

    async def delete_movie(self, movie_id: int) -> bool:
        """Remove a movie; returns whether a row was deleted."""

        async with self._movie_lock(movie_id):
            async with self._session_factory() as session:
                result = await session.execute(
                    delete(MovieRow).where(MovieRow.id == movie_id)
                )
                await session.commit()
        return bool(result.rowcount)

    async def get_movie(self, movie_id: int) -> MovieRecord:
        record = await self.find_movie(movie_id)
        if record is None:
            raise NotFound("Movie", movie_id)
        return record

    async def find_movie(self, movie_id: int) -> MovieRecord | None:
        async with self._session_factory() as session:
            row = await session.get(MovieRow, movie_id)
            if row is None:
                return None
            return MovieRecord.model_validate(row)

    async def query_movies(
        self,
        *,
        favorite: bool | None = None,
        popular: bool | None = None,
        toprated: bool | None = None,
    ) -> list[MovieRecord]:
        """Return movies carrying any of the flags requested as ``True``."""

        conditions = []
        if favorite:
            conditions.append(MovieRow.favorite.is_(True))
        if popular:
            conditions.append(MovieRow.popular.is_(True))
        if toprated:
            conditions.append(MovieRow.toprated.is_(True))
        if not conditions:
            return []

        stmt = (
            select(MovieRow)
            .where(or_(*conditions))
            .order_by(MovieRow.popularity.desc(), MovieRow.id)
        )
        return await self._select_movies(stmt)

    async def all_movies(self) -> list[MovieRecord]:
        stmt = select(MovieRow).order_by(MovieRow.popularity.desc(), MovieRow.id)
        return await self._select_movies(stmt)

    async def count_movies(self) -> int:
        async with self._session_factory() as session:
            result = await session.execute(select(func.count()).select_from(MovieRow))
            return int(result.scalar_one())

    async def _select_movies(self, stmt) -> list[MovieRecord]:
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            rows = result.scalars().all()
            return [MovieRecord.model_validate(row) for row in rows]

    @staticmethod
    async def _write_movie(
        session: AsyncSession, record: MovieRecord, row: MovieRow | None
    ) -> MovieRecord:
        values = record.model_dump()
        if row is None:
            row = MovieRow(**values)
            session.add(row)
        else:
            for field, value in values.items():
                setattr(row, field, value)
        await session.flush()
        return MovieRecord.model_validate(row)

    # Videos -----------------------------------------------------------------

    async def add_video(self, record: VideoRecord) -> VideoRecord:
        """Persist a video and return it with its generated identity."""

        async with self._session_factory() as session:
            values = record.model_dump(exclude={"identity"})
            if record.identity is not None:
                row = await session.get(VideoRow, record.identity)
                if row is not None:
                    for field, value in values.items():
                        setattr(row, field, value)
                else:
                    row = VideoRow(identity=record.identity, **values)
                    session.add(row)
            else:
                row = VideoRow(**values)
                session.add(row)
            await session.flush()
            stored = VideoRecord.model_validate(row)
            await session.commit()
        return stored

    async def get_videos(self, movie_id: int) -> list[VideoRecord]:
        stmt = (
            select(VideoRow)
            .where(VideoRow.movie_id == movie_id)
            .order_by(VideoRow.identity)
        )
        return await self._select_videos(stmt)

    async def get_trailer_videos(self, movie_id: int) -> list[VideoRecord]:
        stmt = (
            select(VideoRow)
            .where(VideoRow.movie_id == movie_id, VideoRow.type == TRAILER_TYPE)
            .order_by(VideoRow.identity)
        )
        return await self._select_videos(stmt)

    async def _select_videos(self, stmt) -> list[VideoRecord]:
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return [VideoRecord.model_validate(row) for row in result.scalars().all()]

    # Reviews ----------------------------------------------------------------

    async def add_review(self, record: ReviewRecord) -> ReviewRecord:
        """Append a review; reviews carry no natural key and are never merged."""

        async with self._session_factory() as session:
            row = ReviewRow(**record.model_dump(exclude={"identity"}))
            session.add(row)
            await session.flush()
            stored = ReviewRecord.model_validate(row)
            await session.commit()
        return stored

    async def get_reviews(self, movie_id: int) -> list[ReviewRecord]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(ReviewRow)
                .where(ReviewRow.movie_id == movie_id)
                .order_by(ReviewRow.identity)
            )
            return [ReviewRecord.model_validate(row) for row in result.scalars().all()]
