"""Client for the TMDB discovery and per-movie endpoints."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx
from pydantic import ValidationError

from ..categories import get_category
from ..config import Settings
from ..errors import CatalogError, NetworkFailure, ParseFailure
from ..models import MovieRecord, ReviewRecord, VideoRecord
from .youtube import YouTubeClient

logger = logging.getLogger(__name__)


class TMDBClient:
    """Stateless wrapper around the TMDB endpoints used by the cache.

    Only the first result page of every listing is requested. A failure of a
    listing request itself raises; a bad entry inside a listing is logged and
    skipped so the rest of the batch still comes through.
    """

    def __init__(
        self,
        settings: Settings,
        http_client: httpx.AsyncClient,
        youtube_client: YouTubeClient,
    ):
        if not settings.tmdb_api_key:
            raise ValueError("TMDB API key is required when initialising TMDBClient")
        self._settings = settings
        self._client = http_client
        self._youtube = youtube_client
        self._semaphore = asyncio.Semaphore(settings.max_concurrent_requests)

    async def fetch_category(self, category: str) -> list[MovieRecord]:
        """Return the first page of a category with its flag set."""

        definition = get_category(category)
        endpoint = self._settings.tmdb_category_path.format(category=definition.key)
        results = await self._get_results(endpoint)

        movies: list[MovieRecord] = []
        for entry in results:
            try:
                movie = MovieRecord.from_tmdb_payload(self._require_mapping(entry))
            except (ValueError, TypeError, ValidationError) as exc:
                logger.warning(
                    "Skipping malformed %s entry: %s", definition.key, exc
                )
                continue
            movies.append(movie.with_flags(**{definition.flag: True}))
        logger.info("Fetched %d movies for %s", len(movies), definition.key)
        return movies

    async def fetch_videos(self, movie_id: int) -> list[VideoRecord]:
        """Return the enriched trailers for a movie.

        Every entry is fetched, but only ``Trailer`` entries whose thumbnail
        lookup succeeds are returned; other video types are dropped.
        """

        results = await self._get_results(f"/movie/{movie_id}/videos")

        trailers: list[VideoRecord] = []
        for entry in results:
            try:
                video = VideoRecord.from_tmdb_payload(movie_id, self._require_mapping(entry))
            except (ValueError, TypeError, ValidationError) as exc:
                logger.warning("Skipping malformed video for movie %s: %s", movie_id, exc)
                continue
            if not video.is_trailer:
                continue
            try:
                image_url = await self._youtube.fetch_thumbnail(video.key)
            except CatalogError as exc:
                logger.warning(
                    "Thumbnail lookup for trailer %s of movie %s failed: %s",
                    video.key,
                    movie_id,
                    exc,
                )
                continue
            trailers.append(video.model_copy(update={"image_url": image_url}))
        logger.debug(
            "Resolved %d of %d videos for movie %s as trailers",
            len(trailers),
            len(results),
            movie_id,
        )
        return trailers

    async def fetch_reviews(self, movie_id: int) -> list[ReviewRecord]:
        results = await self._get_results(f"/movie/{movie_id}/reviews")

        reviews: list[ReviewRecord] = []
        for entry in results:
            try:
                reviews.append(
                    ReviewRecord.from_tmdb_payload(movie_id, self._require_mapping(entry))
                )
            except (ValueError, TypeError, ValidationError) as exc:
                logger.warning("Skipping malformed review for movie %s: %s", movie_id, exc)
        return reviews

    async def _get_results(self, endpoint: str) -> list[Any]:
        payload = await self._get_json(endpoint)
        results = payload.get("results") if isinstance(payload, dict) else None
        if not isinstance(results, list):
            raise ParseFailure(f"TMDB response for {endpoint} lacks a results list")
        return results

    async def _get_json(self, endpoint: str, **params: Any) -> Any:
        query = {"api_key": self._settings.tmdb_api_key, **params}
        try:
            async with self._semaphore:
                response = await self._client.get(endpoint, params=query)
        except httpx.HTTPError as exc:
            raise NetworkFailure(
                f"TMDB request to {endpoint} failed: {exc.__class__.__name__}",
                endpoint=endpoint,
            ) from exc

        if response.status_code >= 400:
            raise NetworkFailure(
                f"TMDB request to {endpoint} returned {response.status_code}",
                status_code=response.status_code,
                endpoint=endpoint,
            )
        try:
            return response.json()
        except ValueError as exc:
            raise ParseFailure(f"TMDB response for {endpoint} is not JSON") from exc

    @staticmethod
    def _require_mapping(entry: Any) -> dict[str, Any]:
        if not isinstance(entry, dict):
            raise TypeError(f"expected an object, got {type(entry).__name__}")
        return entry
