"""Thumbnail lookups against the YouTube Data API."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from ..config import Settings
from ..errors import NetworkFailure, ParseFailure

logger = logging.getLogger(__name__)

VIDEO_PARTS = "snippet,contentDetails,statistics,status"


class YouTubeClient:
    """Resolves medium-resolution thumbnails for trailer keys."""

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient):
        self._settings = settings
        self._client = http_client
        self._semaphore = asyncio.Semaphore(settings.max_concurrent_requests)

    async def fetch_thumbnail(self, video_key: str) -> str:
        """Return the medium thumbnail URL for ``video_key``.

        Raises ``NetworkFailure`` when the request cannot be completed and
        ``ParseFailure`` when the payload does not carry a thumbnail.
        """

        api_key = self._settings.youtube_api_key
        if not api_key:
            raise NetworkFailure(
                "YouTube API key not configured", endpoint="/videos"
            )

        params = {"id": video_key, "part": VIDEO_PARTS, "key": api_key}
        try:
            async with self._semaphore:
                response = await self._client.get("/videos", params=params)
        except httpx.HTTPError as exc:
            raise NetworkFailure(
                f"YouTube lookup for {video_key} failed: {exc.__class__.__name__}",
                endpoint="/videos",
            ) from exc

        if response.status_code >= 400:
            raise NetworkFailure(
                f"YouTube lookup for {video_key} returned {response.status_code}",
                status_code=response.status_code,
                endpoint="/videos",
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise ParseFailure(f"YouTube response for {video_key} is not JSON") from exc

        url = self._extract_medium_thumbnail(payload)
        if url is None:
            raise ParseFailure(f"YouTube response for {video_key} has no medium thumbnail")
        return url

    @staticmethod
    def _extract_medium_thumbnail(payload: Any) -> str | None:
        if not isinstance(payload, dict):
            return None
        items = payload.get("items")
        if not isinstance(items, list) or not items:
            return None
        first = items[0]
        if not isinstance(first, dict):
            return None
        snippet = first.get("snippet") or {}
        thumbnails = snippet.get("thumbnails") if isinstance(snippet, dict) else None
        medium = thumbnails.get("medium") if isinstance(thumbnails, dict) else None
        url = medium.get("url") if isinstance(medium, dict) else None
        if isinstance(url, str) and url.startswith("http"):
            return url
        return None
