"""Pydantic models describing cached catalog records."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from .utils import build_image_url, coerce_int, first_present

TRAILER_TYPE = "Trailer"
POSTER_BASE_URL = "https://image.tmdb.org/t/p"
YOUTUBE_WATCH_URL = "https://www.youtube.com/watch?v={key}"
YOUTUBE_EMBED_URL = "https://www.youtube.com/embed/{key}"

PosterSize = Literal["w185", "w342", "w500", "w780", "original"]


class MovieRecord(BaseModel):
    """A single movie with its independent category flags."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: int
    title: str = ""
    overview: str = ""
    poster_path: str = ""
    release_date: str = ""
    vote_average: int = 0
    vote_count: int = 0
    popularity: float = 0.0
    original_language: str = ""
    favorite: bool = False
    popular: bool = False
    toprated: bool = False

    @classmethod
    def from_tmdb_payload(cls, data: dict[str, Any]) -> "MovieRecord":
        """Map a discovery result onto the local record.

        ``title``/``name`` and ``release_date``/``first_air_date`` are accepted
        interchangeably so movie and TV listings share the same shape. The
        vote average is truncated onto the integer scale used by the cache.
        """

        raw_id = data.get("id")
        if isinstance(raw_id, bool) or not isinstance(raw_id, (int, str)):
            raise ValueError("Discovery result is missing an id")
        movie_id = int(raw_id)

        return cls(
            id=movie_id,
            title=str(first_present(data, "title", "name") or ""),
            overview=str(data.get("overview") or ""),
            poster_path=str(data.get("poster_path") or ""),
            release_date=str(first_present(data, "release_date", "first_air_date") or ""),
            vote_average=coerce_int(data.get("vote_average")),
            vote_count=coerce_int(data.get("vote_count")),
            popularity=float(data.get("popularity") or 0.0),
            original_language=str(data.get("original_language") or ""),
        )

    def with_flags(self, **flags: bool) -> "MovieRecord":
        return self.model_copy(update=flags)

    def merged_with(self, existing: "MovieRecord") -> "MovieRecord":
        """Return this record with flags OR-ed against a stored copy."""

        return self.model_copy(
            update={
                "favorite": self.favorite or existing.favorite,
                "popular": self.popular or existing.popular,
                "toprated": self.toprated or existing.toprated,
            }
        )

    def poster_url(self, size: PosterSize = "w342") -> str | None:
        if not self.poster_path:
            return None
        return build_image_url(self.poster_path, f"{POSTER_BASE_URL}/{size}")


class VideoRecord(BaseModel):
    """A video entry belonging to a movie."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    identity: int | None = None
    movie_id: int
    iso_639_1: str = ""
    iso_3166_1: str = ""
    key: str
    site: str = ""
    size: int = 0
    type: str = ""
    image_url: str | None = None

    @classmethod
    def from_tmdb_payload(cls, movie_id: int, data: dict[str, Any]) -> "VideoRecord":
        key = data.get("key")
        if not isinstance(key, str) or not key.strip():
            raise ValueError("Video entry is missing its provider key")
        return cls(
            movie_id=movie_id,
            iso_639_1=str(data.get("iso_639_1") or ""),
            iso_3166_1=str(data.get("iso_3166_1") or ""),
            key=key.strip(),
            site=str(data.get("site") or ""),
            size=coerce_int(data.get("size")),
            type=str(data.get("type") or ""),
        )

    @property
    def is_trailer(self) -> bool:
        return self.type == TRAILER_TYPE

    @property
    def watch_url(self) -> str:
        return YOUTUBE_WATCH_URL.format(key=self.key)

    @property
    def embed_url(self) -> str:
        return YOUTUBE_EMBED_URL.format(key=self.key)


class ReviewRecord(BaseModel):
    """A review belonging to a movie."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    identity: int | None = None
    movie_id: int
    author: str = ""
    content: str = ""

    @classmethod
    def from_tmdb_payload(cls, movie_id: int, data: dict[str, Any]) -> "ReviewRecord":
        content = data.get("content")
        if not isinstance(content, str):
            raise ValueError("Review entry is missing its content")
        return cls(
            movie_id=movie_id,
            author=str(data.get("author") or ""),
            content=content,
        )


class SubResources(BaseModel):
    """Videos and reviews resolved for a single movie."""

    model_config = ConfigDict(frozen=True)

    movie_id: int
    videos: tuple[VideoRecord, ...] = ()
    reviews: tuple[ReviewRecord, ...] = ()

    def is_complete(self) -> bool:
        return bool(self.videos) and bool(self.reviews)


class CatalogFilters(BaseModel):
    """Which category lists a catalog view merges together."""

    model_config = ConfigDict(frozen=True)

    popular: bool = True
    toprated: bool = True
    favorites: bool = False

    def active(self) -> tuple[str, ...]:
        """Return enabled filters in merge order, falling back to popular."""

        enabled = tuple(
            name
            for name, flag in (
                ("popular", self.popular),
                ("toprated", self.toprated),
                ("favorites", self.favorites),
            )
            if flag
        )
        return enabled or ("popular",)


class CatalogSnapshot(BaseModel):
    """An immutable, merged catalog listing."""

    model_config = ConfigDict(frozen=True)

    filters: CatalogFilters = Field(default_factory=CatalogFilters)
    movies: tuple[MovieRecord, ...] = ()
    version: int = 0

    def to_payload(self) -> dict[str, Any]:
        return {
            "filters": self.filters.model_dump(),
            "version": self.version,
            "movies": [
                {**movie.model_dump(), "poster_url": movie.poster_url()}
                for movie in self.movies
            ],
        }
