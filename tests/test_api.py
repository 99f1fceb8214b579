from __future__ import annotations

import json
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.errors import NotFound
from app.main import register_routes
from app.models import CatalogFilters, CatalogSnapshot, MovieRecord, SubResources, VideoRecord
from app.services.catalog_view import CatalogView
from app.services.sync import ResolutionState, SyncEngine
from app.store import CatalogStore


class DummyStore(CatalogStore):
    """In-memory stand-in for the SQLite backed store."""

    def __init__(self, *movies: MovieRecord) -> None:
        # Skip super().__init__ so no database is opened.
        self.movies = {movie.id: movie for movie in movies}

    async def get_movie(self, movie_id: int) -> MovieRecord:  # type: ignore[override]
        try:
            return self.movies[movie_id]
        except KeyError:
            raise NotFound("movie", movie_id) from None


class DummySyncEngine(SyncEngine):
    def __init__(self, store: DummyStore) -> None:
        self.store = store
        self.sync_calls = 0
        self.refresh_calls = 0

    @property
    def catalog_ready(self) -> bool:
        return bool(self.store.movies)

    async def ensure_catalog(self) -> int:
        self.sync_calls += 1
        return 0

    async def refresh_catalog(self) -> int:
        self.refresh_calls += 1
        return len(self.store.movies)

    async def toggle_favorite(self, movie_id: int) -> MovieRecord:
        movie = await self.store.get_movie(movie_id)
        updated = movie.with_flags(favorite=not movie.favorite)
        self.store.movies[movie_id] = updated
        return updated

    def resolution_state(self, movie_id: int) -> ResolutionState:
        return ResolutionState.RESOLVED

    async def ensure_sub_resources(self, movie_id: int) -> SubResources:
        await self.store.get_movie(movie_id)
        return SubResources(
            movie_id=movie_id,
            videos=(
                VideoRecord(
                    identity=1,
                    movie_id=movie_id,
                    key="abc",
                    type="Trailer",
                    image_url="https://i.ytimg.com/vi/abc/mqdefault.jpg",
                ),
            ),
        )


class DummyCatalogView(CatalogView):
    def __init__(self, store: DummyStore) -> None:
        self.store = store
        self.last_filters: CatalogFilters | None = None

    async def query(self, filters: CatalogFilters | None = None) -> CatalogSnapshot:
        filters = filters or CatalogFilters()
        self.last_filters = filters
        movies = tuple(movie for movie in self.store.movies.values() if movie.popular)
        return CatalogSnapshot(filters=filters, movies=movies, version=4)

    async def subscribe(  # type: ignore[override]
        self, filters: CatalogFilters | None = None
    ) -> AsyncIterator[CatalogSnapshot]:
        yield await self.query(filters)


def build_app(*movies: MovieRecord) -> tuple[FastAPI, DummyStore, DummySyncEngine, DummyCatalogView]:
    app = FastAPI()
    register_routes(app)
    store = DummyStore(*movies)
    engine = DummySyncEngine(store)
    view = DummyCatalogView(store)
    app.state.store = store
    app.state.sync_engine = engine
    app.state.catalog_view = view
    return app, store, engine, view


def test_healthcheck() -> None:
    app, *_ = build_app()
    with TestClient(app) as client:
        assert client.get("/healthz").json() == {"status": "ok"}


def test_catalog_parses_filters() -> None:
    app, _, _, view = build_app(MovieRecord(id=1, title="One", poster_path="/one.jpg", popular=True))

    with TestClient(app) as client:
        response = client.get("/api/catalog?popular=false&topRated=0&favorites=yes")

    assert response.status_code == 200
    assert view.last_filters == CatalogFilters(popular=False, toprated=False, favorites=True)
    payload = response.json()
    assert payload["version"] == 4
    assert payload["movies"][0]["poster_url"] == "https://image.tmdb.org/t/p/w342/one.jpg"


def test_catalog_defaults_filters() -> None:
    app, _, _, view = build_app()

    with TestClient(app) as client:
        client.get("/api/catalog")

    assert view.last_filters == CatalogFilters()


def test_catalog_stream_emits_snapshot_events() -> None:
    app, *_ = build_app(MovieRecord(id=1, popular=True))

    with TestClient(app) as client:
        with client.stream("GET", "/api/catalog/stream") as response:
            body = "".join(response.iter_text())

    assert response.headers["content-type"].startswith("text/event-stream")
    event, data = body.strip().split("\n", 1)
    assert event == "event: catalog"
    assert json.loads(data.removeprefix("data: "))["movies"][0]["id"] == 1


def test_sync_and_refresh_report_counts() -> None:
    app, _, engine, _ = build_app(MovieRecord(id=1, popular=True))

    with TestClient(app) as client:
        synced = client.post("/api/catalog/sync").json()
        refreshed = client.post("/api/catalog/refresh").json()

    assert synced == {"written": 0, "ready": True}
    assert refreshed == {"written": 1, "ready": True}
    assert (engine.sync_calls, engine.refresh_calls) == (1, 1)


def test_movie_detail_and_missing_movie() -> None:
    app, *_ = build_app(MovieRecord(id=42, title="The Answer"))

    with TestClient(app) as client:
        found = client.get("/api/movies/42")
        missing = client.get("/api/movies/7")

    assert found.status_code == 200
    assert found.json()["title"] == "The Answer"
    assert missing.status_code == 404


def test_toggle_favorite_route() -> None:
    app, store, *_ = build_app(MovieRecord(id=42, popular=True))

    with TestClient(app) as client:
        first = client.post("/api/movies/42/favorite")
        second = client.post("/api/movies/42/favorite")
        missing = client.post("/api/movies/99/favorite")

    assert first.json()["favorite"] is True
    assert second.json()["favorite"] is False
    assert store.movies[42].favorite is False
    assert missing.status_code == 404


def test_movie_extras_include_player_urls() -> None:
    app, *_ = build_app(MovieRecord(id=42))

    with TestClient(app) as client:
        payload = client.get("/api/movies/42/extras").json()

    assert payload["state"] == "resolved"
    assert payload["reviews"] == []
    video = payload["videos"][0]
    assert video["watch_url"] == "https://www.youtube.com/watch?v=abc"
    assert video["embed_url"] == "https://www.youtube.com/embed/abc"


def test_movie_extras_for_unknown_movie() -> None:
    app, *_ = build_app(MovieRecord(id=42))

    with TestClient(app) as client:
        response = client.get("/api/movies/7/extras")

    assert response.status_code == 404
