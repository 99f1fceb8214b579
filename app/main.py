"""Entry point for the FastAPI-powered catalog cache."""

from __future__ import annotations

import json
import logging
from contextlib import AsyncExitStack, asynccontextmanager
from typing import Any, AsyncIterator

import httpx
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse

from .config import settings
from .database import Database
from .errors import NotFound
from .models import CatalogFilters, MovieRecord, SubResources
from .services.catalog_view import CatalogView
from .services.events import CatalogEvents
from .services.sync import SyncEngine
from .services.tmdb import TMDBClient
from .services.youtube import YouTubeClient
from .store import CatalogStore
from .utils import coerce_bool

logging.basicConfig(level=getattr(logging, settings.log_level, logging.INFO))
# Request lines carry API keys in the query string.
logging.getLogger("httpx").setLevel(logging.WARNING)
logger = logging.getLogger(__name__)

app: FastAPI


@asynccontextmanager
async def lifespan(fastapi_app: FastAPI):
    exit_stack = AsyncExitStack()
    timeout = httpx.Timeout(
        settings.request_timeout_seconds, connect=settings.connect_timeout_seconds
    )
    user_agent = {"User-Agent": f"{settings.app_name} (reelcache)"}
    tmdb_http_client = await exit_stack.enter_async_context(
        httpx.AsyncClient(
            base_url=str(settings.tmdb_api_url), timeout=timeout, headers=user_agent
        )
    )
    youtube_http_client = await exit_stack.enter_async_context(
        httpx.AsyncClient(
            base_url=str(settings.youtube_api_url), timeout=timeout, headers=user_agent
        )
    )
    database = Database(settings.database_url)
    await database.create_all()

    events = CatalogEvents()
    store = CatalogStore(database.session_factory)
    youtube = YouTubeClient(settings, youtube_http_client)
    tmdb = TMDBClient(settings, tmdb_http_client, youtube)
    sync_engine = SyncEngine(settings, store, tmdb, events)
    catalog_view = CatalogView(store, events)

    fastapi_app.state.database = database
    fastapi_app.state.store = store
    fastapi_app.state.sync_engine = sync_engine
    fastapi_app.state.catalog_view = catalog_view
    logger.info(
        "Serving %s with categories %s",
        settings.app_name,
        ", ".join(settings.catalog_categories),
    )
    await sync_engine.start()

    try:
        yield
    finally:  # pragma: no cover - teardown path exercised at runtime
        await sync_engine.stop()
        await database.dispose()
        await exit_stack.aclose()


def create_app() -> FastAPI:
    fastapi_app = FastAPI(
        title=settings.app_name,
        description="Locally cached TMDB catalog with lazily resolved trailers and reviews",
        version="1.0.0",
        lifespan=lifespan,
    )

    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    register_routes(fastapi_app)
    return fastapi_app


def get_sync_engine(app: FastAPI) -> SyncEngine:
    engine = getattr(app.state, "sync_engine", None)
    if not isinstance(engine, SyncEngine):
        raise RuntimeError("Sync engine not initialised")
    return engine


def get_catalog_view(app: FastAPI) -> CatalogView:
    view = getattr(app.state, "catalog_view", None)
    if not isinstance(view, CatalogView):
        raise RuntimeError("Catalog view not initialised")
    return view


def get_store(app: FastAPI) -> CatalogStore:
    store = getattr(app.state, "store", None)
    if not isinstance(store, CatalogStore):
        raise RuntimeError("Catalog store not initialised")
    return store


def _filters_from_request(request: Request) -> CatalogFilters:
    params = request.query_params
    defaults = CatalogFilters()
    return CatalogFilters(
        popular=coerce_bool(params.get("popular"), default=defaults.popular),
        toprated=coerce_bool(
            params.get("toprated", params.get("topRated")), default=defaults.toprated
        ),
        favorites=coerce_bool(params.get("favorites"), default=defaults.favorites),
    )


def _movie_payload(movie: MovieRecord) -> dict[str, Any]:
    return {**movie.model_dump(), "poster_url": movie.poster_url()}


def _sub_resources_payload(resources: SubResources, state: str) -> dict[str, Any]:
    return {
        "movie_id": resources.movie_id,
        "state": state,
        "videos": [
            {
                **video.model_dump(),
                "watch_url": video.watch_url,
                "embed_url": video.embed_url,
            }
            for video in resources.videos
        ],
        "reviews": [review.model_dump() for review in resources.reviews],
    }


def register_routes(fastapi_app: FastAPI) -> None:
    @fastapi_app.get("/healthz")
    async def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    @fastapi_app.get("/api/catalog")
    async def catalog(request: Request) -> JSONResponse:
        view = get_catalog_view(fastapi_app)
        snapshot = await view.query(_filters_from_request(request))
        return JSONResponse(snapshot.to_payload())

    @fastapi_app.get("/api/catalog/stream")
    async def catalog_stream(request: Request) -> StreamingResponse:
        view = get_catalog_view(fastapi_app)
        filters = _filters_from_request(request)

        async def _events() -> AsyncIterator[str]:
            snapshots = view.subscribe(filters)
            try:
                async for snapshot in snapshots:
                    if await request.is_disconnected():
                        break
                    yield f"event: catalog\ndata: {json.dumps(snapshot.to_payload())}\n\n"
            finally:
                await snapshots.aclose()

        return StreamingResponse(_events(), media_type="text/event-stream")

    @fastapi_app.post("/api/catalog/sync")
    async def catalog_sync() -> dict[str, Any]:
        engine = get_sync_engine(fastapi_app)
        written = await engine.ensure_catalog()
        return {"written": written, "ready": engine.catalog_ready}

    @fastapi_app.post("/api/catalog/refresh")
    async def catalog_refresh() -> dict[str, Any]:
        engine = get_sync_engine(fastapi_app)
        written = await engine.refresh_catalog()
        return {"written": written, "ready": engine.catalog_ready}

    @fastapi_app.get("/api/movies/{movie_id}")
    async def movie_detail(movie_id: int) -> dict[str, Any]:
        store = get_store(fastapi_app)
        try:
            movie = await store.get_movie(movie_id)
        except NotFound as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        return _movie_payload(movie)

    @fastapi_app.get("/api/movies/{movie_id}/extras")
    async def movie_extras(movie_id: int) -> dict[str, Any]:
        engine = get_sync_engine(fastapi_app)
        try:
            resources = await engine.ensure_sub_resources(movie_id)
        except NotFound as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        state = engine.resolution_state(movie_id)
        return _sub_resources_payload(resources, state.value)

    @fastapi_app.post("/api/movies/{movie_id}/favorite")
    async def toggle_favorite(movie_id: int) -> dict[str, Any]:
        engine = get_sync_engine(fastapi_app)
        try:
            movie = await engine.toggle_favorite(movie_id)
        except NotFound as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        return _movie_payload(movie)


app = create_app()
