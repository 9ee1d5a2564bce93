"""Entry point for the FastAPI-powered ranking service."""

from __future__ import annotations

import asyncio
import logging
from contextlib import AsyncExitStack, asynccontextmanager
from dataclasses import asdict
from typing import Any

import httpx
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from .config import settings
from .database import Database
from .errors import (
    RankingError,
    RemoteError,
    SessionNotFoundError,
    StateInvariantViolation,
)
from .models import ComparisonSession, Preference
from .services.comparison import Rejected, UndoHistory
from .services.engine import InsertionDone, RankingEngine
from .services.local_store import LocalStore
from .services.ordered_list import Outcome
from .services.remote_store import SQLPersistedStore
from .services.sync import SyncService
from .services.tmdb import TMDBClient

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app: FastAPI


class ShowPayload(BaseModel):
    """Title plus optional catalog metadata for a show being added."""

    title: str
    external_id: int | None = None
    poster_path: str | None = None
    year: str | None = None
    overview: str | None = None
    genres: list[str] = Field(default_factory=list)

    def metadata(self) -> dict[str, Any]:
        return self.model_dump(exclude={"title"})


class SessionPayload(BaseModel):
    session: ComparisonSession
    history: UndoHistory = Field(default_factory=UndoHistory)


class AnswerPayload(SessionPayload):
    preference: Preference


class ReorderPayload(BaseModel):
    from_index: int
    to_index: int


@asynccontextmanager
async def lifespan(_: FastAPI):
    exit_stack = AsyncExitStack()
    tmdb_http_client = await exit_stack.enter_async_context(
        httpx.AsyncClient(
            base_url=str(settings.tmdb_api_url),
            timeout=httpx.Timeout(15.0, connect=5.0),
        )
    )
    database = Database(settings.database_url)
    await database.create_all()

    local_store = LocalStore(settings.local_store_dir)
    sync_service = SyncService(SQLPersistedStore(database.session_factory), local_store)
    tmdb: TMDBClient | None = None
    if settings.tmdb_api_key:
        tmdb = TMDBClient(settings, tmdb_http_client)
    else:
        logger.info("TMDB_API_KEY not configured; catalog lookups are disabled")

    app.state.local_store = local_store
    app.state.sync_service = sync_service
    app.state.tmdb = tmdb
    app.state.database = database

    try:
        yield
    finally:  # pragma: no cover - teardown path exercised at runtime
        await database.dispose()
        await exit_stack.aclose()


def create_app() -> FastAPI:
    fastapi_app = FastAPI(
        title=settings.app_name,
        description="Rank shows by answering head-to-head comparisons",
        version="1.0.0",
        lifespan=lifespan,
    )

    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "DELETE"],
        allow_headers=["*"],
    )

    register_routes(fastapi_app)
    return fastapi_app


def get_engine(app: FastAPI, scope: str) -> RankingEngine:
    local_store = getattr(app.state, "local_store", None)
    if not isinstance(local_store, LocalStore):
        raise RuntimeError("Local store not initialised")
    return RankingEngine(local_store, scope)


def get_sync_service(app: FastAPI) -> SyncService:
    service = getattr(app.state, "sync_service", None)
    if not isinstance(service, SyncService):
        raise RuntimeError("Sync service not initialised")
    return service


def get_tmdb_client(app: FastAPI) -> TMDBClient:
    client = getattr(app.state, "tmdb", None)
    if not isinstance(client, TMDBClient):
        raise HTTPException(status_code=503, detail="Catalog lookups are not configured")
    return client


def register_routes(fastapi_app: FastAPI) -> None:
    def _lists_payload(engine: RankingEngine) -> dict[str, Any]:
        return {
            "ranked": [show.model_dump(mode="json") for show in engine.get_ordered_list()],
            "wish": [show.model_dump(mode="json") for show in engine.get_wish_list()],
        }

    def _outcome_payload(engine: RankingEngine, outcome: Outcome) -> dict[str, Any]:
        if outcome.error is not None:
            raise _http_error(outcome.error)
        return {"changed": outcome.changed, **_lists_payload(engine)}

    def _step_payload(
        engine: RankingEngine,
        result: ComparisonSession | InsertionDone | Rejected,
        history: UndoHistory,
    ) -> dict[str, Any]:
        if isinstance(result, Rejected):
            raise _http_error(result.error)
        if isinstance(result, InsertionDone):
            return {
                "status": "done",
                "show": result.show.model_dump(mode="json"),
                "forced": result.forced,
            }
        probe = engine.probe(result)
        if isinstance(probe, Rejected):
            raise _http_error(probe.error)
        return {
            "status": "active",
            "session": result.model_dump(mode="json"),
            "history": history.model_dump(mode="json"),
            "probe": probe.model_dump(mode="json"),
        }

    # Handlers backed by the local JSON store are plain functions so FastAPI
    # runs them in its threadpool.
    @fastapi_app.get("/healthz")
    async def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    @fastapi_app.get("/lists/{scope}")
    def get_lists(scope: str) -> dict[str, Any]:
        return _lists_payload(get_engine(fastapi_app, scope))

    @fastapi_app.post("/lists/{scope}/ranked/first")
    def insert_first(scope: str, payload: ShowPayload) -> dict[str, Any]:
        engine = get_engine(fastapi_app, scope)
        outcome = engine.insert_first(payload.title, **payload.metadata())
        return _outcome_payload(engine, outcome)

    @fastapi_app.post("/lists/{scope}/sessions")
    def start_session(scope: str, payload: ShowPayload) -> dict[str, Any]:
        engine = get_engine(fastapi_app, scope)
        result = engine.start_insertion(payload.title, **payload.metadata())
        return _step_payload(engine, result, UndoHistory())

    @fastapi_app.post("/lists/{scope}/sessions/answer")
    def answer_session(scope: str, payload: AnswerPayload) -> dict[str, Any]:
        engine = get_engine(fastapi_app, scope)
        try:
            result = engine.answer(payload.session, payload.preference, payload.history)
        except StateInvariantViolation as exc:
            raise _http_error(exc) from exc
        return _step_payload(engine, result, payload.history)

    @fastapi_app.post("/lists/{scope}/sessions/skip")
    def skip_session(scope: str, payload: SessionPayload) -> dict[str, Any]:
        engine = get_engine(fastapi_app, scope)
        try:
            result = engine.skip(payload.session, payload.history)
        except StateInvariantViolation as exc:
            raise _http_error(exc) from exc
        return _step_payload(engine, result, payload.history)

    @fastapi_app.post("/lists/{scope}/sessions/undo")
    def undo_session(scope: str, payload: SessionPayload) -> dict[str, Any]:
        engine = get_engine(fastapi_app, scope)
        session = engine.undo(payload.session, payload.history)
        return _step_payload(engine, session, payload.history)

    @fastapi_app.post("/lists/{scope}/ranked/reorder")
    def reorder(scope: str, payload: ReorderPayload) -> dict[str, Any]:
        engine = get_engine(fastapi_app, scope)
        outcome = engine.reorder(payload.from_index, payload.to_index)
        return _outcome_payload(engine, outcome)

    @fastapi_app.delete("/lists/{scope}/ranked/{external_id}")
    def remove_ranked(scope: str, external_id: int) -> dict[str, Any]:
        engine = get_engine(fastapi_app, scope)
        return _outcome_payload(engine, engine.remove(external_id))

    @fastapi_app.post("/lists/{scope}/wish")
    def add_wish(scope: str, payload: ShowPayload) -> dict[str, Any]:
        engine = get_engine(fastapi_app, scope)
        outcome = engine.add_wish(payload.title, **payload.metadata())
        return _outcome_payload(engine, outcome)

    @fastapi_app.delete("/lists/{scope}/wish/{external_id}")
    def remove_wish(scope: str, external_id: int) -> dict[str, Any]:
        engine = get_engine(fastapi_app, scope)
        return _outcome_payload(engine, engine.remove_wish(external_id=external_id))

    @fastapi_app.delete("/lists/{scope}/wish")
    def remove_wish_by_title(scope: str, title: str) -> dict[str, Any]:
        engine = get_engine(fastapi_app, scope)
        return _outcome_payload(engine, engine.remove_wish(title=title))

    @fastapi_app.get("/catalog/search")
    async def catalog_search(query: str = "") -> dict[str, Any]:
        client = get_tmdb_client(fastapi_app)
        try:
            candidates = await client.search_by_title(query)
        except RemoteError as exc:
            raise _http_error(exc) from exc
        return {"results": [asdict(candidate) for candidate in candidates]}

    @fastapi_app.get("/catalog/shows/{external_id}")
    async def catalog_details(external_id: int) -> dict[str, Any]:
        client = get_tmdb_client(fastapi_app)
        try:
            details = await client.get_details(external_id)
        except RemoteError as exc:
            raise _http_error(exc) from exc
        return asdict(details)

    @fastapi_app.post("/lists/{scope}/catalog/{external_id}")
    async def rank_catalog_show(scope: str, external_id: int) -> dict[str, Any]:
        client = get_tmdb_client(fastapi_app)
        try:
            details = await client.get_details(external_id)
        except RemoteError as exc:
            raise _http_error(exc) from exc

        engine = get_engine(fastapi_app, scope)

        def start() -> dict[str, Any]:
            result = engine.rank_show(details.to_show())
            return _step_payload(engine, result, UndoHistory())

        return await asyncio.to_thread(start)

    @fastapi_app.post("/sync/{user_id}/pull")
    async def sync_pull(user_id: str) -> dict[str, Any]:
        result = await get_sync_service(fastapi_app).pull(user_id)
        if not result.ok:
            raise HTTPException(status_code=502, detail=result.error)
        return await asyncio.to_thread(_lists_payload, get_engine(fastapi_app, user_id))

    @fastapi_app.post("/sync/{user_id}/push")
    async def sync_push(user_id: str) -> dict[str, Any]:
        result = await get_sync_service(fastapi_app).push(user_id)
        if not result.ok:
            raise HTTPException(status_code=502, detail=result.error)
        return {"status": "ok"}


def _http_error(error: RankingError) -> HTTPException:
    if isinstance(error, SessionNotFoundError):
        return HTTPException(status_code=404, detail=str(error))
    if isinstance(error, RemoteError):
        return HTTPException(status_code=502, detail=str(error))
    if isinstance(error, StateInvariantViolation):
        return HTTPException(
            status_code=422, detail=f"Comparison aborted: {error}"
        )
    return HTTPException(status_code=409, detail=str(error))


app = create_app()
