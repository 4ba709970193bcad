"""
FastAPI application serving the users page.

Routes:
- ``GET /``          HTML page with the users table
- ``GET /api/users`` the same rows as JSON

Neither route accepts query parameters or a body. Failures are classified
into 404 (empty table) or 500 (binding missing, query failure) for the one
request only.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import asyncpg
from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse, JSONResponse

from range_reader.config import Settings, get_settings
from range_reader.errors import FetchError, QueryFailure
from range_reader.fetchers.abstract import RecordFetcher
from range_reader.infrastructure.backends import (
    AsyncpgBackend,
    AsyncQueryBackend,
    PsycopgBackend,
    QueryBackend,
)
from range_reader.infrastructure.db_factory import PoolManager, create_async_pool, get_sync_pool
from range_reader.service import PageData, build_fetcher, build_preview_fetcher, load_page
from range_reader.utils.logging import get_logger
from range_reader.web.render import render_error, render_users_page
from range_reader.web.schemas import ErrorResponse, UsersResponse

log = get_logger(__name__)


async def _bind_backends(app: FastAPI) -> None:
    """Create whichever backend the configured fetch mode needs and nobody injected."""
    settings: Settings = app.state.settings
    if not settings.db_enabled:
        log.error("Database is not bound to the environment")
        return

    if settings.fetch_mode == "sequential" and app.state.backend is None:
        app.state.backend = PsycopgBackend(
            get_sync_pool(settings),
            statement_timeout_ms=settings.db_statement_timeout_ms,
            snapshot=settings.snapshot_reads,
        )
        app.state.owns_sync_pool = True

    if settings.fetch_mode == "concurrent" and app.state.async_backend is None:
        try:
            app.state.async_backend = AsyncpgBackend(await create_async_pool(settings=settings))
            app.state.owns_async_pool = True
        except (OSError, asyncpg.PostgresError):
            # Requests report BindingUnavailable until the process is restarted.
            log.exception("Could not create asyncpg pool")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    await _bind_backends(app)
    try:
        yield
    finally:
        if app.state.owns_async_pool:
            await app.state.async_backend.close()
        if app.state.owns_sync_pool:
            PoolManager().close_all()


def create_app(
    settings: Optional[Settings] = None,
    backend: Optional[QueryBackend] = None,
    async_backend: Optional[AsyncQueryBackend] = None,
    preview_fetcher: Optional[RecordFetcher] = None,
) -> FastAPI:
    """
    Build the application. Backends passed in are used as-is; missing ones are
    created from settings at startup.
    """
    settings = settings or get_settings()
    app = FastAPI(title="Range Reader", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.backend = backend
    app.state.async_backend = async_backend
    app.state.preview_fetcher = preview_fetcher or build_preview_fetcher(settings)
    app.state.owns_sync_pool = False
    app.state.owns_async_pool = False

    async def _load(request: Request) -> PageData:
        state = request.app.state
        fetcher = build_fetcher(
            state.settings.fetch_mode,
            state.settings,
            backend=state.backend,
            async_backend=state.async_backend,
        )
        return await load_page(fetcher, state.preview_fetcher)

    @app.get("/", response_class=HTMLResponse)
    async def index(request: Request) -> HTMLResponse:
        try:
            page = await _load(request)
        except FetchError as exc:
            log.warning("Users page failed", extra={"status": exc.status_code, "error": exc.message})
            return HTMLResponse(render_error(exc.message), status_code=exc.status_code)
        except Exception:
            log.exception("Users page failed")
            failure = QueryFailure()
            return HTMLResponse(render_error(failure.message), status_code=failure.status_code)
        return HTMLResponse(
            render_users_page(
                page["records"],
                partition_count=request.app.state.settings.partition_count,
                preview=page.get("preview"),
            )
        )

    @app.get(
        "/api/users",
        response_model=UsersResponse,
        responses={404: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    )
    async def users(request: Request) -> JSONResponse:
        try:
            page = await _load(request)
        except FetchError as exc:
            log.warning("Users query failed", extra={"status": exc.status_code, "error": exc.message})
            return JSONResponse(
                status_code=exc.status_code,
                content=ErrorResponse(error=exc.message).model_dump(),
            )
        except Exception:
            log.exception("Users query failed")
            failure = QueryFailure()
            return JSONResponse(
                status_code=failure.status_code,
                content=ErrorResponse(error=failure.message).model_dump(),
            )
        body = UsersResponse(results=page["records"], preview=page.get("preview"))
        content = body.model_dump(mode="json")
        if body.preview is None:
            content.pop("preview")
        return JSONResponse(content=content)

    return app


__all__ = ["create_app", "lifespan"]
