"""FastAPI application factory (create_app)."""

from __future__ import annotations

import time
from collections.abc import Awaitable, Callable

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.responses import Response

from animesearch import __version__
from animesearch.domain.entities import SearchBadRequest
from animesearch.infrastructure.config import AppConfig
from animesearch.interfaces.app_state import AppState
from animesearch.interfaces.composition import lifespan

log = structlog.get_logger(__name__)


def create_app(config: AppConfig) -> FastAPI:
    """Create FastAPI app: configuration ONLY, NO resource initialization.

    Resources (HTTP client, rule registry, use cases) are created in lifespan().
    """
    app = FastAPI(
        title="AnimeSearch",
        description="Concurrent anime search across Kazumi rule sites",
        version=__version__,
        lifespan=lifespan,
    )

    app.state = AppState()
    app.state.config = config

    from animesearch.interfaces.api.rules.router import router as rules_router
    from animesearch.interfaces.api.search.router import router as search_router

    app.include_router(search_router)
    app.include_router(rules_router)

    @app.exception_handler(SearchBadRequest)
    async def _bad_request(_: Request, exc: SearchBadRequest) -> JSONResponse:
        return JSONResponse({"error": str(exc)}, status_code=400)

    @app.middleware("http")
    async def log_requests(
        request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        start = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            # For streamed responses this measures time to first byte.
            duration_ms = (time.perf_counter() - start) * 1000.0
            log.info(
                "http_request",
                method=request.method,
                path=request.url.path,
                status_code=status_code,
                duration_ms=round(duration_ms, 2),
                client_host=(request.client.host if request.client else None),
            )

    return app
