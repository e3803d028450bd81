"""Application state container for FastAPI dependency injection."""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx
from starlette.datastructures import State

from animesearch.infrastructure.config import AppConfig

if TYPE_CHECKING:
    from animesearch.application.use_cases import SearchStreamUseCase
    from animesearch.infrastructure.concurrency import ConcurrencyPool
    from animesearch.infrastructure.http.fetch_client import FetchClient
    from animesearch.infrastructure.rules import RuleRegistry, RuleUpdater


class AppState(State):
    """FastAPI application state with all DI resources.

    Lifecycle managed by composition.py::lifespan().
    """

    # Configuration
    config: AppConfig

    # Infrastructure
    http_client: httpx.AsyncClient
    fetch_client: FetchClient
    concurrency_pool: ConcurrencyPool

    # Rules
    rules: RuleRegistry
    rule_updater: RuleUpdater

    # Application services
    search_uc: SearchStreamUseCase
