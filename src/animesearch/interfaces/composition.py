"""Composition root: dependency injection via FastAPI lifespan."""

from __future__ import annotations

from contextlib import asynccontextmanager
from http.cookiejar import CookieJar, DefaultCookiePolicy
from typing import AsyncIterator, cast

import httpx
import structlog
from fastapi import FastAPI

from animesearch.application.use_cases import SearchStreamUseCase
from animesearch.infrastructure.concurrency import ConcurrencyPool
from animesearch.infrastructure.config.schema import AppConfig
from animesearch.infrastructure.http.fetch_client import FetchClient
from animesearch.infrastructure.rules import RuleRegistry, RuleUpdater
from animesearch.infrastructure.search.site_searcher import HttpxSiteSearcher
from animesearch.interfaces.app_state import AppState

log = structlog.get_logger(__name__)


def build_http_client(config: AppConfig) -> httpx.AsyncClient:
    """Shared client for all outgoing requests.

    The cookie jar refuses every cookie, so no request sees state left
    behind by another one.
    """
    return httpx.AsyncClient(
        timeout=httpx.Timeout(config.http_timeout_seconds),
        headers={"User-Agent": config.http_user_agent},
        cookies=httpx.Cookies(CookieJar(policy=DefaultCookiePolicy(allowed_domains=[]))),
        limits=httpx.Limits(
            max_connections=config.search_max_concurrent_fetches * 2,
            max_keepalive_connections=config.search_max_concurrent_fetches,
        ),
    )


def build_search_use_case(
    config: AppConfig,
    *,
    rules: RuleRegistry,
    fetch_client: FetchClient,
    pool: ConcurrencyPool | None = None,
) -> SearchStreamUseCase:
    searcher = HttpxSiteSearcher(
        fetch_client,
        episode_concurrency=config.search_episode_concurrency,
        episode_interval_seconds=config.search_episode_interval_seconds,
        episode_item_limit=config.search_episode_item_limit,
    )
    return SearchStreamUseCase(
        rules=rules,
        searcher=searcher,
        pool=pool,
        deadline_seconds=config.search_deadline_seconds,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Lifespan Hook: Initialize and cleanup all resources (DI Composition Root).

    Order matters:
        1. HTTP client (required by fetch client and updater)
        2. Rule registry (+ optional sync from GitHub)
        3. Fetch client + concurrency pool
        4. Search use case
    """
    state = cast(AppState, app.state)
    config = state.config

    # 1) HTTP client
    state.http_client = build_http_client(config)
    log.info(
        "http_client_initialized",
        timeout_seconds=config.http_timeout_seconds,
        max_concurrent_fetches=config.search_max_concurrent_fetches,
    )

    # 2) Rules
    state.rules = RuleRegistry(rule_dir=config.rule_dir)
    state.rule_updater = RuleUpdater(
        state.http_client,
        config.rule_dir,
        repo=config.updater_repo,
        branch=config.updater_branch,
        github_proxy=config.updater_github_proxy,
    )
    if config.updater_auto_update:
        result = await state.rule_updater.update()
        log.info(
            "rules_auto_updated",
            added=result.added,
            updated=result.updated,
            failed=result.failed,
        )
    state.rules.load_dir()

    # 3) Fetch client + global fetch slots
    state.fetch_client = FetchClient(
        state.http_client,
        user_agent=config.http_user_agent,
        timeout_seconds=config.http_timeout_seconds,
        retry_timeout_seconds=config.http_retry_timeout_seconds,
        proxy_prefix=config.http_proxy_prefix,
        reactive_proxy_fallback=config.http_reactive_proxy_fallback,
    )
    state.concurrency_pool = ConcurrencyPool(
        fetch_slots=config.search_max_concurrent_fetches
    )

    # 4) Search use case
    state.search_uc = build_search_use_case(
        config,
        rules=state.rules,
        fetch_client=state.fetch_client,
        pool=state.concurrency_pool,
    )

    log.info("app_startup_complete", rules=len(state.rules))

    try:
        yield
    finally:
        await state.http_client.aclose()
        log.info("http_client_closed")
        log.info("app_shutdown_complete")
