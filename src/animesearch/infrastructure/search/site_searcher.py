"""Search one site with one rule: fetch, extract, optionally expand.

Episode expansion is a second fan-out below the site: the detail pages of
the first ``episode_item_limit`` results are fetched with at most
``episode_concurrency`` requests in flight and paced by a per-site token
bucket.  Results past the limit, and results whose detail page fails,
carry an empty episode list.
"""

from __future__ import annotations

import asyncio
from dataclasses import replace
from typing import Mapping
from urllib.parse import parse_qsl, quote, urlsplit, urlunsplit

import structlog

from animesearch.domain.entities import FetchError, SearchResultItem
from animesearch.domain.ports import ConcurrencyBudgetPort
from animesearch.domain.rules import SiteRule
from animesearch.infrastructure.common.html_selectors import parse_html
from animesearch.infrastructure.common.rate_limiter import TokenBucket
from animesearch.infrastructure.extraction.extractor import (
    extract_episodes,
    extract_results,
)
from animesearch.infrastructure.http.fetch_client import FetchClient

log = structlog.get_logger(__name__)


def build_search_request(
    rule: SiteRule, keyword: str
) -> tuple[str, dict[str, str] | None]:
    """Return ``(url, form_data)`` for a keyword search.

    GET rules get the URL-encoded keyword substituted into ``searchURL``.
    POST rules send the template's query parameters as a form body to the
    URL without its query string.
    """
    url = rule.build_search_url(quote(keyword, safe=""))
    if not rule.use_post:
        return url, None

    parts = urlsplit(url)
    data = dict(parse_qsl(parts.query, keep_blank_values=True))
    return urlunsplit(parts._replace(query="")), data


class HttpxSiteSearcher:
    """Implements ``SiteSearcherPort`` on top of :class:`FetchClient`."""

    def __init__(
        self,
        fetch_client: FetchClient,
        *,
        episode_concurrency: int = 3,
        episode_interval_seconds: float = 0.3,
        episode_item_limit: int = 5,
    ) -> None:
        self._fetch_client = fetch_client
        self._episode_concurrency = max(1, episode_concurrency)
        self._episode_interval = episode_interval_seconds
        self._episode_item_limit = max(0, episode_item_limit)

    async def search(
        self,
        rule: SiteRule,
        keyword: str,
        *,
        expand_episodes: bool = False,
        budget: ConcurrencyBudgetPort | None = None,
    ) -> list[SearchResultItem]:
        url, data = build_search_request(rule, keyword)
        html = await self._fetch(rule, rule.method, url, data=data, budget=budget)
        items = extract_results(parse_html(html), rule)

        log.debug(
            "site_search_extracted",
            rule=rule.name,
            url=url,
            items=len(items),
        )

        if not expand_episodes:
            return items
        return await self._expand(rule, items, budget)

    async def _expand(
        self,
        rule: SiteRule,
        items: list[SearchResultItem],
        budget: ConcurrencyBudgetPort | None,
    ) -> list[SearchResultItem]:
        if not rule.selectors.has_episodes:
            return [replace(item, episodes=()) for item in items]

        head = items[: self._episode_item_limit]
        tail = items[self._episode_item_limit :]

        semaphore = asyncio.Semaphore(self._episode_concurrency)
        pacer = TokenBucket.from_interval(self._episode_interval)

        async def _one(item: SearchResultItem) -> SearchResultItem:
            async with semaphore:
                await pacer.acquire()
                try:
                    html = await self._fetch(rule, "GET", item.url, budget=budget)
                except FetchError as exc:
                    log.debug(
                        "episode_fetch_failed",
                        rule=rule.name,
                        url=item.url,
                        error=str(exc),
                    )
                    return replace(item, episodes=())
            groups = extract_episodes(parse_html(html), rule, item.url)
            return replace(item, episodes=tuple(groups))

        outcomes = await asyncio.gather(
            *(_one(item) for item in head), return_exceptions=True
        )
        expanded: list[SearchResultItem] = []
        for item, outcome in zip(head, outcomes):
            if isinstance(outcome, BaseException):
                log.warning(
                    "episode_expansion_failed",
                    rule=rule.name,
                    url=item.url,
                    error=repr(outcome),
                )
                expanded.append(replace(item, episodes=()))
            else:
                expanded.append(outcome)
        return [*expanded, *(replace(item, episodes=()) for item in tail)]

    async def _fetch(
        self,
        rule: SiteRule,
        method: str,
        url: str,
        *,
        data: Mapping[str, str] | None = None,
        budget: ConcurrencyBudgetPort | None = None,
    ) -> str:
        kwargs = dict(
            data=data,
            referer=rule.referer or rule.base_url,
            user_agent=rule.user_agent or None,
            proxy=rule.proxy,
        )
        if budget is None:
            return await self._fetch_client.fetch(method, url, **kwargs)
        async with budget.acquire_fetch():
            return await self._fetch_client.fetch(method, url, **kwargs)
