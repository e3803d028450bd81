"""Port for searching one site with one rule."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from animesearch.domain.entities import SearchResultItem
from animesearch.domain.rules import SiteRule

from .concurrency import ConcurrencyBudgetPort


@runtime_checkable
class SiteSearcherPort(Protocol):
    async def search(
        self,
        rule: SiteRule,
        keyword: str,
        *,
        expand_episodes: bool = False,
        budget: ConcurrencyBudgetPort | None = None,
    ) -> list[SearchResultItem]:
        """Fetch and extract the rule's search page (plus episodes).

        Raises:
            FetchError: the search page could not be fetched.
        """
        ...
