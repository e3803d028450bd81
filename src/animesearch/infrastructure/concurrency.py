"""Global pool of fetch slots with fair-share budgets per search.

Every search stream enters :meth:`ConcurrencyPool.request` and receives a
:class:`RequestBudget`.  A budget may hold at most::

    fair_share = max(1, fetch_slots // active_requests)

slots at a time, so one large multi-site search cannot starve the others.
When a search finishes, the remaining ones see a larger allowance.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator

import structlog

log = structlog.get_logger(__name__)


class RequestBudget:
    """Per-search budget enforcing the fair-share limit.

    Created by :meth:`ConcurrencyPool.request`, not instantiated directly.
    """

    def __init__(
        self,
        *,
        semaphore: asyncio.Semaphore,
        pool: ConcurrencyPool,
        condition: asyncio.Condition,
    ) -> None:
        self._semaphore = semaphore
        self._pool = pool
        self._condition = condition
        self._held = 0

    @property
    def held(self) -> int:
        return self._held

    def _fair_share(self) -> int:
        active = self._pool.active_requests
        return max(1, self._pool.fetch_slots // active) if active > 0 else 1

    @asynccontextmanager
    async def acquire_fetch(self) -> AsyncIterator[None]:
        """Acquire one fetch slot, respecting the fair-share budget."""
        async with self._condition:
            while self._held >= self._fair_share():
                await self._condition.wait()
            self._held += 1
        try:
            await self._semaphore.acquire()
        except BaseException:
            await self._give_back()
            raise
        try:
            yield
        finally:
            self._semaphore.release()
            await self._give_back()

    async def _give_back(self) -> None:
        async with self._condition:
            self._held -= 1
            self._condition.notify_all()


class ConcurrencyPool:
    """Application-level singleton managing the global fetch slots.

    Parameters:
        fetch_slots: Total concurrent outgoing fetches across all searches.
    """

    def __init__(self, *, fetch_slots: int = 16) -> None:
        self.fetch_slots = fetch_slots
        self._semaphore = asyncio.Semaphore(fetch_slots)
        self._active_requests = 0
        self._condition = asyncio.Condition()

    @property
    def active_requests(self) -> int:
        return self._active_requests

    @asynccontextmanager
    async def request(self) -> AsyncIterator[RequestBudget]:
        """Enter a search scope, returning a fair-share budget."""
        async with self._condition:
            self._active_requests += 1
            self._condition.notify_all()
        budget = RequestBudget(
            semaphore=self._semaphore,
            pool=self,
            condition=self._condition,
        )
        try:
            yield budget
        finally:
            async with self._condition:
                self._active_requests -= 1
                self._condition.notify_all()
            log.debug(
                "request_budget_released",
                active_requests=self._active_requests,
            )
