"""Multi-site search streamed as progress events."""

from __future__ import annotations

import asyncio
from contextlib import AsyncExitStack
from typing import AsyncIterator

import structlog

from animesearch.domain.entities import (
    DoneEvent,
    FetchError,
    ProgressEvent,
    SearchRequest,
    SiteSearchOutcome,
    StreamEvent,
    TotalEvent,
)
from animesearch.domain.ports import (
    ConcurrencyBudgetPort,
    ConcurrencyPoolPort,
    RuleRegistryPort,
    SiteSearcherPort,
)
from animesearch.domain.rules import SiteRule

log = structlog.get_logger(__name__)


class SearchStreamUseCase:
    """Fans one keyword out to the selected sites and streams completions.

    Event order:
        1. ``TotalEvent`` with the number of dispatched sites, before any
           site work starts.
        2. One ``ProgressEvent`` per dispatched site, in completion order,
           with a running ``completed`` count.  Failed sites (fetch error,
           extraction error, deadline) carry no outcome.
        3. Exactly one ``DoneEvent``.

    Closing the iterator early (client disconnect) cancels every site task
    of that search and emits nothing further.
    """

    def __init__(
        self,
        rules: RuleRegistryPort,
        searcher: SiteSearcherPort,
        pool: ConcurrencyPoolPort | None = None,
        deadline_seconds: float = 60.0,
    ) -> None:
        """Initialize use case with dependencies.

        Args:
            rules: Registry to take the rule snapshot from.
            searcher: Per-site search unit.
            pool: Optional global fetch-slot pool (fair share per search).
            deadline_seconds: Wall-clock limit for the whole search.
        """
        self.rules = rules
        self.searcher = searcher
        self._pool = pool
        self._deadline = deadline_seconds

    def select_rules(self, request: SearchRequest) -> list[SiteRule]:
        """Resolve requested names against one snapshot, dropping unknown ones."""
        snapshot = self.rules.snapshot()
        selected = [snapshot[name] for name in request.rule_names if name in snapshot]
        unknown = [name for name in request.rule_names if name not in snapshot]
        if unknown:
            log.debug("unknown_rules_dropped", names=unknown)
        return selected

    async def stream(self, request: SearchRequest) -> AsyncIterator[StreamEvent]:
        selected = self.select_rules(request)
        total = len(selected)

        log.info(
            "search_started",
            keyword=request.keyword,
            total=total,
            expand_episodes=request.expand_episodes,
        )
        yield TotalEvent(total=total)

        if total == 0:
            yield DoneEvent()
            return

        completed = 0
        async with AsyncExitStack() as stack:
            budget: ConcurrencyBudgetPort | None = None
            if self._pool is not None:
                budget = await stack.enter_async_context(self._pool.request())

            order: dict[asyncio.Task[SiteSearchOutcome], int] = {}
            rules_by_task: dict[asyncio.Task[SiteSearchOutcome], SiteRule] = {}
            for index, rule in enumerate(selected):
                task = asyncio.create_task(
                    self._run_site(rule, request, budget),
                    name=f"site-search:{rule.name}",
                )
                order[task] = index
                rules_by_task[task] = rule

            loop = asyncio.get_running_loop()
            deadline = loop.time() + self._deadline
            pending = set(order)
            try:
                while pending:
                    remaining = deadline - loop.time()
                    if remaining <= 0:
                        break
                    done, pending = await asyncio.wait(
                        pending,
                        timeout=remaining,
                        return_when=asyncio.FIRST_COMPLETED,
                    )
                    for task in sorted(done, key=order.__getitem__):
                        outcome = self._outcome_of(task, rules_by_task[task])
                        completed += 1
                        yield ProgressEvent(
                            completed=completed,
                            total=total,
                            outcome=outcome if outcome.ok else None,
                        )

                if pending:
                    log.warning(
                        "search_deadline_exceeded",
                        keyword=request.keyword,
                        deadline_seconds=self._deadline,
                        pending=[rules_by_task[t].name for t in pending],
                    )
                    for task in pending:
                        task.cancel()
                    await asyncio.gather(*pending, return_exceptions=True)
                    for _ in sorted(pending, key=order.__getitem__):
                        completed += 1
                        yield ProgressEvent(completed=completed, total=total)
            finally:
                # Reached on normal exit, but also on caller disconnect.
                for task in order:
                    if not task.done():
                        task.cancel()

        if completed != total:
            log.error(
                "search_progress_mismatch",
                keyword=request.keyword,
                completed=completed,
                total=total,
            )
        log.info("search_finished", keyword=request.keyword, total=total)
        yield DoneEvent()

    async def _run_site(
        self,
        rule: SiteRule,
        request: SearchRequest,
        budget: ConcurrencyBudgetPort | None,
    ) -> SiteSearchOutcome:
        try:
            items = await self.searcher.search(
                rule,
                request.keyword,
                expand_episodes=request.expand_episodes,
                budget=budget,
            )
        except FetchError as exc:
            log.warning("site_search_failed", rule=rule.name, error=str(exc))
            return _failure(rule, str(exc))
        except Exception as exc:  # noqa: BLE001
            log.error(
                "site_search_error",
                rule=rule.name,
                error_type=type(exc).__name__,
                error=str(exc),
            )
            return _failure(rule, f"{type(exc).__name__}: {exc}")

        log.info("site_search_completed", rule=rule.name, items=len(items))
        return SiteSearchOutcome(
            rule_name=rule.name,
            color=rule.color,
            tags=rule.tags,
            items=tuple(items),
        )

    @staticmethod
    def _outcome_of(
        task: asyncio.Task[SiteSearchOutcome], rule: SiteRule
    ) -> SiteSearchOutcome:
        if task.cancelled():
            return _failure(rule, "cancelled")
        exc = task.exception()
        if exc is not None:
            return _failure(rule, str(exc))
        return task.result()


def _failure(rule: SiteRule, error: str) -> SiteSearchOutcome:
    return SiteSearchOutcome(
        rule_name=rule.name,
        color=rule.color,
        tags=rule.tags,
        error=error or "unknown error",
    )
