"""Tests for SearchStreamUseCase."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any

import pytest

from animesearch.application.use_cases import SearchStreamUseCase
from animesearch.domain.entities import (
    DoneEvent,
    FetchBlocked,
    ProgressEvent,
    SearchRequest,
    SearchResultItem,
    StreamEvent,
    TotalEvent,
)
from animesearch.domain.rules import SiteRule
from animesearch.infrastructure.concurrency import ConcurrencyPool
from animesearch.infrastructure.rules import RuleRegistry


class _FakeSearcher:
    """Per-rule scripted searcher: ``(delay, items-or-exception)``."""

    def __init__(self, script: dict[str, tuple[float, Any]]) -> None:
        self._script = script
        self.started: list[str] = []
        self.cancelled: list[str] = []
        self.budgets: list[Any] = []

    async def search(
        self,
        rule: SiteRule,
        keyword: str,
        *,
        expand_episodes: bool = False,
        budget: Any = None,
    ) -> list[SearchResultItem]:
        self.started.append(rule.name)
        self.budgets.append(budget)
        delay, result = self._script[rule.name]
        try:
            await asyncio.sleep(delay)
        except asyncio.CancelledError:
            self.cancelled.append(rule.name)
            raise
        if isinstance(result, BaseException):
            raise result
        return [
            SearchResultItem(name=f"{keyword} @ {rule.name}", url=url) for url in result
        ]


def _registry(make_rule, *names: str) -> RuleRegistry:
    registry = RuleRegistry(Path("."))
    registry.replace([make_rule(name) for name in names])
    return registry


async def _collect(uc: SearchStreamUseCase, request: SearchRequest) -> list[StreamEvent]:
    return [event async for event in uc.stream(request)]


def _progress(events: list[StreamEvent]) -> list[ProgressEvent]:
    return [e for e in events if isinstance(e, ProgressEvent)]


# ---------------------------------------------------------------------------
# Event protocol
# ---------------------------------------------------------------------------


class TestEventOrder:
    async def test_total_progress_done(self, make_rule) -> None:
        searcher = _FakeSearcher(
            {
                "AGE": (0.03, ["https://age.test/1"]),
                "MXdm": (0.0, ["https://mxdm.test/1", "https://mxdm.test/2"]),
            }
        )
        uc = SearchStreamUseCase(_registry(make_rule, "AGE", "MXdm"), searcher)

        events = await _collect(
            uc, SearchRequest.create("葬送的芙莉莲", ["AGE", "MXdm"])
        )

        assert events[0] == TotalEvent(total=2)
        assert isinstance(events[-1], DoneEvent)
        progress = _progress(events)
        assert [p.completed for p in progress] == [1, 2]
        assert all(p.total == 2 for p in progress)
        # completion order, not request order
        assert [p.outcome.rule_name for p in progress] == ["MXdm", "AGE"]

    async def test_outcome_carries_rule_metadata(self, make_rule) -> None:
        searcher = _FakeSearcher({"AGE": (0.0, ["https://age.test/1"])})
        uc = SearchStreamUseCase(_registry(make_rule, "AGE"), searcher)

        events = await _collect(uc, SearchRequest.create("x", ["AGE"]))

        (progress,) = _progress(events)
        assert progress.outcome is not None
        assert progress.outcome.color == "#ff0000"
        assert progress.outcome.tags == ("在线",)
        assert len(progress.outcome.items) == 1

    async def test_unknown_rules_are_not_counted(self, make_rule) -> None:
        searcher = _FakeSearcher({"AGE": (0.0, [])})
        uc = SearchStreamUseCase(_registry(make_rule, "AGE"), searcher)

        events = await _collect(uc, SearchRequest.create("x", ["Nope", "AGE"]))

        assert events[0] == TotalEvent(total=1)
        assert len(_progress(events)) == 1
        assert searcher.started == ["AGE"]

    async def test_no_known_rules(self, make_rule) -> None:
        uc = SearchStreamUseCase(_registry(make_rule, "AGE"), _FakeSearcher({}))

        events = await _collect(uc, SearchRequest.create("x", ["Nope"]))

        assert events == [TotalEvent(total=0), DoneEvent()]

    async def test_empty_result_is_a_success(self, make_rule) -> None:
        uc = SearchStreamUseCase(
            _registry(make_rule, "AGE"), _FakeSearcher({"AGE": (0.0, [])})
        )
        (progress,) = _progress(await _collect(uc, SearchRequest.create("x", ["AGE"])))
        assert progress.outcome is not None
        assert progress.outcome.items == ()

    async def test_duplicate_names_dispatch_once(self, make_rule) -> None:
        searcher = _FakeSearcher({"AGE": (0.0, [])})
        uc = SearchStreamUseCase(_registry(make_rule, "AGE"), searcher)

        events = await _collect(uc, SearchRequest.create("x", ["AGE", "AGE"]))

        assert events[0] == TotalEvent(total=1)
        assert searcher.started == ["AGE"]


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------


class TestFailures:
    async def test_fetch_error_is_progress_without_outcome(self, make_rule) -> None:
        searcher = _FakeSearcher(
            {
                "AGE": (0.0, ["https://age.test/1"]),
                "NT": (0.0, FetchBlocked("https://nt.test/", 403)),
            }
        )
        uc = SearchStreamUseCase(_registry(make_rule, "AGE", "NT"), searcher)

        events = await _collect(uc, SearchRequest.create("x", ["AGE", "NT"]))

        progress = _progress(events)
        assert len(progress) == 2
        assert sum(1 for p in progress if p.outcome is None) == 1
        assert isinstance(events[-1], DoneEvent)

    async def test_unexpected_error_is_contained(self, make_rule) -> None:
        searcher = _FakeSearcher({"AGE": (0.0, ValueError("bad markup"))})
        uc = SearchStreamUseCase(_registry(make_rule, "AGE"), searcher)

        events = await _collect(uc, SearchRequest.create("x", ["AGE"]))

        assert events == [
            TotalEvent(total=1),
            ProgressEvent(completed=1, total=1, outcome=None),
            DoneEvent(),
        ]

    async def test_deadline_fails_slow_sites(self, make_rule) -> None:
        searcher = _FakeSearcher(
            {"AGE": (0.0, ["https://age.test/1"]), "Slow": (5.0, [])}
        )
        uc = SearchStreamUseCase(
            _registry(make_rule, "AGE", "Slow"), searcher, deadline_seconds=0.1
        )

        events = await asyncio.wait_for(
            _collect(uc, SearchRequest.create("x", ["AGE", "Slow"])), timeout=2
        )

        progress = _progress(events)
        assert [p.completed for p in progress] == [1, 2]
        assert progress[0].outcome is not None
        assert progress[1].outcome is None
        assert isinstance(events[-1], DoneEvent)
        assert searcher.cancelled == ["Slow"]


# ---------------------------------------------------------------------------
# Cancellation and snapshot semantics
# ---------------------------------------------------------------------------


class TestLifecycle:
    async def test_closing_the_stream_cancels_sites(self, make_rule) -> None:
        searcher = _FakeSearcher({"AGE": (0.0, []), "Slow": (5.0, [])})
        uc = SearchStreamUseCase(_registry(make_rule, "AGE", "Slow"), searcher)

        stream = uc.stream(SearchRequest.create("x", ["AGE", "Slow"]))
        assert await stream.__anext__() == TotalEvent(total=2)
        first = await stream.__anext__()
        assert isinstance(first, ProgressEvent)

        await stream.aclose()
        await asyncio.sleep(0)

        assert searcher.cancelled == ["Slow"]

    async def test_reload_during_search_does_not_change_it(self, make_rule) -> None:
        registry = _registry(make_rule, "AGE")
        searcher = _FakeSearcher({"AGE": (0.02, [])})
        uc = SearchStreamUseCase(registry, searcher)

        stream = uc.stream(SearchRequest.create("x", ["AGE"]))
        assert await stream.__anext__() == TotalEvent(total=1)
        registry.replace([])

        rest = [event async for event in stream]
        assert _progress(rest)[0].outcome is not None

    async def test_sites_share_one_budget(self, make_rule) -> None:
        searcher = _FakeSearcher({"AGE": (0.0, []), "NT": (0.0, [])})
        pool = ConcurrencyPool(fetch_slots=4)
        uc = SearchStreamUseCase(_registry(make_rule, "AGE", "NT"), searcher, pool=pool)

        await _collect(uc, SearchRequest.create("x", ["AGE", "NT"]))

        assert searcher.budgets[0] is not None
        assert searcher.budgets[0] is searcher.budgets[1]
        assert pool.active_requests == 0


class TestSelectRules:
    def test_keeps_request_order(self, make_rule) -> None:
        uc = SearchStreamUseCase(
            _registry(make_rule, "AGE", "MXdm", "NT"), _FakeSearcher({})
        )
        selected = uc.select_rules(SearchRequest.create("x", ["NT", "AGE"]))
        assert [r.name for r in selected] == ["NT", "AGE"]


@pytest.mark.parametrize("names", [[], ["  ", ""]])
async def test_blank_rule_names_give_empty_search(make_rule, names) -> None:
    uc = SearchStreamUseCase(_registry(make_rule, "AGE"), _FakeSearcher({}))
    events = await _collect(uc, SearchRequest.create("x", names))
    assert events == [TotalEvent(total=0), DoneEvent()]
