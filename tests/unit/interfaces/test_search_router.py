"""Tests for the search and rules routers with a stubbed application state."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, AsyncIterator
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.testclient import TestClient

from animesearch.domain.entities import (
    DoneEvent,
    ProgressEvent,
    SearchBadRequest,
    SearchRequest,
    StreamEvent,
    TotalEvent,
)
from animesearch.infrastructure.rules import RuleRegistry, UpdateResult
from animesearch.interfaces.api.rules.router import router as rules_router
from animesearch.interfaces.api.search.router import parse_rule_names
from animesearch.interfaces.api.search.router import router as search_router


class _RecordingUseCase:
    def __init__(self) -> None:
        self.requests: list[SearchRequest] = []

    async def stream(self, request: SearchRequest) -> AsyncIterator[StreamEvent]:
        self.requests.append(request)
        yield TotalEvent(total=1)
        yield ProgressEvent(completed=1, total=1)
        yield DoneEvent()


def _make_app(registry: RuleRegistry, use_case: _RecordingUseCase) -> FastAPI:
    """Minimal FastAPI app with both routers and a stubbed state."""
    app = FastAPI()
    app.include_router(search_router)
    app.include_router(rules_router)

    app.state.config = MagicMock(app_name="animesearch")
    app.state.rules = registry
    app.state.search_uc = use_case
    app.state.rule_updater = AsyncMock()
    app.state.rule_updater.update.return_value = UpdateResult(total=0, commit="abc")

    @app.exception_handler(SearchBadRequest)
    async def _bad_request(_: Request, exc: SearchBadRequest) -> JSONResponse:
        return JSONResponse({"error": str(exc)}, status_code=400)

    return app


@pytest.fixture()
def registry(make_rule) -> RuleRegistry:
    registry = RuleRegistry(Path("/nonexistent"))
    registry.replace([make_rule("MXdm"), make_rule("AGE", magic=True)])
    return registry


@pytest.fixture()
def use_case() -> _RecordingUseCase:
    return _RecordingUseCase()


@pytest.fixture()
def client(registry: RuleRegistry, use_case: _RecordingUseCase) -> TestClient:
    return TestClient(_make_app(registry, use_case))


class TestParseRuleNames:
    def test_split_and_trim(self) -> None:
        assert parse_rule_names(" AGE, MXdm ,,NT ") == ["AGE", "MXdm", "NT"]

    def test_missing(self) -> None:
        assert parse_rule_names(None) == []


class TestSearchEndpoint:
    def test_streams_ndjson(self, client: TestClient, use_case) -> None:
        resp = client.post("/api", data={"anime": "葬送的芙莉莲", "rules": "AGE,MXdm"})

        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("application/x-ndjson")
        assert resp.headers["cache-control"] == "no-cache"
        lines = [json.loads(line) for line in resp.text.splitlines()]
        assert lines[0] == {"total": 1}
        assert lines[-1] == {"done": True}

        (request,) = use_case.requests
        assert request.keyword == "葬送的芙莉莲"
        assert request.rule_names == ("AGE", "MXdm")
        assert request.expand_episodes is False

    @pytest.mark.parametrize("flag", ["1", "true", "TRUE"])
    def test_episodes_flag(self, client: TestClient, use_case, flag: str) -> None:
        client.post("/api", data={"anime": "x", "rules": "AGE", "episodes": flag})
        assert use_case.requests[0].expand_episodes is True

    def test_other_episode_values_are_false(self, client: TestClient, use_case) -> None:
        client.post("/api", data={"anime": "x", "rules": "AGE", "episodes": "yes"})
        assert use_case.requests[0].expand_episodes is False

    @pytest.mark.parametrize("data", [{"rules": "AGE"}, {"anime": "   ", "rules": "AGE"}])
    def test_missing_keyword(self, client: TestClient, data: dict[str, Any]) -> None:
        resp = client.post("/api", data=data)
        assert resp.status_code == 400
        assert resp.json() == {"error": "Anime name is required"}

    @pytest.mark.parametrize("data", [{"anime": "x"}, {"anime": "x", "rules": " , "}])
    def test_missing_rules(self, client: TestClient, data: dict[str, Any]) -> None:
        resp = client.post("/api", data=data)
        assert resp.status_code == 400
        assert resp.json()["error"].startswith("Rules are required")


class TestRulesEndpoints:
    def test_list_rules_sorted(self, client: TestClient) -> None:
        body = client.get("/rules").json()
        assert [r["name"] for r in body] == ["AGE", "MXdm"]
        assert body[0] == {
            "name": "AGE",
            "version": "1.0",
            "baseUrl": "https://age.test/",
            "color": "#ff0000",
            "tags": ["在线"],
            "magic": True,
        }

    def test_health(self, client: TestClient) -> None:
        body = client.get("/health").json()
        assert body["status"] == "ok"
        assert body["rules"] == 2

    def test_info(self, client: TestClient) -> None:
        body = client.get("/info").json()
        assert body["name"] == "animesearch"
        assert "POST /api" in body["endpoints"]

    def test_update_reloads_registry(self, client: TestClient, registry) -> None:
        body = client.get("/update").json()
        assert body["success"] is True
        assert body["commit"] == "abc"
        # rule_dir does not exist, so the reload leaves an empty snapshot
        assert body["loaded"] == 0
        assert len(registry) == 0
