"""Shared fixtures for integration tests.

These tests wire real components (RuleRegistry, FetchClient,
HttpxSiteSearcher, SearchStreamUseCase) together with mocked HTTP via respx.
"""

from __future__ import annotations

import json
from pathlib import Path

import httpx
import pytest
import respx


@pytest.fixture()
async def http_client() -> httpx.AsyncClient:
    """Real httpx.AsyncClient for use with respx mocking."""
    async with httpx.AsyncClient() as client:
        yield client


@pytest.fixture()
def respx_mock() -> respx.MockRouter:
    """Explicit respx mock router for request interception."""
    with respx.mock(assert_all_called=False) as router:
        yield router


@pytest.fixture()
def rule_dir(tmp_path: Path, rule_doc) -> Path:
    """Rule directory with AGE, MXdm (proxy-eligible) and NT."""
    directory = tmp_path / "rules"
    directory.mkdir()
    for name, extra in (("AGE", {}), ("MXdm", {"magic": True}), ("NT", {})):
        path = directory / f"{name}.json"
        path.write_text(
            json.dumps(rule_doc(name, **extra), ensure_ascii=False), encoding="utf-8"
        )
    return directory
