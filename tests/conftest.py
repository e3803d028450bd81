"""Shared test fixtures for the animesearch test suite."""

from __future__ import annotations

from typing import Any, Callable

import pytest

from animesearch.domain.entities import SearchResultItem, SiteSearchOutcome
from animesearch.domain.rules import SiteRule
from animesearch.infrastructure.rules import parse_rule

# ---------------------------------------------------------------------------
# Rule fixtures
# ---------------------------------------------------------------------------


def _rule_data(name: str = "Demo", **overrides: Any) -> dict[str, Any]:
    """Kazumi-style rule document for a site at https://<name>.test/."""
    host = f"{name.lower()}.test"
    data: dict[str, Any] = {
        "api": "1",
        "type": "anime",
        "name": name,
        "version": "1.0",
        "baseURL": f"https://{host}/",
        "searchURL": f"https://{host}/search?wd=@keyword",
        "searchList": "//div[@class='result']",
        "searchName": "//h3/a",
        "searchResult": "//h3/a",
        "chapterRoads": "//div[@class='playlist']",
        "chapterResult": "//li/a",
        "color": "#ff0000",
        "tags": ["在线"],
    }
    data.update(overrides)
    return data


@pytest.fixture()
def make_rule() -> Callable[..., SiteRule]:
    """Factory: validated + compiled SiteRule from a Kazumi rule document."""

    def _make(name: str = "Demo", **overrides: Any) -> SiteRule:
        return parse_rule(_rule_data(name, **overrides))

    return _make


@pytest.fixture()
def demo_rule(make_rule: Callable[..., SiteRule]) -> SiteRule:
    return make_rule("Demo")


# ---------------------------------------------------------------------------
# HTML fixtures
# ---------------------------------------------------------------------------


def _search_page(*entries: tuple[str, str]) -> str:
    """Search result page in the layout ``rule_data()`` selects."""
    rows = "".join(
        f'<div class="result"><h3><a href="{href}">{name}</a></h3></div>'
        for name, href in entries
    )
    return f"<html><body><div id='list'>{rows}</div></body></html>"


def _detail_page(*groups: list[tuple[str, str]]) -> str:
    """Detail page with one ``div.playlist`` per episode group."""
    blocks = []
    for group in groups:
        items = "".join(f'<li><a href="{href}">{name}</a></li>' for name, href in group)
        blocks.append(f'<div class="playlist"><ul>{items}</ul></div>')
    return f"<html><body>{''.join(blocks)}</body></html>"


@pytest.fixture()
def outcome() -> SiteSearchOutcome:
    return SiteSearchOutcome(
        rule_name="AGE",
        color="#e91e63",
        tags=("在线",),
        items=(SearchResultItem(name="葬送的芙莉莲", url="https://age.test/detail/1"),),
    )


@pytest.fixture()
def rule_doc() -> Callable[..., dict[str, Any]]:
    """Factory: raw Kazumi rule document (dict) for ``https://<name>.test/``."""
    return _rule_data


@pytest.fixture()
def search_page() -> Callable[..., str]:
    """Factory: search page HTML from ``(name, href)`` pairs."""
    return _search_page


@pytest.fixture()
def detail_page() -> Callable[..., str]:
    """Factory: detail page HTML from lists of ``(name, href)`` pairs."""
    return _detail_page
