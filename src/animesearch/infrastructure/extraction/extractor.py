"""Apply a rule's compiled selectors to parsed pages.

Pure functions: the same document and rule always yield the same ordered
output.  Containers or episodes with an empty name or link are skipped, an
empty result list is a valid outcome.
"""

from __future__ import annotations

import structlog
from bs4 import BeautifulSoup, Tag

from animesearch.domain.entities import Episode, EpisodeGroup, SearchResultItem
from animesearch.domain.rules import SiteRule
from animesearch.infrastructure.common.html_selectors import (
    element_attribute,
    element_link,
    element_text,
    first_anchor_href,
    resolve_url,
    select_all,
    select_first,
)

log = structlog.get_logger(__name__)

GROUP_LABEL = "线路{index}"


def extract_results(document: BeautifulSoup, rule: SiteRule) -> list[SearchResultItem]:
    """Extract search results from a search page.

    For every container matched by the list selector, the first name match
    gives the title (its text, or the attribute named by a trailing
    ``/@attr`` step) and the first link match gives the detail URL (falling
    back to the first ``a[href]`` in the container).
    """
    selectors = rule.selectors
    items: list[SearchResultItem] = []

    for container in select_all(document, selectors.search_list):
        name_el = select_first(container, selectors.search_name)
        name = _item_name(name_el, selectors.search_name.attribute)

        link_el = select_first(container, selectors.search_result)
        href = (
            element_link(link_el, selectors.search_result.attribute)
            if link_el is not None
            else ""
        )
        if not href:
            href = first_anchor_href(container)

        if not name or not href:
            continue

        items.append(SearchResultItem(name=name, url=resolve_url(href, rule.base_url)))

    log.debug("results_extracted", rule=rule.name, count=len(items))
    return items


def extract_episodes(
    document: BeautifulSoup,
    rule: SiteRule,
    page_url: str,
) -> list[EpisodeGroup]:
    """Extract episode groups from a detail page.

    Episode links are resolved against *page_url*.  Groups without any
    episode are dropped; labels are only assigned when more than one group
    remains.  A rule without episode selectors yields ``[]``.
    """
    selectors = rule.selectors
    if selectors.chapter_roads is None or selectors.chapter_result is None:
        return []

    groups: list[tuple[Episode, ...]] = []
    for road in select_all(document, selectors.chapter_roads):
        episodes = _extract_group(road, rule, page_url)
        if episodes:
            groups.append(episodes)

    if len(groups) == 1:
        return [EpisodeGroup(episodes=groups[0])]
    return [
        EpisodeGroup(episodes=episodes, name=GROUP_LABEL.format(index=index))
        for index, episodes in enumerate(groups, start=1)
    ]


def _item_name(element: Tag | None, attribute: str | None) -> str:
    if element is None:
        return ""
    if attribute:
        return element_attribute(element, attribute)
    return element_text(element)


def _extract_group(road: Tag, rule: SiteRule, page_url: str) -> tuple[Episode, ...]:
    selector = rule.selectors.chapter_result
    assert selector is not None

    episodes: list[Episode] = []
    for element in select_all(road, selector):
        name = element_text(element)
        href = element_link(element, selector.attribute)
        if not name or not href:
            continue
        episodes.append(Episode(name=name, url=resolve_url(href, page_url)))
    return tuple(episodes)
