"""Pure domain models for site rules (framework-free)."""

from __future__ import annotations

from dataclasses import dataclass, field

KEYWORD_PLACEHOLDER = "@keyword"


@dataclass(frozen=True)
class CompiledSelector:
    """CSS rendition of one rule selector.

    ``css`` is evaluated against a whole document, ``scoped_css`` against a
    container element (``:scope`` anchored).  ``text`` and ``attribute``
    carry a trailing ``/text()`` or ``/@attr`` step of the source XPath.
    """

    source: str
    css: str
    scoped_css: str
    text: bool = False
    attribute: str | None = None


@dataclass(frozen=True)
class RuleSelectors:
    """Compiled selectors of one rule, produced once at admission."""

    search_list: CompiledSelector
    search_name: CompiledSelector
    search_result: CompiledSelector
    chapter_roads: CompiledSelector | None = None
    chapter_result: CompiledSelector | None = None

    @property
    def has_episodes(self) -> bool:
        return self.chapter_roads is not None and self.chapter_result is not None


@dataclass(frozen=True)
class SiteRule:
    """
    Declarative scraping definition of one site (Kazumi rule format).

    Example (external JSON):
      {
        "name": "AGE",
        "baseURL": "https://www.agedm.org/",
        "searchURL": "https://www.agedm.org/search?query=@keyword",
        "searchList": "//div[2]/div/section/div/div/div/div",
        "searchName": "//div/div[2]/h5/a",
        "searchResult": "//div/div[2]/h5/a",
        "chapterRoads": "//div[2]/div/section/div/div[2]/div[2]/div[2]/div",
        "chapterResult": "//ul/li/a"
      }
    """

    name: str
    base_url: str
    search_url: str
    search_list: str
    search_name: str
    search_result: str
    selectors: RuleSelectors
    chapter_roads: str = ""
    chapter_result: str = ""
    use_post: bool = False
    color: str = "white"
    tags: tuple[str, ...] = field(default_factory=tuple)
    proxy: bool = False
    version: str = "1.0"
    user_agent: str = ""
    referer: str = ""

    @property
    def method(self) -> str:
        return "POST" if self.use_post else "GET"

    def build_search_url(self, encoded_keyword: str) -> str:
        """Substitute the (already URL-encoded) keyword into the template."""
        return self.search_url.replace(KEYWORD_PLACEHOLDER, encoded_keyword)
