from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Union


@dataclass(frozen=True)
class Episode:
    name: str  # e.g. "第1集", "01"
    url: str  # Playback page URL


@dataclass(frozen=True)
class EpisodeGroup:
    """One playback line of a title (a site may offer several mirrors)."""

    episodes: tuple[Episode, ...]
    name: str | None = None  # "线路1", ... only when several groups exist


@dataclass(frozen=True)
class SearchResultItem:
    name: str
    url: str  # Detail page URL
    # None = expansion not requested; () = requested but nothing found
    episodes: tuple[EpisodeGroup, ...] | None = None


@dataclass(frozen=True)
class SearchRequest:
    keyword: str
    rule_names: tuple[str, ...]
    expand_episodes: bool = False

    @classmethod
    def create(
        cls,
        keyword: str,
        rule_names: Iterable[str],
        expand_episodes: bool = False,
    ) -> "SearchRequest":
        """Build a request with a trimmed keyword and deduplicated names.

        Raises:
            SearchBadRequest: keyword is empty after trimming.
        """
        keyword = keyword.strip()
        if not keyword:
            raise SearchBadRequest("Anime name is required")

        names: list[str] = []
        for raw in rule_names:
            name = raw.strip()
            if name and name not in names:
                names.append(name)
        return cls(
            keyword=keyword,
            rule_names=tuple(names),
            expand_episodes=expand_episodes,
        )


@dataclass(frozen=True)
class SiteSearchOutcome:
    """Result of one dispatched rule: items on success, error otherwise."""

    rule_name: str
    color: str
    tags: tuple[str, ...] = field(default_factory=tuple)
    items: tuple[SearchResultItem, ...] = field(default_factory=tuple)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class TotalEvent:
    total: int


@dataclass(frozen=True)
class ProgressEvent:
    completed: int
    total: int
    outcome: SiteSearchOutcome | None = None  # None when the source failed


@dataclass(frozen=True)
class DoneEvent:
    pass


StreamEvent = Union[TotalEvent, ProgressEvent, DoneEvent]


class SearchError(Exception):
    """Base error for search use cases."""


class SearchBadRequest(SearchError):
    pass
