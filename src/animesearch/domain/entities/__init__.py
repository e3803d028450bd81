from .fetch import (
    FetchBlocked,
    FetchError,
    FetchStatusError,
    FetchTimeout,
    FetchTransportError,
)
from .search import (
    DoneEvent,
    Episode,
    EpisodeGroup,
    ProgressEvent,
    SearchBadRequest,
    SearchError,
    SearchRequest,
    SearchResultItem,
    SiteSearchOutcome,
    StreamEvent,
    TotalEvent,
)

__all__ = [
    "DoneEvent",
    "Episode",
    "EpisodeGroup",
    "FetchBlocked",
    "FetchError",
    "FetchStatusError",
    "FetchTimeout",
    "FetchTransportError",
    "ProgressEvent",
    "SearchBadRequest",
    "SearchError",
    "SearchRequest",
    "SearchResultItem",
    "SiteSearchOutcome",
    "StreamEvent",
    "TotalEvent",
]
