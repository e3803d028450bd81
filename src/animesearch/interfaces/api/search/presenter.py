"""NDJSON presenter for search stream events.

One JSON object per line, UTF-8, non-ASCII preserved::

    {"total": 3}
    {"progress": {"completed": 1, "total": 3}, "result": {"name": "AGE", ...}}
    {"progress": {"completed": 2, "total": 3}}
    {"progress": {"completed": 3, "total": 3}, "result": {...}}
    {"done": true}

A progress line without ``result`` reports a failed source.  The
``episodes`` key of an item is only present when expansion was requested.
"""

from __future__ import annotations

import json
from typing import Any, AsyncIterator

from animesearch.domain.entities import (
    DoneEvent,
    EpisodeGroup,
    ProgressEvent,
    SearchResultItem,
    SiteSearchOutcome,
    StreamEvent,
    TotalEvent,
)

NDJSON_MEDIA_TYPE = "application/x-ndjson"


def render_episode_group(group: EpisodeGroup) -> dict[str, Any]:
    return {
        "name": group.name,
        "episodes": [{"name": ep.name, "url": ep.url} for ep in group.episodes],
    }


def render_item(item: SearchResultItem) -> dict[str, Any]:
    out: dict[str, Any] = {"name": item.name, "url": item.url}
    if item.episodes is not None:
        out["episodes"] = [render_episode_group(g) for g in item.episodes]
    return out


def render_outcome(outcome: SiteSearchOutcome) -> dict[str, Any]:
    return {
        "name": outcome.rule_name,
        "color": outcome.color,
        "tags": list(outcome.tags),
        "items": [render_item(item) for item in outcome.items],
    }


def render_event(event: StreamEvent) -> dict[str, Any]:
    """Map one stream event to its JSON object."""
    if isinstance(event, TotalEvent):
        return {"total": event.total}
    if isinstance(event, ProgressEvent):
        out: dict[str, Any] = {
            "progress": {"completed": event.completed, "total": event.total}
        }
        if event.outcome is not None:
            out["result"] = render_outcome(event.outcome)
        return out
    if isinstance(event, DoneEvent):
        return {"done": True}
    raise TypeError(f"unknown stream event: {event!r}")


def render_event_line(event: StreamEvent) -> str:
    return json.dumps(render_event(event), ensure_ascii=False) + "\n"


async def render_ndjson(events: AsyncIterator[StreamEvent]) -> AsyncIterator[str]:
    async for event in events:
        yield render_event_line(event)
