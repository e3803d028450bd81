from __future__ import annotations

from typing import cast

import structlog
from fastapi import APIRouter, Form, Request
from fastapi.responses import StreamingResponse

from animesearch.domain.entities import SearchBadRequest, SearchRequest
from animesearch.interfaces.api.search.presenter import (
    NDJSON_MEDIA_TYPE,
    render_ndjson,
)
from animesearch.interfaces.app_state import AppState

log = structlog.get_logger(__name__)

router = APIRouter(tags=["search"])

_TRUTHY = {"1", "true"}


def parse_rule_names(raw: str | None) -> list[str]:
    """Split the comma-separated ``rules`` field."""
    if raw is None:
        return []
    return [name.strip() for name in raw.split(",") if name.strip()]


@router.post("/api")
async def search(
    request: Request,
    anime: str | None = Form(None, description="Search keyword"),
    rules: str | None = Form(None, description="Comma-separated rule names"),
    episodes: str | None = Form(None, description="'1'/'true' to expand episodes"),
) -> StreamingResponse:
    """Stream search progress as newline-delimited JSON.

    An empty ``rules`` field is rejected with 400 before streaming starts.
    Names that are all unknown stream ``{"total": 0}`` and then
    ``{"done": true}``.
    """
    state = cast(AppState, request.app.state)

    names = parse_rule_names(rules)
    search_request = SearchRequest.create(
        anime or "",
        names,
        expand_episodes=(episodes or "").strip().lower() in _TRUTHY,
    )
    if not names:
        raise SearchBadRequest(
            "Rules are required. Use 'rules' field to specify rule names "
            "(comma separated)"
        )

    log.info(
        "search_request",
        keyword=search_request.keyword,
        rules=list(search_request.rule_names),
        expand_episodes=search_request.expand_episodes,
    )

    return StreamingResponse(
        render_ndjson(state.search_uc.stream(search_request)),
        media_type=NDJSON_MEDIA_TYPE,
        headers={"Cache-Control": "no-cache"},
    )
