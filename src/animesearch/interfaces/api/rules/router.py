from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Any, cast

import structlog
from fastapi import APIRouter, Request

from animesearch import __version__
from animesearch.interfaces.app_state import AppState

log = structlog.get_logger(__name__)

router = APIRouter(tags=["rules"])


@router.get("/rules")
async def list_rules(request: Request) -> list[dict[str, Any]]:
    """Rules of the current snapshot, sorted by name."""
    state = cast(AppState, request.app.state)
    snapshot = state.rules.snapshot()
    return [
        {
            "name": rule.name,
            "version": rule.version,
            "baseUrl": rule.base_url,
            "color": rule.color,
            "tags": list(rule.tags),
            "magic": rule.proxy,
        }
        for rule in sorted(snapshot.values(), key=lambda r: r.name)
    ]


@router.get("/info")
async def info(request: Request) -> dict[str, Any]:
    state = cast(AppState, request.app.state)
    return {
        "name": state.config.app_name,
        "version": __version__,
        "description": "Concurrent anime search across Kazumi rule sites",
        "endpoints": {
            "POST /api": "Search (form: anime=keyword, rules=name1,name2, episodes=1)",
            "GET /rules": "List loaded rules",
            "GET /update": "Synchronise rules from the rule repository",
            "GET /health": "Health check",
            "GET /info": "This overview",
        },
    }


@router.get("/health")
async def health(request: Request) -> dict[str, Any]:
    state = cast(AppState, request.app.state)
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "rules": len(state.rules),
        "rulesLoadedAt": state.rules.current.loaded_at.isoformat(),
    }


@router.get("/update")
async def update_rules(request: Request) -> dict[str, Any]:
    """Pull rules from the remote repository and swap the registry snapshot.

    The rule directory is only re-read when files were added or updated.
    """
    state = cast(AppState, request.app.state)
    log.info("rule_update_requested")

    result = await state.rule_updater.update()
    if result.changed:
        snapshot = await asyncio.to_thread(state.rules.load_dir)
    else:
        snapshot = state.rules.current

    return {"success": True, **result.to_dict(), "loaded": len(snapshot)}
