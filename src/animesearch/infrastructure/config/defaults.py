"""Hardcoded default configuration values."""

from __future__ import annotations

from typing import Any

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

DEFAULT_CONFIG: dict[str, Any] = {
    "app_name": "animesearch",
    "environment": "dev",
    "rules": {
        "rule_dir": "./rules",
    },
    "http": {
        "timeout_seconds": 15.0,
        "retry_timeout_seconds": 20.0,
        "user_agent": DEFAULT_USER_AGENT,
        "proxy_prefix": "https://rp.30hb.cn/?target=",
        "reactive_proxy_fallback": True,
    },
    "search": {
        "deadline_seconds": 60.0,
        "max_concurrent_fetches": 16,
        "episode_concurrency": 3,
        "episode_interval_seconds": 0.3,
        "episode_item_limit": 5,
    },
    "updater": {
        "repo": "Predidit/KazumiRules",
        "branch": "main",
        "github_proxy": "https://gh-proxy.com/",
        "auto_update": False,
    },
    "logging": {
        "level": "INFO",
        "format": None,  # Derived from environment in schema.py
    },
}
