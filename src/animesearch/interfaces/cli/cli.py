"""``animesearch`` command: serve the search API or sync rules once."""

from __future__ import annotations

import argparse
import asyncio
import os
import sys
from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import Any

import httpx
import structlog
import uvicorn

from animesearch import __version__
from animesearch.infrastructure.config import AppConfig, load_config
from animesearch.infrastructure.logging.setup import configure_logging
from animesearch.infrastructure.rules import RuleUpdater
from animesearch.interfaces.app import create_app

log = structlog.get_logger(__name__)

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 3000

# argparse dest -> flat config key
_OVERRIDE_FLAGS: dict[str, str] = {
    "rule_dir": "rule_dir",
    "proxy_prefix": "http_proxy_prefix",
    "deadline": "search_deadline_seconds",
    "log_level": "log_level",
    "log_format": "log_format",
}


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="animesearch",
        description="Concurrent anime search across Kazumi rule sites.",
    )
    parser.add_argument("--version", action="version", version=__version__)

    server = parser.add_argument_group("server")
    server.add_argument("--host", help=f"Bind address (env HOST, default {DEFAULT_HOST}).")
    server.add_argument(
        "--port", type=int, help=f"Bind port (env PORT, default {DEFAULT_PORT})."
    )

    files = parser.add_argument_group("configuration files")
    files.add_argument("--config", type=Path, help="YAML config file.")
    files.add_argument("--dotenv", type=Path, help=".env file with ANIMESEARCH_* variables.")

    overrides = parser.add_argument_group("overrides (beat file and env values)")
    overrides.add_argument("--rule-dir", help="Directory with Kazumi JSON rules.")
    overrides.add_argument("--proxy-prefix", help="Prefix for the proxy retry.")
    overrides.add_argument(
        "--deadline", type=float, help="Wall-clock limit of one search in seconds."
    )
    overrides.add_argument(
        "--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR"]
    )
    overrides.add_argument("--log-format", choices=["json", "console"])

    parser.add_argument(
        "--update-rules",
        action="store_true",
        help="Download the rule repository into the rule directory and exit.",
    )
    return parser


def _cli_overrides(args: argparse.Namespace) -> dict[str, Any]:
    return {
        key: getattr(args, dest)
        for dest, key in _OVERRIDE_FLAGS.items()
        if getattr(args, dest) is not None
    }


def _bind_address(args: argparse.Namespace) -> tuple[str, int]:
    host = args.host or os.getenv("HOST") or DEFAULT_HOST
    port = args.port if args.port is not None else int(os.getenv("PORT") or DEFAULT_PORT)
    return host, port


async def _update_rules(config: AppConfig) -> int:
    """One-shot rule sync; exit code 1 when anything failed."""
    async with httpx.AsyncClient(follow_redirects=True) as client:
        updater = RuleUpdater(
            client,
            config.rule_dir,
            repo=config.updater_repo,
            branch=config.updater_branch,
            github_proxy=config.updater_github_proxy,
        )
        result = await updater.update(force=True)

    log.info(
        "rules_updated",
        directory=str(config.rule_dir),
        commit=result.commit,
        total=result.total,
        added=result.added,
        updated=result.updated,
        failed=result.failed,
    )
    return 1 if result.failed or result.commit is None else 0


def main(argv: Sequence[str] | Iterable[str] | None = None) -> int:
    args = _build_parser().parse_args(sys.argv[1:] if argv is None else list(argv))

    config = load_config(
        config_path=args.config,
        dotenv_path=args.dotenv,
        cli_overrides=_cli_overrides(args),
    )
    log_config = configure_logging(config)

    if args.update_rules:
        return asyncio.run(_update_rules(config))

    host, port = _bind_address(args)
    log.info("server_starting", host=host, port=port, rule_dir=str(config.rule_dir))
    uvicorn.run(create_app(config), host=host, port=port, log_config=log_config)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
