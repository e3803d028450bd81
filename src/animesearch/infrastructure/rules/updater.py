"""Synchronise the local rule directory with a GitHub rule repository.

The repository's latest commit SHA is compared with the one stored in
``<rule_dir>/.last_commit``; on change (or when no local rule exists) every
``*.json`` file of the repository root is downloaded, checked to be JSON
and written to the rule directory.  Requests that fail directly are retried
once through the configured GitHub proxy prefix.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Literal

import httpx
import structlog

from .loader import INDEX_FILE, is_rule_file

log = structlog.get_logger(__name__)

LAST_COMMIT_FILE = ".last_commit"
GITHUB_API = "https://api.github.com"
GITHUB_RAW = "https://raw.githubusercontent.com"
_HEADERS = {
    "Accept": "application/vnd.github.v3+json",
    "User-Agent": "animesearch-rule-updater",
}

UpdateAction = Literal["added", "updated", "failed"]


@dataclass
class UpdateDetail:
    name: str
    action: UpdateAction
    message: str


@dataclass
class UpdateResult:
    total: int = 0
    added: int = 0
    updated: int = 0
    failed: int = 0
    commit: str | None = None
    details: list[UpdateDetail] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return (self.added + self.updated) > 0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class RuleUpdateError(Exception):
    """A GitHub request failed both directly and through the proxy."""


class RuleUpdater:
    def __init__(
        self,
        http_client: httpx.AsyncClient,
        rule_dir: Path,
        *,
        repo: str,
        branch: str = "main",
        github_proxy: str = "",
        timeout_seconds: float = 30.0,
    ) -> None:
        self._client = http_client
        self._rule_dir = rule_dir
        self._repo = repo
        self._branch = branch
        self._github_proxy = github_proxy
        self._timeout = timeout_seconds

    @property
    def commit_file(self) -> Path:
        return self._rule_dir / LAST_COMMIT_FILE

    def has_local_rules(self) -> bool:
        if not self._rule_dir.is_dir():
            return False
        return any(is_rule_file(p) for p in self._rule_dir.iterdir())

    def read_last_commit(self) -> str | None:
        try:
            return self.commit_file.read_text(encoding="utf-8").strip() or None
        except OSError:
            return None

    async def update(self, *, force: bool = False) -> UpdateResult:
        """Download changed rules into the rule directory.

        Never raises for remote failures: they are reported in the result.
        """
        result = UpdateResult()
        force = force or not self.has_local_rules()
        if force:
            log.info("rule_update_forced", directory=str(self._rule_dir))

        try:
            latest = await self._fetch_latest_commit()
        except RuleUpdateError as e:
            log.warning("rule_update_commit_failed", error=str(e))
            result.details.append(UpdateDetail("commit", "failed", str(e)))
            return result

        result.commit = latest
        previous = self.read_last_commit()
        if not force and previous == latest:
            log.info("rules_up_to_date", commit=latest[:7])
            return result

        log.info(
            "rule_update_started",
            previous=previous[:7] if previous else None,
            latest=latest[:7],
        )

        try:
            names = await self._fetch_rule_names()
        except RuleUpdateError as e:
            log.warning("rule_update_listing_failed", error=str(e))
            result.details.append(UpdateDetail("contents", "failed", str(e)))
            return result

        result.total = len(names)
        self._rule_dir.mkdir(parents=True, exist_ok=True)

        for name in names:
            target = self._rule_dir / f"{name}.json"
            is_new = not target.exists()
            try:
                content = await self._download_rule(name)
                _write_atomic(target, content)
            except (RuleUpdateError, ValueError, OSError) as e:
                log.warning("rule_download_failed", rule_name=name, error=str(e))
                result.failed += 1
                result.details.append(UpdateDetail(name, "failed", str(e)))
                continue

            if is_new:
                result.added += 1
                result.details.append(UpdateDetail(name, "added", "ok"))
            else:
                result.updated += 1
                result.details.append(UpdateDetail(name, "updated", "ok"))

        try:
            _write_atomic(self.commit_file, latest)
        except OSError as e:
            log.warning("rule_commit_save_failed", error=str(e))

        log.info(
            "rule_update_finished",
            added=result.added,
            updated=result.updated,
            failed=result.failed,
        )
        return result

    async def _fetch_latest_commit(self) -> str:
        url = f"{GITHUB_API}/repos/{self._repo}/commits/{self._branch}"
        resp = await self._get_with_retry(url)
        try:
            sha = resp.json()["sha"]
        except (ValueError, KeyError, TypeError) as e:
            raise RuleUpdateError(f"unexpected commit response: {e}") from e
        return str(sha)

    async def _fetch_rule_names(self) -> list[str]:
        url = f"{GITHUB_API}/repos/{self._repo}/contents?ref={self._branch}"
        resp = await self._get_with_retry(url)
        try:
            entries = resp.json()
        except ValueError as e:
            raise RuleUpdateError(f"unexpected contents response: {e}") from e
        if not isinstance(entries, list):
            raise RuleUpdateError("unexpected contents response: not a list")

        names: list[str] = []
        for entry in entries:
            if not isinstance(entry, dict) or entry.get("type") != "file":
                continue
            filename = str(entry.get("name", ""))
            if filename.endswith(".json") and filename != INDEX_FILE:
                names.append(filename[: -len(".json")])
        return names

    async def _download_rule(self, name: str) -> str:
        url = f"{GITHUB_RAW}/{self._repo}/{self._branch}/{name}.json"
        resp = await self._get_with_retry(url)
        content = resp.text
        json.loads(content)  # ValueError on malformed JSON
        return content

    async def _get_with_retry(self, url: str) -> httpx.Response:
        try:
            resp = await self._client.get(url, headers=_HEADERS, timeout=self._timeout)
            if resp.is_success:
                return resp
            log.debug("github_request_failed", url=url, status=resp.status_code)
        except httpx.HTTPError as e:
            log.debug("github_request_failed", url=url, error=str(e))

        if not self._github_proxy:
            raise RuleUpdateError(f"request failed: {url}")

        proxy_url = f"{self._github_proxy}{url}"
        try:
            resp = await self._client.get(
                proxy_url, headers=_HEADERS, timeout=self._timeout
            )
        except httpx.HTTPError as e:
            raise RuleUpdateError(f"proxy request failed: {e}") from e
        if not resp.is_success:
            raise RuleUpdateError(f"proxy request failed: HTTP {resp.status_code}")
        return resp


def _write_atomic(target: Path, content: str) -> None:
    """Replace *target* in one step; readers never see a partial file."""
    tmp = target.with_name(f".{target.name}.tmp")
    try:
        tmp.write_text(content, encoding="utf-8")
        tmp.replace(target)
    finally:
        tmp.unlink(missing_ok=True)
