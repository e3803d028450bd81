"""Rule registry holding one immutable snapshot, swapped atomically."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from types import MappingProxyType
from typing import Iterable, Mapping

import structlog

from animesearch.domain.rules import (
    DuplicateRuleError,
    RuleError,
    RuleNotFoundError,
    SiteRule,
)

from .loader import is_rule_file, load_rule_file

log = structlog.get_logger(__name__)


@dataclass(frozen=True)
class RuleSnapshot:
    """Immutable name -> rule mapping plus load metadata."""

    rules: Mapping[str, SiteRule] = field(
        default_factory=lambda: MappingProxyType({})
    )
    loaded_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __len__(self) -> int:
        return len(self.rules)


class RuleRegistry:
    """
    Registry of admitted rules.

    Readers (``snapshot()``, ``get()``, ``list_names()``) never lock: they
    read the current snapshot reference, which is only ever replaced as a
    whole.  A search that took a snapshot keeps seeing it after a reload.
    """

    def __init__(self, rule_dir: Path) -> None:
        self._rule_dir = rule_dir
        self._snapshot = RuleSnapshot()
        self._swap_lock = threading.Lock()

    @property
    def rule_dir(self) -> Path:
        return self._rule_dir

    @property
    def current(self) -> RuleSnapshot:
        return self._snapshot

    def __len__(self) -> int:
        return len(self._snapshot)

    def snapshot(self) -> Mapping[str, SiteRule]:
        return self._snapshot.rules

    def list_names(self) -> list[str]:
        return sorted(self._snapshot.rules)

    def get(self, name: str) -> SiteRule:
        try:
            return self._snapshot.rules[name]
        except KeyError:
            raise RuleNotFoundError(f"Rule '{name}' not found") from None

    def replace(self, rules: Iterable[SiteRule]) -> RuleSnapshot:
        """Swap in a new rule set as one step.

        Raises:
            DuplicateRuleError: two rules share a name (nothing is swapped).
        """
        staged: dict[str, SiteRule] = {}
        for rule in rules:
            if rule.name in staged:
                raise DuplicateRuleError(f"Rule name '{rule.name}' already exists")
            staged[rule.name] = rule

        snapshot = RuleSnapshot(rules=MappingProxyType(staged))
        with self._swap_lock:
            self._snapshot = snapshot
        log.info("rules_swapped", count=len(snapshot))
        return snapshot

    def load_dir(self, directory: Path | None = None) -> RuleSnapshot:
        """Load every rule file of *directory* (default: ``rule_dir``).

        Broken rules and duplicate names are logged and skipped; the
        remaining rules replace the current snapshot.
        """
        directory = directory or self._rule_dir
        if not directory.is_dir():
            log.warning("rule_directory_not_found", directory=str(directory))
            return self.replace([])

        admitted: dict[str, SiteRule] = {}
        skipped = 0
        for path in sorted(directory.iterdir(), key=lambda p: p.name):
            if not is_rule_file(path):
                continue
            try:
                rule = load_rule_file(path)
            except RuleError:
                skipped += 1
                continue
            if rule.name in admitted:
                log.error(
                    "rule_duplicate_name",
                    rule_name=rule.name,
                    rule_file=str(path),
                )
                skipped += 1
                continue
            admitted[rule.name] = rule

        log.info(
            "rules_loaded",
            count=len(admitted),
            skipped=skipped,
            directory=str(directory),
        )
        if not admitted:
            log.warning("no_rules_found", directory=str(directory))
        return self.replace(admitted.values())
