"""Port for rule access."""

from __future__ import annotations

from typing import Mapping, Protocol, runtime_checkable

from animesearch.domain.rules import SiteRule


@runtime_checkable
class RuleRegistryPort(Protocol):
    """Synchronous, read-only view on the admitted rule set.

    ``snapshot()`` returns an immutable name -> rule mapping; a caller that
    holds it never observes a later swap.
    """

    def list_names(self) -> list[str]: ...
    def get(self, name: str) -> SiteRule: ...
    def snapshot(self) -> Mapping[str, SiteRule]: ...
