"""Concurrency budget ports for cross-request coordination."""

from __future__ import annotations

from typing import AsyncContextManager, Protocol, runtime_checkable


@runtime_checkable
class ConcurrencyBudgetPort(Protocol):
    """Per-request concurrency budget handle.

    Provides slot acquisition for outgoing fetches, enforcing fair-share
    limits relative to other active requests.
    """

    def acquire_fetch(self) -> AsyncContextManager[None]:
        """Acquire one fetch slot (async context manager)."""
        ...


@runtime_checkable
class ConcurrencyPoolPort(Protocol):
    """Global pool of fetch slots shared by all search requests."""

    def request(self) -> AsyncContextManager[ConcurrencyBudgetPort]:
        """Enter a request scope, returning a budget handle."""
        ...
