"""Fetch failures: recoverable, converted into a failed site outcome."""

from __future__ import annotations


class FetchError(Exception):
    """Base class for failed page fetches."""

    def __init__(self, url: str, message: str) -> None:
        super().__init__(f"{message}: {url}")
        self.url = url


class FetchTimeout(FetchError):
    def __init__(self, url: str) -> None:
        super().__init__(url, "request timed out")


class FetchTransportError(FetchError):
    """DNS, TCP, TLS or protocol failure before a response arrived."""

    def __init__(self, url: str, detail: str) -> None:
        super().__init__(url, f"transport error ({detail})")
        self.detail = detail


class FetchStatusError(FetchError):
    """Non-success status that does not indicate blocking (e.g. 404)."""

    def __init__(self, url: str, status_code: int) -> None:
        super().__init__(url, f"unexpected status {status_code}")
        self.status_code = status_code


class FetchBlocked(FetchStatusError):
    """Status that suggests the site rejects direct requests (403/429/5xx)."""
