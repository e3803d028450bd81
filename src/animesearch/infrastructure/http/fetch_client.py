"""Page fetching with a bounded timeout and one proxy-fallback retry.

The direct request runs under ``timeout_seconds``.  If it times out, fails
at transport level or is answered with a blocking status (403, 429, 5xx),
the request is retried exactly once through ``proxy_prefix + url`` under
``retry_timeout_seconds``, provided the rule is proxy-eligible or reactive
fallback is enabled.  Any other status (e.g. 404) is final, and so is a URL
httpx cannot parse.  Each attempt is bounded as a whole, body included, by
its timeout.
"""

from __future__ import annotations

import asyncio
from typing import Mapping

import httpx
import structlog

from animesearch.domain.entities import (
    FetchBlocked,
    FetchStatusError,
    FetchTimeout,
    FetchTransportError,
)

log = structlog.get_logger(__name__)

DEFAULT_ACCEPT_LANGUAGE = "zh-CN,zh;q=0.9,en;q=0.8"
_BLOCKING_STATUS_CODES = frozenset({403, 429})


def is_blocking_status(status_code: int) -> bool:
    """True for statuses that suggest the site rejects direct requests."""
    return status_code in _BLOCKING_STATUS_CODES or 500 <= status_code <= 599


class FetchClient:
    """Thin retry policy around a shared :class:`httpx.AsyncClient`.

    Holds no per-call state; concurrent ``fetch()`` calls are independent.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        *,
        user_agent: str,
        timeout_seconds: float,
        retry_timeout_seconds: float,
        proxy_prefix: str,
        reactive_proxy_fallback: bool = True,
    ) -> None:
        self._client = http_client
        self._user_agent = user_agent
        self._timeout = timeout_seconds
        self._retry_timeout = retry_timeout_seconds
        self._proxy_prefix = proxy_prefix
        self._reactive = reactive_proxy_fallback

    async def fetch(
        self,
        method: str,
        url: str,
        *,
        data: Mapping[str, str] | None = None,
        referer: str | None = None,
        user_agent: str | None = None,
        proxy: bool = False,
    ) -> str:
        """Fetch *url* and return the decoded body.

        Args:
            method: ``"GET"`` or ``"POST"`` (form-encoded *data*).
            url: Absolute URL.
            data: Form fields for POST requests.
            referer: Value for the ``Referer`` header.
            user_agent: Per-rule override of the configured User-Agent.
            proxy: The rule is proxy-eligible.

        Raises:
            FetchTimeout, FetchTransportError, FetchBlocked, FetchStatusError:
                the final attempt failed.
        """
        headers = self._headers(referer, user_agent)
        try:
            httpx.URL(url)
        except httpx.InvalidURL as exc:
            raise FetchTransportError(url, str(exc)) from exc

        try:
            return await self._send(method, url, data, headers, self._timeout)
        except (FetchTimeout, FetchTransportError, FetchBlocked) as exc:
            if not self._proxy_prefix or not (proxy or self._reactive):
                raise
            log.info(
                "proxy_retry",
                url=url,
                reason=str(exc),
                flagged=proxy,
            )

        return await self._send(
            method,
            f"{self._proxy_prefix}{url}",
            data,
            headers,
            self._retry_timeout,
        )

    def _headers(self, referer: str | None, user_agent: str | None) -> dict[str, str]:
        headers = {
            "User-Agent": user_agent or self._user_agent,
            "Accept-Language": DEFAULT_ACCEPT_LANGUAGE,
        }
        if referer:
            headers["Referer"] = referer
        return headers

    async def _send(
        self,
        method: str,
        url: str,
        data: Mapping[str, str] | None,
        headers: dict[str, str],
        timeout: float,
    ) -> str:
        try:
            resp = await asyncio.wait_for(
                self._client.request(
                    method,
                    url,
                    data=data,
                    headers=headers,
                    timeout=timeout,
                    follow_redirects=True,
                ),
                timeout,
            )
        except (httpx.TimeoutException, asyncio.TimeoutError) as exc:
            raise FetchTimeout(url) from exc
        except (httpx.RequestError, httpx.InvalidURL) as exc:
            raise FetchTransportError(url, str(exc) or type(exc).__name__) from exc

        if is_blocking_status(resp.status_code):
            raise FetchBlocked(url, resp.status_code)
        if not resp.is_success:
            raise FetchStatusError(url, resp.status_code)

        log.debug("page_fetched", url=url, status=resp.status_code, size=len(resp.content))
        return resp.text
