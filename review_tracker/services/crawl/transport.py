"""Proxy fallback transport.

The review sources cannot be crawled directly, so every resource URL is fetched
through an ordered list of relay proxies. Each route is tried once, in order;
the first 2xx response wins. Adding or reordering routes is a configuration
change (``REVIEW_PROXY_TEMPLATES``).

Template placeholders:
- ``{url}``: target URL, percent-encoded
- ``{raw}``: target URL as-is (a template of just ``{raw}`` fetches directly)
"""

from __future__ import annotations

import logging
import urllib.parse
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

import httpx

from review_tracker.errors import TransportExhausted

logger = logging.getLogger(__name__)

DEFAULT_HEADERS = {
    "Accept": "application/rss+xml, application/xml, text/xml, text/html;q=0.9, */*;q=0.8",
    "X-Requested-With": "XMLHttpRequest",
}


@dataclass(frozen=True)
class ProxyRoute:
    template: str

    def build(self, url: str) -> str:
        return self.template.replace("{url}", urllib.parse.quote(url, safe="")).replace("{raw}", url)

    @property
    def label(self) -> str:
        parsed = urllib.parse.urlparse(self.template)
        return parsed.netloc or self.template


@dataclass
class FetchResult:
    url: str
    body: str
    status: int
    route: ProxyRoute


class TransportResolver:
    def __init__(
        self,
        routes: Iterable[str],
        *,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 15.0,
        user_agent: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> None:
        self.routes: List[ProxyRoute] = [r if isinstance(r, ProxyRoute) else ProxyRoute(r) for r in routes]
        self.client = client
        self.timeout = float(timeout)
        self.headers = dict(headers or DEFAULT_HEADERS)
        if user_agent:
            self.headers["User-Agent"] = user_agent

    async def fetch(self, url: str) -> FetchResult:
        """Fetch ``url`` through the first proxy route that answers with 2xx.

        Raises TransportExhausted (carrying the last error) when every route fails.
        """
        if self.client is not None:
            return await self._fetch_with(self.client, url)
        async with httpx.AsyncClient(timeout=self.timeout, headers=self.headers, follow_redirects=True) as client:
            return await self._fetch_with(client, url)

    async def _fetch_with(self, client: httpx.AsyncClient, url: str) -> FetchResult:
        last_error: Optional[BaseException] = None
        attempts: List[str] = []
        for route in self.routes:
            proxied = route.build(url)
            logger.debug("Trying proxy %s for %s", route.label, url)
            try:
                resp = await client.get(proxied, headers=self.headers)
                resp.raise_for_status()
            except httpx.HTTPStatusError as exc:
                last_error = exc
                attempts.append(f"{route.label}: HTTP {exc.response.status_code}")
                logger.info("Proxy %s failed for %s: HTTP %s", route.label, url, exc.response.status_code)
                continue
            except httpx.HTTPError as exc:
                last_error = exc
                attempts.append(f"{route.label}: {exc!r}")
                logger.info("Proxy %s failed for %s: %r", route.label, url, exc)
                continue
            logger.debug("Fetched %s via %s (%d bytes)", url, route.label, len(resp.content))
            return FetchResult(url=url, body=resp.text, status=resp.status_code, route=route)
        raise TransportExhausted(url, last_error, attempts)
