import asyncio
import time
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

import httpx
from bs4 import BeautifulSoup
from loguru import logger

from bookscrapper.errors import (
    ParseError,
    TerminalFetchError,
    TransientFetchError,
)
from bookscrapper.monitoring.metrics_server import REQUEST_COUNT, REQUEST_LATENCY
from bookscrapper.parsing.html_extractor import parse_document
from bookscrapper.utils.config_loader import DEFAULT_USER_AGENT
from bookscrapper.utils.url_utils import get_domain


MAX_DOWNLOAD_BYTES = 2_000_000
MAX_REDIRECTS = 10
RETRYABLE_STATUSES = {408, 425, 429}


@dataclass
class FetchedPage:
    url: str
    status_code: int
    document: BeautifulSoup


class DomainThrottle:
    """Keeps at least min_delay seconds between requests to the same domain."""

    def __init__(self, min_delay: float = 0.0) -> None:
        self.min_delay = min_delay
        self._last_request: Dict[str, float] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    async def wait(self, url: str) -> None:
        if self.min_delay <= 0:
            return

        domain = get_domain(url)
        lock = self._locks.setdefault(domain, asyncio.Lock())

        async with lock:
            last = self._last_request.get(domain)
            if last is not None:
                wait_s = self.min_delay - (time.monotonic() - last)
                if wait_s > 0:
                    await asyncio.sleep(wait_s)
            self._last_request[domain] = time.monotonic()


class PageFetcher:
    """
    Fetches URLs and turns them into BeautifulSoup documents.

    Failures surface as ``TerminalFetchError`` (404/410 and other client
    errors), ``TransientFetchError`` (transport errors, timeouts, 5xx, 429)
    or ``ParseError`` (non-HTML or oversized body).
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        *,
        user_agent: str = DEFAULT_USER_AGENT,
        request_timeout: float = 10,
        min_delay: float = 0.0,
        max_download_bytes: int = MAX_DOWNLOAD_BYTES,
    ) -> None:
        self.client = client
        self._owns_client = client is None
        self.user_agent = user_agent
        self.request_timeout = request_timeout
        self.max_download_bytes = max_download_bytes
        self.throttle = DomainThrottle(min_delay)

    async def __aenter__(self) -> "PageFetcher":
        if self.client is None:
            self.client = httpx.AsyncClient(
                timeout=httpx.Timeout(timeout=self.request_timeout),
                follow_redirects=True,
                max_redirects=MAX_REDIRECTS,
            )
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        if self.client is not None and self._owns_client:
            await self.client.aclose()
            self.client = None

    # --------------------------
    #  HTTP
    # --------------------------
    async def _get(
        self,
        url: str,
        *,
        accept: str,
        params: Optional[Mapping[str, Any]] = None,
    ) -> httpx.Response:
        if self.client is None:
            raise RuntimeError("HTTP client is not initialized")

        domain = get_domain(url)
        REQUEST_COUNT.labels(website=domain).inc()
        await self.throttle.wait(url)

        start = time.perf_counter()
        try:
            resp = await self.client.get(
                url,
                params=params,
                headers={
                    "User-Agent": self.user_agent,
                    "Accept": accept,
                    "Accept-Language": "pl-PL,pl;q=0.9,en-US;q=0.8,en;q=0.7",
                },
            )
        except httpx.TooManyRedirects as exc:
            raise TerminalFetchError(url, f"Redirect loop: {exc}") from exc
        except httpx.TransportError as exc:
            raise TransientFetchError(url, f"{type(exc).__name__}: {exc}") from exc
        finally:
            REQUEST_LATENCY.labels(website=domain).observe(time.perf_counter() - start)

        status = resp.status_code
        if status >= 500 or status in RETRYABLE_STATUSES:
            raise TransientFetchError(url, f"HTTP {status}", status_code=status)
        if status >= 400:
            raise TerminalFetchError(url, f"HTTP {status}", status_code=status)

        if len(resp.content or b"") > self.max_download_bytes:
            raise ParseError(url, "Body too large", status_code=status)

        return resp

    async def fetch(self, url: str) -> FetchedPage:
        resp = await self._get(
            url,
            accept="text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
        )

        content_type = (resp.headers.get("Content-Type") or "").lower()
        if "html" not in content_type:
            raise ParseError(url, f"Non HTML content: {content_type or 'unknown'}", resp.status_code)

        html = resp.text or ""
        if not html.strip():
            raise ParseError(url, "Empty body", resp.status_code)

        logger.debug(f"Fetched {url} ({len(html)} bytes, status={resp.status_code})")
        return FetchedPage(
            url=str(resp.url),
            status_code=resp.status_code,
            document=parse_document(html),
        )

    async def fetch_json(self, url: str, params: Optional[Mapping[str, Any]] = None) -> Any:
        resp = await self._get(url, accept="application/json", params=params)
        try:
            return resp.json()
        except ValueError as exc:
            raise ParseError(url, f"Invalid JSON: {exc}", resp.status_code) from exc
