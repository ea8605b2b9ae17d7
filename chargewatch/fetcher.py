import asyncio
import logging
import time
from typing import Dict, Optional

import httpx
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from playwright.async_api import async_playwright

from .config import BADGE_WAIT_SEC, FETCH_TIMEOUT_SEC, FETCHER_BACKEND, PAGE_SETTLE_SEC, USER_AGENT
from .errors import FetchError

DEFAULT_HEADERS = {
    "User-Agent": USER_AGENT,
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
}


class PageFetcher:
    """Retrieves raw operator page markup.

    Implementations raise :class:`FetchError` for every failure so callers only
    need to handle one exception type.
    """

    name = "base"

    async def fetch(self, url: str, headers: Optional[Dict[str, str]] = None) -> str:
        raise NotImplementedError

    async def close(self) -> None:
        pass


class HttpPageFetcher(PageFetcher):
    """Plain HTTP fetch.

    The operator sets its session cookies on the first response, so the page
    is requested twice: once to collect cookies and once more, cache-busted,
    with those cookies and a Referer.
    """

    name = "http"

    def __init__(self, timeout: float = FETCH_TIMEOUT_SEC, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.timeout = timeout
        self._transport = transport

    async def fetch(self, url: str, headers: Optional[Dict[str, str]] = None) -> str:
        merged = {**DEFAULT_HEADERS, **(headers or {})}
        async with httpx.AsyncClient(
            headers=merged,
            timeout=self.timeout,
            follow_redirects=True,
            transport=self._transport,
        ) as client:
            try:
                resp = await asyncio.wait_for(self._fetch_twice(client, url), timeout=self.timeout)
            except (asyncio.TimeoutError, httpx.TimeoutException) as e:
                raise FetchError(f"Timed out after {self.timeout}s fetching {url}") from e
            except httpx.HTTPStatusError as e:
                raise FetchError(
                    f"Failed to fetch charger data: {e.response.status_code} {e.response.reason_phrase}"
                ) from e
            except httpx.HTTPError as e:
                raise FetchError(f"Failed to fetch charger data: {e}") from e
        logging.info(f"← {resp.status_code} ({len(resp.text)} bytes)")
        return resp.text

    async def _fetch_twice(self, client: httpx.AsyncClient, url: str) -> httpx.Response:
        logging.info(f"→ GET {url}")
        first = await client.get(url)
        first.raise_for_status()
        # keep the charger's own query parameters, only add the cache buster
        busted = httpx.URL(url).copy_merge_params({"_": str(int(time.time() * 1000))})
        resp = await client.get(
            busted,
            headers={
                "Referer": url,
                "Cache-Control": "no-cache, no-store, must-revalidate",
                "Pragma": "no-cache",
            },
        )
        resp.raise_for_status()
        return resp


class BrowserPageFetcher(PageFetcher):
    """Headless Chromium fetch for pages that render their status client-side.

    The browser is launched on first use and shared by all calls; every call
    gets its own context and page, which are closed before returning.
    """

    name = "browser"

    def __init__(
        self,
        timeout: float = FETCH_TIMEOUT_SEC,
        badge_wait: float = BADGE_WAIT_SEC,
        settle: float = PAGE_SETTLE_SEC,
        badge_selector: str = ".badge",
    ):
        self.timeout = timeout
        self.badge_wait = badge_wait
        self.settle = settle
        self.badge_selector = badge_selector
        self._playwright = None
        self._browser = None
        self._lock = asyncio.Lock()

    async def _ensure_browser(self):
        async with self._lock:
            if self._browser is not None and self._browser.is_connected():
                return self._browser
            await self._teardown()
            playwright = await async_playwright().start()
            try:
                browser = await playwright.chromium.launch(
                    headless=True,
                    args=["--no-sandbox", "--disable-setuid-sandbox"],
                )
            except Exception:
                await playwright.stop()
                raise
            self._playwright, self._browser = playwright, browser
            logging.info("Headless browser launched")
            return browser

    async def fetch(self, url: str, headers: Optional[Dict[str, str]] = None) -> str:
        try:
            browser = await self._ensure_browser()
            context = await browser.new_context(
                user_agent=USER_AGENT,
                viewport={"width": 1280, "height": 800},
                extra_http_headers=headers or {},
            )
        except PlaywrightError as e:
            raise FetchError(f"Browser unavailable: {e}") from e
        try:
            page = await context.new_page()
            logging.info(f"→ navigate {url}")
            try:
                response = await page.goto(url, wait_until="networkidle", timeout=self.timeout * 1000)
            except PlaywrightTimeoutError as e:
                raise FetchError(f"Timed out after {self.timeout}s loading {url}") from e
            if response is not None and not response.ok:
                raise FetchError(f"Failed to fetch charger data: {response.status} {response.status_text}")
            try:
                await page.wait_for_selector(self.badge_selector, timeout=self.badge_wait * 1000)
            except PlaywrightTimeoutError:
                logging.info("Badge selector timeout, continuing anyway")
            if self.settle:
                await page.wait_for_timeout(self.settle * 1000)
            html = await page.content()
            logging.info(f"← rendered page ({len(html)} bytes)")
            return html
        except PlaywrightError as e:
            raise FetchError(f"Browser fetch failed: {e}") from e
        finally:
            await context.close()

    async def _teardown(self) -> None:
        if self._browser is not None:
            browser, self._browser = self._browser, None
            await browser.close()
        if self._playwright is not None:
            playwright, self._playwright = self._playwright, None
            await playwright.stop()
            logging.info("Headless browser closed")

    async def close(self) -> None:
        async with self._lock:
            await self._teardown()


class DisabledPageFetcher(PageFetcher):
    """Never reaches the operator; every record falls back to simulated data."""

    name = "disabled"

    async def fetch(self, url: str, headers: Optional[Dict[str, str]] = None) -> str:
        raise FetchError("Live scraping is disabled")


FETCHERS = {
    HttpPageFetcher.name: HttpPageFetcher,
    BrowserPageFetcher.name: BrowserPageFetcher,
    DisabledPageFetcher.name: DisabledPageFetcher,
}


def make_fetcher(backend: str = FETCHER_BACKEND) -> PageFetcher:
    try:
        cls = FETCHERS[backend]
    except KeyError:
        raise ValueError(f"Unknown FETCHER_BACKEND '{backend}', expected one of {sorted(FETCHERS)}") from None
    logging.info(f"Using {backend} page fetcher")
    return cls()
