"""Page fetch strategies - static HTTP and browser-rendered HTML."""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

import httpx
from playwright.async_api import Browser, Playwright, async_playwright
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from webrep.config import settings
from webrep.utils.exceptions import FetchError

logger = logging.getLogger(__name__)

BROWSER_LAUNCH_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-blink-features=AutomationControlled",
]

DEFAULT_ACCEPT = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"

# Rendered text below this length means client-side rendering probably did not finish
MIN_VISIBLE_TEXT_CHARS = 100
VISIBLE_TEXT_READY = f"document.body && document.body.innerText.length > {MIN_VISIBLE_TEXT_CHARS}"
VISIBLE_TEXT_SCRIPT = "() => document.body ? (document.body.innerText || document.body.textContent || '') : ''"


@dataclass(frozen=True)
class FetchResult:
    """Raw response for a single page fetch."""

    url: str
    status_code: int
    html: str
    content_type: Optional[str] = None
    visible_text: Optional[str] = None

    def is_usable(
        self,
        min_bytes: Optional[int] = None,
        max_bytes: Optional[int] = None,
    ) -> bool:
        """Return True if the response can be handed to the extractor.

        Non-2xx statuses, non-HTML content types and bodies outside the size
        bounds are "no usable content", not failures.
        """
        min_bytes = settings.min_response_bytes if min_bytes is None else min_bytes
        max_bytes = settings.max_response_bytes if max_bytes is None else max_bytes

        if not 200 <= self.status_code < 300:
            return False
        if self.content_type and "html" not in self.content_type.lower():
            return False
        size = len(self.html.encode("utf-8"))
        return min_bytes <= size <= max_bytes


class PageFetcher(ABC):
    """Interface shared by all fetch strategies."""

    name: str = "fetcher"

    @abstractmethod
    async def fetch(self, url: str) -> FetchResult:
        """Fetch a page.

        Raises:
            FetchError: If the page could not be retrieved at all
        """

    async def close(self) -> None:
        """Release any network or browser resources."""

    async def __aenter__(self) -> "PageFetcher":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()


class HttpFetcher(PageFetcher):
    """Fast fetcher for static or server-rendered pages using httpx."""

    name = "http"

    def __init__(
        self,
        timeout: Optional[float] = None,
        user_agent: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize HTTP fetcher.

        Args:
            timeout: Request timeout in seconds (defaults to settings)
            user_agent: User-Agent header (defaults to settings)
            client: Optional preconfigured client (owned by the caller)
        """
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            timeout=timeout or settings.fetch_timeout_seconds,
            follow_redirects=True,
            max_redirects=5,
            headers={
                "User-Agent": user_agent or settings.user_agent,
                "Accept": DEFAULT_ACCEPT,
            },
        )

    async def fetch(self, url: str) -> FetchResult:
        """Fetch a page with a single GET request."""
        try:
            response = await self.client.get(url)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise FetchError(
                f"Failed to fetch {url}: {e}", context={"url": url, "strategy": self.name}
            ) from e

        logger.debug(f"Fetched {url} ({response.status_code}, {len(response.content)} bytes)")
        return FetchResult(
            url=url,
            status_code=response.status_code,
            html=response.text,
            content_type=response.headers.get("content-type"),
        )

    async def close(self) -> None:
        if self._owns_client:
            await self.client.aclose()


class BrowserFetcher(PageFetcher):
    """Slower fetcher that executes client-side JavaScript with Playwright."""

    name = "browser"

    def __init__(
        self,
        timeout_ms: Optional[int] = None,
        settle_ms: Optional[int] = None,
        content_wait_ms: Optional[int] = None,
        user_agent: Optional[str] = None,
        headless: bool = True,
    ):
        """Initialize browser fetcher.

        Args:
            timeout_ms: Navigation timeout (defaults to settings)
            settle_ms: Extra wait for client-side rendering (defaults to settings)
            content_wait_ms: Max wait for the body to hold visible text (defaults to settings)
            user_agent: User-Agent for browser pages (defaults to settings)
            headless: Run Chromium without a window
        """
        self.timeout_ms = timeout_ms or settings.browser_timeout_ms
        self.settle_ms = settings.browser_settle_ms if settle_ms is None else settle_ms
        self.content_wait_ms = (
            settings.browser_content_wait_ms if content_wait_ms is None else content_wait_ms
        )
        self.user_agent = user_agent or settings.user_agent
        self.headless = headless
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None

    async def _get_browser(self) -> Browser:
        if self._browser is None:
            logger.info("Launching headless browser")
            self._playwright = await async_playwright().start()
            self._browser = await self._playwright.chromium.launch(
                headless=self.headless,
                args=BROWSER_LAUNCH_ARGS,
            )
        return self._browser

    async def fetch(self, url: str) -> FetchResult:
        """Render a page and return the resulting DOM as HTML."""
        try:
            browser = await self._get_browser()
            page = await browser.new_page(
                user_agent=self.user_agent,
                viewport={"width": 1920, "height": 1080},
                extra_http_headers={"Accept-Language": "en-US,en;q=0.9"},
            )
        except PlaywrightError as e:
            raise FetchError(
                f"Failed to start browser page for {url}: {e}",
                context={"url": url, "strategy": self.name},
            ) from e

        try:
            response = None
            try:
                response = await page.goto(
                    url, wait_until="domcontentloaded", timeout=self.timeout_ms
                )
            except PlaywrightTimeoutError:
                logger.warning(f"Navigation timeout for {url}, using partially loaded page")

            if self.content_wait_ms:
                try:
                    await page.wait_for_function(
                        VISIBLE_TEXT_READY, timeout=self.content_wait_ms
                    )
                except PlaywrightTimeoutError:
                    logger.warning(f"Content wait timeout for {url}, proceeding anyway")

            if self.settle_ms:
                await page.wait_for_timeout(self.settle_ms)

            html = await page.content()
            visible_text = await page.evaluate(VISIBLE_TEXT_SCRIPT) or ""
            if len(visible_text) < MIN_VISIBLE_TEXT_CHARS:
                logger.warning(f"Very little visible text at {url}, page may not have rendered")

            status_code = response.status if response is not None else 200
            content_type = response.headers.get("content-type") if response is not None else None

            logger.debug(
                f"Rendered {url} ({status_code}, {len(html)} chars, "
                f"{len(visible_text)} visible)"
            )
            return FetchResult(
                url=url,
                status_code=status_code,
                html=html,
                content_type=content_type,
                visible_text=visible_text,
            )
        except PlaywrightError as e:
            raise FetchError(
                f"Failed to render {url}: {e}", context={"url": url, "strategy": self.name}
            ) from e
        finally:
            await page.close()

    async def close(self) -> None:
        if self._browser is not None:
            logger.info("Closing headless browser")
            await self._browser.close()
            self._browser = None
        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None
