"""Website crawler - breadth-first traversal of a single host with a quality gate."""

import asyncio
import logging
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional, Set
from urllib.parse import urlparse, urlunparse

from webrep.config import settings
from webrep.core.ingestion.web_scraping.content_extractor import ContentExtractor, ParsedContent
from webrep.core.ingestion.web_scraping.deduplication import DeduplicationService
from webrep.core.ingestion.web_scraping.fetchers import MIN_VISIBLE_TEXT_CHARS, PageFetcher
from webrep.utils.exceptions import ErrorCode, FetchError, ScrapingError

logger = logging.getLogger(__name__)


class CrawlState(str, Enum):
    """Lifecycle of a single crawl."""

    IDLE = "idle"
    CRAWLING = "crawling"
    DONE = "done"
    ABORTED = "aborted"


@dataclass
class CrawlConfig:
    """Configuration for a crawl."""

    max_pages: int = field(default_factory=lambda: settings.max_pages_per_crawl)
    min_quality_score: int = field(default_factory=lambda: settings.min_quality_score)
    inter_page_delay_ms: int = field(default_factory=lambda: settings.inter_page_delay_ms)
    min_response_bytes: int = field(default_factory=lambda: settings.min_response_bytes)
    max_response_bytes: int = field(default_factory=lambda: settings.max_response_bytes)


@dataclass(frozen=True)
class CrawledPage:
    """A page that passed the quality gate."""

    url: str
    content: ParsedContent
    quality_score: int

    @property
    def title(self) -> str:
        return self.content.title

    @property
    def main_content(self) -> str:
        return self.content.main_content


@dataclass
class CrawlStats:
    """Counters for every way a visited page can end up."""

    pages_visited: int = 0
    pages_accepted: int = 0
    skipped_low_quality: int = 0
    skipped_duplicates: int = 0
    fetch_failures: int = 0
    unusable_responses: int = 0


@dataclass
class CrawlResult:
    """Outcome of a crawl; empty pages is a normal result."""

    pages: List[CrawledPage]
    visited: List[str]
    state: CrawlState
    stats: CrawlStats


def canonicalize_url(url: str) -> str:
    """Normalize a URL for frontier bookkeeping.

    Drops the fragment, lowercases scheme and host, turns an empty path into
    "/" and strips the trailing slash of any other path.
    """
    parsed = urlparse(url)
    path = parsed.path or "/"
    if path != "/" and path.endswith("/"):
        path = path.rstrip("/") or "/"
    return urlunparse(
        (parsed.scheme.lower(), parsed.netloc.lower(), path, parsed.params, parsed.query, "")
    )


def base_url_of(url: str) -> str:
    """Reduce a URL to scheme://host/.

    Raises:
        ScrapingError: If the URL has no http(s) scheme or host
    """
    try:
        parsed = urlparse(url)
        hostname = parsed.hostname
    except ValueError as e:
        raise ScrapingError(f"Invalid URL provided: {url}", code=ErrorCode.INVALID_URL) from e

    if parsed.scheme.lower() not in ("http", "https") or not hostname:
        raise ScrapingError(f"Invalid URL provided: {url}", code=ErrorCode.INVALID_URL)

    return f"{parsed.scheme.lower()}://{parsed.netloc.lower()}/"


class CrawlFrontier:
    """FIFO queue of discovered URLs plus the set of URLs already fetched.

    A URL is enqueued at most once and visited at most once per crawl.
    """

    def __init__(self):
        self._queue: deque[str] = deque()
        self._in_queue: Set[str] = set()
        self._visited: List[str] = []
        self._visited_set: Set[str] = set()

    def enqueue(self, url: str) -> bool:
        """Add a URL unless it is already queued or visited."""
        if url in self._in_queue or url in self._visited_set:
            return False
        self._queue.append(url)
        self._in_queue.add(url)
        return True

    def dequeue(self) -> str:
        url = self._queue.popleft()
        self._in_queue.discard(url)
        return url

    def mark_visited(self, url: str) -> None:
        if url not in self._visited_set:
            self._visited_set.add(url)
            self._visited.append(url)

    def is_visited(self, url: str) -> bool:
        return url in self._visited_set

    @property
    def visited(self) -> List[str]:
        """Visited URLs in fetch order."""
        return list(self._visited)

    def __len__(self) -> int:
        return len(self._queue)


class WebCrawler:
    """Crawl one website breadth-first and return the pages worth keeping.

    Fetching is strictly sequential with a fixed delay between requests.
    Only links whose host equals the start URL's host are followed. A page
    that fails to fetch or scores below the quality threshold is counted
    and skipped; it never stops the crawl.
    """

    def __init__(
        self,
        start_url: str,
        fetcher: PageFetcher,
        extractor: Optional[ContentExtractor] = None,
        config: Optional[CrawlConfig] = None,
        deduplicator: Optional[DeduplicationService] = None,
        should_cancel: Optional[Callable[[], bool]] = None,
    ):
        """Initialize crawler.

        Args:
            start_url: Any URL on the site; crawling starts at its root
            fetcher: Fetch strategy used for every page
            extractor: Content extractor (defaults to a new ContentExtractor)
            config: Crawl limits and thresholds (defaults to settings)
            deduplicator: Optional page-level duplicate detector
            should_cancel: Checked before each fetch; returning True aborts the crawl
        """
        self.base_url = base_url_of(start_url)
        self.base_hostname = urlparse(self.base_url).hostname
        self.fetcher = fetcher
        self.extractor = extractor or ContentExtractor()
        self.config = config or CrawlConfig()
        self.deduplicator = deduplicator
        self.should_cancel = should_cancel
        self.state = CrawlState.IDLE
        self.frontier = CrawlFrontier()
        self.stats = CrawlStats()

    async def crawl(self) -> CrawlResult:
        """Run the crawl to completion.

        Returns:
            CrawlResult with accepted pages in discovery order

        Raises:
            ScrapingError: If this crawler has already been run
        """
        if self.state != CrawlState.IDLE:
            raise ScrapingError(
                f"Crawler for {self.base_url} has already run (state: {self.state.value})",
                code=ErrorCode.SCRAPING_FAILED,
            )

        self.state = CrawlState.CRAWLING
        pages: List[CrawledPage] = []
        max_pages = self.config.max_pages
        delay_seconds = self.config.inter_page_delay_ms / 1000
        self.frontier.enqueue(self.base_url)

        logger.info(f"Crawling {self.base_url} (max_pages={max_pages}, fetcher={self.fetcher.name})")

        while len(self.frontier) > 0 and len(pages) < max_pages:
            if self.should_cancel is not None and self.should_cancel():
                logger.warning(f"Crawl of {self.base_url} cancelled after {len(pages)} pages")
                self.state = CrawlState.ABORTED
                break

            if len(self.frontier.visited) >= max_pages:
                logger.info(f"Reached visit budget of {max_pages} pages")
                break

            url = self.frontier.dequeue()
            if self.frontier.is_visited(url):
                continue

            if self.stats.pages_visited > 0 and delay_seconds > 0:
                await asyncio.sleep(delay_seconds)

            self.frontier.mark_visited(url)
            self.stats.pages_visited += 1
            logger.debug(f"Crawling {url} ({len(pages) + 1}/{max_pages} pages collected)")

            page = await self._process_page(url)
            if page is None:
                continue

            pages.append(page)
            self.stats.pages_accepted += 1
            self._enqueue_links(page.content.links)

        if self.state == CrawlState.CRAWLING:
            self.state = CrawlState.DONE

        logger.info(
            f"Crawl of {self.base_url} finished: {len(pages)} accepted, "
            f"{self.stats.pages_visited} visited, "
            f"{self.stats.skipped_low_quality} low quality, "
            f"{self.stats.fetch_failures} failed"
        )

        return CrawlResult(
            pages=pages,
            visited=self.frontier.visited,
            state=self.state,
            stats=self.stats,
        )

    async def _process_page(self, url: str) -> Optional[CrawledPage]:
        """Fetch, parse and gate one page; None means the page was skipped."""
        try:
            response = await self.fetcher.fetch(url)
        except FetchError as e:
            logger.warning(f"Error fetching {url}: {e.message}")
            self.stats.fetch_failures += 1
            return None

        if not response.is_usable(self.config.min_response_bytes, self.config.max_response_bytes):
            logger.info(f"No usable content at {url} (status {response.status_code})")
            self.stats.unusable_responses += 1
            return None

        content = self.extractor.parse(response.html, url)
        if (
            content.metadata.word_count == 0
            and response.visible_text
            and len(response.visible_text) > MIN_VISIBLE_TEXT_CHARS
        ):
            logger.debug(f"No words parsed from {url}, using rendered visible text")
            content = self.extractor.with_visible_text(content, response.visible_text)

        quality_score = self.extractor.calculate_quality_score(content)

        if quality_score < self.config.min_quality_score:
            logger.info(
                f"Skipping {url}: quality score {quality_score} below "
                f"{self.config.min_quality_score}"
            )
            self.stats.skipped_low_quality += 1
            return None

        if self.deduplicator is not None and self.deduplicator.is_duplicate(
            url, content.title, content.main_content
        ):
            self.stats.skipped_duplicates += 1
            return None

        logger.info(f"Accepted {url} (quality {quality_score}, {content.metadata.word_count} words)")
        return CrawledPage(url=url, content=content, quality_score=quality_score)

    def _enqueue_links(self, links: tuple[str, ...]) -> None:
        for link in links:
            candidate = canonicalize_url(link)
            if self._is_in_scope(candidate):
                self.frontier.enqueue(candidate)

    def _is_in_scope(self, url: str) -> bool:
        """Only http(s) URLs on exactly the base host are crawled."""
        try:
            parsed = urlparse(url)
            return parsed.scheme in ("http", "https") and parsed.hostname == self.base_hostname
        except ValueError:
            return False
