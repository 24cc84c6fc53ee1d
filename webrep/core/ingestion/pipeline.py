"""End-to-end website ingestion orchestrator."""

import time
from collections.abc import Callable
from dataclasses import dataclass, field, replace

import structlog

from webrep.core.ingestion.embedding_pipeline import EmbeddingPipeline
from webrep.core.ingestion.web_scraping.content_extractor import ContentExtractor
from webrep.core.ingestion.web_scraping.crawler import (
    CrawlConfig,
    CrawlResult,
    WebCrawler,
    base_url_of,
)
from webrep.core.ingestion.web_scraping.deduplication import DeduplicationService
from webrep.core.ingestion.web_scraping.fetchers import BrowserFetcher, HttpFetcher, PageFetcher
from webrep.utils.exceptions import ErrorCode, WebRepError
from webrep.utils.url_validation import validate_and_sanitize_url, validate_max_pages

logger = structlog.get_logger(__name__)

# Pages with less main content than this are not worth chunking
MIN_PAGE_CONTENT_CHARS = 100


@dataclass
class IngestionResult:
    """Outcome of ingesting one website."""

    success: bool
    website_url: str
    pages_scraped: int = 0
    pages_processed: int = 0
    embeddings_created: int = 0
    chunks_skipped: int = 0
    fetch_strategy: str | None = None
    duration_seconds: float = 0.0
    errors: list[str] = field(default_factory=list)
    error: str | None = None
    error_code: ErrorCode | None = None


class WebsiteIngestionPipeline:
    """
    End-to-end pipeline for ingesting a website into the embedding store.

    This orchestrator coordinates:
    1. Input validation (URL safety, page budget)
    2. Crawling with the fast HTTP fetcher, falling back to the browser
       fetcher when no page is accepted
    3. Removal of the website's previous embeddings
    4. Per-page chunking, embedding and persistence

    A failure on one page is recorded and the remaining pages are still
    processed, so a result can be a partial success.
    """

    def __init__(
        self,
        embedding_pipeline: EmbeddingPipeline,
        http_fetcher_factory: Callable[[], PageFetcher] = HttpFetcher,
        browser_fetcher_factory: Callable[[], PageFetcher] = BrowserFetcher,
        extractor: ContentExtractor | None = None,
        deduplicator: DeduplicationService | None = None,
        crawl_config: CrawlConfig | None = None,
        should_cancel: Callable[[], bool] | None = None,
    ) -> None:
        """
        Initialize website ingestion pipeline.

        Args:
            embedding_pipeline: Chunk/embed/persist coordinator
            http_fetcher_factory: Builds the fast fetcher for one crawl
            browser_fetcher_factory: Builds the rendering fetcher for one crawl
            extractor: Optional content extractor shared by all crawls
            deduplicator: Optional page-level deduplicator (reset before each crawl)
            crawl_config: Crawl thresholds; max_pages is overridden per call
            should_cancel: Cooperative cancellation check passed to the crawler
        """
        self.embedding_pipeline = embedding_pipeline
        self.http_fetcher_factory = http_fetcher_factory
        self.browser_fetcher_factory = browser_fetcher_factory
        self.extractor = extractor or ContentExtractor()
        self.deduplicator = deduplicator or DeduplicationService()
        self.crawl_config = crawl_config or CrawlConfig()
        self.should_cancel = should_cancel

    async def crawl(
        self,
        url: str,
        max_pages: int | None = None,
        use_browser: bool = False,
    ) -> tuple[CrawlResult, str]:
        """
        Crawl a website, falling back to the browser when nothing is accepted.

        Args:
            url: Website URL
            max_pages: Page budget (defaults to settings)
            use_browser: Skip the fast fetcher and render every page

        Returns:
            Tuple of crawl result and the name of the fetch strategy that produced it

        Raises:
            InputValidationError: If the URL or page budget is invalid
        """
        url = validate_and_sanitize_url(url)
        max_pages = validate_max_pages(max_pages)

        if use_browser:
            return await self._crawl_with(self.browser_fetcher_factory, url, max_pages)

        result, strategy = await self._crawl_with(self.http_fetcher_factory, url, max_pages)
        if not result.pages:
            logger.warning("no_pages_with_http_fetcher_trying_browser", website_url=url)
            result, strategy = await self._crawl_with(self.browser_fetcher_factory, url, max_pages)

        return result, strategy

    async def _crawl_with(
        self,
        fetcher_factory: Callable[[], PageFetcher],
        url: str,
        max_pages: int,
    ) -> tuple[CrawlResult, str]:
        self.deduplicator.reset()
        async with fetcher_factory() as fetcher:
            crawler = WebCrawler(
                url,
                fetcher,
                extractor=self.extractor,
                config=replace(self.crawl_config, max_pages=max_pages),
                deduplicator=self.deduplicator,
                should_cancel=self.should_cancel,
            )
            result = await crawler.crawl()

        dedup_stats = self.deduplicator.get_stats()
        logger.info(
            "crawl_complete",
            website_url=url,
            fetch_strategy=fetcher.name,
            pages_accepted=len(result.pages),
            pages_visited=result.stats.pages_visited,
            skipped_low_quality=result.stats.skipped_low_quality,
            skipped_duplicates=result.stats.skipped_duplicates,
            fetch_failures=result.stats.fetch_failures,
            duplicate_rate=dedup_stats.duplicate_rate,
            state=result.state.value,
        )
        return result, fetcher.name

    async def ingest_website(
        self,
        url: str,
        max_pages: int | None = None,
        use_browser: bool = False,
    ) -> IngestionResult:
        """
        Crawl a website and replace its stored embeddings.

        Args:
            url: Website URL
            max_pages: Page budget (defaults to settings, at most 100)
            use_browser: Render pages with the browser from the start

        Returns:
            IngestionResult; success is False when nothing could be ingested

        Raises:
            InputValidationError: If the URL or page budget is invalid
        """
        start_time = time.monotonic()
        # Stored records are keyed on the site root the crawl actually starts from
        website_url = base_url_of(validate_and_sanitize_url(url))
        validate_max_pages(max_pages)

        logger.info("website_ingestion_started", website_url=website_url, max_pages=max_pages)

        try:
            crawl_result, strategy = await self.crawl(website_url, max_pages, use_browser)
        except WebRepError as e:
            logger.error("website_crawl_failed", website_url=website_url, error=e.message)
            return self._failure(website_url, start_time, e.message, e.code)

        pages = crawl_result.pages
        if not pages:
            return self._failure(
                website_url,
                start_time,
                "No content found on the website",
                ErrorCode.NO_CONTENT_FOUND,
                fetch_strategy=strategy,
            )

        try:
            await self.embedding_pipeline.delete_website_embeddings(website_url)
        except WebRepError as e:
            return self._failure(
                website_url,
                start_time,
                e.message,
                ErrorCode.EMBEDDING_STORAGE_FAILED,
                fetch_strategy=strategy,
                pages_scraped=len(pages),
            )

        result = IngestionResult(
            success=True,
            website_url=website_url,
            pages_scraped=len(pages),
            fetch_strategy=strategy,
        )

        for index, page in enumerate(pages, start=1):
            if len(page.main_content) < MIN_PAGE_CONTENT_CHARS:
                logger.debug("page_content_too_short", page_url=page.url)
                continue

            logger.info("processing_page", page_url=page.url, page=index, total=len(pages))
            try:
                stored = await self.embedding_pipeline.store_embeddings(
                    website_url,
                    page.url,
                    page.main_content,
                    metadata={"title": page.title, "quality_score": page.quality_score},
                )
            except WebRepError as e:
                logger.error("page_processing_failed", page_url=page.url, error=e.message)
                result.errors.append(f"Failed to process {page.url}: {e.message}")
                continue

            result.pages_processed += 1
            result.embeddings_created += stored.chunks_saved
            result.chunks_skipped += stored.chunks_skipped

        result.duration_seconds = time.monotonic() - start_time
        logger.info(
            "website_ingestion_complete",
            website_url=website_url,
            pages_scraped=result.pages_scraped,
            pages_processed=result.pages_processed,
            embeddings_created=result.embeddings_created,
            errors=len(result.errors),
            duration_seconds=round(result.duration_seconds, 2),
        )
        return result

    def _failure(
        self,
        website_url: str,
        start_time: float,
        message: str,
        code: ErrorCode,
        **fields,
    ) -> IngestionResult:
        logger.error("website_ingestion_failed", website_url=website_url, error=message, code=code.value)
        return IngestionResult(
            success=False,
            website_url=website_url,
            duration_seconds=time.monotonic() - start_time,
            error=message,
            error_code=code,
            **fields,
        )
