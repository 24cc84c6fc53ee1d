"""Website scraping module for WebRep.

This module provides the crawl half of website ingestion:
- Fast (httpx) and browser-rendered (Playwright) page fetching
- Breadth-first, single-host crawling with a quality gate
- Main content, heading, paragraph and link extraction with quality scoring
- Page-level and chunk-level deduplication
"""

from webrep.core.ingestion.web_scraping.content_extractor import (
    ContentExtractor,
    ContentMetadata,
    ExtractionConfig,
    Heading,
    ParsedContent,
)
from webrep.core.ingestion.web_scraping.content_processor import ContentProcessor
from webrep.core.ingestion.web_scraping.crawler import (
    CrawlConfig,
    CrawledPage,
    CrawlResult,
    CrawlState,
    CrawlStats,
    WebCrawler,
)
from webrep.core.ingestion.web_scraping.deduplication import (
    DeduplicationService,
    DeduplicationStats,
)
from webrep.core.ingestion.web_scraping.fetchers import (
    BrowserFetcher,
    FetchResult,
    HttpFetcher,
    PageFetcher,
)

__all__ = [
    "ContentExtractor",
    "ContentMetadata",
    "ExtractionConfig",
    "Heading",
    "ParsedContent",
    "ContentProcessor",
    "WebCrawler",
    "CrawlConfig",
    "CrawledPage",
    "CrawlResult",
    "CrawlState",
    "CrawlStats",
    "DeduplicationService",
    "DeduplicationStats",
    "PageFetcher",
    "HttpFetcher",
    "BrowserFetcher",
    "FetchResult",
]
