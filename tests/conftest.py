"""Pytest configuration and fixtures."""

import os
from collections.abc import Generator

import pytest
import structlog

from webrep.config import Settings
from webrep.core.ingestion.web_scraping.content_extractor import ContentExtractor, ParsedContent
from webrep.core.ingestion.web_scraping.fetchers import FetchResult, PageFetcher
from webrep.utils.exceptions import FetchError


@pytest.fixture(autouse=True)
def _reset_structlog() -> Generator[None, None, None]:
    """Undo logging configuration done by a test (e.g. CLI runs) so later tests
    do not write to a stream pytest has already closed."""
    yield
    structlog.reset_defaults()


@pytest.fixture
def test_settings() -> Generator[Settings, None, None]:
    """
    Provide test configuration with overrides.

    Yields:
        Settings instance for testing
    """
    # Save original environment
    original_env = os.environ.copy()

    # Set test environment variables
    os.environ["OPENAI_API_KEY"] = "sk-test-key"
    os.environ["DATABASE_URL"] = "postgresql+asyncpg://postgres@localhost/webrep_test"
    os.environ["LOG_LEVEL"] = "DEBUG"
    os.environ["INTER_PAGE_DELAY_MS"] = "0"

    settings = Settings()

    yield settings

    # Restore original environment
    os.environ.clear()
    os.environ.update(original_env)


class FakeFetcher(PageFetcher):
    """In-memory fetcher serving canned responses by URL."""

    name = "fake"

    def __init__(
        self,
        pages: dict[str, str],
        failing: set[str] | None = None,
        status: dict[str, int] | None = None,
        visible_text: dict[str, str] | None = None,
    ):
        self.pages = pages
        self.visible_text = visible_text or {}
        self.failing = failing or set()
        self.status = status or {}
        self.fetched: list[str] = []
        self.closed = False

    async def fetch(self, url: str) -> FetchResult:
        self.fetched.append(url)
        if url in self.failing:
            raise FetchError(f"Failed to fetch {url}: connection reset", context={"url": url})
        if url not in self.pages:
            return FetchResult(url=url, status_code=404, html="Not Found", content_type="text/html")
        return FetchResult(
            url=url,
            status_code=self.status.get(url, 200),
            html=self.pages[url],
            content_type="text/html; charset=utf-8",
            visible_text=self.visible_text.get(url),
        )

    async def close(self) -> None:
        self.closed = True


class StubExtractor(ContentExtractor):
    """Extractor returning fixed quality scores and links per URL."""

    def __init__(self, site: dict[str, tuple[int, list[str]]]):
        super().__init__()
        self.site = site

    def parse(self, html: str, url: str) -> ParsedContent:
        _score, links = self.site[url]
        return ParsedContent(url=url, title=f"Page {url}", main_content=html, links=tuple(links))

    def calculate_quality_score(self, content: ParsedContent) -> int:
        return self.site[content.url][0]


@pytest.fixture
def fake_fetcher_cls() -> type[FakeFetcher]:
    """Fetcher class serving canned HTML."""
    return FakeFetcher


@pytest.fixture
def stub_extractor_cls() -> type[StubExtractor]:
    """Extractor class with scripted scores and links."""
    return StubExtractor


def article_html(title: str, paragraphs: list[str], links: list[str] | None = None) -> str:
    """Build a simple article page."""
    body = "\n".join(f"<p>{p}</p>" for p in paragraphs)
    anchors = "\n".join(f'<a href="{href}">{href}</a>' for href in links or [])
    return (
        f"<html><head><title>{title}</title></head><body>"
        f'<nav><a href="/">Home</a></nav>'
        f"<article><h1>{title}</h1>{body}</article>"
        f"<div class='related'>{anchors}</div>"
        "<footer>Copyright Example Corp</footer>"
        "</body></html>"
    )


@pytest.fixture
def make_article_html():
    """Factory fixture for realistic article pages."""
    return article_html


@pytest.fixture
def long_prose() -> str:
    """Several paragraphs of substantive prose separated by blank lines."""
    sentences = [
        "Vector databases store numerical representations of text so that similar passages can be found quickly.",
        "Each passage is converted to an embedding by a model trained on large amounts of natural language.",
        "Search then compares the embedding of a question with the stored embeddings and returns the closest ones.",
        "Splitting pages into chunks keeps every embedding focused on a single topic and improves recall.",
        "Overlap between neighbouring chunks preserves context that would otherwise be cut at a boundary.",
    ]
    paragraphs = [" ".join(sentences[i:] + sentences[:i]) for i in range(len(sentences))]
    return "\n\n".join(paragraphs)
