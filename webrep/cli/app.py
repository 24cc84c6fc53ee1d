"""WebRep CLI application using Typer."""

import asyncio
from typing import Annotated

import sqlalchemy
import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from sqlalchemy.exc import SQLAlchemyError

from webrep import __version__
from webrep.config import settings
from webrep.core.ingestion.embedding_generator import EmbeddingGenerator
from webrep.core.ingestion.embedding_pipeline import EmbeddingPipeline
from webrep.core.ingestion.pipeline import IngestionResult, WebsiteIngestionPipeline
from webrep.core.ingestion.web_scraping.content_extractor import ContentExtractor
from webrep.core.ingestion.web_scraping.crawler import CrawlConfig, CrawlResult, WebCrawler
from webrep.core.ingestion.web_scraping.deduplication import DeduplicationService
from webrep.core.ingestion.web_scraping.fetchers import BrowserFetcher, HttpFetcher, PageFetcher
from webrep.db.repositories.embedding_repository import EmbeddingRepository
from webrep.db.session import engine, get_session, init_db
from webrep.utils.exceptions import WebRepError
from webrep.utils.logging import configure_logging, get_logger
from webrep.utils.rate_limiter import RateLimiter
from webrep.utils.url_validation import validate_and_sanitize_url, validate_max_pages

app = typer.Typer(
    name="webrep",
    help="WebRep - crawl websites and store their content as vector embeddings",
    add_completion=False,
)
console = Console()
logger = get_logger(__name__)


def version_callback(value: bool) -> None:
    """Display version and exit."""
    if value:
        console.print(f"[bold cyan]WebRep[/bold cyan] version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """WebRep - crawl websites and store their content as vector embeddings."""
    configure_logging(settings.log_level, settings.environment)


def validate_environment() -> None:
    """
    Validate configuration required for ingestion.

    Raises:
        typer.Exit: If validation fails
    """
    errors = []

    if settings.openai_api_key is None or not settings.openai_api_key.get_secret_value():
        errors.append("OPENAI_API_KEY not set")

    if not settings.database_url:
        errors.append("DATABASE_URL not set")

    if errors:
        console.print("\n[bold red]✗ Configuration Errors:[/bold red]")
        for error in errors:
            console.print(f"  • {error}")
        console.print("\n[yellow]Hint:[/yellow] Check your .env file or environment variables")
        raise typer.Exit(code=1)


async def validate_database_connectivity() -> None:
    """
    Validate database connectivity.

    Raises:
        typer.Exit: If database connection fails
    """
    try:
        async with engine.begin() as conn:
            await conn.execute(sqlalchemy.text("SELECT 1"))
    except (OSError, SQLAlchemyError) as e:
        console.print("\n[bold red]✗ Database Connection Failed:[/bold red]")
        console.print(f"  {e}")
        console.print(
            "\n[yellow]Hint:[/yellow] Verify DATABASE_URL and ensure PostgreSQL is running"
        )
        raise typer.Exit(code=1) from None


def _make_fetcher(use_browser: bool) -> PageFetcher:
    return BrowserFetcher() if use_browser else HttpFetcher()


def _print_error(error: WebRepError) -> None:
    console.print(f"\n[bold red]✗ {error.code.value}:[/bold red] {error.message}")


def _print_crawl_result(result: CrawlResult, strategy: str) -> None:
    table = Table(title=f"Accepted pages ({strategy} fetcher)")
    table.add_column("#", justify="right", style="dim")
    table.add_column("URL", style="cyan")
    table.add_column("Title")
    table.add_column("Words", justify="right")
    table.add_column("Quality", justify="right", style="green")

    for index, page in enumerate(result.pages, start=1):
        table.add_row(
            str(index),
            page.url,
            page.title,
            str(page.content.metadata.word_count),
            str(page.quality_score),
        )

    console.print(table)
    stats = result.stats
    console.print(
        f"\nVisited {stats.pages_visited} pages: {stats.pages_accepted} accepted, "
        f"{stats.skipped_low_quality} low quality, {stats.skipped_duplicates} duplicates, "
        f"{stats.unusable_responses} unusable, {stats.fetch_failures} failed "
        f"[dim](state: {result.state.value})[/dim]"
    )


def _print_ingestion_result(result: IngestionResult) -> None:
    if result.success:
        body = (
            "[bold green]✓ Ingestion Complete![/bold green]\n\n"
            f"Website: {result.website_url}\n"
            f"Fetch strategy: {result.fetch_strategy}\n"
            f"Pages scraped: {result.pages_scraped}\n"
            f"Pages processed: {result.pages_processed}\n"
            f"Embeddings created: {result.embeddings_created}\n"
            f"Chunks skipped: {result.chunks_skipped}\n"
            f"Duration: {result.duration_seconds:.1f}s"
        )
        console.print(Panel.fit(body, title="Success", border_style="green"))
    else:
        code = result.error_code.value if result.error_code else "UNKNOWN"
        console.print(
            Panel.fit(
                f"[bold red]✗ Ingestion Failed[/bold red]\n\n{code}: {result.error}",
                title="Failure",
                border_style="red",
            )
        )

    for error in result.errors:
        console.print(f"  [yellow]•[/yellow] {error}")


@app.command()
def crawl(
    url: Annotated[str, typer.Argument(help="Website URL to crawl")],
    max_pages: Annotated[
        int | None,
        typer.Option("--max-pages", "-n", help="Maximum number of pages to accept (1-100)"),
    ] = None,
    browser: Annotated[
        bool,
        typer.Option("--browser", help="Render pages with a headless browser"),
    ] = False,
    min_quality: Annotated[
        int | None,
        typer.Option(
            "--min-quality",
            min=0,
            max=100,
            help="Minimum quality score for a page to be accepted (0-100)",
        ),
    ] = None,
) -> None:
    """
    Crawl a website and list the pages that pass the quality gate.

    Nothing is embedded or stored.

    Examples:
        webrep crawl https://example.com --max-pages 10
        webrep crawl https://spa.example.com --browser
    """
    try:
        start_url = validate_and_sanitize_url(url)
        budget = validate_max_pages(max_pages)
    except WebRepError as e:
        _print_error(e)
        raise typer.Exit(code=1) from None

    config = CrawlConfig(max_pages=budget)
    if min_quality is not None:
        config.min_quality_score = min_quality

    async def run_crawl() -> tuple[CrawlResult, str]:
        async with _make_fetcher(browser) as fetcher:
            crawler = WebCrawler(
                start_url,
                fetcher,
                config=config,
                deduplicator=DeduplicationService(),
            )
            return await crawler.crawl(), fetcher.name

    try:
        result, strategy = asyncio.run(run_crawl())
    except KeyboardInterrupt:
        console.print("\n\n[yellow]Crawl cancelled by user (Ctrl+C)[/yellow]")
        raise typer.Exit(code=130) from None
    except WebRepError as e:
        _print_error(e)
        raise typer.Exit(code=1) from None

    _print_crawl_result(result, strategy)
    if not result.pages:
        raise typer.Exit(code=1)


@app.command()
def parse(
    url: Annotated[str, typer.Argument(help="Page URL to fetch and parse")],
    browser: Annotated[
        bool,
        typer.Option("--browser", help="Render the page with a headless browser"),
    ] = False,
) -> None:
    """
    Fetch a single page and show what the content extractor sees.

    Examples:
        webrep parse https://example.com/blog/post
    """
    try:
        page_url = validate_and_sanitize_url(url)
    except WebRepError as e:
        _print_error(e)
        raise typer.Exit(code=1) from None

    extractor = ContentExtractor()

    async def run_parse():
        async with _make_fetcher(browser) as fetcher:
            return await fetcher.fetch(page_url)

    try:
        response = asyncio.run(run_parse())
    except WebRepError as e:
        _print_error(e)
        raise typer.Exit(code=1) from None

    content = extractor.parse(response.html, page_url)
    score = extractor.calculate_quality_score(content)
    metadata = content.metadata

    console.print(
        Panel.fit(
            f"[bold]{content.title}[/bold]\n"
            f"{page_url} [dim](HTTP {response.status_code}, {len(response.html)} chars)[/dim]\n\n"
            f"Quality score: [bold green]{score}[/bold green]\n"
            f"Words: {metadata.word_count} (≈{metadata.estimated_read_time} min read)\n"
            f"Unique word ratio: {metadata.unique_word_ratio:.2f}\n"
            f"Language: {metadata.language or 'unknown'}\n"
            f"Boilerplate: {'yes' if metadata.has_boilerplate else 'no'}\n"
            f"Low confidence: {'yes' if metadata.low_confidence else 'no'}\n"
            f"Headings: {len(content.headings)}  Paragraphs: {len(content.paragraphs)}  "
            f"Links: {len(content.links)}",
            title="Extraction",
            border_style="cyan",
        )
    )

    for heading in content.headings[:10]:
        console.print(f"  {'#' * heading.level} {heading.text}")

    preview = content.main_content[:500]
    console.print(f"\n[bold]Main content preview:[/bold]\n{preview or '[dim](empty)[/dim]'}")


@app.command()
def ingest(
    url: Annotated[str, typer.Argument(help="Website URL to ingest")],
    max_pages: Annotated[
        int | None,
        typer.Option("--max-pages", "-n", help="Maximum number of pages to accept (1-100)"),
    ] = None,
    browser: Annotated[
        bool,
        typer.Option("--browser", help="Render pages with a headless browser from the start"),
    ] = False,
) -> None:
    """
    Crawl a website and replace its stored embeddings.

    This command will:
    1. Validate environment and database connectivity
    2. Crawl the website (falling back to the browser if nothing is found)
    3. Delete the website's previous embeddings
    4. Chunk, embed and store every accepted page

    Examples:
        webrep ingest https://example.com
        webrep ingest https://example.com --max-pages 20 --browser
    """
    validate_environment()

    console.print(
        Panel.fit(
            f"[bold cyan]WebRep[/bold cyan] - Website Ingestion\nVersion {__version__}",
            border_style="cyan",
        )
    )
    console.print("\n[bold]Configuration:[/bold]")
    console.print(f"  Embedding Model: {settings.embedding_model}")
    console.print(f"  Database: {settings.database_url.split('@')[-1]}")
    console.print(f"  Chunk size / overlap: {settings.chunk_size} / {settings.chunk_overlap}")

    async def run_ingestion() -> IngestionResult:
        await validate_database_connectivity()
        console.print("  ✓ Database connection successful\n")

        rate_limiter = RateLimiter(settings.rate_limit_max_requests, settings.rate_limit_window_ms)
        async with get_session() as session:
            pipeline = WebsiteIngestionPipeline(
                embedding_pipeline=EmbeddingPipeline(
                    repository=EmbeddingRepository(session),
                    generator=EmbeddingGenerator(rate_limiter=rate_limiter),
                ),
            )
            with console.status(f"Ingesting {url}..."):
                return await pipeline.ingest_website(url, max_pages=max_pages, use_browser=browser)

    try:
        result = asyncio.run(run_ingestion())
    except KeyboardInterrupt:
        console.print("\n\n[yellow]Ingestion cancelled by user (Ctrl+C)[/yellow]")
        raise typer.Exit(code=130) from None
    except WebRepError as e:
        logger.error("ingestion_command_failed", **e.to_dict())
        _print_error(e)
        raise typer.Exit(code=1) from None

    _print_ingestion_result(result)
    if not result.success:
        raise typer.Exit(code=1)


@app.command(name="init-db")
def init_db_command() -> None:
    """Create the pgvector extension and the embedding tables."""

    async def run_init() -> None:
        await validate_database_connectivity()
        await init_db()

    asyncio.run(run_init())
    console.print("[bold green]✓ Database initialized[/bold green]")


if __name__ == "__main__":
    app()
