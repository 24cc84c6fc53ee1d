"""Chunk, embed and persist the content of a single page."""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

import structlog
from sqlalchemy.exc import SQLAlchemyError

from webrep.core.ingestion.embedding_generator import EmbeddingGenerator
from webrep.core.ingestion.semantic_chunking import Chunk, SemanticChunker
from webrep.core.ingestion.web_scraping.content_processor import ContentProcessor
from webrep.db.models.website_embedding import WebsiteEmbedding
from webrep.db.repositories.embedding_repository import EmbeddingRepository
from webrep.utils.exceptions import EmbeddingStorageError, InputValidationError

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class EmbeddingStoreResult:
    """Chunk economics for one page."""

    chunks_created: int
    chunks_saved: int
    chunks_skipped: int


class EmbeddingPipeline:
    """
    Turn page content into persisted embedding records.

    Steps for each page:
    1. Chunk the content (SemanticChunker)
    2. Drop duplicate and low-value chunks (ContentProcessor)
    3. Embed surviving chunks (EmbeddingGenerator)
    4. Insert records in batches (EmbeddingRepository)

    No embedding call is made when every chunk is filtered out. A single
    failed chunk fails the whole page and nothing is persisted for it.
    """

    def __init__(
        self,
        repository: EmbeddingRepository,
        generator: EmbeddingGenerator,
        chunker: SemanticChunker | None = None,
        processor: ContentProcessor | None = None,
    ) -> None:
        """
        Initialize embedding pipeline.

        Args:
            repository: Persistence for embedding records
            generator: Embedding generator (owns retry and rate limiting)
            chunker: Optional chunker (defaults to settings-based SemanticChunker)
            processor: Optional chunk processor (defaults to ContentProcessor)
        """
        self.repository = repository
        self.generator = generator
        self.chunker = chunker or SemanticChunker()
        self.processor = processor or ContentProcessor()

    async def store_embeddings(
        self,
        website_url: str,
        page_url: str,
        content: str,
        metadata: dict[str, Any] | None = None,
    ) -> EmbeddingStoreResult:
        """
        Chunk, embed and persist one page's content.

        Args:
            website_url: Website the page belongs to
            page_url: URL of the page
            content: Main content of the page
            metadata: Extra metadata (e.g. title, scraped_at) stored on every record

        Returns:
            EmbeddingStoreResult with created/saved/skipped chunk counts

        Raises:
            InputValidationError: If any required argument is empty
            EmbeddingGenerationError: If embedding fails after retries
            EmbeddingStorageError: If records cannot be persisted
        """
        if not website_url or not page_url or not content:
            raise InputValidationError(
                "website_url, page_url and content are required to store embeddings",
                context={"website_url": website_url, "page_url": page_url},
            )

        chunks = self.chunker.chunk_content(content, page_url)
        unique_chunks = self.processor.deduplicate_chunks(chunks)
        valuable_chunks = self.processor.filter_low_value_chunks(unique_chunks)

        logger.info(
            "chunks_prepared",
            page_url=page_url,
            created=len(chunks),
            unique=len(unique_chunks),
            valuable=len(valuable_chunks),
        )

        if not valuable_chunks:
            logger.info("no_valuable_chunks", page_url=page_url, chunks_skipped=len(chunks))
            return EmbeddingStoreResult(
                chunks_created=len(chunks),
                chunks_saved=0,
                chunks_skipped=len(chunks),
            )

        embeddings = await self.generator.generate_embeddings(
            [chunk.text for chunk in valuable_chunks], page_url=page_url
        )

        records = self._build_records(website_url, page_url, valuable_chunks, embeddings, metadata)
        await self._persist(records, page_url)

        result = EmbeddingStoreResult(
            chunks_created=len(chunks),
            chunks_saved=len(valuable_chunks),
            chunks_skipped=len(chunks) - len(valuable_chunks),
        )
        logger.info(
            "embeddings_stored",
            page_url=page_url,
            chunks_saved=result.chunks_saved,
            chunks_skipped=result.chunks_skipped,
            cost_reduction_pct=round(result.chunks_skipped / result.chunks_created * 100),
        )
        return result

    async def delete_website_embeddings(self, website_url: str) -> int:
        """
        Delete every stored record for a website.

        Args:
            website_url: Website whose records are replaced on re-ingestion

        Returns:
            Number of deleted records

        Raises:
            InputValidationError: If website_url is empty
            EmbeddingStorageError: If the delete fails
        """
        if not website_url:
            raise InputValidationError("Website URL is required for deletion")

        try:
            deleted = await self.repository.delete_by_website(website_url)
            await self.repository.commit()
        except SQLAlchemyError as e:
            await self.repository.rollback()
            logger.error("embeddings_delete_failed", website_url=website_url, error=str(e))
            raise EmbeddingStorageError(
                f"Failed to delete embeddings: {e}", context={"website_url": website_url}
            ) from e

        logger.info("embeddings_deleted", website_url=website_url, deleted=deleted)
        return deleted

    def _build_records(
        self,
        website_url: str,
        page_url: str,
        chunks: list[Chunk],
        embeddings: list[list[float]],
        metadata: dict[str, Any] | None,
    ) -> list[WebsiteEmbedding]:
        caller_metadata = dict(metadata or {})
        scraped_at = caller_metadata.pop("scraped_at", None) or datetime.now(timezone.utc).isoformat()
        title = caller_metadata.pop("title", None)

        records = []
        for index, (chunk, embedding) in enumerate(zip(chunks, embeddings, strict=True)):
            records.append(
                WebsiteEmbedding(
                    website_url=website_url,
                    page_url=page_url,
                    content_section=chunk.text,
                    embedding=embedding,
                    embedding_metadata={
                        **caller_metadata,
                        "title": title,
                        "scraped_at": scraped_at,
                        "content_length": len(chunk.text),
                        "chunk_index": index,
                        "total_chunks": len(chunks),
                        "word_count": len(chunk.text.split()),
                    },
                )
            )
        return records

    async def _persist(self, records: list[WebsiteEmbedding], page_url: str) -> None:
        try:
            await self.repository.insert_records(records)
            await self.repository.commit()
        except SQLAlchemyError as e:
            await self.repository.rollback()
            logger.error("embeddings_persist_failed", page_url=page_url, error=str(e))
            raise EmbeddingStorageError(
                f"Failed to store embeddings: {e}", context={"page_url": page_url}
            ) from e
