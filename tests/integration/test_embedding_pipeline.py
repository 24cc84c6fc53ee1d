"""Integration tests for the chunk, embed and persist pipeline."""

from unittest.mock import AsyncMock

import pytest
from sqlalchemy.exc import OperationalError

from webrep.core.ingestion.embedding_pipeline import EmbeddingPipeline, EmbeddingStoreResult
from webrep.core.ingestion.semantic_chunking import SemanticChunker
from webrep.core.ingestion.web_scraping.content_processor import ContentProcessor
from webrep.utils.exceptions import (
    EmbeddingGenerationError,
    EmbeddingStorageError,
    InputValidationError,
)

pytestmark = pytest.mark.integration


WEBSITE_URL = "https://example.com"
PAGE_URL = "https://example.com/guide"

PROSE = (
    "Embedding models map passages of text to vectors so that passages with a similar "
    "meaning end up close together, which makes semantic search over a website possible."
)


@pytest.fixture
def mock_repository():
    """Create mock EmbeddingRepository."""
    repository = AsyncMock()
    repository.insert_records = AsyncMock(side_effect=lambda records: len(records))
    repository.delete_by_website = AsyncMock(return_value=0)
    return repository


@pytest.fixture
def mock_embedding_generator():
    """Create mock EmbeddingGenerator returning one vector per text."""
    generator = AsyncMock()
    generator.generate_embeddings = AsyncMock(
        side_effect=lambda texts, page_url=None: [[0.1] * 1536 for _ in texts]
    )
    return generator


@pytest.fixture
def embedding_pipeline(mock_repository, mock_embedding_generator):
    """Create EmbeddingPipeline with real chunking and filtering."""
    return EmbeddingPipeline(
        repository=mock_repository,
        generator=mock_embedding_generator,
        chunker=SemanticChunker(chunk_size=300, chunk_overlap=50),
        processor=ContentProcessor(),
    )


def inserted_records(repository) -> list:
    return [record for c in repository.insert_records.call_args_list for record in c.args[0]]


@pytest.mark.asyncio
async def test_store_embeddings_success(embedding_pipeline, mock_repository, mock_embedding_generator, long_prose):
    """Test surviving chunks are embedded once each and persisted."""
    result = await embedding_pipeline.store_embeddings(WEBSITE_URL, PAGE_URL, long_prose)

    assert result.chunks_saved > 0
    assert result.chunks_saved + result.chunks_skipped == result.chunks_created

    embedded_texts = mock_embedding_generator.generate_embeddings.call_args.args[0]
    assert len(embedded_texts) == result.chunks_saved

    records = inserted_records(mock_repository)
    assert [record.content_section for record in records] == embedded_texts
    assert {record.website_url for record in records} == {WEBSITE_URL}
    assert {record.page_url for record in records} == {PAGE_URL}
    mock_repository.commit.assert_awaited()


@pytest.mark.asyncio
async def test_record_metadata(embedding_pipeline, mock_repository, long_prose):
    """Test every record carries caller metadata plus chunk details."""
    await embedding_pipeline.store_embeddings(
        WEBSITE_URL,
        PAGE_URL,
        long_prose,
        metadata={"title": "Vector Search", "quality_score": 85, "scraped_at": "2024-05-01T00:00:00+00:00"},
    )

    records = inserted_records(mock_repository)
    first = records[0].embedding_metadata

    assert first["title"] == "Vector Search"
    assert first["quality_score"] == 85
    assert first["scraped_at"] == "2024-05-01T00:00:00+00:00"
    assert first["chunk_index"] == 0
    assert first["total_chunks"] == len(records)
    assert first["content_length"] == len(records[0].content_section)
    assert first["word_count"] == len(records[0].content_section.split())
    assert [r.embedding_metadata["chunk_index"] for r in records] == list(range(len(records)))


@pytest.mark.asyncio
async def test_scraped_at_defaults_to_now(embedding_pipeline, mock_repository, long_prose):
    """Test a timestamp is filled in when the caller gives none."""
    await embedding_pipeline.store_embeddings(WEBSITE_URL, PAGE_URL, long_prose)

    records = inserted_records(mock_repository)
    assert records[0].embedding_metadata["scraped_at"]
    assert records[0].embedding_metadata["title"] is None


@pytest.mark.asyncio
async def test_no_valuable_chunks_makes_no_api_call(embedding_pipeline, mock_repository, mock_embedding_generator):
    """Test pages with only boilerplate cost nothing."""
    result = await embedding_pipeline.store_embeddings(
        WEBSITE_URL, PAGE_URL, "Copyright 2024 Example Corp. All rights reserved."
    )

    assert result == EmbeddingStoreResult(chunks_created=1, chunks_saved=0, chunks_skipped=1)
    mock_embedding_generator.generate_embeddings.assert_not_called()
    mock_repository.insert_records.assert_not_called()


@pytest.mark.asyncio
async def test_duplicate_chunks_embedded_once(mock_repository, mock_embedding_generator):
    """Test repeated paragraphs are only embedded once."""
    pipeline = EmbeddingPipeline(
        repository=mock_repository,
        generator=mock_embedding_generator,
        chunker=SemanticChunker(chunk_size=300, chunk_overlap=0),
    )
    content = "\n\n".join([PROSE, PROSE, PROSE])

    result = await pipeline.store_embeddings(WEBSITE_URL, PAGE_URL, content)

    assert result == EmbeddingStoreResult(chunks_created=3, chunks_saved=1, chunks_skipped=2)
    assert mock_embedding_generator.generate_embeddings.call_args.args[0] == [PROSE]


@pytest.mark.asyncio
async def test_embedding_failure_persists_nothing(embedding_pipeline, mock_repository, mock_embedding_generator, long_prose):
    """Test one failed chunk means no record is written for the page."""
    mock_embedding_generator.generate_embeddings = AsyncMock(
        side_effect=EmbeddingGenerationError("Failed to generate embeddings")
    )

    with pytest.raises(EmbeddingGenerationError):
        await embedding_pipeline.store_embeddings(WEBSITE_URL, PAGE_URL, long_prose)

    mock_repository.insert_records.assert_not_called()
    mock_repository.commit.assert_not_called()


@pytest.mark.asyncio
async def test_storage_failure_rolls_back(embedding_pipeline, mock_repository, long_prose):
    """Test database errors become EmbeddingStorageError after a rollback."""
    mock_repository.insert_records = AsyncMock(
        side_effect=OperationalError("INSERT", {}, Exception("connection lost"))
    )

    with pytest.raises(EmbeddingStorageError):
        await embedding_pipeline.store_embeddings(WEBSITE_URL, PAGE_URL, long_prose)

    mock_repository.rollback.assert_awaited_once()


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "website_url,page_url,content",
    [("", PAGE_URL, PROSE), (WEBSITE_URL, "", PROSE), (WEBSITE_URL, PAGE_URL, "")],
)
async def test_missing_arguments_rejected(embedding_pipeline, website_url, page_url, content):
    """Test required arguments are validated before any work."""
    with pytest.raises(InputValidationError):
        await embedding_pipeline.store_embeddings(website_url, page_url, content)


@pytest.mark.asyncio
async def test_delete_website_embeddings(embedding_pipeline, mock_repository):
    """Test deletion commits and reports the count."""
    mock_repository.delete_by_website = AsyncMock(return_value=4)

    deleted = await embedding_pipeline.delete_website_embeddings(WEBSITE_URL)

    assert deleted == 4
    mock_repository.delete_by_website.assert_awaited_once_with(WEBSITE_URL)
    mock_repository.commit.assert_awaited_once()


@pytest.mark.asyncio
async def test_delete_failure_raises_storage_error(embedding_pipeline, mock_repository):
    """Test a failed delete is rolled back and reported."""
    mock_repository.delete_by_website = AsyncMock(
        side_effect=OperationalError("DELETE", {}, Exception("connection lost"))
    )

    with pytest.raises(EmbeddingStorageError):
        await embedding_pipeline.delete_website_embeddings(WEBSITE_URL)

    mock_repository.rollback.assert_awaited_once()


@pytest.mark.asyncio
async def test_delete_requires_url(embedding_pipeline):
    """Test an empty website URL is rejected."""
    with pytest.raises(InputValidationError):
        await embedding_pipeline.delete_website_embeddings("")
