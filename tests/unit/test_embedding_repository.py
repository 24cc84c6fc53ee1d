"""Unit tests for the website embedding repository."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from webrep.db.models.website_embedding import WebsiteEmbedding
from webrep.db.repositories.embedding_repository import EmbeddingRepository


@pytest.fixture
def mock_session():
    """Create mock async database session."""
    session = AsyncMock()
    session.add_all = MagicMock()
    return session


def make_records(count: int) -> list[WebsiteEmbedding]:
    return [
        WebsiteEmbedding(
            website_url="https://example.com/",
            page_url="https://example.com/a",
            content_section=f"chunk {i}",
            embedding=[0.1] * 3,
            embedding_metadata={"chunk_index": i},
        )
        for i in range(count)
    ]


@pytest.mark.asyncio
async def test_insert_records_in_batches(mock_session):
    """Test 5 records with batch size 2 are flushed as 2 + 2 + 1."""
    repository = EmbeddingRepository(mock_session, max_batch_size=2)
    records = make_records(5)

    inserted = await repository.insert_records(records)

    assert inserted == 5
    batch_sizes = [len(c.args[0]) for c in mock_session.add_all.call_args_list]
    assert batch_sizes == [2, 2, 1]
    assert mock_session.flush.await_count == 3


@pytest.mark.asyncio
async def test_insert_no_records(mock_session):
    """Test an empty insert touches nothing."""
    repository = EmbeddingRepository(mock_session, max_batch_size=2)

    assert await repository.insert_records([]) == 0
    mock_session.add_all.assert_not_called()


@pytest.mark.asyncio
async def test_delete_by_website_returns_rowcount(mock_session):
    """Test delete reports the number of removed rows."""
    mock_session.execute = AsyncMock(return_value=MagicMock(rowcount=7))
    repository = EmbeddingRepository(mock_session)

    deleted = await repository.delete_by_website("https://example.com/")

    assert deleted == 7
    statement = mock_session.execute.call_args.args[0]
    assert "DELETE FROM website_embeddings" in str(statement)
    mock_session.flush.assert_awaited_once()


@pytest.mark.asyncio
async def test_count_by_website(mock_session):
    """Test count uses a scalar result."""
    result = MagicMock()
    result.scalar_one.return_value = 3
    mock_session.execute = AsyncMock(return_value=result)
    repository = EmbeddingRepository(mock_session)

    assert await repository.count_by_website("https://example.com/") == 3


@pytest.mark.asyncio
async def test_commit_and_rollback_delegate_to_session(mock_session):
    """Test transaction control goes straight to the session."""
    repository = EmbeddingRepository(mock_session)

    await repository.commit()
    await repository.rollback()

    mock_session.commit.assert_awaited_once()
    mock_session.rollback.assert_awaited_once()


def test_metadata_column_name():
    """Test the metadata attribute maps to a column named metadata."""
    column_names = {column.name for column in WebsiteEmbedding.__table__.columns}

    assert "metadata" in column_names
    assert "embedding_metadata" not in column_names
