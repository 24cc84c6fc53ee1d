"""Website embedding repository for database operations."""

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from webrep.config import settings
from webrep.db.models.website_embedding import WebsiteEmbedding
from webrep.db.repositories.base_repository import BaseRepository


class EmbeddingRepository(BaseRepository[WebsiteEmbedding]):
    """Repository for WebsiteEmbedding model operations."""

    def __init__(self, session: AsyncSession, max_batch_size: int | None = None):
        """
        Initialize embedding repository.

        Args:
            session: Async database session
            max_batch_size: Largest number of records flushed at once (defaults to settings)
        """
        super().__init__(WebsiteEmbedding, session)
        self.max_batch_size = max_batch_size or settings.persistence_max_batch_size

    async def insert_records(self, records: list[WebsiteEmbedding]) -> int:
        """
        Insert embedding records in batches of at most max_batch_size.

        Args:
            records: Records to insert

        Returns:
            Number of records inserted
        """
        for start in range(0, len(records), self.max_batch_size):
            await self.create_many(records[start : start + self.max_batch_size])
        return len(records)

    async def delete_by_website(self, website_url: str) -> int:
        """
        Delete every record stored for a website.

        Args:
            website_url: Website the records belong to

        Returns:
            Number of deleted rows
        """
        result = await self.session.execute(
            delete(WebsiteEmbedding).where(
                WebsiteEmbedding.website_url == website_url  # type: ignore[arg-type]
            )
        )
        await self.session.flush()
        return result.rowcount or 0

    async def count_by_website(self, website_url: str) -> int:
        """
        Count records stored for a website.

        Args:
            website_url: Website the records belong to

        Returns:
            Number of records
        """
        result = await self.session.execute(
            select(func.count())
            .select_from(WebsiteEmbedding)
            .where(WebsiteEmbedding.website_url == website_url)  # type: ignore[arg-type]
        )
        return result.scalar_one()
