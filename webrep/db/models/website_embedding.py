"""Website embedding model for storing page chunks with vector embeddings."""

from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from pgvector.sqlalchemy import Vector  # type: ignore[import-untyped]
from sqlalchemy import JSON, Column, Text
from sqlmodel import Field, SQLModel

from webrep.config import settings


class WebsiteEmbedding(SQLModel, table=True):
    """One embedded chunk of one page of an ingested website."""

    __tablename__ = "website_embeddings"

    id: UUID = Field(
        default_factory=uuid4,
        primary_key=True,
        nullable=False,
    )
    website_url: str = Field(nullable=False, index=True)
    page_url: str = Field(nullable=False, index=True)
    content_section: str = Field(sa_column=Column(Text, nullable=False))
    embedding: list[float] | None = Field(
        default=None,
        sa_column=Column(Vector(settings.embedding_dimensions)),
    )
    # "metadata" is reserved on declarative models, so only the column keeps that name
    embedding_metadata: dict[str, Any] | None = Field(
        default=None,
        sa_column=Column("metadata", JSON, nullable=True),
    )
    created_at: datetime = Field(
        default_factory=datetime.utcnow,
        nullable=False,
    )
