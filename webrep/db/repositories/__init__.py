"""Database repositories for WebRep."""

from webrep.db.repositories.base_repository import BaseRepository
from webrep.db.repositories.embedding_repository import EmbeddingRepository

__all__ = [
    "BaseRepository",
    "EmbeddingRepository",
]
