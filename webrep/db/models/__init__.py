"""Database models for WebRep."""

from webrep.db.models.website_embedding import WebsiteEmbedding

__all__ = [
    "WebsiteEmbedding",
]
