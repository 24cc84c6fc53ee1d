"""Custom exceptions for WebRep application."""

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Machine-readable error kinds carried by every WebRep error."""

    # Input validation
    INVALID_URL = "INVALID_URL"
    INVALID_INPUT = "INVALID_INPUT"

    # Scraping
    SCRAPING_FAILED = "SCRAPING_FAILED"
    FETCH_FAILED = "FETCH_FAILED"
    NO_CONTENT_FOUND = "NO_CONTENT_FOUND"

    # Chunking and embeddings
    CHUNKING_FAILED = "CHUNKING_FAILED"
    EMBEDDING_GENERATION_FAILED = "EMBEDDING_GENERATION_FAILED"
    EMBEDDING_STORAGE_FAILED = "EMBEDDING_STORAGE_FAILED"
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"

    INTERNAL_ERROR = "INTERNAL_ERROR"


class WebRepError(Exception):
    """Base exception for all WebRep errors."""

    default_code = ErrorCode.INTERNAL_ERROR

    def __init__(
        self,
        message: str,
        code: ErrorCode | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.context = context or {}

    def to_dict(self) -> dict[str, Any]:
        """Serialize error for logs and CLI output."""
        data: dict[str, Any] = {"code": self.code.value, "message": self.message}
        if self.context:
            data["context"] = self.context
        return data


class InputValidationError(WebRepError):
    """Exception raised for invalid caller input (never retried)."""

    default_code = ErrorCode.INVALID_INPUT


class ScrapingError(WebRepError):
    """Exception raised when a crawl cannot run."""

    default_code = ErrorCode.SCRAPING_FAILED


class FetchError(ScrapingError):
    """Exception raised when a single page fetch fails."""

    default_code = ErrorCode.FETCH_FAILED


class ChunkingError(WebRepError):
    """Exception raised when text chunking fails or is misconfigured."""

    default_code = ErrorCode.CHUNKING_FAILED


class EmbeddingGenerationError(WebRepError):
    """Exception raised when embedding generation fails."""

    default_code = ErrorCode.EMBEDDING_GENERATION_FAILED


class EmbeddingRateLimitError(EmbeddingGenerationError):
    """Exception raised when the embedding API rate limit persists after retries."""

    default_code = ErrorCode.RATE_LIMIT_EXCEEDED


class EmbeddingStorageError(WebRepError):
    """Exception raised when persisting or deleting embeddings fails."""

    default_code = ErrorCode.EMBEDDING_STORAGE_FAILED
