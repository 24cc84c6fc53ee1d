"""Vector embedding generation using OpenAI Embeddings API."""

import asyncio

import structlog
from openai import APIConnectionError, AsyncOpenAI, OpenAIError, RateLimitError

from webrep.config import settings
from webrep.utils.exceptions import (
    EmbeddingGenerationError,
    EmbeddingRateLimitError,
    ErrorCode,
    InputValidationError,
    WebRepError,
)
from webrep.utils.openai_client import get_openai_client
from webrep.utils.rate_limiter import RateLimiter
from webrep.utils.retry import retry_with_exponential_backoff

logger = structlog.get_logger(__name__)

RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})

OPENAI_MAX_BATCH_SIZE = 2048


def is_retryable_error(error: Exception) -> bool:
    """
    Decide whether an embedding failure is transient.

    Rate limits, 5xx gateway/server errors, dropped connections and timeouts
    are retried; everything else (bad request, auth, validation) is not.
    """
    # APITimeoutError is a subclass of APIConnectionError
    if isinstance(error, (APIConnectionError, ConnectionResetError, TimeoutError)):
        return True
    return getattr(error, "status_code", None) in RETRYABLE_STATUS_CODES


class EmbeddingGenerator:
    """
    Generate vector embeddings for text chunks using OpenAI Embeddings API.

    This class handles:
    - One API call per chunk, gated by a shared RateLimiter
    - Concurrent calls within a batch, sequential batches
    - Exponential backoff for transient failures only
    - Input validation before any API call is made
    """

    def __init__(
        self,
        client: AsyncOpenAI | None = None,
        rate_limiter: RateLimiter | None = None,
        embedding_model: str | None = None,
        batch_size: int | None = None,
        max_retries: int | None = None,
        retry_base_delay_ms: int | None = None,
        max_content_length: int | None = None,
    ) -> None:
        """
        Initialize EmbeddingGenerator with configuration.

        Args:
            client: Optional AsyncOpenAI client (defaults to new client from settings)
            rate_limiter: Limiter shared with other consumers of the same API
                (defaults to a private limiter built from settings)
            embedding_model: Optional model name (defaults to settings.embedding_model)
            batch_size: Number of concurrent calls per batch (default from settings, max: 2048)
            max_retries: Retries after the first attempt (defaults to settings)
            retry_base_delay_ms: Delay before the first retry (defaults to settings)
            max_content_length: Longest text accepted for embedding (defaults to settings)
        """
        self.client = client or get_openai_client()
        self.rate_limiter = rate_limiter or RateLimiter(
            settings.rate_limit_max_requests, settings.rate_limit_window_ms
        )
        self.embedding_model = embedding_model or settings.embedding_model
        self.batch_size = min(batch_size or settings.embedding_batch_size, OPENAI_MAX_BATCH_SIZE)
        self.max_retries = settings.max_embedding_retries if max_retries is None else max_retries
        self.retry_base_delay_ms = (
            settings.retry_base_delay_ms if retry_base_delay_ms is None else retry_base_delay_ms
        )
        self.max_content_length = max_content_length or settings.max_content_length

    async def generate_embeddings(
        self,
        texts: list[str],
        page_url: str | None = None,
    ) -> list[list[float]]:
        """
        Generate embeddings for a list of text chunks.

        Any single failure fails the whole call; no partial result is returned.

        Args:
            texts: List of text strings to embed
            page_url: Optional page URL for logging context

        Returns:
            Embedding vectors in the same order as texts

        Raises:
            InputValidationError: If a text is empty or too long
            EmbeddingGenerationError: If embedding generation fails
        """
        if not texts:
            logger.warning("empty_texts_for_embedding", page_url=page_url)
            return []

        all_embeddings: list[list[float]] = []
        total_batches = (len(texts) + self.batch_size - 1) // self.batch_size

        for batch_num in range(total_batches):
            start_idx = batch_num * self.batch_size
            batch_texts = texts[start_idx : start_idx + self.batch_size]

            results = await asyncio.gather(
                *(self.generate_embedding(text) for text in batch_texts),
                return_exceptions=True,
            )
            errors = [r for r in results if isinstance(r, BaseException)]
            if errors:
                logger.error(
                    "embeddings_generation_failed",
                    page_url=page_url,
                    batch_num=batch_num + 1,
                    failed=len(errors),
                    total_texts=len(texts),
                    error=str(errors[0]),
                )
                first = errors[0]
                if isinstance(first, WebRepError):
                    raise first
                raise EmbeddingGenerationError(f"Failed to generate embeddings: {first}") from first

            all_embeddings.extend(results)
            logger.info(
                "embedding_batch_complete",
                page_url=page_url,
                batch_num=batch_num + 1,
                total_batches=total_batches,
                generated=len(all_embeddings),
                total=len(texts),
            )

        return all_embeddings

    async def generate_embedding(self, text: str) -> list[float]:
        """
        Generate the embedding for a single text.

        Args:
            text: Text to embed

        Returns:
            Embedding vector

        Raises:
            InputValidationError: If text is empty or longer than max_content_length
            EmbeddingRateLimitError: If the API keeps rate limiting after all retries
            EmbeddingGenerationError: For any other API failure
        """
        if not text or not text.strip():
            raise InputValidationError("Cannot generate embedding for empty text")

        if len(text) > self.max_content_length:
            raise InputValidationError(
                f"Text length ({len(text)}) exceeds maximum ({self.max_content_length})",
                context={"length": len(text), "max_length": self.max_content_length},
            )

        try:
            return await retry_with_exponential_backoff(
                self._call_api,
                text,
                max_retries=self.max_retries,
                initial_delay=self.retry_base_delay_ms / 1000,
                retry_on_exceptions=(OpenAIError, ConnectionResetError, TimeoutError),
                should_retry=is_retryable_error,
            )
        except RateLimitError as e:
            raise EmbeddingRateLimitError(
                f"Rate limit exceeded after {self.max_retries + 1} attempts",
                code=ErrorCode.RATE_LIMIT_EXCEEDED,
            ) from e
        except (OpenAIError, ConnectionResetError, TimeoutError) as e:
            raise EmbeddingGenerationError(f"Failed to generate embedding: {e}") from e

    async def _call_api(self, text: str) -> list[float]:
        async with self.rate_limiter.slot():
            response = await self.client.embeddings.create(
                model=self.embedding_model,
                input=text,
                encoding_format="float",
            )

        logger.debug(
            "embedding_success",
            model=self.embedding_model,
            tokens_used=response.usage.total_tokens if response.usage else None,
        )
        return response.data[0].embedding
