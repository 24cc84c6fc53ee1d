"""Centralized OpenAI client initialization."""

from openai import AsyncOpenAI

from webrep.config import settings
from webrep.utils.exceptions import ErrorCode, InputValidationError


def get_openai_client() -> AsyncOpenAI:
    """
    Get configured OpenAI async client instance.

    Returns:
        Configured AsyncOpenAI client with API key from settings

    Raises:
        InputValidationError: If OPENAI_API_KEY is not configured
    """
    if settings.openai_api_key is None:
        raise InputValidationError(
            "OPENAI_API_KEY must be set to generate embeddings",
            code=ErrorCode.INVALID_INPUT,
        )
    # Retries are handled by EmbeddingGenerator
    return AsyncOpenAI(
        api_key=settings.openai_api_key.get_secret_value(),
        max_retries=0,
    )
