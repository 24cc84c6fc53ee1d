"""Unit tests for the error taxonomy and the OpenAI client factory."""

import pytest
from pydantic import SecretStr

from webrep.utils import openai_client
from webrep.utils.exceptions import (
    EmbeddingGenerationError,
    EmbeddingRateLimitError,
    ErrorCode,
    FetchError,
    InputValidationError,
    ScrapingError,
    WebRepError,
)


def test_default_codes():
    """Test each error kind carries its machine-readable code."""
    assert InputValidationError("bad").code == ErrorCode.INVALID_INPUT
    assert FetchError("down").code == ErrorCode.FETCH_FAILED
    assert EmbeddingRateLimitError("slow down").code == ErrorCode.RATE_LIMIT_EXCEEDED


def test_hierarchy():
    """Test callers can catch errors by stage."""
    assert issubclass(FetchError, ScrapingError)
    assert issubclass(EmbeddingRateLimitError, EmbeddingGenerationError)
    assert issubclass(ScrapingError, WebRepError)


def test_to_dict():
    """Test serialization includes context only when present."""
    error = InputValidationError("Invalid URL", code=ErrorCode.INVALID_URL, context={"provided": "ftp"})

    assert error.to_dict() == {
        "code": "INVALID_URL",
        "message": "Invalid URL",
        "context": {"provided": "ftp"},
    }
    assert WebRepError("boom").to_dict() == {"code": "INTERNAL_ERROR", "message": "boom"}


def test_openai_client_requires_key(monkeypatch):
    """Test a missing API key is reported before any request."""
    monkeypatch.setattr(openai_client.settings, "openai_api_key", None)

    with pytest.raises(InputValidationError, match="OPENAI_API_KEY"):
        openai_client.get_openai_client()


def test_openai_client_disables_sdk_retries(monkeypatch):
    """Test retries are left to the embedding generator."""
    monkeypatch.setattr(openai_client.settings, "openai_api_key", SecretStr("sk-test"))

    client = openai_client.get_openai_client()

    assert client.max_retries == 0
