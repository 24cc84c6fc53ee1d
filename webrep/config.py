"""Configuration management for WebRep using Pydantic Settings."""

from pydantic import Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

MAX_PAGES_HARD_CAP = 100


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # OpenAI settings
    openai_api_key: SecretStr | None = Field(
        default=None,
        description="OpenAI API key for embeddings (required for ingestion)",
    )
    embedding_model: str = Field(
        default="text-embedding-3-small",
        description="OpenAI embedding model for vector generation",
    )
    embedding_dimensions: int = Field(
        default=1536,
        description="Embedding vector dimensions",
    )

    # Database settings
    database_url: str = Field(
        default="postgresql+asyncpg://postgres@localhost/webrep",
        description="PostgreSQL database URL with asyncpg driver",
    )
    database_echo: bool = Field(
        default=False,
        description="Echo SQL queries to console",
    )
    persistence_max_batch_size: int = Field(
        default=1000,
        gt=0,
        description="Maximum number of embedding records inserted per statement",
    )

    # Logging settings
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    environment: str = Field(
        default="development",
        description="Environment (development or production)",
    )

    # Crawl settings
    max_pages_per_crawl: int = Field(
        default=50,
        ge=1,
        le=MAX_PAGES_HARD_CAP,
        description="Maximum number of pages accepted per crawl (hard cap 100)",
    )
    min_quality_score: int = Field(
        default=20,
        ge=0,
        le=100,
        description="Minimum content quality score for a page to be accepted",
    )
    inter_page_delay_ms: int = Field(
        default=500,
        ge=0,
        description="Delay between successive page fetches",
    )
    fetch_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Timeout for static HTTP page fetches",
    )
    browser_timeout_ms: int = Field(
        default=30000,
        gt=0,
        description="Navigation timeout for browser-rendered page fetches",
    )
    browser_settle_ms: int = Field(
        default=2000,
        ge=0,
        description="Extra wait after navigation for client-side rendering",
    )
    browser_content_wait_ms: int = Field(
        default=5000,
        ge=0,
        description="Max wait for a rendered page body to hold visible text",
    )
    user_agent: str = Field(
        default="WebRep-Bot/1.0",
        description="User-Agent header sent with page fetches",
    )
    min_response_bytes: int = Field(
        default=1,
        ge=0,
        description="Responses smaller than this are treated as unusable",
    )
    max_response_bytes: int = Field(
        default=5_000_000,
        gt=0,
        description="Responses larger than this are treated as unusable",
    )

    # Content and chunking settings
    max_content_length: int = Field(
        default=8000,
        gt=0,
        description="Maximum characters kept per page and per embedding input",
    )
    chunk_size: int = Field(
        default=1000,
        gt=0,
        description="Maximum characters per chunk",
    )
    chunk_overlap: int = Field(
        default=200,
        ge=0,
        description="Characters of trailing context carried into the next chunk",
    )

    # Embedding pipeline settings
    embedding_batch_size: int = Field(
        default=100,
        ge=1,
        le=2048,
        description="Number of chunks embedded concurrently per batch",
    )
    max_embedding_retries: int = Field(
        default=3,
        ge=0,
        description="Retry attempts for retryable embedding failures",
    )
    retry_base_delay_ms: int = Field(
        default=1000,
        ge=0,
        description="Initial backoff delay before the first embedding retry",
    )
    rate_limit_max_requests: int = Field(
        default=50,
        gt=0,
        description="Maximum embedding requests in flight within one window",
    )
    rate_limit_window_ms: int = Field(
        default=60000,
        gt=0,
        description="Window after which a tracked request slot expires",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is a standard logging level name."""
        allowed_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in allowed_levels:
            raise ValueError(
                f"Invalid log_level: {v}. Allowed values: {', '.join(sorted(allowed_levels))}"
            )
        return v.upper()

    @field_validator("embedding_model")
    @classmethod
    def validate_embedding_model(cls, v: str) -> str:
        """Validate embedding model is in allowed list."""
        allowed_models = {"text-embedding-3-small", "text-embedding-3-large"}
        if v not in allowed_models:
            raise ValueError(
                f"Invalid embedding_model: {v}. Allowed values: {', '.join(allowed_models)}"
            )
        return v

    @model_validator(mode="after")
    def validate_embedding_dimensions(self) -> "Settings":
        """Validate embedding dimensions match the selected model."""
        model_dimensions = {
            "text-embedding-3-small": 1536,
            "text-embedding-3-large": 3072,
        }
        expected_dims = model_dimensions.get(self.embedding_model)
        if expected_dims and self.embedding_dimensions != expected_dims:
            raise ValueError(
                f"embedding_dimensions ({self.embedding_dimensions}) does not match "
                f"embedding_model ({self.embedding_model}). Expected: {expected_dims}"
            )
        return self

    @model_validator(mode="after")
    def validate_chunk_overlap(self) -> "Settings":
        """Validate chunk overlap is strictly smaller than chunk size."""
        if self.chunk_overlap >= self.chunk_size:
            raise ValueError(
                f"chunk_overlap ({self.chunk_overlap}) must be smaller than "
                f"chunk_size ({self.chunk_size})"
            )
        return self

    @model_validator(mode="after")
    def validate_response_bounds(self) -> "Settings":
        """Validate response size bounds are ordered."""
        if self.min_response_bytes > self.max_response_bytes:
            raise ValueError(
                f"min_response_bytes ({self.min_response_bytes}) exceeds "
                f"max_response_bytes ({self.max_response_bytes})"
            )
        return self


# Global settings instance
settings = Settings()
