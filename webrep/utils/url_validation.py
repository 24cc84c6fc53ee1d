"""URL and crawl-parameter validation for ingestion requests."""

import re
from urllib.parse import urlparse

from webrep.config import MAX_PAGES_HARD_CAP, settings
from webrep.utils.exceptions import ErrorCode, InputValidationError

ALLOWED_SCHEMES = {"http", "https"}

BLOCKED_HOSTS = {
    "localhost",
    "127.0.0.1",
    "0.0.0.0",
    "::1",
    # Cloud metadata endpoints
    "169.254.169.254",
    "metadata.google.internal",
    "metadata.azure.com",
}

PRIVATE_HOST_PATTERNS = [
    re.compile(r"^10\."),
    re.compile(r"^172\.(1[6-9]|2[0-9]|3[01])\."),
    re.compile(r"^192\.168\."),
]


def validate_and_sanitize_url(url: str) -> str:
    """
    Validate a crawl start URL and return it normalized.

    Only public http(s) URLs without embedded credentials are accepted.

    Args:
        url: URL supplied by the caller

    Returns:
        Normalized URL string

    Raises:
        InputValidationError: If the URL is malformed or not allowed
    """
    if not url or not isinstance(url, str):
        raise InputValidationError(
            "URL is required and must be a string", code=ErrorCode.INVALID_URL
        )

    url = url.strip()
    try:
        parsed = urlparse(url)
        hostname = parsed.hostname
    except ValueError as e:
        raise InputValidationError(
            "Invalid URL format", code=ErrorCode.INVALID_URL, context={"provided": url}
        ) from e

    if parsed.scheme.lower() not in ALLOWED_SCHEMES:
        raise InputValidationError(
            "URL must use HTTP or HTTPS protocol",
            code=ErrorCode.INVALID_URL,
            context={"provided": parsed.scheme},
        )

    if not hostname:
        raise InputValidationError(
            "Invalid URL format", code=ErrorCode.INVALID_URL, context={"provided": url}
        )

    if parsed.username or parsed.password:
        raise InputValidationError(
            "URLs with embedded credentials are not allowed", code=ErrorCode.INVALID_URL
        )

    if hostname in BLOCKED_HOSTS:
        raise InputValidationError(
            "Cannot scrape localhost, private or metadata addresses",
            code=ErrorCode.INVALID_URL,
            context={"host": hostname},
        )

    for pattern in PRIVATE_HOST_PATTERNS:
        if pattern.match(hostname):
            raise InputValidationError(
                "Cannot scrape private IP addresses",
                code=ErrorCode.INVALID_URL,
                context={"host": hostname},
            )

    return parsed._replace(scheme=parsed.scheme.lower(), netloc=parsed.netloc.lower()).geturl()


def validate_max_pages(max_pages: int | str | None) -> int:
    """
    Validate the page budget for a crawl.

    Args:
        max_pages: Requested page budget; None selects the configured default

    Returns:
        Page budget as an int in [1, 100]

    Raises:
        InputValidationError: If the value is not a positive int or exceeds the cap
    """
    if max_pages is None:
        return settings.max_pages_per_crawl

    try:
        parsed = int(max_pages)
    except (TypeError, ValueError) as e:
        raise InputValidationError("maxPages must be a positive number") from e

    if parsed < 1:
        raise InputValidationError("maxPages must be a positive number")
    if parsed > MAX_PAGES_HARD_CAP:
        raise InputValidationError(f"maxPages cannot exceed {MAX_PAGES_HARD_CAP}")

    return parsed
