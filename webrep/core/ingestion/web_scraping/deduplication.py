"""Page-level duplicate detection for a single ingestion session."""

import hashlib
import logging
import math
from dataclasses import dataclass

logger = logging.getLogger(__name__)

# Same-title pages whose content lengths differ by less than this are duplicates
TITLE_MATCH_MAX_LENGTH_DELTA = 100

# Length ratio below which two pages are never considered similar
MIN_LENGTH_RATIO = 0.8


@dataclass(frozen=True)
class PageFingerprint:
    """Hashes identifying a page's content."""

    url: str
    content_hash: str
    title_hash: str
    length: int


@dataclass(frozen=True)
class DeduplicationStats:
    """Counters for one deduplication session."""

    unique_pages: int
    duplicates_found: int
    duplicate_rate: int


def content_hash(text: str) -> str:
    """SHA-256 of lowercased, whitespace-collapsed text."""
    normalized = " ".join(text.lower().split())
    return hashlib.sha256(normalized.encode("utf-8")).hexdigest()


class DeduplicationService:
    """Detect duplicate pages by content hash or same title and similar length.

    State is in-memory and per session; call reset() before ingesting an
    unrelated website with the same instance.
    """

    def __init__(self, threshold: float = 0.95):
        """Initialize deduplication service.

        Args:
            threshold: Minimum similarity for content to count as a duplicate
        """
        self.threshold = threshold
        self._fingerprints: dict[str, PageFingerprint] = {}
        self._duplicate_count = 0

    def is_duplicate(self, url: str, title: str, content: str) -> bool:
        """Check a page against every page seen so far.

        Stores the page's fingerprint when it is not a duplicate. A URL is
        never compared with itself.

        Args:
            url: Page URL
            title: Page title
            content: Main content of the page

        Returns:
            True if the page duplicates an earlier one
        """
        fingerprint = PageFingerprint(
            url=url,
            content_hash=content_hash(content),
            title_hash=content_hash(title),
            length=len(content),
        )

        for existing_url, existing in self._fingerprints.items():
            if existing_url == url:
                continue

            similarity = self.calculate_similarity(
                fingerprint.content_hash, existing.content_hash, fingerprint.length, existing.length
            )
            if similarity >= self.threshold:
                self._duplicate_count += 1
                logger.info(f"Duplicate content detected: {url} duplicates {existing_url}")
                return True

            if (
                fingerprint.title_hash == existing.title_hash
                and abs(fingerprint.length - existing.length) < TITLE_MATCH_MAX_LENGTH_DELTA
            ):
                self._duplicate_count += 1
                logger.info(f"Duplicate page detected (same title '{title}'): {url} duplicates {existing_url}")
                return True

        self._fingerprints[url] = fingerprint
        return False

    @staticmethod
    def calculate_similarity(hash1: str, hash2: str, length1: int, length2: int) -> float:
        """Similarity of two fingerprints in [0, 1].

        Only exact hash equality is detected; any other pair scores 0.0.
        """
        if hash1 == hash2:
            return 1.0

        longest = max(length1, length2)
        if longest == 0 or min(length1, length2) / longest < MIN_LENGTH_RATIO:
            return 0.0

        # TODO: shingle-based near-duplicate scoring for pages with equal length but edited text
        return 0.0

    def get_stats(self) -> DeduplicationStats:
        """Return unique/duplicate counts and the duplicate rate as a percentage."""
        unique = len(self._fingerprints)
        duplicates = self._duplicate_count
        rate = math.floor(duplicates / (unique + duplicates) * 100 + 0.5) if unique else 0
        return DeduplicationStats(
            unique_pages=unique, duplicates_found=duplicates, duplicate_rate=rate
        )

    def reset(self) -> None:
        """Clear all fingerprints and counters."""
        self._fingerprints.clear()
        self._duplicate_count = 0
