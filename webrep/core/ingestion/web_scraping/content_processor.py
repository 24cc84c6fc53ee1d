"""Content processing - chunk deduplication and low-value filtering before embedding."""

import logging

from webrep.core.ingestion.semantic_chunking import Chunk
from webrep.core.ingestion.web_scraping import extraction_rules as rules

logger = logging.getLogger(__name__)


class ContentProcessor:
    """Prepare chunks for embedding so no API call is spent on noise.

    Applies two passes, in order:
    1. Deduplication by a normalized prefix fingerprint
    2. Removal of short, boilerplate or sentence-less chunks
    """

    def __init__(
        self,
        fingerprint_chars: int = rules.CHUNK_FINGERPRINT_CHARS,
        min_words: int = rules.MIN_CHUNK_WORDS,
    ):
        """Initialize content processor.

        Args:
            fingerprint_chars: Length of the normalized prefix compared between chunks
            min_words: Minimum word count for a chunk worth embedding
        """
        self.fingerprint_chars = fingerprint_chars
        self.min_words = min_words

    def deduplicate_chunks(self, chunks: list[Chunk]) -> list[Chunk]:
        """Remove chunks whose normalized prefix was already seen.

        Fingerprints are scoped to this call.

        Args:
            chunks: Chunks in content order

        Returns:
            First occurrence of every distinct chunk
        """
        seen: set[str] = set()
        unique_chunks = []

        for chunk in chunks:
            fingerprint = rules.text_fingerprint(chunk.text, self.fingerprint_chars)
            if fingerprint in seen:
                logger.debug(f"Skipping duplicate chunk {chunk.index} of {chunk.source_page_url}")
                continue
            seen.add(fingerprint)
            unique_chunks.append(chunk)

        duplicates_removed = len(chunks) - len(unique_chunks)
        if duplicates_removed > 0:
            logger.info(
                f"Chunk deduplication: {len(chunks)} → {len(unique_chunks)} "
                f"({duplicates_removed} duplicates removed)"
            )

        return unique_chunks

    def filter_low_value_chunks(self, chunks: list[Chunk]) -> list[Chunk]:
        """Keep only chunks that read like substantive prose."""
        valuable = [chunk for chunk in chunks if self.is_valuable(chunk.text)]

        if len(valuable) < len(chunks):
            logger.info(
                f"Low-value filter: {len(chunks)} → {len(valuable)} "
                f"({len(chunks) - len(valuable)} chunks dropped)"
            )
        return valuable

    def is_valuable(self, text: str) -> bool:
        """Check word count, boilerplate prefix and sentence punctuation."""
        if len(text.split()) < self.min_words:
            return False
        if rules.is_boilerplate(text, rules.CHUNK_BOILERPLATE_PATTERNS):
            return False
        return bool(rules.SENTENCE_PUNCTUATION.search(text))
