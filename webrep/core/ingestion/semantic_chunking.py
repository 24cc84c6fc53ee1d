"""Semantic text chunking with configurable character overlap."""

import re
from dataclasses import dataclass, field
from typing import Any

import structlog

from webrep.config import settings
from webrep.utils.exceptions import ChunkingError

logger = structlog.get_logger(__name__)

PARAGRAPH_BREAK = re.compile(r"\n\s*\n")

# Splits after terminal punctuation; every character stays in some sentence
SENTENCE_BOUNDARY = re.compile(r"(?<=[.!?])\s+")


@dataclass(frozen=True)
class Chunk:
    """A bounded piece of page content prepared for embedding."""

    text: str
    index: int
    total_chunks: int
    source_page_url: str
    metadata: dict[str, Any] = field(default_factory=dict)


class SemanticChunker:
    """
    Character-bounded chunker that prefers natural text boundaries.

    Splitting order:
    - Paragraphs (blank lines), accumulated up to chunk_size
    - Sentences, for paragraphs longer than chunk_size
    - Raw character windows, for sentences longer than chunk_size

    Each new chunk opened after a flush is seeded with whole words from the
    end of the previous chunk, at most chunk_overlap characters, and never
    pushes the chunk past chunk_size.
    """

    def __init__(
        self,
        chunk_size: int | None = None,
        chunk_overlap: int | None = None,
    ) -> None:
        """
        Initialize SemanticChunker with configuration.

        Args:
            chunk_size: Maximum chunk length in characters (defaults to settings value)
            chunk_overlap: Overlap between chunks in characters (defaults to settings value)

        Raises:
            ChunkingError: If the sizes do not satisfy 0 <= overlap < size
        """
        self.chunk_size = settings.chunk_size if chunk_size is None else chunk_size
        self.chunk_overlap = settings.chunk_overlap if chunk_overlap is None else chunk_overlap

        if self.chunk_size <= 0:
            raise ChunkingError(
                "chunk_size must be positive", context={"chunk_size": self.chunk_size}
            )
        if not 0 <= self.chunk_overlap < self.chunk_size:
            raise ChunkingError(
                "chunk_overlap must satisfy 0 <= chunk_overlap < chunk_size",
                context={"chunk_size": self.chunk_size, "chunk_overlap": self.chunk_overlap},
            )

    def chunk_content(
        self,
        text: str,
        source_page_url: str,
        metadata: dict[str, Any] | None = None,
    ) -> list[Chunk]:
        """
        Chunk page content into indexed Chunk objects.

        Args:
            text: Main content of a page
            source_page_url: URL of the page the content came from
            metadata: Extra metadata copied onto every chunk

        Returns:
            List of Chunk objects in content order

        Raises:
            ChunkingError: If chunking fails
        """
        if not text or not text.strip():
            logger.warning("empty_text_for_chunking", page_url=source_page_url)
            return []

        try:
            pieces = self.split_text(text)
        except Exception as e:
            logger.error(
                "chunking_failed",
                page_url=source_page_url,
                error=str(e),
                text_length=len(text),
            )
            raise ChunkingError(
                f"Failed to chunk text: {e}", context={"page_url": source_page_url}
            ) from e

        chunks = [
            Chunk(
                text=piece,
                index=index,
                total_chunks=len(pieces),
                source_page_url=source_page_url,
                metadata=dict(metadata or {}),
            )
            for index, piece in enumerate(pieces)
        ]

        logger.info(
            "chunking_complete",
            page_url=source_page_url,
            total_chunks=len(chunks),
            avg_chunk_size=sum(len(c.text) for c in chunks) / len(chunks) if chunks else 0,
            total_text_length=len(text),
        )
        return chunks

    def split_text(self, text: str) -> list[str]:
        """
        Split text into chunks of at most chunk_size characters.

        Args:
            text: Text to split

        Returns:
            List of chunk strings (empty for blank input)
        """
        if not text or not text.strip():
            return []

        if len(text) <= self.chunk_size:
            return [text.strip()]

        chunks: list[str] = []
        current = ""

        for paragraph in self._split_into_paragraphs(text):
            if len(paragraph) > self.chunk_size:
                if current:
                    chunks.append(current)
                    current = ""
                current = self._split_long_paragraph(paragraph, chunks)
                continue

            candidate = f"{current}\n\n{paragraph}" if current else paragraph
            if len(candidate) > self.chunk_size:
                chunks.append(current)
                current = self._seed_with_overlap(current, paragraph, "\n\n")
            else:
                current = candidate

        if current.strip():
            chunks.append(current.strip())

        return chunks

    def _split_into_paragraphs(self, text: str) -> list[str]:
        paragraphs = PARAGRAPH_BREAK.split(text)
        return [p.strip() for p in paragraphs if p.strip()]

    def _split_long_paragraph(self, paragraph: str, chunks: list[str]) -> str:
        """
        Split an oversized paragraph by sentences, appending full chunks.

        Returns:
            The unfinished remainder, which continues the paragraph buffer
        """
        sentences = [s.strip() for s in SENTENCE_BOUNDARY.split(paragraph) if s.strip()]
        current = ""

        for sentence in sentences:
            if len(sentence) > self.chunk_size:
                if current:
                    chunks.append(current)
                    current = ""
                chunks.extend(self._hard_split(sentence))
                continue

            candidate = f"{current} {sentence}" if current else sentence
            if len(candidate) > self.chunk_size:
                chunks.append(current)
                current = self._seed_with_overlap(current, sentence, " ")
            else:
                current = candidate

        return current

    def _hard_split(self, text: str) -> list[str]:
        """Split by raw character windows advancing chunk_size - chunk_overlap."""
        step = self.chunk_size - self.chunk_overlap
        pieces = []
        for start in range(0, len(text), step):
            piece = text[start : start + self.chunk_size].strip()
            if piece:
                pieces.append(piece)
        return pieces

    def _seed_with_overlap(self, previous: str, text: str, separator: str) -> str:
        """Start a new chunk with the overlap tail of the previous one."""
        budget = min(self.chunk_overlap, self.chunk_size - len(text) - len(separator))
        tail = self._calculate_overlap_text(previous, budget)
        return f"{tail}{separator}{text}" if tail else text

    def _calculate_overlap_text(self, chunk_text: str, max_chars: int) -> str:
        """
        Calculate overlap text from the end of a chunk.

        Args:
            chunk_text: Previous chunk text
            max_chars: Upper bound on the overlap length

        Returns:
            Last whole words of chunk_text fitting in max_chars (may be empty)
        """
        if max_chars <= 0:
            return ""

        words: list[str] = []
        length = 0
        for word in reversed(chunk_text.split()):
            added = len(word) + (1 if words else 0)
            if length + added > max_chars:
                break
            words.append(word)
            length += added

        return " ".join(reversed(words))
