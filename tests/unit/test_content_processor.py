"""Unit tests for chunk deduplication and low-value filtering."""

import pytest

from webrep.core.ingestion.semantic_chunking import Chunk
from webrep.core.ingestion.web_scraping.content_processor import ContentProcessor

PAGE_URL = "https://example.com/post"

PROSE = (
    "Embedding models map passages of text to vectors so that passages with a similar "
    "meaning end up close together, which makes semantic search over a website possible."
)


def make_chunks(*texts: str) -> list[Chunk]:
    return [
        Chunk(text=text, index=i, total_chunks=len(texts), source_page_url=PAGE_URL)
        for i, text in enumerate(texts)
    ]


@pytest.fixture
def processor():
    return ContentProcessor()


def test_duplicate_chunks_removed(processor):
    """Test chunks with the same normalized prefix keep only the first."""
    chunks = make_chunks(PROSE, "  " + PROSE.upper(), "A different passage entirely.")

    unique = processor.deduplicate_chunks(chunks)

    assert [chunk.index for chunk in unique] == [0, 2]


def test_chunks_differing_after_fingerprint_are_duplicates():
    """Test only the fingerprint prefix is compared."""
    processor = ContentProcessor(fingerprint_chars=30)
    chunks = make_chunks(PROSE, PROSE[:40] + " but a different ending.")

    assert len(processor.deduplicate_chunks(chunks)) == 1


def test_deduplication_scoped_to_call(processor):
    """Test fingerprints do not leak between pages."""
    processor.deduplicate_chunks(make_chunks(PROSE))

    assert len(processor.deduplicate_chunks(make_chunks(PROSE))) == 1


@pytest.mark.parametrize(
    "text",
    [
        "Too short to embed.",
        "Copyright 2024 Example Corp. " + PROSE,
        "Subscribe to our newsletter. " + PROSE,
        "We use cookies to improve your experience. " + PROSE,
        " ".join(["word"] * 30),
    ],
)
def test_low_value_chunks_dropped(processor, text):
    """Test short, boilerplate and sentence-less chunks are not valuable."""
    assert processor.is_valuable(text) is False


def test_prose_is_valuable(processor):
    """Test substantive prose passes the filter."""
    assert processor.is_valuable(PROSE) is True


def test_filter_low_value_chunks_keeps_order(processor):
    """Test valuable chunks survive in order."""
    second = "Search compares the query vector with stored vectors. " + PROSE
    chunks = make_chunks(PROSE, "Privacy Policy", second)

    kept = processor.filter_low_value_chunks(chunks)

    assert [chunk.text for chunk in kept] == [PROSE, second]
