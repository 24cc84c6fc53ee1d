"""Content extraction module - extract structured text and a quality score from HTML pages."""

import logging
import math
import re
from dataclasses import dataclass, field, replace
from typing import Optional, Sequence
from urllib.parse import urldefrag, urljoin, urlparse

from bs4 import BeautifulSoup
from bs4.element import NavigableString, PreformattedString, Tag

from webrep.core.ingestion.web_scraping import extraction_rules as rules

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Heading:
    """A heading found on the page."""

    level: int
    text: str


@dataclass(frozen=True)
class ContentMetadata:
    """Derived statistics about the extracted main content."""

    word_count: int = 0
    estimated_read_time: int = 0
    unique_word_ratio: float = 0.0
    has_boilerplate: bool = False
    language: Optional[str] = None
    low_confidence: bool = False


@dataclass(frozen=True)
class ParsedContent:
    """Structured content extracted from a webpage."""

    url: str
    title: str
    main_content: str
    headings: tuple[Heading, ...] = ()
    paragraphs: tuple[str, ...] = ()
    links: tuple[str, ...] = ()
    metadata: ContentMetadata = field(default_factory=ContentMetadata)


@dataclass
class ExtractionConfig:
    """Configuration for content extraction."""

    max_content_length: Optional[int] = 8000


class ContentExtractor:
    """Extract main text, structure and metadata from HTML pages.

    Uses a priority cascade for the main content:
    1. Known content selectors (article, main, CMS content classes)
    2. The largest div/section/article block
    3. The whole body (flagged low-confidence when nearly empty)

    Parsing never raises; malformed markup degrades to the least specific
    extraction level.
    """

    def __init__(self, config: Optional[ExtractionConfig] = None):
        """Initialize content extractor with configuration."""
        self.config = config or ExtractionConfig()

    def parse(self, html: str, url: str) -> ParsedContent:
        """Parse HTML into structured content.

        Args:
            html: The HTML content of the page
            url: The URL of the page being parsed (used to resolve links)

        Returns:
            ParsedContent, possibly with empty main content
        """
        try:
            return self._parse(html or "", url)
        except Exception as e:
            logger.exception(f"Unexpected extraction failure for {url}: {e}")
            return ParsedContent(url=url, title=rules.DEFAULT_TITLE, main_content="")

    def with_visible_text(self, content: ParsedContent, visible_text: str) -> ParsedContent:
        """Replace empty main content with the text a browser actually rendered.

        Client-rendered pages can yield no words from their serialized DOM
        while the browser still shows readable text.
        """
        text = " ".join(visible_text.split())
        if self.config.max_content_length is not None:
            text = text[: self.config.max_content_length].strip()

        metadata = self._generate_metadata(
            text, content.paragraphs, content.metadata.low_confidence
        )
        return replace(content, main_content=text, metadata=metadata)

    def _parse(self, html: str, url: str) -> ParsedContent:
        soup = BeautifulSoup(html, "html.parser")

        # Links are read before junk removal so navigation menus still feed the crawler
        links = self._extract_links(soup, url)

        self._remove_junk_elements(soup)

        main_content, low_confidence = self._extract_main_content(soup, url)
        title = self._extract_title(soup)
        headings = self._extract_headings(soup)
        paragraphs = self._extract_paragraphs(soup)

        if self.config.max_content_length is not None:
            main_content = main_content[: self.config.max_content_length].strip()

        metadata = self._generate_metadata(main_content, paragraphs, low_confidence)

        return ParsedContent(
            url=url,
            title=title,
            main_content=main_content,
            headings=tuple(headings),
            paragraphs=tuple(paragraphs),
            links=tuple(links),
            metadata=metadata,
        )

    def _extract_links(self, soup: BeautifulSoup, base_url: str) -> list[str]:
        """Collect absolute http(s) links in document order, without fragments."""
        links: list[str] = []
        seen: set[str] = set()

        for anchor in soup.find_all("a", href=True):
            href = anchor.get("href", "").strip()
            if not href:
                continue
            try:
                absolute, _fragment = urldefrag(urljoin(base_url, href))
                scheme = urlparse(absolute).scheme
            except ValueError:
                continue
            if scheme not in ("http", "https") or absolute in seen:
                continue
            seen.add(absolute)
            links.append(absolute)

        return links

    def _remove_junk_elements(self, soup: BeautifulSoup) -> None:
        """Remove navigation, ads, hidden elements and other non-content markup."""
        for selector in rules.JUNK_SELECTORS:
            for element in soup.select(selector):
                if not getattr(element, "decomposed", False):
                    element.decompose()

        for element in soup.find_all(True):
            # Descendants of an element removed earlier in this loop
            if getattr(element, "decomposed", False) or element.name in rules.PROTECTED_TAGS:
                continue

            class_names = " ".join(element.get("class") or [])
            element_id = element.get("id") or ""
            if rules.JUNK_KEYWORD_PATTERN.search(class_names) or rules.JUNK_KEYWORD_PATTERN.search(
                element_id
            ):
                element.decompose()
                continue

            style = re.sub(r"\s+", "", element.get("style") or "").lower()
            if any(marker in style for marker in rules.HIDDEN_STYLE_MARKERS):
                element.decompose()
                continue

            if (element.get("aria-hidden") or "").lower() == "true":
                element.decompose()

    def _extract_main_content(self, soup: BeautifulSoup, url: str) -> tuple[str, bool]:
        """Extract main content text and whether the result is low-confidence."""
        for selector in rules.CONTENT_SELECTORS:
            element = soup.select_one(selector)
            if element is None:
                continue
            text = self._block_text(element)
            if len(text) > rules.SELECTOR_MIN_CHARS:
                logger.debug(f"Found content for {url} using selector {selector}")
                return text, False

        largest: Optional[Tag] = None
        largest_length = 0
        for element in soup.find_all(rules.FALLBACK_BLOCK_TAGS):
            length = len(element.get_text(strip=True))
            if length > largest_length:
                largest, largest_length = element, length

        if largest is not None:
            text = self._block_text(largest)
            if len(text) > rules.LARGEST_BLOCK_MIN_CHARS:
                logger.debug(f"Using largest text block ({len(text)} chars) for {url}")
                return text, False

        body = soup.body or soup
        text = self._block_text(body)
        if len(text) < rules.LOW_CONFIDENCE_BODY_CHARS:
            logger.warning(
                f"Body content for {url} is very small ({len(text)} chars) - "
                "page is likely rendered client-side"
            )
            return text, True

        logger.debug(f"Using body content ({len(text)} chars) for {url}")
        return text, False

    def _block_text(self, element: Tag) -> str:
        """Text of an element with block-level boundaries kept as blank lines."""
        parts: list[str] = []
        for node in element.descendants:
            if isinstance(node, Tag):
                if node.name in rules.BLOCK_TAGS:
                    parts.append("\n\n")
                elif node.name == "br":
                    parts.append("\n")
            elif isinstance(node, NavigableString) and not isinstance(node, PreformattedString):
                parts.append(re.sub(r"\s+", " ", str(node)))
        return self._clean_text("".join(parts))

    def _clean_text(self, text: str) -> str:
        """Normalize whitespace, repeated dots and zero-width characters."""
        text = re.sub(r"[\u200b-\u200d\ufeff]", "", text)
        text = re.sub(r"[ \t\r\f\v]+", " ", text)
        text = re.sub(r" *\n *", "\n", text)
        text = re.sub(r"\n{3,}", "\n\n", text)
        text = re.sub(r"\.{3,}", "...", text)
        return text.strip()

    def _element_text(self, element: Tag) -> str:
        return " ".join(element.get_text().split())

    def _extract_title(self, soup: BeautifulSoup) -> str:
        """Extract page title: h1, Open Graph, Twitter, <title>, title meta."""
        h1 = soup.find("h1")
        og_title = soup.find("meta", attrs={"property": "og:title"})
        twitter_title = soup.find("meta", attrs={"name": "twitter:title"})
        title_tag = soup.find("title")
        meta_title = soup.find("meta", attrs={"name": "title"})

        sources = [
            self._element_text(h1) if h1 else None,
            og_title.get("content") if og_title else None,
            twitter_title.get("content") if twitter_title else None,
            self._element_text(title_tag) if title_tag else None,
            meta_title.get("content") if meta_title else None,
        ]

        for candidate in sources:
            if candidate and 0 < len(candidate.strip()) < rules.MAX_TITLE_CHARS:
                return candidate.strip()

        return rules.DEFAULT_TITLE

    def _extract_headings(self, soup: BeautifulSoup) -> list[Heading]:
        """Extract h1-h6 headings, skipping empty, overlong and boilerplate text."""
        headings = []
        for element in soup.find_all(re.compile(r"^h[1-6]$")):
            text = self._element_text(element)
            if 0 < len(text) < rules.MAX_HEADING_CHARS and not rules.is_boilerplate(text):
                headings.append(Heading(level=int(element.name[1]), text=text))
        return headings

    def _extract_paragraphs(self, soup: BeautifulSoup) -> list[str]:
        """Extract meaningful, non-duplicate <p> paragraphs."""
        paragraphs: list[str] = []
        seen_fingerprints: set[str] = set()

        for element in soup.find_all("p"):
            text = self._element_text(element)
            if not (rules.MIN_PARAGRAPH_CHARS <= len(text) < rules.MAX_PARAGRAPH_CHARS):
                continue
            if not self._is_likely_content(text) or rules.is_boilerplate(text):
                continue

            fingerprint = rules.text_fingerprint(text, rules.PARAGRAPH_FINGERPRINT_CHARS)
            if fingerprint in seen_fingerprints:
                continue
            seen_fingerprints.add(fingerprint)
            paragraphs.append(text)

        return paragraphs

    def _is_likely_content(self, text: str) -> bool:
        """Check if text reads like prose rather than a menu or link list."""
        lower_text = text.lower()
        nav_hits = sum(1 for word in rules.NAVIGATION_WORDS if word in lower_text)
        if nav_hits >= rules.MAX_NAV_WORD_HITS:
            return False

        non_space = re.sub(r"\s", "", text)
        if non_space:
            caps_ratio = len(re.findall(r"[A-Z]", text)) / len(non_space)
            if caps_ratio > rules.MAX_CAPS_RATIO:
                return False

        has_sentence_markers = bool(rules.SENTENCE_PUNCTUATION.search(text))
        return has_sentence_markers and len(text.split()) >= rules.MIN_PARAGRAPH_WORDS

    def _generate_metadata(
        self, content: str, paragraphs: Sequence[str], low_confidence: bool
    ) -> ContentMetadata:
        words = content.split()
        word_count = len(words)
        unique_words = {re.sub(r"[^a-z0-9]", "", word.lower()) for word in words}

        return ContentMetadata(
            word_count=word_count,
            estimated_read_time=math.ceil(word_count / rules.WORDS_PER_MINUTE),
            unique_word_ratio=len(unique_words) / word_count if word_count else 0.0,
            has_boilerplate=any(rules.is_boilerplate(paragraph) for paragraph in paragraphs),
            language=self._detect_language(content),
            low_confidence=low_confidence,
        )

    def _detect_language(self, text: str) -> Optional[str]:
        """Guess English from common stop words in the first 1000 characters."""
        sample = text[: rules.LANGUAGE_SAMPLE_CHARS]
        matches = sum(
            1
            for word in rules.ENGLISH_STOPWORDS
            if re.search(rf"\b{word}\b", sample, re.IGNORECASE)
        )
        return "en" if matches >= rules.ENGLISH_MIN_MATCHES else None

    def calculate_quality_score(self, content: ParsedContent) -> int:
        """Score content quality from 0 to 100.

        Args:
            content: Parsed content to score

        Returns:
            Additive heuristic score clamped to [0, 100]
        """
        score = 0
        metadata = content.metadata
        word_count = metadata.word_count

        if content.title and content.title != rules.DEFAULT_TITLE:
            score += 20

        if word_count >= 50:
            score += 15
        if word_count >= 200:
            score += 15

        if len(content.headings) > 0:
            score += 10
        if len(content.headings) >= 3:
            score += 10

        if len(content.paragraphs) >= 3:
            score += 10
        if len(content.paragraphs) >= 5:
            score += 10

        if 200 <= word_count <= 5000:
            score += 5
        if 500 <= word_count <= 3000:
            score += 5

        if metadata.unique_word_ratio < 0.3:
            logger.debug(
                f"Low unique word ratio ({metadata.unique_word_ratio:.2f}) for "
                f"{content.url} - possible repetitive content"
            )
            score -= 10

        if metadata.has_boilerplate:
            logger.debug(f"Boilerplate content detected for {content.url}")
            score -= 5

        return max(0, min(100, score))
