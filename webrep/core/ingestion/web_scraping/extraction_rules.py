"""Rule tables driving content extraction, boilerplate detection and chunk filtering.

Kept apart from the extraction and crawl logic so thresholds and patterns can
be tuned and tested on their own.
"""

import re

# Elements removed before any text is read
JUNK_SELECTORS = [
    "script",
    "style",
    "nav",
    "footer",
    "header",
    "aside",
    "iframe",
    "noscript",
    ".advertisement",
    ".ads",
    ".ad",
    ".sidebar",
    ".cookie-banner",
    ".cookie-notice",
    ".social-share",
    ".comments",
    "#comments",
    ".related-posts",
    '[role="navigation"]',
    '[role="complementary"]',
    '[role="banner"]',
    ".navigation",
    ".menu",
    ".breadcrumb",
    ".breadcrumbs",
    ".share-buttons",
    ".author-bio",
    ".newsletter",
    ".popup",
    ".modal",
]

# Matched against class and id attributes. "ad" only matches as a whole token
# so that classes like "header", "headline" or "thread" survive.
JUNK_KEYWORD_PATTERN = re.compile(
    r"(?:^|[\s_-])(?:ad|ads|advert\w*)(?=$|[\s_-])"
    r"|banner|sponsor|promo|popup|cookie|newsletter|subscribe|social|share|comment",
    re.IGNORECASE,
)

# Inline styles compared after all whitespace is removed
HIDDEN_STYLE_MARKERS = ("display:none", "visibility:hidden")

# Tags never removed by the keyword or hidden-style rules
PROTECTED_TAGS = {"html", "head", "body"}

# Main content candidates, in priority order
CONTENT_SELECTORS = [
    "article",
    '[role="main"]',
    "main",
    ".post-content",
    ".article-content",
    ".entry-content",
    ".content",
    ".main-content",
    "#content",
    "#main",
    ".post",
    ".article",
]

# Containers considered by the largest-block fallback
FALLBACK_BLOCK_TAGS = ["div", "section", "article"]

# Elements that start a new paragraph in extracted text
BLOCK_TAGS = {
    "address",
    "article",
    "blockquote",
    "dd",
    "div",
    "dl",
    "dt",
    "figcaption",
    "figure",
    "h1",
    "h2",
    "h3",
    "h4",
    "h5",
    "h6",
    "li",
    "main",
    "ol",
    "p",
    "pre",
    "section",
    "table",
    "tr",
    "ul",
}

SELECTOR_MIN_CHARS = 200
LARGEST_BLOCK_MIN_CHARS = 100
LOW_CONFIDENCE_BODY_CHARS = 100

DEFAULT_TITLE = "Untitled Page"
MAX_TITLE_CHARS = 200
MAX_HEADING_CHARS = 200

MIN_PARAGRAPH_CHARS = 50
MAX_PARAGRAPH_CHARS = 2000
MIN_PARAGRAPH_WORDS = 10
MAX_CAPS_RATIO = 0.5
MAX_NAV_WORD_HITS = 3
PARAGRAPH_FINGERPRINT_CHARS = 100

NAVIGATION_WORDS = [
    "home",
    "about",
    "contact",
    "menu",
    "login",
    "sign up",
    "terms",
    "privacy",
]

BOILERPLATE_PATTERNS = [
    re.compile(r"^(copyright|©|all rights reserved)", re.IGNORECASE),
    re.compile(r"^(terms of service|privacy policy|cookie policy)", re.IGNORECASE),
    re.compile(r"^(cookie|cookies|we use cookies)", re.IGNORECASE),
    re.compile(r"^(subscribe|sign up|newsletter)", re.IGNORECASE),
    re.compile(r"^(follow us|connect with us)", re.IGNORECASE),
    re.compile(r"^(share this|share on)", re.IGNORECASE),
    re.compile(r"^(read more|learn more|click here)", re.IGNORECASE),
]

SENTENCE_PUNCTUATION = re.compile(r"[.!?]")

WORDS_PER_MINUTE = 225

LANGUAGE_SAMPLE_CHARS = 1000
ENGLISH_STOPWORDS = ["the", "and", "is", "in", "to", "a", "of"]
ENGLISH_MIN_MATCHES = 4

# Chunk-level filtering
MIN_CHUNK_WORDS = 20
CHUNK_FINGERPRINT_CHARS = 200
CHUNK_BOILERPLATE_PATTERNS = [
    re.compile(r"^(copyright|all rights reserved)", re.IGNORECASE),
    re.compile(r"^(terms of service|privacy policy)", re.IGNORECASE),
    re.compile(r"^(cookie|cookies|we use cookies)", re.IGNORECASE),
    re.compile(r"^(subscribe|sign up|newsletter)", re.IGNORECASE),
]


def is_boilerplate(text: str, patterns: list[re.Pattern] = BOILERPLATE_PATTERNS) -> bool:
    """Return True if text starts like legal notices, banners or calls to action."""
    return any(pattern.search(text) for pattern in patterns)


def text_fingerprint(text: str, length: int) -> str:
    """Lowercase, whitespace-collapsed prefix used for near-duplicate checks."""
    return " ".join(text.lower().split())[:length]
