"""Content extraction: turns raw HTML into :class:`ExtractedContent`.

The main content region is chosen from an ordered selector table, cloned,
stripped of boilerplate, normalised, and finally serialised three ways:
sanitized HTML, plain text, and a Markdown-like structured text.

The parsed document is never edited in place.  Every destructive step runs
on a copy of the selected region, so extracting the same input twice gives
identical output.
"""

from __future__ import annotations

import copy
import re
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Optional, Sequence
from urllib.parse import urljoin, urlparse

import trafilatura
from bs4 import BeautifulSoup, Tag

from readlater.errors import ExtractError, ExtractErrorKind
from readlater.log import get_logger
from readlater.scraper.models import ExtractedContent, ImageRef

logger = get_logger(__name__)

UNTITLED = "Untitled"
EXCERPT_CHARS = 200


# ---------------------------------------------------------------------------
# Selector tables
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SelectorRule:
    """One candidate content container.  Lower ``priority`` is tried first."""

    selector: str
    priority: int
    platform: Optional[str] = None


DEFAULT_CONTENT_RULES: tuple[SelectorRule, ...] = (
    # Platform-specific containers
    SelectorRule("#js_content", 10, "wechat"),
    SelectorRule(".rich_media_content", 11, "wechat"),
    SelectorRule(".Post-RichText", 20, "zhihu"),
    SelectorRule(".RichText.ztext", 21, "zhihu"),
    SelectorRule(".article-viewer.markdown-body", 30, "juejin"),
    SelectorRule("#content_views", 40, "csdn"),
    SelectorRule(".article__content", 50, "segmentfault"),
    # Generic semantic containers
    SelectorRule("article", 100),
    SelectorRule('[role="main"]', 110),
    # Common class-name conventions
    SelectorRule(".post-content", 120),
    SelectorRule(".article-content", 121),
    SelectorRule(".entry-content", 122),
    SelectorRule(".content-area", 123),
    SelectorRule("main", 130),
    SelectorRule("#content", 131),
    SelectorRule(".article__body", 140),
    SelectorRule(".post-body", 141),
    SelectorRule(".story-body__inner", 142),
    SelectorRule(".story-content", 143),
)

DEFAULT_TITLE_SELECTORS: tuple[str, ...] = (
    "#activity-name",
    ".rich_media_title",
    ".Post-Title",
    ".article-title",
    ".entry-title",
)

BOILERPLATE_SELECTORS: tuple[str, ...] = (
    "script", "noscript", "style", "template", "iframe",
    "nav", "header", "footer", "aside",
    ".nav", ".navigation", ".menu", ".sidebar",
    ".comments", "#comments", ".comment-list",
    ".ad", ".ads", ".advertisement", '[class*="advert"]',
    ".social-share", ".sharing", ".share-buttons", ".share-btn", '[class*="share"]',
    ".related-posts", '[class*="recommend"]',
    ".search", '[role="search"]', ".qr-code",
)

HEADING_TAGS = ("h1", "h2", "h3", "h4", "h5", "h6")
_BLOCK_TAGS = ("p", *HEADING_TAGS, "li", "blockquote")

SEMANTIC_STYLES = frozenset({"font-weight", "font-style", "text-align", "text-decoration"})
RICH_STYLES = SEMANTIC_STYLES | {"color", "background-color", "margin", "padding", "border"}
_IGNORED_STYLE_VALUES = frozenset({"", "normal", "none", "0px", "0", "auto", "initial", "inherit"})

_LAZY_SRC_ATTRS = ("data-src", "data-original", "data-actualsrc")
_STRIPPED_ATTRS = ("srcset", "data-src", "data-srcset", "data-original", "data-actualsrc")

_WS_RE = re.compile(r"\s+")
_BR_RUN_RE = re.compile(r"(?:<br\s*/?>\s*)+", re.IGNORECASE)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _text_length(node: Tag) -> int:
    return len(node.get_text().strip())


def _normalise_space(text: str) -> str:
    return _WS_RE.sub(" ", text).strip()


def _parse(html: str | bytes) -> BeautifulSoup:
    try:
        return BeautifulSoup(html, "html.parser")
    except Exception as exc:  # html.parser rarely fails; wrap whatever it raises
        raise ExtractError(ExtractErrorKind.PARSE_FAILURE, f"Could not parse HTML: {exc}") from exc


def _extract_title(soup: BeautifulSoup, title_selectors: Sequence[str]) -> str:
    """Return ``<title>``, then ``<h1>``, then a platform title, else ``Untitled``."""
    if soup.title is not None:
        text = _normalise_space(soup.title.get_text())
        if text:
            return text
    h1 = soup.find("h1")
    if h1 is not None:
        text = _normalise_space(h1.get_text())
        if text:
            return text
    for selector in title_selectors:
        node = soup.select_one(selector)
        if node is not None:
            text = _normalise_space(node.get_text())
            if text:
                return text
    return UNTITLED


def _meta_content(soup: BeautifulSoup, **attrs: str) -> Optional[str]:
    tag = soup.find("meta", attrs=attrs)
    if tag is not None and tag.get("content"):
        return str(tag["content"]).strip() or None
    return None


def _extract_metadata(soup: BeautifulSoup, html: str | bytes, base_url: str) -> dict[str, Any]:
    """Description, author, site name and date.

    ``trafilatura`` does the heavy lifting; OpenGraph and ``<meta>`` tags fill
    whatever it leaves empty.
    """
    metadata: dict[str, Any] = {}
    try:
        document = trafilatura.extract_metadata(html, default_url=base_url)
    except Exception as exc:  # noqa: BLE001 - metadata is best-effort
        logger.debug("metadata_extraction_failed", url=base_url, error=str(exc))
        document = None

    if document is not None:
        metadata["description"] = getattr(document, "description", None)
        metadata["author"] = getattr(document, "author", None)
        metadata["site_name"] = getattr(document, "sitename", None)
        metadata["published_date"] = getattr(document, "date", None)

    if not metadata.get("description"):
        metadata["description"] = (
            _meta_content(soup, property="og:description")
            or _meta_content(soup, name="description")
        )
    if not metadata.get("author"):
        metadata["author"] = _meta_content(soup, name="author")
    if not metadata.get("site_name"):
        metadata["site_name"] = _meta_content(soup, property="og:site_name")
    if not metadata.get("published_date"):
        metadata["published_date"] = _meta_content(soup, property="article:published_time")
    return metadata


def _select_region(
    soup: BeautifulSoup, rules: Sequence[SelectorRule], min_chars: int
) -> tuple[Tag, Optional[SelectorRule]]:
    """Return the first rule match whose text exceeds *min_chars*, else ``body``."""
    for rule in rules:
        node = soup.select_one(rule.selector)
        if node is not None and _text_length(node) > min_chars:
            return node, rule
    return (soup.body or soup), None


def _remove_boilerplate(region: Tag) -> None:
    for selector in BOILERPLATE_SELECTORS:
        for element in region.select(selector):
            if element.decomposed:
                continue
            if element.name == "header":
                # Article headers often carry the headline; keep the headings.
                for heading in element.find_all(HEADING_TAGS):
                    element.insert_before(heading.extract())
            element.decompose()


def _filter_style(value: str, allowed: frozenset[str]) -> str:
    kept: List[str] = []
    for declaration in value.split(";"):
        if ":" not in declaration:
            continue
        prop, _, val = declaration.partition(":")
        prop = prop.strip().lower()
        val = val.strip()
        if prop in allowed and val.lower() not in _IGNORED_STYLE_VALUES:
            kept.append(f"{prop}: {val}")
    return "; ".join(kept)


def _absolutize(value: str, base_url: str) -> str:
    """Resolve a relative reference; leave fragments and schemed URLs alone.

    A reference that cannot be parsed (``http://[broken``) is kept as written.
    """
    value = value.strip()
    if not value or value.startswith("#"):
        return value
    try:
        if urlparse(value).scheme:
            return value
        return urljoin(base_url, value)
    except ValueError:
        return value


def _normalise_attributes(region: Tag, base_url: str, allowed_styles: frozenset[str]) -> None:
    for element in region.find_all(True):
        style = element.get("style")
        if style is not None:
            filtered = _filter_style(str(style), allowed_styles)
            if filtered:
                element["style"] = filtered
            else:
                del element["style"]

        if element.name == "img" and not element.get("src"):
            for attr in _LAZY_SRC_ATTRS:
                if element.get(attr):
                    element["src"] = element[attr]
                    break

        for attr in _STRIPPED_ATTRS:
            if attr in element.attrs:
                del element[attr]

        if element.name == "a" and element.get("href"):
            element["href"] = _absolutize(str(element["href"]), base_url)
        elif element.name == "img" and element.get("src"):
            src = str(element["src"])
            if not src.startswith("data:"):
                element["src"] = _absolutize(src, base_url)


def _structured_text(region: Tag) -> str:
    """Serialise block elements as Markdown-like text.

    Headings get ``#`` markers, list items ``•``, blockquotes ``>``.  A block
    nested inside another collected block is rendered by its ancestor only.
    """
    parts: List[str] = []
    previous_kind: Optional[str] = None
    for element in region.find_all(_BLOCK_TAGS):
        # The region is a detached copy, so any block ancestor lies inside it.
        ancestor = element.find_parent(_BLOCK_TAGS)
        if ancestor is not None and ancestor is not region:
            continue
        text = _normalise_space(element.get_text(" "))
        if not text:
            continue
        name = element.name
        if name in HEADING_TAGS:
            line, kind = f"{'#' * int(name[1])} {text}", "block"
        elif name == "li":
            line, kind = f"• {text}", "li"
        elif name == "blockquote":
            line, kind = f"> {text}", "block"
        else:
            line, kind = text, "block"
        if parts:
            parts.append("\n" if kind == "li" and previous_kind == "li" else "\n\n")
        parts.append(line)
        previous_kind = kind
    return "".join(parts)


def _serialise_html(region: Tag) -> str:
    html = region.decode_contents()
    html = _WS_RE.sub(" ", html)
    html = _BR_RUN_RE.sub("<br>", html)
    return html.strip()


def _excerpt(plain_text: str) -> str:
    flat = _normalise_space(plain_text)
    if len(flat) <= EXCERPT_CHARS:
        return flat
    return flat[:EXCERPT_CHARS].rstrip() + "..."


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

@dataclass
class CleanedRegion:
    """A cleaned *copy* of the main content region.

    The image localizer may rewrite ``<img>`` attributes on :attr:`node`
    before :meth:`to_content` serialises it.
    """

    node: Tag
    base_url: str
    title: str
    matched_rule: Optional[SelectorRule] = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def plain_text(self) -> str:
        return self.node.get_text().strip()

    @property
    def text_length(self) -> int:
        return len(self.plain_text)

    def images(self) -> List[Tag]:
        return self.node.find_all("img")

    def to_content(self, images: Iterable[ImageRef] = ()) -> ExtractedContent:
        plain_text = self.plain_text
        return ExtractedContent(
            title=self.title,
            content=_serialise_html(self.node),
            plain_text=plain_text,
            structured_text=_structured_text(self.node),
            images=list(images),
            description=self.metadata.get("description") or "",
            author=self.metadata.get("author"),
            site_name=self.metadata.get("site_name"),
            published_date=self.metadata.get("published_date"),
            excerpt=_excerpt(plain_text),
        )


class ContentExtractor:
    """Locate, clean and serialise the main content of an HTML document."""

    def __init__(
        self,
        rules: Optional[Iterable[SelectorRule]] = None,
        *,
        title_selectors: Sequence[str] = DEFAULT_TITLE_SELECTORS,
        min_content_chars: int = 100,
        rich_styles: bool = False,
    ) -> None:
        self.rules = sorted(rules or DEFAULT_CONTENT_RULES, key=lambda rule: rule.priority)
        self.title_selectors = tuple(title_selectors)
        self.min_content_chars = min_content_chars
        self.allowed_styles = RICH_STYLES if rich_styles else SEMANTIC_STYLES

    def extract_region(self, html: str | bytes, base_url: str) -> CleanedRegion:
        """Parse *html* and return a cleaned copy of its content region."""
        soup = _parse(html)
        title = _extract_title(soup, self.title_selectors)
        region, rule = _select_region(soup, self.rules, self.min_content_chars)

        clone = copy.copy(region)
        _remove_boilerplate(clone)
        _normalise_attributes(clone, base_url, self.allowed_styles)

        cleaned = CleanedRegion(
            node=clone,
            base_url=base_url,
            title=title,
            matched_rule=rule,
            metadata=_extract_metadata(soup, html, base_url),
        )
        logger.debug(
            "region_selected",
            url=base_url,
            selector=rule.selector if rule else "body",
            chars=cleaned.text_length,
        )
        return cleaned

    def extract(self, html: str | bytes, base_url: str) -> ExtractedContent:
        """Extract content without image localization (``images`` is empty)."""
        return self.extract_region(html, base_url).to_content()
