"""Allow-list HTML sanitizer.

Tags outside :data:`ALLOWED_TAGS` are unwrapped (their text survives) unless
they are in :data:`DROPPED_TAGS`, in which case they are removed together
with their contents.  Attributes outside :data:`ALLOWED_ATTRIBUTES` are
dropped, never escaped-and-kept.
"""

from __future__ import annotations

import re

from bs4 import BeautifulSoup, Comment, Tag

ALLOWED_TAGS = frozenset({
    "h1", "h2", "h3", "h4", "h5", "h6", "p", "br", "b", "i", "strong",
    "em", "mark", "small", "del", "ins", "sub", "sup", "a", "img",
    "table", "thead", "tbody", "tfoot", "tr", "th", "td", "ul", "ol",
    "li", "blockquote", "code", "pre", "hr", "div", "span",
})

ALLOWED_ATTRIBUTES = frozenset({
    "href", "src", "alt", "title", "style", "target", "rel",
    "width", "height", "class", "id", "name",
})

DROPPED_TAGS = frozenset({
    "script", "style", "iframe", "object", "embed", "noscript", "template",
    "head", "title", "meta", "link", "base", "svg", "math",
    "form", "input", "button", "select", "textarea",
})

_SAFE_URL_RE = re.compile(r"^(?:https?:|mailto:|tel:|#|/|\.|[^:]*$)", re.IGNORECASE)
_DATA_IMAGE_RE = re.compile(r"^data:image/(?:png|jpe?g|gif|webp);", re.IGNORECASE)
_UNSAFE_STYLE_RE = re.compile(r"expression\s*\(|javascript:|url\s*\(", re.IGNORECASE)
# Browsers ignore control characters and whitespace inside a URL scheme.
_URL_NOISE_RE = re.compile(r"[\x00-\x20]+")


def _safe_url(value: str, *, allow_data_image: bool) -> bool:
    compact = _URL_NOISE_RE.sub("", value)
    if allow_data_image and _DATA_IMAGE_RE.match(compact):
        return True
    return bool(_SAFE_URL_RE.match(compact))


def _clean_attributes(element: Tag) -> None:
    for name in list(element.attrs):
        if name.lower() not in ALLOWED_ATTRIBUTES:
            del element[name]
            continue
        value = element[name]
        if isinstance(value, list):
            value = " ".join(value)
        if name in ("href", "src") and not _safe_url(value, allow_data_image=name == "src"):
            del element[name]
        elif name == "style" and _UNSAFE_STYLE_RE.search(value):
            del element[name]


def sanitize_html(html: str) -> str:
    """Return *html* reduced to the allowed tags and attributes."""
    soup = BeautifulSoup(html, "html.parser")
    for comment in soup.find_all(string=lambda text: isinstance(text, Comment)):
        comment.extract()

    for element in soup.find_all(True):
        if element.decomposed:
            continue
        name = element.name.lower()
        if name in DROPPED_TAGS:
            element.decompose()
        elif name not in ALLOWED_TAGS:
            element.unwrap()
        else:
            _clean_attributes(element)
    return str(soup).strip()
