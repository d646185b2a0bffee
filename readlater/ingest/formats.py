"""Content format detection for pasted or uploaded material."""

from __future__ import annotations

import io
import re
import zipfile
from enum import Enum
from pathlib import PurePath
from typing import Optional, Union


class ContentFormat(str, Enum):
    HTML = "html"
    MARKDOWN = "markdown"
    PLAINTEXT = "plaintext"
    DOCX = "docx"
    XLSX = "xlsx"
    RTF = "rtf"

    @property
    def is_binary(self) -> bool:
        return self in (ContentFormat.DOCX, ContentFormat.XLSX)


_ZIP_MAGIC = b"PK\x03\x04"
_RTF_MAGIC = "{\\rtf1"
_DOCX_MARKER = "word/document.xml"
_XLSX_MARKER = "xl/workbook.xml"

_HTML_RE = re.compile(r"</?[a-z][\s\S]*>", re.IGNORECASE)

_MARKDOWN_PATTERNS = (
    re.compile(r"^#+\s+.+$", re.MULTILINE),       # heading
    re.compile(r"\[.+\]\(.+\)"),                  # link
    re.compile(r"!\[.+\]\(.+\)"),                 # image
    re.compile(r"^>\s+.+$", re.MULTILINE),        # blockquote
    re.compile(r"^[*+-]\s+.+$", re.MULTILINE),    # unordered list
    re.compile(r"^[0-9]+\.\s+.+$", re.MULTILINE), # ordered list
    re.compile(r"^```", re.MULTILINE),            # code fence
    re.compile(r"\*\*.+\*\*"),                    # bold
    re.compile(r"\*.+\*"),                        # italic
    re.compile(r"~~.+~~"),                        # strikethrough
    re.compile(r"^\|(.+\|)+$", re.MULTILINE),     # table row
)

_EXTENSION_HINTS = {
    ".html": ContentFormat.HTML,
    ".htm": ContentFormat.HTML,
    ".md": ContentFormat.MARKDOWN,
    ".markdown": ContentFormat.MARKDOWN,
    ".txt": ContentFormat.PLAINTEXT,
    ".docx": ContentFormat.DOCX,
    ".xlsx": ContentFormat.XLSX,
    ".rtf": ContentFormat.RTF,
}
_MIME_HINTS = {
    "text/html": ContentFormat.HTML,
    "text/markdown": ContentFormat.MARKDOWN,
    "text/x-markdown": ContentFormat.MARKDOWN,
    "text/plain": ContentFormat.PLAINTEXT,
    "text/rtf": ContentFormat.RTF,
    "application/rtf": ContentFormat.RTF,
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": ContentFormat.DOCX,
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet": ContentFormat.XLSX,
}


def _sniff_office(data: bytes) -> Optional[ContentFormat]:
    """Tell DOCX from XLSX by the archive's manifest entries."""
    try:
        with zipfile.ZipFile(io.BytesIO(data)) as archive:
            names = set(archive.namelist())
    except zipfile.BadZipFile:
        # Truncated archive: fall back to scanning the raw bytes for the names.
        names = {
            marker
            for marker in (_DOCX_MARKER, _XLSX_MARKER)
            if marker.encode("ascii") in data
        }
    if _DOCX_MARKER in names:
        return ContentFormat.DOCX
    if _XLSX_MARKER in names:
        return ContentFormat.XLSX
    return None


def detect_text_format(text: str) -> ContentFormat:
    """Classify decoded text as rtf, html, markdown or plaintext."""
    if text.startswith(_RTF_MAGIC):
        return ContentFormat.RTF
    if _HTML_RE.search(text):
        return ContentFormat.HTML
    if any(pattern.search(text) for pattern in _MARKDOWN_PATTERNS):
        return ContentFormat.MARKDOWN
    return ContentFormat.PLAINTEXT


def detect_format(content: Union[str, bytes]) -> ContentFormat:
    """Detect the format of *content*.

    Order: Office ZIP signature (by manifest), RTF header, HTML tags,
    Markdown structure, then plaintext.
    """
    if isinstance(content, bytes):
        if content.startswith(_ZIP_MAGIC):
            office = _sniff_office(content)
            if office is not None:
                return office
        return detect_text_format(content.decode("utf-8", errors="replace"))

    if content.startswith(_ZIP_MAGIC.decode("latin-1")):
        if _DOCX_MARKER in content:
            return ContentFormat.DOCX
        if _XLSX_MARKER in content:
            return ContentFormat.XLSX
    return detect_text_format(content)


def format_from_hint(
    filename: Optional[str] = None, content_type: Optional[str] = None
) -> Optional[ContentFormat]:
    """Map an upload's filename extension or MIME type to a format."""
    if filename:
        hinted = _EXTENSION_HINTS.get(PurePath(filename).suffix.lower())
        if hinted is not None:
            return hinted
    if content_type:
        return _MIME_HINTS.get(content_type.split(";")[0].strip().lower())
    return None
