"""Turn pasted or uploaded content into sanitized HTML."""

from __future__ import annotations

from dataclasses import dataclass
from html import escape
from typing import Any, Callable, Optional, Union

from readlater.errors import ConversionErrorKind, FormatConversionError
from readlater.ingest.converters import docx_to_html, plaintext_to_html, rtf_to_html, xlsx_to_html
from readlater.ingest.formats import ContentFormat, detect_format
from readlater.ingest.markdown import markdown_to_html
from readlater.ingest.sanitizer import sanitize_html
from readlater.log import get_logger

logger = get_logger(__name__)

_CONVERTERS: dict[ContentFormat, Callable[[Union[str, bytes]], str]] = {
    ContentFormat.DOCX: docx_to_html,
    ContentFormat.XLSX: xlsx_to_html,
    ContentFormat.RTF: rtf_to_html,
}


@dataclass(frozen=True)
class IngestResult:
    sanitized_html: str
    detected_format: ContentFormat

    def to_dict(self) -> dict[str, Any]:
        return {
            "sanitizedHtml": self.sanitized_html,
            "detectedFormat": self.detected_format.value,
        }


def _as_text(content: Union[str, bytes]) -> str:
    return content.decode("utf-8", errors="replace") if isinstance(content, bytes) else content


def conversion_placeholder(error: FormatConversionError) -> str:
    """Labelled stand-in shown when a binary format cannot be converted."""
    label = escape(error.fmt.upper())
    if error.kind is ConversionErrorKind.CONVERTER_UNAVAILABLE:
        detail = (
            "The converter for this format is not installed. "
            'Install it with <code>pip install "readlater[office]"</code> and import the file again.'
        )
    else:
        detail = f"The file could not be converted: {escape(str(error))}"
    return (
        '<div class="article-content">'
        f"<p>Detected {label} content.</p>"
        f"<p>{detail}</p>"
        "</div>"
    )


def process_content(content: Union[str, bytes], fmt: Union[ContentFormat, str]) -> str:
    """Convert *content* of format *fmt* to sanitized HTML.

    Binary converters that are missing or fail degrade to a placeholder
    instead of raising.
    """
    fmt = ContentFormat(fmt)
    if fmt is ContentFormat.HTML:
        return sanitize_html(_as_text(content))
    if fmt is ContentFormat.MARKDOWN:
        return sanitize_html(markdown_to_html(_as_text(content)))
    if fmt is ContentFormat.PLAINTEXT:
        return plaintext_to_html(_as_text(content))

    try:
        return sanitize_html(_CONVERTERS[fmt](content))
    except FormatConversionError as exc:
        logger.warning("format_conversion_failed", format=fmt.value, kind=exc.kind.value, error=str(exc))
        return conversion_placeholder(exc)


def ingest(
    text: Optional[str] = None,
    binary: Optional[bytes] = None,
    hinted_format: Optional[Union[ContentFormat, str]] = None,
) -> IngestResult:
    """Detect (unless hinted) and process one piece of pasted or uploaded content.

    Binary input takes precedence when both are given.

    Raises:
        ValueError: If neither *text* nor *binary* is provided.
    """
    content: Union[str, bytes, None] = binary if binary is not None else text
    if content is None:
        raise ValueError("Either text or binary content is required")

    fmt = ContentFormat(hinted_format) if hinted_format else detect_format(content)
    html = process_content(content, fmt)
    logger.info("content_ingested", format=fmt.value, hinted=bool(hinted_format), chars=len(html))
    return IngestResult(sanitized_html=html, detected_format=fmt)
