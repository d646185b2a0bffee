"""Optional converters for binary office formats.

Each converter imports its library lazily so the package works without
them; a missing library raises :class:`FormatConversionError` with kind
``converter_unavailable``, which the processor turns into a placeholder.
Install all three with ``pip install "readlater[office]"``.
"""

from __future__ import annotations

import io
from html import escape
from typing import Any, Iterable, List, Union

from readlater.errors import ConversionErrorKind, FormatConversionError

_HEADING_STYLES = {
    "Title": "h1",
    "Subtitle": "h2",
    "Heading 1": "h1",
    "Heading 2": "h2",
    "Heading 3": "h3",
    "Heading 4": "h4",
    "Heading 5": "h5",
    "Heading 6": "h6",
}
_QUOTE_STYLES = {"Quote", "Intense Quote"}


def _unavailable(fmt: str, package: str, exc: ImportError) -> FormatConversionError:
    return FormatConversionError(
        ConversionErrorKind.CONVERTER_UNAVAILABLE,
        fmt,
        f"The {package} package is required to import {fmt.upper()} content: {exc}",
    )


def _as_bytes(content: Union[str, bytes]) -> bytes:
    # Binary pasted as a str (e.g. read with latin-1) round-trips byte for byte.
    return content.encode("latin-1") if isinstance(content, str) else content


def _table_html(rows: Iterable[Iterable[Any]], *, header: bool = True) -> str:
    out: List[str] = ["<table>"]
    for index, row in enumerate(rows):
        cell_tag = "th" if header and index == 0 else "td"
        cells = "".join(
            f"<{cell_tag}>{escape('' if value is None else str(value))}</{cell_tag}>"
            for value in row
        )
        out.append(f"<tr>{cells}</tr>")
    out.append("</table>")
    return "".join(out)


def plaintext_to_html(text: str) -> str:
    """Blank-line separated paragraphs; single newlines become ``<br>``."""
    normalised = text.replace("\r\n", "\n").replace("\r", "\n")
    paragraphs = [
        "<p>" + escape(block.strip("\n")).replace("\n", "<br>") + "</p>"
        for block in normalised.split("\n\n")
        if block.strip()
    ]
    return '<div class="article-content">' + "\n".join(paragraphs) + "</div>"


# ---------------------------------------------------------------------------
# DOCX
# ---------------------------------------------------------------------------

def _runs_html(paragraph: Any) -> str:
    parts = []
    for run in paragraph.runs:
        text = escape(run.text)
        if not text:
            continue
        if run.bold:
            text = f"<strong>{text}</strong>"
        if run.italic:
            text = f"<em>{text}</em>"
        if run.underline:
            text = f"<ins>{text}</ins>"
        parts.append(text)
    return "".join(parts)


def docx_to_html(content: Union[str, bytes]) -> str:
    """Render paragraphs (with heading, list and quote styles) and tables."""
    try:
        from docx import Document  # noqa: PLC0415
    except ImportError as exc:
        raise _unavailable("docx", "python-docx", exc) from exc

    try:
        document = Document(io.BytesIO(_as_bytes(content)))
    except Exception as exc:  # python-docx raises zipfile, KeyError and its own errors
        raise FormatConversionError(
            ConversionErrorKind.MALFORMED_INPUT, "docx", f"Could not read DOCX: {exc}"
        ) from exc

    blocks: List[str] = []
    open_list = None

    def close_list() -> None:
        nonlocal open_list
        if open_list:
            blocks.append(f"</{open_list}>")
            open_list = None

    for paragraph in document.paragraphs:
        inner = _runs_html(paragraph)
        if not inner.strip():
            continue
        style = paragraph.style.name if paragraph.style is not None else ""
        if style.startswith("List Bullet") or style.startswith("List Number"):
            list_tag = "ul" if style.startswith("List Bullet") else "ol"
            if open_list != list_tag:
                close_list()
                blocks.append(f"<{list_tag}>")
                open_list = list_tag
            blocks.append(f"<li>{inner}</li>")
            continue
        close_list()
        if style in _HEADING_STYLES:
            tag = _HEADING_STYLES[style]
            blocks.append(f"<{tag}>{inner}</{tag}>")
        elif style in _QUOTE_STYLES:
            blocks.append(f"<blockquote>{inner}</blockquote>")
        else:
            blocks.append(f"<p>{inner}</p>")
    close_list()

    for table in document.tables:
        blocks.append(_table_html([cell.text for cell in row.cells] for row in table.rows))

    return '<div class="article-content">' + "".join(blocks) + "</div>"


# ---------------------------------------------------------------------------
# XLSX
# ---------------------------------------------------------------------------

def xlsx_to_html(content: Union[str, bytes]) -> str:
    """Render the first worksheet as a heading and a table."""
    try:
        from openpyxl import load_workbook  # noqa: PLC0415
    except ImportError as exc:
        raise _unavailable("xlsx", "openpyxl", exc) from exc

    try:
        workbook = load_workbook(io.BytesIO(_as_bytes(content)), read_only=True, data_only=True)
    except Exception as exc:  # openpyxl raises InvalidFileException, zipfile and KeyError
        raise FormatConversionError(
            ConversionErrorKind.MALFORMED_INPUT, "xlsx", f"Could not read XLSX: {exc}"
        ) from exc

    try:
        sheet = workbook.worksheets[0]
        rows = [
            list(row)
            for row in sheet.iter_rows(values_only=True)
            if any(value is not None for value in row)
        ]
        title = sheet.title
    finally:
        workbook.close()

    table = _table_html(rows) if rows else ""
    return f'<div class="article-content"><h2>{escape(title)}</h2>{table}</div>'


# ---------------------------------------------------------------------------
# RTF
# ---------------------------------------------------------------------------

def rtf_to_html(content: Union[str, bytes]) -> str:
    """Strip RTF control words and render the text as paragraphs."""
    try:
        from striprtf.striprtf import rtf_to_text  # noqa: PLC0415
    except ImportError as exc:
        raise _unavailable("rtf", "striprtf", exc) from exc

    source = content.decode("latin-1") if isinstance(content, bytes) else content
    try:
        text = rtf_to_text(source)
    except Exception as exc:  # striprtf raises plain ValueError/IndexError on bad input
        raise FormatConversionError(
            ConversionErrorKind.MALFORMED_INPUT, "rtf", f"Could not read RTF: {exc}"
        ) from exc

    return plaintext_to_html(text)
