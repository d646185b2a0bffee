"""A small, rule-based Markdown to HTML transformer.

Supported: ATX headings, paragraphs, emphasis, strikethrough, inline code,
links, images, blockquotes, flat bullet and numbered lists, pipe tables,
fenced code blocks and horizontal rules.

Not supported: nested lists, inline HTML (it is escaped), reference-style
links and setext headings.  Anything unrecognised is treated as paragraph
text.
"""

from __future__ import annotations

import html
import re
from typing import List

_HEADING_RE = re.compile(r"^(#{1,6})\s+(.+?)\s*#*$")
_HR_RE = re.compile(r"^(?:-\s*){3,}$|^(?:\*\s*){3,}$|^(?:_\s*){3,}$")
_QUOTE_RE = re.compile(r"^>\s?(.*)$")
_UL_RE = re.compile(r"^[*+-]\s+(.+)$")
_OL_RE = re.compile(r"^\d+\.\s+(.+)$")
_TABLE_SEPARATOR_RE = re.compile(r"^\|?\s*:?-+:?\s*(\|\s*:?-+:?\s*)*\|?$")

_CODE_SPAN_RE = re.compile(r"(`[^`]+`)")
_LINK_RE = re.compile(r"(!?)\[([^\]]*)\]\(([^)\s]+)\)")
_PLACEHOLDER_RE = re.compile(r"\x00(\d+)\x00")
_EMPHASIS_RULES = (
    (re.compile(r"\*\*(.+?)\*\*"), r"<strong>\1</strong>"),
    (re.compile(r"__(.+?)__"), r"<strong>\1</strong>"),
    (re.compile(r"\*(.+?)\*"), r"<em>\1</em>"),
    (re.compile(r"(?<!\w)_(.+?)_(?!\w)"), r"<em>\1</em>"),
    (re.compile(r"~~(.+?)~~"), r"<del>\1</del>"),
)


def _emphasis(text: str) -> str:
    for pattern, replacement in _EMPHASIS_RULES:
        text = pattern.sub(replacement, text)
    return text


def _render_links(escaped: str) -> str:
    """Render links and images, keeping their URLs out of the emphasis rules.

    Each link is swapped for a ``\\x00N\\x00`` placeholder while emphasis runs
    over the surrounding text, then put back.
    """
    rendered: List[str] = []

    def _stash(match: re.Match[str]) -> str:
        bang, label, url = match.groups()
        if bang:
            rendered.append(f'<img src="{url}" alt="{label}">')
        else:
            rendered.append(f'<a href="{url}">{_emphasis(label)}</a>')
        return f"\x00{len(rendered) - 1}\x00"

    text = _emphasis(_LINK_RE.sub(_stash, escaped))
    return _PLACEHOLDER_RE.sub(lambda match: rendered[int(match.group(1))], text)


def render_inline(text: str) -> str:
    """Escape *text* and apply the inline rules outside code spans."""
    parts = []
    for segment in _CODE_SPAN_RE.split(text.replace("\x00", "")):
        if segment.startswith("`") and segment.endswith("`") and len(segment) > 1:
            parts.append(f"<code>{html.escape(segment[1:-1])}</code>")
            continue
        parts.append(_render_links(html.escape(segment)))
    return "".join(parts)


def _split_row(line: str) -> List[str]:
    return [cell.strip() for cell in line.strip().strip("|").split("|")]


def _render_table(rows: List[str]) -> str:
    rows = [row for row in rows if not _TABLE_SEPARATOR_RE.match(row.strip())]
    header, body = rows[0], rows[1:]
    out = ["<table><thead><tr>"]
    out.extend(f"<th>{render_inline(cell)}</th>" for cell in _split_row(header))
    out.append("</tr></thead>")
    if body:
        out.append("<tbody>")
        for row in body:
            out.append("<tr>")
            out.extend(f"<td>{render_inline(cell)}</td>" for cell in _split_row(row))
            out.append("</tr>")
        out.append("</tbody>")
    out.append("</table>")
    return "".join(out)


def _take_while(lines: List[str], start: int, pattern: re.Pattern[str]) -> tuple[List[str], int]:
    """Collect consecutive lines matching *pattern*; return captures and next index."""
    captured = []
    index = start
    while index < len(lines):
        match = pattern.match(lines[index].strip())
        if not match:
            break
        captured.append(match.group(1))
        index += 1
    return captured, index


def markdown_to_html(text: str) -> str:
    """Convert *text* to HTML wrapped in ``<div class="article-content">``."""
    lines = text.replace("\r\n", "\n").replace("\r", "\n").split("\n")
    blocks: List[str] = []
    paragraph: List[str] = []

    def flush_paragraph() -> None:
        if paragraph:
            blocks.append("<p>" + "<br>".join(render_inline(line) for line in paragraph) + "</p>")
            paragraph.clear()

    i = 0
    while i < len(lines):
        stripped = lines[i].strip()

        if stripped.startswith("```"):
            flush_paragraph()
            code: List[str] = []
            i += 1
            while i < len(lines) and not lines[i].strip().startswith("```"):
                code.append(lines[i])
                i += 1
            i += 1  # closing fence
            blocks.append("<pre><code>" + html.escape("\n".join(code)) + "</code></pre>")
            continue

        if not stripped:
            flush_paragraph()
            i += 1
            continue

        heading = _HEADING_RE.match(stripped)
        if heading:
            flush_paragraph()
            level = len(heading.group(1))
            blocks.append(f"<h{level}>{render_inline(heading.group(2))}</h{level}>")
            i += 1
            continue

        if _HR_RE.match(stripped):
            flush_paragraph()
            blocks.append("<hr>")
            i += 1
            continue

        if stripped.startswith("|"):
            flush_paragraph()
            rows = []
            while i < len(lines) and lines[i].strip().startswith("|"):
                rows.append(lines[i].strip())
                i += 1
            blocks.append(_render_table(rows))
            continue

        if _QUOTE_RE.match(stripped):
            flush_paragraph()
            quoted, i = _take_while(lines, i, _QUOTE_RE)
            body = "<br>".join(render_inline(line) for line in quoted if line.strip())
            blocks.append(f"<blockquote>{body}</blockquote>")
            continue

        for pattern, tag in ((_UL_RE, "ul"), (_OL_RE, "ol")):
            if pattern.match(stripped):
                flush_paragraph()
                items, i = _take_while(lines, i, pattern)
                inner = "".join(f"<li>{render_inline(item)}</li>" for item in items)
                blocks.append(f"<{tag}>{inner}</{tag}>")
                break
        else:
            paragraph.append(stripped)
            i += 1

    flush_paragraph()
    return '<div class="article-content">' + "\n".join(blocks) + "</div>"
