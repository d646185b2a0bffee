"""Tests for the content extractor.

All tests run on inline HTML fixtures; no network access is needed.
"""

from __future__ import annotations

import pytest

from readlater.errors import ExtractError, ExtractErrorKind
from readlater.scraper.extractor import UNTITLED, ContentExtractor

_BASE = "https://example.org/a/b"
_FILLER = "Renewable energy storage keeps improving as battery chemistry matures. " * 3

_ARTICLE_HTML = f"""\
<!DOCTYPE html>
<html>
<head>
  <title>Battery News</title>
  <meta name="description" content="All about batteries.">
</head>
<body>
  <nav>Home | About | Contact</nav>
  <div class="sidebar">Sidebar promo text</div>
  <article>
    <header><h1>Headline</h1><p class="byline">By someone</p></header>
    <p>{_FILLER}</p>
    <script>track()</script>
    <div class="share-buttons">Share this</div>
    <p style="color: red; font-weight: bold">Styled paragraph</p>
    <a href="/about">About</a> <a href="#top">Top</a> <a href="../sibling">Sibling</a>
    <img data-src="/img/lazy.png" srcset="/img/big.png 2x" alt="Lazy">
  </article>
  <footer>Footer links</footer>
</body>
</html>
"""


@pytest.fixture()
def extractor() -> ContentExtractor:
    return ContentExtractor(min_content_chars=100)


# ---------------------------------------------------------------------------
# Region selection
# ---------------------------------------------------------------------------

class TestRegionSelection:
    def test_prefers_article_over_body(self, extractor) -> None:
        region = extractor.extract_region(_ARTICLE_HTML, _BASE)
        assert region.matched_rule is not None
        assert region.matched_rule.selector == "article"
        assert "Sidebar promo" not in region.plain_text

    def test_falls_back_to_body(self, extractor) -> None:
        html = "<html><head><title>T</title></head><body><p>short</p></body></html>"
        content = extractor.extract(html, _BASE)
        assert content.title == "T"
        assert content.content == "<p>short</p>"
        assert content.plain_text == "short"

    def test_document_without_body(self, extractor) -> None:
        content = extractor.extract("just some text", _BASE)
        assert content.title == UNTITLED
        assert content.plain_text == "just some text"
        assert content.structured_text == ""
        assert content.images == []

    def test_platform_container_wins(self, extractor) -> None:
        html = (
            f"<html><body><article><p>{_FILLER}</p></article>"
            f'<div id="js_content"><p>{_FILLER}</p></div></body></html>'
        )
        region = extractor.extract_region(html, _BASE)
        assert region.matched_rule.platform == "wechat"

    def test_short_candidate_is_skipped(self, extractor) -> None:
        html = f"<html><body><article><p>tiny</p></article><main><p>{_FILLER}</p></main></body></html>"
        region = extractor.extract_region(html, _BASE)
        assert region.matched_rule.selector == "main"


# ---------------------------------------------------------------------------
# Title
# ---------------------------------------------------------------------------

class TestTitle:
    def test_title_tag_first(self, extractor) -> None:
        assert extractor.extract(_ARTICLE_HTML, _BASE).title == "Battery News"

    def test_h1_when_no_title(self, extractor) -> None:
        html = "<html><body><h1>  Big   Heading </h1></body></html>"
        assert extractor.extract(html, _BASE).title == "Big Heading"

    def test_platform_title_selector(self, extractor) -> None:
        html = '<html><body><div class="rich_media_title">WeChat Post</div></body></html>'
        assert extractor.extract(html, _BASE).title == "WeChat Post"


# ---------------------------------------------------------------------------
# Cleaning and normalisation
# ---------------------------------------------------------------------------

class TestCleaning:
    def test_boilerplate_removed(self, extractor) -> None:
        content = extractor.extract(_ARTICLE_HTML, _BASE)
        assert "track()" not in content.content
        assert "Share this" not in content.plain_text
        assert "By someone" not in content.plain_text

    def test_header_headings_kept(self, extractor) -> None:
        content = extractor.extract(_ARTICLE_HTML, _BASE)
        assert "<h1>Headline</h1>" in content.content

    def test_styles_filtered_to_semantic(self, extractor) -> None:
        content = extractor.extract(_ARTICLE_HTML, _BASE)
        assert 'style="font-weight: bold"' in content.content
        assert "color" not in content.content

    def test_rich_styles_keep_color(self) -> None:
        content = ContentExtractor(rich_styles=True).extract(_ARTICLE_HTML, _BASE)
        assert "color: red" in content.content

    def test_links_absolutized(self, extractor) -> None:
        content = extractor.extract(_ARTICLE_HTML, _BASE)
        assert 'href="https://example.org/about"' in content.content
        assert 'href="https://example.org/sibling"' in content.content
        assert 'href="#top"' in content.content

    def test_unparseable_link_kept_as_written(self, extractor) -> None:
        html = (
            f"<html><body><article><p>{_FILLER}</p>"
            '<a href="http://[broken/x">x</a><img src="http://[broken/y.png"></article></body></html>'
        )
        content = extractor.extract(html, _BASE)
        assert 'href="http://[broken/x"' in content.content
        assert 'src="http://[broken/y.png"' in content.content

    def test_lazy_image_promoted_and_srcset_stripped(self, extractor) -> None:
        content = extractor.extract(_ARTICLE_HTML, _BASE)
        assert 'src="https://example.org/img/lazy.png"' in content.content
        assert "srcset" not in content.content
        assert "data-src" not in content.content

    def test_br_runs_merged_and_whitespace_collapsed(self, extractor) -> None:
        html = "<html><body><p>a<br><br/>\n\n   <br>b</p></body></html>"
        assert extractor.extract(html, _BASE).content == "<p>a<br>b</p>"


# ---------------------------------------------------------------------------
# Serialisation
# ---------------------------------------------------------------------------

class TestStructuredText:
    def test_markers_and_separators(self, extractor) -> None:
        html = (
            "<html><body>"
            "<h2>Sub</h2><p>Para one</p>"
            "<ul><li>A</li><li>B</li></ul>"
            "<blockquote><p>Quoted</p></blockquote>"
            "</body></html>"
        )
        text = extractor.extract(html, _BASE).structured_text
        assert text == "## Sub\n\nPara one\n\n• A\n• B\n\n> Quoted"


class TestMetadata:
    def test_description_from_meta(self, extractor) -> None:
        assert extractor.extract(_ARTICLE_HTML, _BASE).description == "All about batteries."

    def test_excerpt_truncated_with_ellipsis(self, extractor) -> None:
        html = f"<html><body><p>{'word ' * 100}</p></body></html>"
        excerpt = extractor.extract(html, _BASE).excerpt
        assert excerpt.endswith("...")
        assert len(excerpt) <= 203

    def test_short_excerpt_untouched(self, extractor) -> None:
        html = "<html><body><p>Brief.</p></body></html>"
        assert extractor.extract(html, _BASE).excerpt == "Brief."


# ---------------------------------------------------------------------------
# Idempotence and failures
# ---------------------------------------------------------------------------

class TestIdempotence:
    def test_repeated_extraction_is_identical(self, extractor) -> None:
        first = extractor.extract(_ARTICLE_HTML, _BASE)
        second = extractor.extract(_ARTICLE_HTML, _BASE)
        assert first.content == second.content
        assert first.plain_text == second.plain_text
        assert first.structured_text == second.structured_text

    def test_region_edits_do_not_leak(self, extractor) -> None:
        region = extractor.extract_region(_ARTICLE_HTML, _BASE)
        for img in region.images():
            img["src"] = "/images/changed.png"
        again = extractor.extract(_ARTICLE_HTML, _BASE)
        assert "/images/changed.png" not in again.content


class TestParseFailure:
    def test_parser_error_wrapped(self, extractor, monkeypatch) -> None:
        def _boom(*args, **kwargs):
            raise RuntimeError("parser exploded")

        monkeypatch.setattr("readlater.scraper.extractor.BeautifulSoup", _boom)
        with pytest.raises(ExtractError) as info:
            extractor.extract("<html>", _BASE)
        assert info.value.kind is ExtractErrorKind.PARSE_FAILURE
