"""Tests for image localization and the content-addressed store.

``respx`` stands in for every image host; files are written to the per-test
workspace set up in ``conftest.py``.
"""

from __future__ import annotations

import httpx
import pytest
import respx

from readlater.config import settings
from readlater.scraper.extractor import ContentExtractor
from readlater.scraper.fetcher import Fetcher
from readlater.scraper.images import ImageLocalizer, ImageStore, resolve_image_url, url_hash

_BASE = "https://example.org/a/b"
_PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


def _region(body: str):
    return ContentExtractor().extract_region(f"<html><body>{body}</body></html>", _BASE)


@pytest.fixture()
async def fetcher():
    fetcher = Fetcher()
    yield fetcher
    await fetcher.aclose()


@pytest.fixture()
def localizer(fetcher) -> ImageLocalizer:
    return ImageLocalizer(fetcher, ImageStore(settings.images_dir), max_bytes=1024, concurrency=2)


# ---------------------------------------------------------------------------
# URL resolution
# ---------------------------------------------------------------------------

class TestResolveImageUrl:
    def test_root_relative(self) -> None:
        assert resolve_image_url("/x.png", _BASE) == "https://example.org/x.png"

    def test_parent_relative(self) -> None:
        assert resolve_image_url("../y.png", _BASE) == "https://example.org/y.png"

    def test_plain_relative(self) -> None:
        assert resolve_image_url("z.png", _BASE) == "https://example.org/a/z.png"

    def test_protocol_relative_takes_page_scheme(self) -> None:
        assert resolve_image_url("//cdn.example.com/z.png", _BASE) == "https://cdn.example.com/z.png"
        assert resolve_image_url("//cdn.example.com/z.png", "http://example.org/") == "http://cdn.example.com/z.png"

    def test_absolute_untouched(self) -> None:
        assert resolve_image_url("https://other.net/i.gif", _BASE) == "https://other.net/i.gif"

    def test_unparseable_value_kept_as_written(self) -> None:
        assert resolve_image_url("http://[broken/x.png", _BASE) == "http://[broken/x.png"


# ---------------------------------------------------------------------------
# Localization
# ---------------------------------------------------------------------------

class TestLocalize:
    async def test_downloads_and_rewrites_src(self, localizer) -> None:
        region = _region('<p>text</p><img src="https://cdn.example.com/a.png" alt="A" title="Pic">')
        async with respx.mock:
            route = respx.get("https://cdn.example.com/a.png").mock(
                return_value=httpx.Response(200, content=_PNG, headers={"content-type": "image/png"})
            )
            refs = await localizer.localize(region, _BASE)

        assert len(refs) == 1
        ref = refs[0]
        digest = url_hash("https://cdn.example.com/a.png")
        assert ref.downloaded is True
        assert ref.content_hash == digest
        assert ref.local_url == f"/images/{digest}.png"
        assert ref.alt_text == "A"
        assert ref.title_text == "Pic"
        assert ref.size_bytes == len(_PNG)
        assert (settings.images_dir / f"{digest}.png").read_bytes() == _PNG
        assert route.calls.last.request.headers["Referer"] == "https://example.org"

        img = region.images()[0]
        assert img["src"] == f"/images/{digest}.png"
        assert img["data-original-src"] == "https://cdn.example.com/a.png"

    async def test_second_call_is_a_cache_hit(self, localizer) -> None:
        html = '<img src="https://cdn.example.com/dup.png">'
        async with respx.mock:
            route = respx.get("https://cdn.example.com/dup.png").mock(
                return_value=httpx.Response(200, content=_PNG, headers={"content-type": "image/png"})
            )
            first = await localizer.localize(_region(html), _BASE)
            second = await localizer.localize(_region(html), _BASE)

        assert route.call_count == 1
        assert first[0].content_hash == second[0].content_hash
        assert first[0].local_path == second[0].local_path
        assert second[0].downloaded is True

    async def test_oversized_image_not_written(self, localizer) -> None:
        region = _region('<img src="https://cdn.example.com/huge.jpg">')
        async with respx.mock:
            respx.get("https://cdn.example.com/huge.jpg").mock(
                return_value=httpx.Response(200, content=b"\xff" * 4096, headers={"content-type": "image/jpeg"})
            )
            refs = await localizer.localize(region, _BASE)

        assert refs[0].downloaded is False
        assert refs[0].error
        assert localizer.store.find(refs[0].content_hash) is None
        img = region.images()[0]
        assert img["src"] == "https://cdn.example.com/huge.jpg"
        assert img["data-download-failed"] == "true"

    async def test_disallowed_type_not_written(self, localizer) -> None:
        region = _region('<img src="https://cdn.example.com/page.html">')
        async with respx.mock:
            respx.get("https://cdn.example.com/page.html").mock(
                return_value=httpx.Response(200, text="<html></html>", headers={"content-type": "text/html"})
            )
            refs = await localizer.localize(region, _BASE)

        assert refs[0].downloaded is False
        assert localizer.store.find(refs[0].content_hash) is None

    async def test_failure_does_not_affect_other_images(self, localizer) -> None:
        region = _region(
            '<img src="https://cdn.example.com/ok.gif">'
            '<img src="https://cdn.example.com/broken.gif">'
        )
        async with respx.mock:
            respx.get("https://cdn.example.com/ok.gif").mock(
                return_value=httpx.Response(200, content=b"GIF89a", headers={"content-type": "image/gif"})
            )
            respx.get("https://cdn.example.com/broken.gif").mock(side_effect=httpx.ConnectError("refused"))
            refs = await localizer.localize(region, _BASE)

        assert [ref.original_url for ref in refs] == [
            "https://cdn.example.com/ok.gif",
            "https://cdn.example.com/broken.gif",
        ]
        assert [ref.downloaded for ref in refs] == [True, False]

    async def test_invalid_host_fails_alone(self, localizer) -> None:
        region = _region(
            '<img src="https://bad\u00a0host.example/x.png">'
            '<img src="/ok.png">'
        )
        async with respx.mock:
            respx.get("https://example.org/ok.png").mock(
                return_value=httpx.Response(200, content=_PNG, headers={"content-type": "image/png"})
            )
            refs = await localizer.localize(region, _BASE)

        assert [ref.downloaded for ref in refs] == [False, True]
        assert refs[0].error
        assert region.images()[0]["data-download-failed"] == "true"

    async def test_unparseable_src_is_listed(self, localizer) -> None:
        region = _region('<p>text</p><img src="http://[broken/x.png">')
        refs = await localizer.localize(region, _BASE, download=False)

        assert [ref.original_url for ref in refs] == ["http://[broken/x.png"]

    async def test_data_uris_and_empty_src_skipped(self, localizer) -> None:
        region = _region('<img src="data:image/png;base64,AAAA"><img src="">')
        refs = await localizer.localize(region, _BASE)
        assert refs == []

    async def test_listing_only_when_download_disabled(self, localizer) -> None:
        region = _region('<img src="/pic.webp" alt="P">')
        refs = await localizer.localize(region, _BASE, download=False)

        assert len(refs) == 1
        assert refs[0].original_url == "https://example.org/pic.webp"
        assert refs[0].downloaded is False
        assert refs[0].error is None
        assert region.images()[0]["src"] == "https://example.org/pic.webp"


class TestImageStore:
    async def test_write_is_atomic_and_findable(self, tmp_path) -> None:
        store = ImageStore(tmp_path / "store")
        path = await store.write("abc123", ".svg", b"<svg/>")
        assert path.name == "abc123.svg"
        assert store.find("abc123") == path
        assert [p.name for p in path.parent.iterdir()] == ["abc123.svg"]

    def test_find_missing(self, tmp_path) -> None:
        assert ImageStore(tmp_path).find("nothing") is None
