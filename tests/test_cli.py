"""Tests for the readlater CLI commands."""

from __future__ import annotations

import json

import pytest
from typer.testing import CliRunner

from cli.main import app
from readlater.errors import FetchError, FetchErrorKind
from readlater.scraper.models import ExtractedContent, FetchMode, RenderPreference, ScrapeResult

runner = CliRunner()


class _FakePipeline:
    instances: list["_FakePipeline"] = []
    error: Exception | None = None

    def __init__(self) -> None:
        self.calls: list[dict] = []
        self.shut_down = False
        _FakePipeline.instances.append(self)

    async def scrape(self, url, *, download_images=True, render_mode=RenderPreference.AUTO):
        self.calls.append({"url": url, "download_images": download_images, "render_mode": render_mode})
        if _FakePipeline.error is not None:
            raise _FakePipeline.error
        content = ExtractedContent(
            title="CLI Article",
            content="<h2>Part</h2><p>Text</p>",
            plain_text="Part Text",
            structured_text="## Part\n\nText",
        )
        return ScrapeResult(
            url=url, fetch_mode=FetchMode.RENDERED, content=content, source_type="blog", escalated=True
        )

    async def shutdown(self) -> None:
        self.shut_down = True


@pytest.fixture()
def fake_pipeline(monkeypatch):
    _FakePipeline.instances = []
    _FakePipeline.error = None
    monkeypatch.setattr("readlater.scraper.pipeline.ScrapePipeline", _FakePipeline)
    return _FakePipeline


# ---------------------------------------------------------------------------
# scrape
# ---------------------------------------------------------------------------

def test_scrape_prints_summary(fake_pipeline):
    result = runner.invoke(app, ["scrape", "https://example.com/post"])
    assert result.exit_code == 0, result.output
    assert "CLI Article" in result.stdout
    assert "rendered (escalated)" in result.stdout
    assert "## Part" in result.stdout
    pipeline = fake_pipeline.instances[0]
    assert pipeline.shut_down
    assert pipeline.calls[0]["download_images"] is True


def test_scrape_flags(fake_pipeline):
    result = runner.invoke(app, ["scrape", "https://example.com/post", "--no-images", "--render", "disable"])
    assert result.exit_code == 0, result.output
    call = fake_pipeline.instances[0].calls[0]
    assert call["download_images"] is False
    assert call["render_mode"] is RenderPreference.DISABLE


def test_scrape_json(fake_pipeline):
    result = runner.invoke(app, ["scrape", "https://example.com/post", "--json"])
    assert result.exit_code == 0, result.output
    data = json.loads(result.stdout)
    assert data["title"] == "CLI Article"
    assert data["sourceType"] == "blog"


def test_scrape_failure_exits_nonzero(fake_pipeline):
    fake_pipeline.error = FetchError(FetchErrorKind.TIMEOUT, "Timed out fetching https://example.com/post")
    result = runner.invoke(app, ["scrape", "https://example.com/post"])
    assert result.exit_code == 1
    assert fake_pipeline.instances[0].shut_down


# ---------------------------------------------------------------------------
# ingest
# ---------------------------------------------------------------------------

def test_ingest_markdown_file(tmp_path):
    source = tmp_path / "notes.md"
    source.write_text("# Notes\n\n- one\n- two", encoding="utf-8")
    result = runner.invoke(app, ["ingest", str(source)])
    assert result.exit_code == 0, result.output
    assert "<h1>Notes</h1>" in result.stdout
    assert "<ul><li>one</li><li>two</li></ul>" in result.stdout


def test_ingest_format_override_and_output(tmp_path):
    source = tmp_path / "page.md"
    source.write_text("<b>literal</b>", encoding="utf-8")
    target = tmp_path / "out.html"
    result = runner.invoke(app, ["ingest", str(source), "--format", "plaintext", "-o", str(target)])
    assert result.exit_code == 0, result.output
    assert target.read_text(encoding="utf-8") == (
        '<div class="article-content"><p>&lt;b&gt;literal&lt;/b&gt;</p></div>'
    )


def test_ingest_missing_file(tmp_path):
    result = runner.invoke(app, ["ingest", str(tmp_path / "nope.txt")])
    assert result.exit_code != 0


# ---------------------------------------------------------------------------
# serve
# ---------------------------------------------------------------------------

def test_serve_runs_uvicorn(monkeypatch):
    calls = []
    monkeypatch.setattr("uvicorn.run", lambda *args, **kwargs: calls.append((args, kwargs)))
    result = runner.invoke(app, ["serve", "--port", "9001"])
    assert result.exit_code == 0, result.output
    args, kwargs = calls[0]
    assert args[0] == "readlater.api.app:app"
    assert kwargs["port"] == 9001
