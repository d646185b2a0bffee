"""ReadLater CLI: save articles and ingest documents from the terminal.

Usage:
    readlater --help

Commands:
    scrape   fetch a URL and print the extracted article
    ingest   convert a local file (HTML, Markdown, text, DOCX, XLSX, RTF) to sanitized HTML
    serve    run the HTTP API with uvicorn
"""

from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path
from typing import Optional

import typer

from readlater.config import settings
from readlater.ingest.formats import ContentFormat
from readlater.log import configure_logging
from readlater.scraper.models import RenderPreference

app = typer.Typer(
    name="readlater",
    help="Read-later collector CLI.",
    no_args_is_help=True,
)


def _setup_logging() -> None:
    # Logs go to stderr so --json output stays machine-readable.
    configure_logging(settings.log_level, settings.environment, stream=sys.stderr)


# ---------------------------------------------------------------------------
# Scrape
# ---------------------------------------------------------------------------
@app.command("scrape")
def scrape(
    url: str = typer.Argument(..., help="URL to scrape."),
    images: bool = typer.Option(True, "--images/--no-images", help="Download and localize images."),
    render: RenderPreference = typer.Option(
        RenderPreference.AUTO, "--render", help="Render mode: auto | force | disable."
    ),
    as_json: bool = typer.Option(False, "--json", help="Print the full result as JSON."),
) -> None:
    """Fetch a URL and print its extracted content."""
    from readlater.errors import ReadLaterError
    from readlater.scraper.pipeline import ScrapePipeline

    _setup_logging()
    settings.ensure_workspace()

    async def _run():
        pipeline = ScrapePipeline()
        try:
            return await pipeline.scrape(url, download_images=images, render_mode=render)
        finally:
            await pipeline.shutdown()

    try:
        result = asyncio.run(_run())
    except ReadLaterError as exc:
        typer.echo(f"[scrape] Failed: {exc}", err=True)
        raise typer.Exit(code=1)

    if as_json:
        typer.echo(json.dumps(result.to_dict(), ensure_ascii=False, indent=2))
        return

    content = result.content
    typer.echo(f"[scrape] Title  : {content.title}")
    typer.echo(f"[scrape] Mode   : {result.fetch_mode.value}{' (escalated)' if result.escalated else ''}")
    typer.echo(f"[scrape] Type   : {result.source_type}")
    typer.echo(f"[scrape] Chars  : {content.text_length}")
    typer.echo(f"[scrape] Images : {result.downloaded_image_count}/{result.image_count} downloaded")
    typer.echo("")
    typer.echo(content.structured_text)


# ---------------------------------------------------------------------------
# Ingest
# ---------------------------------------------------------------------------
@app.command("ingest")
def ingest_file(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True, help="File to ingest."),
    format: Optional[ContentFormat] = typer.Option(
        None, "--format", help="Skip detection and treat the file as this format."
    ),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write the HTML here instead of stdout."),
) -> None:
    """Convert a local file to sanitized HTML."""
    from readlater.ingest import format_from_hint, ingest

    _setup_logging()
    data = path.read_bytes()
    result = ingest(binary=data, hinted_format=format or format_from_hint(path.name))

    if output is not None:
        output.write_text(result.sanitized_html, encoding="utf-8")
        typer.echo(f"[ingest] {result.detected_format.value} -> {output}")
    else:
        typer.echo(f"[ingest] Detected format: {result.detected_format.value}", err=True)
        typer.echo(result.sanitized_html)


# ---------------------------------------------------------------------------
# Serve
# ---------------------------------------------------------------------------
@app.command("serve")
def serve(
    host: str = typer.Option("127.0.0.1", help="Bind address."),
    port: int = typer.Option(8000, help="Bind port."),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes."),
) -> None:
    """Run the HTTP API."""
    import uvicorn

    typer.echo(f"[serve] Listening on http://{host}:{port}")
    uvicorn.run("readlater.api.app:app", host=host, port=port, reload=reload)


# ---------------------------------------------------------------------------
# Entry-point
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    app()
