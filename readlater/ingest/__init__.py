"""Ingest package: format detection and sanitisation of pasted or uploaded content."""

from readlater.ingest.formats import ContentFormat, detect_format, format_from_hint
from readlater.ingest.processor import IngestResult, ingest, process_content

__all__ = ["ContentFormat", "IngestResult", "detect_format", "format_from_hint", "ingest", "process_content"]
