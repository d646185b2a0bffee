"""Scraper package: fetch, extract and localize web articles."""

from readlater.scraper.browser import BrowserManager
from readlater.scraper.extractor import CleanedRegion, ContentExtractor
from readlater.scraper.fetcher import Fetcher
from readlater.scraper.images import ImageLocalizer, ImageStore
from readlater.scraper.models import (
    ExtractedContent,
    FetchMode,
    FetchResult,
    ImageRef,
    RenderPreference,
    ScrapeResult,
)
from readlater.scraper.pipeline import ScrapePipeline
from readlater.scraper.strategy import decide

__all__ = [
    "BrowserManager",
    "CleanedRegion",
    "ContentExtractor",
    "ExtractedContent",
    "FetchMode",
    "FetchResult",
    "Fetcher",
    "ImageLocalizer",
    "ImageRef",
    "ImageStore",
    "RenderPreference",
    "ScrapePipeline",
    "decide",
]
