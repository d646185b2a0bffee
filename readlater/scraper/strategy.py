"""Render strategy selection: lightweight HTTP fetch or full browser render."""

from __future__ import annotations

from typing import Iterable, Optional
from urllib.parse import urlparse

from readlater.config import settings
from readlater.scraper.models import FetchMode, RenderPreference


def _host_matches(host: str, pattern: str) -> bool:
    """Return ``True`` if *host* is *pattern* or one of its subdomains."""
    pattern = pattern.lower().lstrip(".")
    return host == pattern or host.endswith("." + pattern)


def is_js_heavy(url: str, hosts: Optional[Iterable[str]] = None) -> bool:
    """Return ``True`` if *url* belongs to a known JS-heavy / anti-bot site."""
    try:
        host = (urlparse(url).hostname or "").lower()
    except ValueError:
        return False
    if not host:
        return False
    patterns = settings.js_heavy_hosts if hosts is None else hosts
    return any(_host_matches(host, pattern) for pattern in patterns)


def decide(
    url: str,
    preference: RenderPreference | str = RenderPreference.AUTO,
    hosts: Optional[Iterable[str]] = None,
) -> FetchMode:
    """Pick the fetch mode for *url*.

    ``force`` always renders, ``disable`` never does, and ``auto`` renders only
    when the host is on the JS-heavy allow-list.  The content-sufficiency
    escalation is applied later by the pipeline, not here.
    """
    preference = RenderPreference(preference)
    if preference is RenderPreference.FORCE:
        return FetchMode.RENDERED
    if preference is RenderPreference.DISABLE:
        return FetchMode.LIGHTWEIGHT
    return FetchMode.RENDERED if is_js_heavy(url, hosts) else FetchMode.LIGHTWEIGHT


def may_escalate(preference: RenderPreference | str, mode: FetchMode) -> bool:
    """Only an ``auto`` request that started lightweight can escalate."""
    return RenderPreference(preference) is RenderPreference.AUTO and mode is FetchMode.LIGHTWEIGHT
