"""Centralised settings for the read-later collector.

All runtime configuration is resolved here in one place.  Values can be
overridden via environment variables or a `.env` file in the project root
(loaded automatically when this module is imported).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

# Load .env from the project root (one level up from this package)
_env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_env_path, override=False)

_DEFAULT_JS_HEAVY_HOSTS = (
    "mp.weixin.qq.com,weibo.com,zhihu.com,juejin.cn,segmentfault.com,"
    "csdn.net,twitter.com,x.com,medium.com"
)

_DESKTOP_UA = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36"
)


def _split_csv(value: str) -> list[str]:
    return [item.strip().lower() for item in value.split(",") if item.strip()]


def _env_bool(name: str, default: str) -> bool:
    return os.environ.get(name, default).strip().lower() in {"1", "true", "yes", "on"}


@dataclass
class Settings:
    # ------------------------------------------------------------------
    # Workspace / storage
    # ------------------------------------------------------------------
    workspace_dir: Path = field(
        default_factory=lambda: Path(
            os.environ.get("READLATER_WORKSPACE", Path.home() / ".readlater")
        )
    )
    image_url_prefix: str = field(
        default_factory=lambda: os.environ.get("IMAGE_URL_PREFIX", "/images")
    )

    @property
    def images_dir(self) -> Path:
        """Content-addressed directory holding localized images."""
        return self.workspace_dir / "images"

    # ------------------------------------------------------------------
    # Fetcher
    # ------------------------------------------------------------------
    user_agent: str = field(
        default_factory=lambda: os.environ.get("SCRAPER_USER_AGENT", _DESKTOP_UA)
    )
    accept_language: str = field(
        default_factory=lambda: os.environ.get(
            "SCRAPER_ACCEPT_LANGUAGE", "zh-CN,zh;q=0.9,en;q=0.8"
        )
    )
    text_timeout: float = field(
        default_factory=lambda: float(os.environ.get("TEXT_TIMEOUT", "10.0"))
    )
    image_timeout: float = field(
        default_factory=lambda: float(os.environ.get("IMAGE_TIMEOUT", "15.0"))
    )

    # ------------------------------------------------------------------
    # Headless browser
    # ------------------------------------------------------------------
    navigation_timeout: float = field(
        default_factory=lambda: float(os.environ.get("NAVIGATION_TIMEOUT", "45.0"))
    )
    settle_delay: float = field(
        default_factory=lambda: float(os.environ.get("SETTLE_DELAY", "2.0"))
    )
    max_scroll_iterations: int = field(
        default_factory=lambda: int(os.environ.get("MAX_SCROLL_ITERATIONS", "10"))
    )
    browser_idle_timeout: float = field(
        default_factory=lambda: float(os.environ.get("BROWSER_IDLE_TIMEOUT", "300"))
    )
    headless: bool = field(
        default_factory=lambda: _env_bool("BROWSER_HEADLESS", "true")
    )

    # ------------------------------------------------------------------
    # Extraction / render strategy
    # ------------------------------------------------------------------
    min_content_chars: int = field(
        default_factory=lambda: int(os.environ.get("MIN_CONTENT_CHARS", "100"))
    )
    js_heavy_hosts: list[str] = field(
        default_factory=lambda: _split_csv(
            os.environ.get("JS_HEAVY_HOSTS", _DEFAULT_JS_HEAVY_HOSTS)
        )
    )

    # ------------------------------------------------------------------
    # Image localization
    # ------------------------------------------------------------------
    max_image_bytes: int = field(
        default_factory=lambda: int(os.environ.get("MAX_IMAGE_BYTES", str(5 * 1024 * 1024)))
    )
    image_concurrency: int = field(
        default_factory=lambda: int(os.environ.get("IMAGE_CONCURRENCY", "4"))
    )

    # ------------------------------------------------------------------
    # Service
    # ------------------------------------------------------------------
    log_level: str = field(
        default_factory=lambda: os.environ.get("LOG_LEVEL", "INFO")
    )
    environment: str = field(
        default_factory=lambda: os.environ.get("ENVIRONMENT", "development")
    )
    cors_allowed_origins: list[str] = field(
        default_factory=lambda: [
            origin.strip()
            for origin in os.environ.get("CORS_ALLOWED_ORIGINS", "*").split(",")
            if origin.strip()
        ]
    )

    def ensure_workspace(self) -> None:
        """Create the workspace and image store directories if missing."""
        self.images_dir.mkdir(parents=True, exist_ok=True)


# Module-level singleton, imported everywhere:
#   from readlater.config import settings
settings = Settings()
