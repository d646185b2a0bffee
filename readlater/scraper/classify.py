"""Coarse source-type classification for saved articles."""

from __future__ import annotations

from urllib.parse import urlparse

_NEWS_PATH_MARKERS = ("news", "/article/", "/articles/")
_BLOG_PATH_MARKERS = ("blog", "/post/", "/posts/")

_NEWS_HOSTS = (
    "news", "cnn", "bbc", "reuters", "bloomberg", "nytimes", "wsj",
    "washingtonpost", "theguardian", "ft.com", "forbes", "cnbc", "sina",
    "sohu", "163.com", "qq.com", "people.com.cn", "xinhuanet", "chinadaily",
    "zaobao", "ifeng",
)
_BLOG_HOSTS = (
    "medium.com", "wordpress", "blogger", "substack", "ghost.io", "hashnode",
    "dev.to", "zhihu", "jianshu", "csdn", "segmentfault", "juejin", "weibo",
    "wechat", "mp.weixin", "toutiao",
)
_NEWS_TITLE_KEYWORDS = (
    "新闻", "报道", "通讯", "公告", "发布", "宣布", "时报", "最新",
    "breaking", "announces", "press release",
)


def classify_source(url: str, title: str = "") -> str:
    """Return ``news``, ``blog``, ``article`` or ``other`` for a saved page.

    Checks are ordered: URL markers, then known hosts, then title keywords.
    A URL that cannot be parsed at all is classified as ``other``.
    """
    try:
        parsed = urlparse(url)
    except ValueError:
        return "other"
    if not parsed.netloc:
        return "other"

    lowered = url.lower()
    if any(marker in lowered for marker in _NEWS_PATH_MARKERS):
        return "news"
    if any(marker in lowered for marker in _BLOG_PATH_MARKERS):
        return "blog"

    # mp.weixin.qq.com is a blog platform even though qq.com is a news host.
    if any(host in lowered for host in _BLOG_HOSTS):
        return "blog"
    if any(host in lowered for host in _NEWS_HOSTS):
        return "news"

    lowered_title = title.lower()
    if any(keyword in lowered_title for keyword in _NEWS_TITLE_KEYWORDS):
        return "news"
    return "article"
