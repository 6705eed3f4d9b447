import httpx
import logging
import re
from typing import Optional
from urllib.parse import urlparse
from castquality.config import Settings, settings as default_settings
from castquality.models.casts import ArticleEmbed

logger = logging.getLogger(__name__)

_TRAILING_PUNCT = re.compile(r"[.,;:!?)\]'\"`]+$")


def normalize_url(url: str) -> str:
    url = _TRAILING_PUNCT.sub("", url.strip())
    if not url.startswith("http://") and not url.startswith("https://"):
        url = "https://" + url
    return url


def article_platform(url: str) -> Optional[str]:
    """Return the long-form platform a URL belongs to, or None for plain links."""
    try:
        hostname = (urlparse(normalize_url(url)).hostname or "").lower()
    except ValueError:
        return None
    if hostname in ("paragraph.xyz", "www.paragraph.xyz"):
        return "paragraph"
    if hostname.endswith(".substack.com"):
        return "substack"
    return None


def is_article_link(url: str) -> bool:
    return article_platform(url) is not None


class ArticleFetcher:
    """Fetches long-form articles through the unified blog API."""

    def __init__(self, settings: Settings = default_settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.settings = settings
        self._transport = transport

    async def fetch(self, url: str) -> Optional[ArticleEmbed]:
        logger.info(f"Fetching article for quality assessment: {url}")
        async with httpx.AsyncClient(timeout=self.settings.ARTICLE_FETCH_TIMEOUT, transport=self._transport) as client:
            resp = await client.get(self.settings.BLOG_API_URL, params={"url": url})
            if resp.status_code != 200:
                logger.warning(f"Failed to fetch article {url}: {resp.status_code}")
                return None
            data = resp.json()

        return ArticleEmbed(
            url=url,
            title=data.get("title"),
            markdown=data.get("markdown"),
            static_html=data.get("staticHtml"),
        )

article_fetcher = ArticleFetcher()
