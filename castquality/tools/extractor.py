import asyncio
import re
from dataclasses import dataclass, field
from typing import List, Optional
from castquality.config import Settings, settings as default_settings
from castquality.models.casts import ArticleEmbed, Cast, ImageEmbed, LinkEmbed, QuotedCastEmbed, parse_embed
from castquality.services.blog import ArticleFetcher, article_fetcher as default_article_fetcher, is_article_link, normalize_url
from castquality.services.logger import logger

URL_PATTERN = re.compile(r"(https?://[^\s<>\"']+)|(www\.[^\s<>\"']+)")
_HTML_TAG = re.compile(r"<[^>]+>")
IMAGE_PLACEHOLDER = "[Image(s) present but no alt text available]"


def _truncate(text: str, limit: int, marker: str = "...") -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + marker


@dataclass
class ExtractedContent:
    """Everything analyzable found in a cast, ready to be composed into a prompt."""
    text: str = ""
    quoted_texts: List[str] = field(default_factory=list)
    links: List[LinkEmbed] = field(default_factory=list)
    articles: List[ArticleEmbed] = field(default_factory=list)
    image_alts: List[str] = field(default_factory=list)
    has_image_embeds: bool = False

    @property
    def has_text(self) -> bool:
        return bool(self.text.strip())

    @property
    def has_embeds(self) -> bool:
        return bool(self.quoted_texts or self.links or self.articles or self.image_alts or self.has_image_embeds)

    @property
    def is_image_only(self) -> bool:
        return (
            not self.has_text
            and self.has_image_embeds
            and not self.quoted_texts
            and not self.links
            and not self.articles
        )

    def summary(self) -> dict:
        return {
            "has_text": self.has_text,
            "quoted_casts": len(self.quoted_texts),
            "links": len(self.links),
            "articles": len(self.articles),
            "images": len(self.image_alts),
            "has_image_embeds": self.has_image_embeds,
        }

    def compose(self, settings: Settings = default_settings) -> str:
        parts = []

        if self.has_text:
            parts.append(f"Cast text:\n{_truncate(self.text, settings.CAST_TEXT_PROMPT_CHARS)}")

        if self.quoted_texts:
            quoted = "\n".join(
                f"[Quoted cast {i}]: {_truncate(text, settings.QUOTED_TEXT_PROMPT_CHARS)}"
                for i, text in enumerate(self.quoted_texts, 1)
            )
            parts.append(f"\nQuoted casts:\n{quoted}")

        if self.articles:
            parts.append("\nParagraph Articles:\n" + "\n\n".join(
                self._format_article(i, article, settings.ARTICLE_PROMPT_CHARS)
                for i, article in enumerate(self.articles, 1)
            ))

        if self.links:
            lines = []
            for i, link in enumerate(self.links, 1):
                info = f"[Link {i}]: {link.url}"
                if link.title:
                    info += f"\n  Title: {link.title}"
                if link.description:
                    info += f"\n  Description: {link.description}"
                lines.append(info)
            parts.append("\nLinks:\n" + "\n".join(lines))

        if self.has_image_embeds:
            if self.image_alts:
                images = "\n".join(f"[Image {i}]: {alt}" for i, alt in enumerate(self.image_alts, 1))
            else:
                images = IMAGE_PLACEHOLDER
            parts.append(f"\nImages:\n{images}")

        return "\n\n".join(parts)

    @staticmethod
    def _format_article(index: int, article: ArticleEmbed, limit: int) -> str:
        info = f"[Paragraph Article {index}]: {article.url}"
        if article.title:
            info += f"\n  Title: {article.title}"
        body = article.markdown
        if not body and article.static_html:
            body = _HTML_TAG.sub(" ", article.static_html)
        if body:
            info += "\n  Content:\n" + _truncate(body, limit, "\n[... article continues ...]")
        return info


def find_article_urls(text: str) -> List[str]:
    urls = []
    for match in URL_PATTERN.finditer(text or ""):
        url = normalize_url(match.group(1) or match.group(2))
        if is_article_link(url):
            urls.append(url)
    return urls


class ContentExtractor:
    def __init__(self, fetcher: Optional[ArticleFetcher] = None):
        self.fetcher = fetcher or default_article_fetcher

    async def _fetch_article(self, url: str) -> Optional[ArticleEmbed]:
        try:
            return await self.fetcher.fetch(url)
        except Exception as e:
            logger.warning(f"Error fetching article {url}: {e}")
            return None

    async def extract(self, cast: Cast) -> ExtractedContent:
        content = ExtractedContent(text=cast.text)
        article_urls = []

        for raw in cast.embeds:
            try:
                embed = parse_embed(raw)
            except ValueError as e:
                logger.warning(f"Skipping malformed embed on {cast.hash}: {e}")
                continue

            if isinstance(embed, QuotedCastEmbed):
                content.quoted_texts.append(embed.text)
            elif isinstance(embed, ImageEmbed):
                content.has_image_embeds = True
                if embed.alt_text:
                    content.image_alts.append(embed.alt_text)
            elif isinstance(embed, LinkEmbed):
                if is_article_link(embed.url):
                    article_urls.append(normalize_url(embed.url))
                else:
                    content.links.append(embed)

        article_urls.extend(find_article_urls(cast.text))
        unique_urls = list(dict.fromkeys(article_urls))

        if unique_urls:
            articles = await asyncio.gather(*[self._fetch_article(url) for url in unique_urls])
            content.articles = [a for a in articles if a is not None]

        if content.has_embeds:
            logger.debug(f"Extracted embed content for {cast.hash}: {content.summary()}")
        return content
