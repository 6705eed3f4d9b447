from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional, Dict, Any, List, Literal, Union
from datetime import datetime
from enum import Enum


class Category(str, Enum):
    CRYPTO_CRITIQUE = "crypto-critique"
    PLATFORM_ANALYSIS = "platform-analysis"
    CREATOR_ECONOMY = "creator-economy"
    ART_CULTURE = "art-culture"
    AI_PHILOSOPHY = "ai-philosophy"
    COMMUNITY_CULTURE = "community-culture"
    LIFE_REFLECTION = "life-reflection"
    MARKET_NEWS = "market-news"
    PLAYFUL = "playful"
    OTHER = "other"


class AnalysisMode(str, Enum):
    """How deep in a quote chain an analysis call sits.

    A RESOLVING_REFERENCE call never resolves quotes itself, which bounds
    quote-chain recursion to one level.
    """
    TOP_LEVEL = "top_level"
    RESOLVING_REFERENCE = "resolving_reference"


class Cast(BaseModel):
    """A Farcaster cast as returned by the content source (Neynar shape)."""
    model_config = ConfigDict(frozen=True, extra='allow')

    hash: str = ""
    text: str = ""
    parent_hash: Optional[str] = None
    embeds: List[Dict[str, Any]] = Field(default_factory=list)
    author: Optional[Dict[str, Any]] = None

    @field_validator('text', mode='before')
    @classmethod
    def _text_or_empty(cls, v):
        return v or ""

    @field_validator('embeds', mode='before')
    @classmethod
    def _embeds_or_empty(cls, v):
        if not isinstance(v, list):
            return []
        return [e for e in v if isinstance(e, dict)]

    @classmethod
    def from_data(cls, data: Union["Cast", Dict[str, Any], None]) -> "Cast":
        if isinstance(data, Cast):
            return data
        if not data:
            return cls()
        # Some stored payloads wrap the cast: {"cast": {...}}
        if "hash" not in data and "text" not in data and isinstance(data.get("cast"), dict):
            data = data["cast"]
        return cls.model_validate(data)

    @property
    def quoted_cast_hashes(self) -> List[str]:
        hashes = []
        for embed in self.embeds:
            cast_id = embed.get("cast_id")
            quoted = embed.get("cast")
            if isinstance(cast_id, dict) and cast_id.get("hash"):
                hashes.append(cast_id["hash"])
            elif isinstance(quoted, dict) and quoted.get("hash"):
                hashes.append(quoted["hash"])
        return hashes

    @property
    def is_quote(self) -> bool:
        return len(self.quoted_cast_hashes) > 0

    @property
    def author_fid(self) -> Optional[int]:
        if self.author:
            return self.author.get("fid")
        return None

    def to_data(self) -> Dict[str, Any]:
        return self.model_dump(mode='json', exclude_none=True)


class QuotedCastEmbed(BaseModel):
    kind: Literal["quoted_cast"] = "quoted_cast"
    hash: Optional[str] = None
    text: str = ""


class LinkEmbed(BaseModel):
    kind: Literal["link"] = "link"
    url: str
    title: Optional[str] = None
    description: Optional[str] = None


class ImageEmbed(BaseModel):
    kind: Literal["image"] = "image"
    alt_text: Optional[str] = None


class ArticleEmbed(BaseModel):
    kind: Literal["article"] = "article"
    url: str
    title: Optional[str] = None
    markdown: Optional[str] = None
    static_html: Optional[str] = None


Embed = Union[QuotedCastEmbed, LinkEmbed, ImageEmbed, ArticleEmbed]


def parse_embed(raw: Dict[str, Any]) -> Optional[Embed]:
    """Map a raw Neynar embed onto a typed embed. Articles are resolved later."""
    quoted = raw.get("cast")
    if raw.get("cast_id") or (isinstance(quoted, dict) and (quoted.get("text") or quoted.get("hash"))):
        quoted = quoted if isinstance(quoted, dict) else {}
        cast_id = raw.get("cast_id") if isinstance(raw.get("cast_id"), dict) else {}
        return QuotedCastEmbed(hash=quoted.get("hash") or cast_id.get("hash"), text=quoted.get("text") or "")

    meta = raw.get("metadata")
    if not isinstance(meta, dict):
        meta = {}
    content_type = str(meta.get("content_type") or "")
    if meta.get("image") or content_type.startswith("image/"):
        return ImageEmbed(alt_text=meta.get("alt") or None)

    url = raw.get("url")
    if url:
        html = meta.get("html")
        if not isinstance(html, dict):
            html = {}
        return LinkEmbed(
            url=url,
            title=meta.get("title") or html.get("ogTitle"),
            description=meta.get("description") or html.get("ogDescription"),
        )
    return None


class AnalysisResult(BaseModel):
    quality_score: int = Field(ge=0, le=100)
    category: Category = Category.OTHER
    reasoning: Optional[str] = None


class ScoreRecord(BaseModel):
    cast_hash: str
    quality_score: Optional[int] = Field(default=None, ge=0, le=100)
    category: Category = Category.OTHER
    reasoning: Optional[str] = None
    analyzed_at: Optional[datetime] = None
    cast: Cast = Field(default_factory=Cast)

    @property
    def is_analyzed(self) -> bool:
        return self.quality_score is not None


class BatchResult(BaseModel):
    processed: int = 0
    failed: int = 0

    @property
    def total(self) -> int:
        return self.processed + self.failed
