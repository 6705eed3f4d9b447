import re
from dataclasses import dataclass
from typing import Optional
from castquality.config import Settings, settings as default_settings
from castquality.models.casts import AnalysisResult, Cast, Category
from castquality.services.logger import logger

_ALNUM = re.compile(r"[^\W_]")
_TRAILING_PUNCT = re.compile(r"[\s.,!?~]+$")


@dataclass(frozen=True)
class TextStats:
    length: int
    word_count: int
    has_letters_or_digits: bool

    @classmethod
    def of(cls, text: Optional[str]) -> "TextStats":
        normalized = (text or "").strip()
        return cls(
            length=len(normalized),
            word_count=len(normalized.split()),
            has_letters_or_digits=bool(_ALNUM.search(normalized)),
        )

    @property
    def is_empty(self) -> bool:
        return self.length == 0

    @property
    def is_symbol_only(self) -> bool:
        return self.length > 0 and not self.has_letters_or_digits

    def is_short(self, max_words: int, max_chars: int) -> bool:
        return 0 < self.word_count <= max_words and self.length <= max_chars


class HeuristicPrefilter:
    """
    Deterministic caps for trivially low-effort text.

    Caps only ever lower a score. They run before the scorer (to skip it for
    content-free casts) and again on whatever score the scorer returns.
    """

    def __init__(self, settings: Settings = default_settings):
        self.settings = settings
        self._low_effort = {p.strip().lower() for p in settings.LOW_EFFORT_PHRASES}

    def is_low_effort_phrase(self, text: str) -> bool:
        normalized = _TRAILING_PUNCT.sub("", text.strip().lower())
        return normalized in self._low_effort

    def cap_for(self, text: Optional[str]) -> Optional[int]:
        stats = TextStats.of(text)
        if stats.is_empty:
            return None
        if stats.is_symbol_only or self.is_low_effort_phrase(text):
            return self.settings.SYMBOL_ONLY_CAP
        if stats.is_short(self.settings.SHORT_TEXT_MAX_WORDS, self.settings.SHORT_TEXT_MAX_CHARS):
            return self.settings.SHORT_TEXT_CAP
        return None

    def clamp(self, score: int, text: Optional[str]) -> int:
        cap = self.cap_for(text)
        if cap is None or score <= cap:
            return score
        logger.debug(f"Heuristic cap {cap} applied to score {score}")
        return cap

    def short_circuit(self, cast: Cast) -> Optional[AnalysisResult]:
        """Score text-only casts with no real content without calling the scorer."""
        if cast.embeds:
            return None
        cap = self.cap_for(cast.text)
        if cap is None or cap > self.settings.SYMBOL_ONLY_CAP:
            return None
        logger.info(f"Trivial cast {cast.hash or '<unknown>'} scored by heuristic ({cap})")
        return AnalysisResult(
            quality_score=cap,
            category=Category.OTHER,
            reasoning="Low-effort content scored by heuristic",
        )
