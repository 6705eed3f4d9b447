"""
Score derivation for quote casts.

A quote of its own parent is worth only what its added commentary is worth.
A quote of any other cast starts from the quoted cast's score, minus a base
penalty, shifted by an assessment of the commentary. Both inherit the quoted
cast's category.
"""
from dataclasses import dataclass
from castquality.config import Settings, settings as default_settings
from castquality.models.casts import AnalysisResult, Category
from castquality.services.errors import ScorerError
from castquality.services.logger import logger
from castquality.tools.prefilter import TextStats
from castquality.tools.scoring import QualityScorer


@dataclass(frozen=True)
class ResolvedReference:
    cast_hash: str
    quality_score: int
    category: Category
    quoting_parent: bool


class AdjustmentEngine:
    def __init__(self, scorer: QualityScorer, settings: Settings = default_settings):
        self.scorer = scorer
        self.settings = settings

    def _is_trivial(self, stats: TextStats) -> bool:
        return stats.is_short(self.settings.COMMENTARY_MAX_WORDS, self.settings.SHORT_TEXT_MAX_CHARS)

    async def parent_quote_score(self, commentary: str) -> int:
        """Quality of the commentary alone, 0-100."""
        stats = TextStats.of(commentary)
        if stats.is_empty:
            return 0
        if stats.is_symbol_only:
            return self.settings.PARENT_QUOTE_SYMBOL_SCORE
        if self._is_trivial(stats):
            return self.settings.PARENT_QUOTE_SHORT_SCORE

        try:
            score = await self.scorer.score_parent_quote_text(commentary)
        except ScorerError as e:
            logger.warning(f"Failed to analyze parent quote text, using default score: {e}")
            return self.settings.PARENT_QUOTE_SHORT_SCORE
        logger.info(f"Parent quote text analysis: score={score}")
        return score

    async def quote_adjustment(self, commentary: str) -> int:
        """Total adjustment applied to the quoted cast's score."""
        base = self.settings.QUOTE_BASE_ADJUSTMENT
        stats = TextStats.of(commentary)
        # Empty, symbol-only and very short commentary is neutral
        if stats.is_empty or stats.is_symbol_only or self._is_trivial(stats):
            return base

        try:
            delta = await self.scorer.score_commentary_delta(commentary)
        except ScorerError as e:
            logger.warning(f"Failed to analyze additional text, using default {base} adjustment: {e}")
            return base
        logger.info(f"Additional text analysis: base {base} + adjustment {delta} = {base + delta}")
        return base + delta

    async def adjust(self, reference: ResolvedReference, commentary: str) -> AnalysisResult:
        if reference.quoting_parent:
            score = await self.parent_quote_score(commentary)
            logger.info(f"Parent quote cast detected, scoring only additional text: {score}")
            return AnalysisResult(
                quality_score=score,
                category=reference.category,
                reasoning=f"Parent quote cast - scored only additional text quality: {score}",
            )

        adjustment = await self.quote_adjustment(commentary)
        score = min(100, max(0, reference.quality_score + adjustment))
        logger.info(
            f"Quote cast of {reference.cast_hash}: original score {reference.quality_score} "
            f"+ adjustment {adjustment} = {score}"
        )
        return AnalysisResult(
            quality_score=score,
            category=reference.category,
            reasoning=(
                f"Quote cast scored as original ({reference.quality_score}) with adjustment "
                f"{adjustment} based on additional text quality"
            ),
        )
