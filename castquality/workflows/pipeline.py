import asyncio
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set, Union
from castquality.config import Settings, settings as default_settings
from castquality.models.casts import AnalysisMode, AnalysisResult, Cast, Category
from castquality.services.database import PostStore, post_store as default_post_store
from castquality.services.errors import QualityAnalysisError
from castquality.services.logger import logger
from castquality.services.neynar import NeynarContentSource, content_source as default_content_source
from castquality.tools.adjustment import AdjustmentEngine
from castquality.tools.extractor import ContentExtractor
from castquality.tools.prefilter import HeuristicPrefilter
from castquality.tools.resolver import ReferenceResolver
from castquality.tools.scoring import QualityScorer

CastInput = Union[Cast, Dict[str, Any]]
UpdateCallback = Callable[[str, AnalysisResult], Awaitable[None]]


class QualityPipeline:
    def __init__(self,
                 scorer: Optional[QualityScorer] = None,
                 store: Optional[PostStore] = None,
                 content_source: Optional[NeynarContentSource] = None,
                 extractor: Optional[ContentExtractor] = None,
                 settings: Settings = default_settings):
        self.settings = settings
        self.scorer = scorer or QualityScorer(settings=settings)
        self.extractor = extractor or ContentExtractor()
        self.prefilter = HeuristicPrefilter(settings)
        self.adjustments = AdjustmentEngine(self.scorer, settings)
        self.resolver = ReferenceResolver(store or default_post_store, content_source or default_content_source)
        self._background_tasks: Set[asyncio.Task] = set()

    async def analyze_cast_quality(self, cast_data: CastInput,
                                   mode: AnalysisMode = AnalysisMode.TOP_LEVEL) -> Optional[AnalysisResult]:
        """
        Scores one cast and picks its category.

        Returns None when no score could be produced (scorer unconfigured or
        failing), which callers must keep apart from a genuine low score.
        Quote casts reuse the quoted cast's analysis; in RESOLVING_REFERENCE
        mode a quote is scored as plain content.
        """
        if not self.scorer.is_configured:
            logger.warning("DEEPSEEK_API_KEY not configured, skipping quality analysis")
            return None

        cast = Cast.from_data(cast_data)

        if mode is AnalysisMode.TOP_LEVEL and cast.is_quote:
            reference = await self.resolver.resolve(cast, self.analyze_cast_quality, mode)
            if reference is not None:
                return await self.adjustments.adjust(reference, cast.text)

        trivial = self.prefilter.short_circuit(cast)
        if trivial is not None:
            return trivial

        content = await self.extractor.extract(cast)
        if len(content.compose(self.settings).strip()) < self.settings.MIN_CONTENT_LENGTH:
            return AnalysisResult(
                quality_score=self.settings.DEFAULT_QUALITY_SCORE,
                category=Category.OTHER,
                reasoning="No analyzable text or embed content",
            )

        try:
            result = await self.scorer.score_content(content)
        except QualityAnalysisError as e:
            logger.error(f"Error analyzing cast quality for {cast.hash or '<unknown>'}: {e}")
            return None

        if content.has_text:
            result = result.model_copy(update={"quality_score": self.prefilter.clamp(result.quality_score, cast.text)})
        return result

    async def analyze_with_feedback(self, cast_text: str, embedded_cast_texts: List[str], links: List[str],
                                    curator_feedback: str, current_quality_score: int) -> Optional[AnalysisResult]:
        """Re-scores a curated cast in light of a curator's feedback."""
        if not self.scorer.is_configured:
            logger.warning("DEEPSEEK_API_KEY not configured, skipping quality analysis")
            return None

        if not cast_text.strip() and not embedded_cast_texts and not links:
            logger.warning("Cast has no text, embedded casts, or links, skipping analysis")
            return None

        try:
            return await self.scorer.rescore_with_feedback(
                cast_text, embedded_cast_texts, links, curator_feedback, current_quality_score
            )
        except QualityAnalysisError as e:
            logger.error(f"Error analyzing cast quality with feedback: {e}")
            return None

    async def _analyze_and_store(self, cast_hash: str, cast_data: CastInput,
                                 update_callback: UpdateCallback) -> Optional[AnalysisResult]:
        try:
            result = await self.analyze_cast_quality(cast_data)
            if result is not None:
                await update_callback(cast_hash, result)
            return result
        except Exception as e:
            logger.error(f"Error in background quality analysis for cast {cast_hash}: {e}")
            return None

    def analyze_in_background(self, cast_hash: str, cast_data: CastInput,
                              update_callback: UpdateCallback) -> asyncio.Task:
        """
        Schedules analysis without blocking the caller.

        The result is persisted through update_callback. The returned task can
        be awaited for the result or cancelled; the pipeline keeps a reference
        until it finishes.
        """
        task = asyncio.create_task(self._analyze_and_store(cast_hash, cast_data, update_callback))
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)
        return task

    @property
    def pending_tasks(self) -> int:
        return len(self._background_tasks)

pipeline = QualityPipeline()
