from typing import Awaitable, Callable, Optional
from castquality.models.casts import AnalysisMode, AnalysisResult, Cast
from castquality.services.database import PostStore
from castquality.services.logger import logger
from castquality.services.neynar import NeynarContentSource
from castquality.tools.adjustment import ResolvedReference

Analyzer = Callable[[Cast, AnalysisMode], Awaitable[Optional[AnalysisResult]]]


def is_quoting_parent(cast: Cast, quoted_hash: str) -> bool:
    return bool(quoted_hash) and cast.parent_hash == quoted_hash


class ReferenceResolver:
    """
    Finds the score of the cast a quote cast embeds.

    Known casts are looked up across the stores in priority order; unscored
    ones are analyzed on the spot, and casts no store holds are fetched from
    the content source and stored first. The nested analysis always runs in
    RESOLVING_REFERENCE mode, so it never resolves quotes of its own.
    """

    def __init__(self, store: PostStore, content_source: NeynarContentSource):
        self.store = store
        self.content_source = content_source

    async def resolve(self, cast: Cast, analyze: Analyzer,
                      mode: AnalysisMode = AnalysisMode.TOP_LEVEL) -> Optional[ResolvedReference]:
        if mode is not AnalysisMode.TOP_LEVEL:
            return None
        hashes = cast.quoted_cast_hashes
        if not hashes:
            return None
        quoted_hash = hashes[0]

        try:
            result = await self._score_of(quoted_hash, analyze)
        except Exception as e:
            logger.error(f"Error resolving quoted cast {quoted_hash}, falling back to plain scoring: {e}")
            return None

        if result is None:
            return None
        return ResolvedReference(
            cast_hash=quoted_hash,
            quality_score=result.quality_score,
            category=result.category,
            quoting_parent=is_quoting_parent(cast, quoted_hash),
        )

    async def _score_of(self, quoted_hash: str, analyze: Analyzer) -> Optional[AnalysisResult]:
        found = await self.store.find(quoted_hash)
        if found is not None:
            backend, record = found
            if record.is_analyzed:
                return AnalysisResult(quality_score=record.quality_score, category=record.category)

            logger.info(f"Quote cast detected, analyzing original cast {quoted_hash} from {backend.name}")
            quoted_cast = record.cast if record.cast.hash else record.cast.model_copy(update={"hash": quoted_hash})
            result = await analyze(quoted_cast, AnalysisMode.RESOLVING_REFERENCE)
            if result is not None:
                await backend.save_score(quoted_hash, result)
            return result

        logger.info(f"Quote cast detected, fetching original cast {quoted_hash} from content source")
        fetched = await self.content_source.lookup_cast(quoted_hash)
        if fetched is None:
            return None
        if not fetched.hash:
            fetched = fetched.model_copy(update={"hash": quoted_hash})

        backend = self.store.placeholder_backend
        await backend.insert_placeholder(fetched)
        result = await analyze(fetched, AnalysisMode.RESOLVING_REFERENCE)
        if result is not None:
            await backend.save_score(quoted_hash, result)
        return result
