import asyncio
from typing import Iterable, List, Optional, Sequence, Tuple
from castquality.config import Settings, settings as default_settings
from castquality.models.casts import BatchResult
from castquality.services.logger import logger
from castquality.workflows.pipeline import CastInput, QualityPipeline, UpdateCallback, pipeline as default_pipeline


def chunked(items: Sequence, size: int) -> Iterable[Sequence]:
    for i in range(0, len(items), size):
        yield items[i : i + size]


async def analyze_batch(casts: List[Tuple[str, CastInput]],
                        update_callback: UpdateCallback,
                        batch_size: Optional[int] = None,
                        delay_between_batches: Optional[float] = None,
                        quality_pipeline: Optional[QualityPipeline] = None,
                        settings: Settings = default_settings) -> BatchResult:
    """
    Analyzes many casts under the scorer's rate limits.

    Casts within a chunk run concurrently; chunks run one after another with
    a pause in between (none after the last). A failed cast is counted and
    never stops the rest.
    """
    quality_pipeline = quality_pipeline or default_pipeline
    batch_size = batch_size or settings.BATCH_SIZE
    if batch_size < 1:
        raise ValueError(f"batch_size must be positive, got {batch_size}")
    delay = settings.BATCH_DELAY_SECONDS if delay_between_batches is None else delay_between_batches

    result = BatchResult()
    chunks = list(chunked(casts, batch_size))

    async def analyze_one(cast_hash: str, cast_data: CastInput) -> None:
        try:
            analysis = await quality_pipeline.analyze_cast_quality(cast_data)
            if analysis is None:
                result.failed += 1
                return
            await update_callback(cast_hash, analysis)
            result.processed += 1
        except Exception as e:
            logger.error(f"Error analyzing cast {cast_hash}: {e}")
            result.failed += 1

    for index, chunk in enumerate(chunks, 1):
        logger.info(f"[Batch {index}/{len(chunks)}] Analyzing {len(chunk)} casts...")
        await asyncio.gather(*[analyze_one(cast_hash, cast_data) for cast_hash, cast_data in chunk])
        logger.info(f"[Batch {index}/{len(chunks)}] done (processed={result.processed}, failed={result.failed})")

        if index < len(chunks):
            await asyncio.sleep(delay)

    return result
