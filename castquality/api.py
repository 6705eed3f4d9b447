from contextlib import asynccontextmanager
from fastapi import FastAPI, HTTPException, BackgroundTasks
from pydantic import BaseModel, Field
from typing import Optional

from castquality.models.casts import AnalysisResult
from castquality.services.database import db, post_store, cast_replies, curated_casts
from castquality.services.logger import logger
from castquality.workflows.batch import analyze_batch
from castquality.workflows.pipeline import pipeline

@asynccontextmanager
async def lifespan(app: FastAPI):
    await db.init()
    yield
    if pipeline.pending_tasks:
        logger.info(f"Shutting down with {pipeline.pending_tasks} quality analyses still pending")

app = FastAPI(title="Cast Quality API", lifespan=lifespan)

class BatchRequest(BaseModel):
    limit: Optional[int] = Field(default=None, gt=0)
    batch_size: Optional[int] = Field(default=None, gt=0)

class FeedbackRequest(BaseModel):
    castHash: str
    feedback: str

@app.get("/api/status")
async def get_status():
    return {"status": "ok", "version": "1.0.0", "pending_analyses": pipeline.pending_tasks}

@app.post("/api/casts/{cast_hash}/analyze")
async def analyze_cast(cast_hash: str):
    found = await post_store.find(cast_hash)
    if found is None:
        raise HTTPException(status_code=404, detail="Cast not found")
    backend, record = found
    pipeline.analyze_in_background(cast_hash, record.cast, backend.save_score)
    return {"status": "started", "store": backend.name}

async def run_replies_analysis(limit: Optional[int] = None, batch_size: Optional[int] = None):
    try:
        records = await cast_replies.list_unscored(limit)
        logger.info(f"Found {len(records)} replies without quality scores")
        result = await analyze_batch(
            [(r.cast_hash, r.cast) for r in records],
            cast_replies.save_score,
            batch_size=batch_size,
        )
        logger.info(f"Replies analysis complete: processed={result.processed}, failed={result.failed}")
    except Exception as e:
        logger.error(f"Replies analysis failed: {e}")

@app.post("/api/admin/analyze-replies-quality")
async def trigger_replies_analysis(req: BatchRequest, background_tasks: BackgroundTasks):
    background_tasks.add_task(run_replies_analysis, req.limit, req.batch_size)
    return {"status": "started", "message": "Replies quality analysis triggered in background"}

@app.post("/api/quality-feedback")
async def quality_feedback(req: FeedbackRequest):
    feedback = req.feedback.strip()
    if not feedback:
        raise HTTPException(status_code=400, detail="feedback is required")

    record = await curated_casts.get(req.castHash)
    if record is None:
        raise HTTPException(status_code=404, detail="Cast not found in curated casts")
    if record.quality_score is None:
        raise HTTPException(status_code=400, detail="Cast does not have a quality score yet")

    cast = record.cast
    embedded_texts = [e["cast"].get("text", "") for e in cast.embeds if isinstance(e.get("cast"), dict)]
    links = [e["url"] for e in cast.embeds if e.get("url") and not e.get("cast") and not e.get("cast_id")]

    result = await pipeline.analyze_with_feedback(
        cast.text, embedded_texts, links, feedback, record.quality_score
    )
    if result is None:
        raise HTTPException(status_code=500, detail="Failed to analyze quality with feedback")

    # Feedback re-scores quality only; the category stays as curated
    await curated_casts.save_score(
        req.castHash,
        AnalysisResult(quality_score=result.quality_score, category=record.category),
    )
    return {"success": True, "qualityScore": result.quality_score, "reasoning": result.reasoning}

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8001)
