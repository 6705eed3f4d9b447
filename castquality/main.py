import argparse
import asyncio
import sys
from castquality.models.casts import BatchResult
from castquality.services.base_store import CastStore
from castquality.services.database import db, curated_casts, cast_replies
from castquality.services.logger import logger
from castquality.workflows.batch import analyze_batch

TARGETS = {
    "casts": [curated_casts],
    "curated": [curated_casts],
    "replies": [cast_replies],
    "all": [curated_casts, cast_replies],
}

async def backfill(store: CastStore, batch_size: int = None, limit: int = None) -> BatchResult:
    """Analyzes every record of one store that has no quality score yet."""
    records = await store.list_unscored(limit)
    print(f"Found {len(records)} {store.name} record(s) without quality scores")
    if not records:
        return BatchResult()

    result = await analyze_batch(
        [(r.cast_hash, r.cast) for r in records],
        store.save_score,
        batch_size=batch_size,
    )

    print("\n" + "=" * 60)
    print(f"{store.name.upper()} ANALYSIS SUMMARY")
    print("=" * 60)
    print(f"Total to analyze: {len(records)}")
    print(f"Successfully processed: {result.processed}")
    print(f"Failed: {result.failed}")
    return result

async def run(target: str, batch_size: int = None, limit: int = None) -> BatchResult:
    await db.init()
    total = BatchResult()
    for store in TARGETS[target]:
        result = await backfill(store, batch_size=batch_size, limit=limit)
        total.processed += result.processed
        total.failed += result.failed
    if len(TARGETS[target]) > 1:
        print(f"\nTotal processed: {total.processed}")
        print(f"Total failed: {total.failed}")
    return total

def main(argv=None):
    parser = argparse.ArgumentParser(description="Backfill quality scores for stored casts")
    parser.add_argument("target", nargs="?", default="all", choices=sorted(TARGETS))
    parser.add_argument("--batch-size", type=int, default=None)
    parser.add_argument("--limit", type=int, default=None)
    args = parser.parse_args(argv)

    try:
        asyncio.run(run(args.target, batch_size=args.batch_size, limit=args.limit))
    except KeyboardInterrupt:
        logger.info("Stopped by user")
    except Exception as e:
        logger.exception(f"Fatal error: {e}")
        sys.exit(1)

if __name__ == "__main__":
    main()
