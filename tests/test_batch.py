import asyncio
from asyncio import sleep as real_sleep

import pytest

from castquality import main as cli
from castquality.models.casts import AnalysisResult, Category
from castquality.workflows import batch
from castquality.workflows.batch import analyze_batch, chunked
from tests.fakes import FakeStore, make_cast


class RecordingPipeline:
    def __init__(self, events, returns_none=(), raises=()):
        self.events = events
        self.returns_none = set(returns_none)
        self.raises = set(raises)
        self.in_flight = 0
        self.max_in_flight = 0

    async def analyze_cast_quality(self, cast_data):
        cast_hash = cast_data.hash
        self.events.append(cast_hash)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        await real_sleep(0)
        self.in_flight -= 1
        if cast_hash in self.raises:
            raise RuntimeError("scorer exploded")
        if cast_hash in self.returns_none:
            return None
        return AnalysisResult(quality_score=40, category=Category.OTHER)


@pytest.fixture
def events(monkeypatch):
    recorded = []

    async def fake_sleep(delay, *args, **kwargs):
        recorded.append(("sleep", delay))
        await real_sleep(0)

    monkeypatch.setattr(batch.asyncio, "sleep", fake_sleep)
    return recorded


def _casts(n):
    return [(f"0x{i}", make_cast(f"0x{i}", f"cast number {i}")) for i in range(n)]


def _collector():
    saved = {}

    async def save(cast_hash, result):
        saved[cast_hash] = result

    return saved, save


def test_chunked() -> None:
    assert [len(c) for c in chunked(list(range(12)), 5)] == [5, 5, 2]
    assert list(chunked([], 5)) == []


def test_chunks_run_in_sequence_with_pauses(settings, events) -> None:
    pipeline = RecordingPipeline(events)
    saved, save = _collector()

    result = asyncio.run(analyze_batch(_casts(12), save, batch_size=5, delay_between_batches=1.0,
                                       quality_pipeline=pipeline, settings=settings))

    hashes = [f"0x{i}" for i in range(12)]
    assert events == hashes[:5] + [("sleep", 1.0)] + hashes[5:10] + [("sleep", 1.0)] + hashes[10:]
    assert pipeline.max_in_flight == 5
    assert result.processed == 12
    assert result.failed == 0
    assert set(saved) == set(hashes)


def test_delay_defaults_to_settings(settings, events) -> None:
    tuned = settings.model_copy(update={"BATCH_DELAY_SECONDS": 2.5, "BATCH_SIZE": 4})
    _, save = _collector()

    asyncio.run(analyze_batch(_casts(9), save, quality_pipeline=RecordingPipeline([]), settings=tuned))

    assert events == [("sleep", 2.5), ("sleep", 2.5)]


def test_single_chunk_has_no_pause(settings, events) -> None:
    _, save = _collector()

    asyncio.run(analyze_batch(_casts(3), save, batch_size=5, quality_pipeline=RecordingPipeline([]),
                              settings=settings))

    assert events == []


def test_failures_are_counted_and_do_not_stop_the_batch(settings, events) -> None:
    pipeline = RecordingPipeline([], returns_none={"0x1", "0x6"}, raises={"0x3"})
    saved = {}

    async def save(cast_hash, result):
        if cast_hash == "0x8":
            raise RuntimeError("database is locked")
        saved[cast_hash] = result

    result = asyncio.run(analyze_batch(_casts(10), save, batch_size=5, quality_pipeline=pipeline,
                                       settings=settings))

    assert result.failed == 4
    assert result.processed == 6
    assert result.total == 10
    assert sorted(saved) == ["0x0", "0x2", "0x4", "0x5", "0x7", "0x9"]


def test_empty_batch(settings, events) -> None:
    _, save = _collector()

    result = asyncio.run(analyze_batch([], save, quality_pipeline=RecordingPipeline([]), settings=settings))

    assert result.total == 0
    assert events == []


def test_rejects_negative_batch_size(settings) -> None:
    _, save = _collector()

    with pytest.raises(ValueError):
        asyncio.run(analyze_batch(_casts(1), save, batch_size=-1, quality_pipeline=RecordingPipeline([]),
                                  settings=settings))


def test_backfill_scores_unscored_records(monkeypatch, events, capsys) -> None:
    store = FakeStore("cast_replies")
    store.add(make_cast("0xa", "first reply"))
    store.add(make_cast("0xb", "second reply"))
    store.add(make_cast("0xc", "already done"), score=70)
    monkeypatch.setattr(batch, "default_pipeline", RecordingPipeline([], returns_none={"0xb"}))

    result = asyncio.run(cli.backfill(store, batch_size=5))

    assert (result.processed, result.failed) == (1, 1)
    assert [h for h, _ in store.saved] == ["0xa"]
    out = capsys.readouterr().out
    assert "Found 2 cast_replies record(s) without quality scores" in out
    assert "Successfully processed: 1" in out


def test_backfill_with_nothing_to_do(capsys) -> None:
    store = FakeStore("curated_casts")

    result = asyncio.run(cli.backfill(store))

    assert result.total == 0
    assert "Found 0 curated_casts record(s)" in capsys.readouterr().out
