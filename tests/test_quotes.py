import asyncio

import pytest

from castquality.models.casts import AnalysisMode, Category
from castquality.services.errors import ScorerError
from castquality.tools.scoring import COMMENTARY_SYSTEM, QUALITY_SYSTEM
from tests.fakes import FakeContentSource, FakeScorerClient, FakeStore, make_cast, make_pipeline, quote_embed

COMMENTARY = "This misses how fee markets change once blockspace is abundant on every major rollup"


class QuoteWorld:
    def __init__(self, settings, *replies, fail_on_get=False, source_fails=False):
        self.client = FakeScorerClient(*replies)
        self.curated = FakeStore("curated_casts", fail_on_get=fail_on_get)
        self.replies = FakeStore("cast_replies")
        self.content_source = FakeContentSource(fail=source_fails)
        self.pipeline = make_pipeline(settings, self.client, [self.curated, self.replies], self.content_source)

    def analyze(self, cast, mode=AnalysisMode.TOP_LEVEL):
        return asyncio.run(self.pipeline.analyze_cast_quality(cast, mode))


def _quote(text, quoted_hash="0xorig", parent_hash=None):
    return make_cast("0xquote", text, parent_hash=parent_hash, embeds=[quote_embed(quoted_hash)])


def test_bare_quote_inherits_score_minus_base(settings) -> None:
    world = QuoteWorld(settings)
    world.curated.add(make_cast("0xorig", COMMENTARY), 70, Category.ART_CULTURE)

    result = world.analyze(_quote(""))

    assert result.quality_score == 60
    assert result.category is Category.ART_CULTURE
    assert world.client.calls == []


def test_quote_by_cast_id_embed(settings) -> None:
    world = QuoteWorld(settings)
    world.replies.add(make_cast("0xorig", COMMENTARY), 44, Category.PLAYFUL)
    cast = make_cast("0xquote", "", embeds=[{"cast_id": {"fid": 3, "hash": "0xorig"}}])

    result = world.analyze(cast)

    assert result.quality_score == 34
    assert result.category is Category.PLAYFUL
    assert world.curated.lookups == ["0xorig"]
    assert world.replies.lookups == ["0xorig"]


def test_trivial_commentary_keeps_flat_adjustment(settings) -> None:
    world = QuoteWorld(settings)
    world.curated.add(make_cast("0xorig", COMMENTARY), 70)

    assert world.analyze(_quote("so true")).quality_score == 60
    assert world.analyze(_quote("🔥🔥")).quality_score == 60
    assert world.client.calls == []


@pytest.mark.parametrize("delta, expected", [(40, 70), (-90, 30), ("-5", 55), (5, 65), (None, 60)])
def test_commentary_delta_is_clamped(settings, delta, expected) -> None:
    world = QuoteWorld(settings, {"adjustment": delta, "reasoning": "commentary"})
    world.curated.add(make_cast("0xorig", COMMENTARY), 70)

    result = world.analyze(_quote(COMMENTARY))

    assert result.quality_score == expected
    system, prompt, max_tokens = world.client.calls[0]
    assert system == COMMENTARY_SYSTEM
    assert "The base score adjustment is -10" in prompt
    assert f'Additional text: "{COMMENTARY}"' in prompt
    assert max_tokens == settings.ADJUSTMENT_MAX_TOKENS


def test_adjustment_failure_uses_base(settings) -> None:
    world = QuoteWorld(settings, ScorerError("DeepSeek API error: 500", status_code=500))
    world.curated.add(make_cast("0xorig", COMMENTARY), 70)

    assert world.analyze(_quote(COMMENTARY)).quality_score == 60


def test_quote_score_floors_at_zero(settings) -> None:
    world = QuoteWorld(settings)
    world.curated.add(make_cast("0xorig", COMMENTARY), 5)

    assert world.analyze(_quote("")).quality_score == 0


@pytest.mark.parametrize("text, expected", [("", 0), ("🙏", 5), ("so true", 10)])
def test_parent_quote_trivial_commentary(settings, text, expected) -> None:
    world = QuoteWorld(settings)
    world.curated.add(make_cast("0xparent", COMMENTARY), 90, Category.MARKET_NEWS)

    result = world.analyze(_quote(text, quoted_hash="0xparent", parent_hash="0xparent"))

    assert result.quality_score == expected
    assert result.category is Category.MARKET_NEWS
    assert world.client.calls == []


def test_parent_quote_scores_commentary_alone(settings) -> None:
    world = QuoteWorld(settings, {"qualityScore": 55, "reasoning": "adds a point"})
    world.curated.add(make_cast("0xparent", COMMENTARY), 90, Category.MARKET_NEWS)

    result = world.analyze(_quote(COMMENTARY, quoted_hash="0xparent", parent_hash="0xparent"))

    assert result.quality_score == 55
    assert result.category is Category.MARKET_NEWS
    assert "Score ONLY the additional text quality" in world.client.prompts[0]


def test_parent_quote_scorer_failure_uses_default(settings) -> None:
    world = QuoteWorld(settings, "no json here")
    world.curated.add(make_cast("0xparent", COMMENTARY), 90)

    result = world.analyze(_quote(COMMENTARY, quoted_hash="0xparent", parent_hash="0xparent"))

    assert result.quality_score == 10


def test_unscored_quoted_cast_is_analyzed_and_saved(settings) -> None:
    world = QuoteWorld(settings, {"qualityScore": 80, "category": "platform-analysis"})
    world.curated.add(make_cast("0xorig", COMMENTARY))

    result = world.analyze(_quote(""))

    assert result.quality_score == 70
    assert result.category is Category.PLATFORM_ANALYSIS
    assert [(h, r.quality_score) for h, r in world.curated.saved] == [("0xorig", 80)]
    assert world.curated.records["0xorig"].quality_score == 80
    assert world.client.calls[0][0] == QUALITY_SYSTEM


def test_unknown_quoted_cast_is_fetched_and_stored(settings) -> None:
    world = QuoteWorld(settings, {"qualityScore": 80, "category": "creator-economy"})
    world.content_source.casts["0xorig"] = make_cast("0xorig", COMMENTARY)

    result = world.analyze(_quote(""))

    assert result.quality_score == 70
    assert result.category is Category.CREATOR_ECONOMY
    assert world.content_source.calls == ["0xorig"]
    assert [c.hash for c in world.replies.placeholders] == ["0xorig"]
    assert [h for h, _ in world.replies.saved] == ["0xorig"]
    assert world.curated.placeholders == []


def test_quote_chain_resolves_one_level_only(settings) -> None:
    world = QuoteWorld(settings, {"qualityScore": 80, "category": "crypto-critique"})
    middle = make_cast("0xmiddle", COMMENTARY, embeds=[quote_embed("0xroot", "the root take")])
    world.curated.add(middle)

    result = world.analyze(_quote("", quoted_hash="0xmiddle"))

    assert result.quality_score == 70
    assert world.curated.lookups == ["0xmiddle"]
    assert world.replies.lookups == []
    assert world.content_source.calls == []
    # The middle cast was scored as plain content, quoted text included
    assert len(world.client.calls) == 1
    assert "[Quoted cast 1]: the root take" in world.client.prompts[0]


def test_reference_mode_never_resolves(settings) -> None:
    world = QuoteWorld(settings)
    quote = make_cast("0xquote", COMMENTARY, embeds=[quote_embed("0xorig", "quoted words")])

    result = world.analyze(quote, mode=AnalysisMode.RESOLVING_REFERENCE)

    assert result.quality_score == 60
    assert world.curated.lookups == []
    assert world.content_source.calls == []


def test_unresolvable_quote_falls_back_to_plain_scoring(settings) -> None:
    world = QuoteWorld(settings, {"qualityScore": 41, "category": "playful"})

    result = world.analyze(make_cast("0xquote", "", embeds=[quote_embed("0xgone", "something quoted")]))

    assert result.quality_score == 41
    assert world.content_source.calls == ["0xgone"]
    assert world.replies.placeholders == []


def test_store_failure_falls_back_to_plain_scoring(settings) -> None:
    world = QuoteWorld(settings, {"qualityScore": 41, "category": "playful"}, fail_on_get=True)

    result = world.analyze(_quote(COMMENTARY))

    assert result.quality_score == 41
    assert world.client.calls[0][0] == QUALITY_SYSTEM


def test_content_source_failure_falls_back_to_plain_scoring(settings) -> None:
    world = QuoteWorld(settings, {"qualityScore": 41, "category": "playful"}, source_fails=True)

    assert world.analyze(_quote(COMMENTARY)).quality_score == 41


def test_failed_reference_analysis_falls_back(settings) -> None:
    world = QuoteWorld(settings, ScorerError("timeout"), {"qualityScore": 33, "category": "other"})
    world.curated.add(make_cast("0xorig", COMMENTARY))

    result = world.analyze(_quote(COMMENTARY))

    assert result.quality_score == 33
    assert world.curated.saved == []
    assert len(world.client.calls) == 2


def test_parent_quote_non_latin_commentary_is_scored(settings) -> None:
    world = QuoteWorld(settings, {"qualityScore": 62, "reasoning": "adds context"})
    world.curated.add(make_cast("0xparent", COMMENTARY), 90, Category.MARKET_NEWS)

    result = world.analyze(_quote("Это меняет правила игры для независимых авторов",
                                  quoted_hash="0xparent", parent_hash="0xparent"))

    assert result.quality_score == 62
    assert len(world.client.calls) == 1
