from typing import List, Optional
from castquality.config import Settings, settings as default_settings
from castquality.models.casts import AnalysisResult
from castquality.services.llm import ScorerClient, scorer_client as default_scorer_client
from castquality.services.logger import logger
from castquality.tools.extractor import ExtractedContent
from castquality.tools.normalize import coerce_delta, coerce_score, match_category, unwrap_json, VALID_CATEGORIES

QUALITY_SYSTEM = (
    "You are an expert at analyzing social media content quality and categorizing topics. "
    "Always respond with valid JSON only."
)
COMMENTARY_SYSTEM = (
    "You are an expert at analyzing social media commentary quality. Always respond with valid JSON only."
)
FEEDBACK_SYSTEM = (
    "You are an expert at analyzing social media content quality and re-evaluating scores based on "
    "curator feedback. Always respond with valid JSON only."
)

CATEGORY_DESCRIPTIONS = """- crypto-critique: Deep analysis of crypto systems, incentives, token dynamics, ecosystem behaviour, power laws
- platform-analysis: Farcaster/Base/platform governance, UX critiques, design philosophy, ecosystem dynamics
- creator-economy: Creator tokens, artist economics, monetisation models, audience dynamics, brand psychology
- art-culture: Art philosophy, crypto-art exploration, artistic devotion, aesthetic commentary, cultural meaning
- ai-philosophy: AI's impact on creation, society, thinking, productivity; reflections on abundance and inner/outer work
- community-culture: Scenius, scene dynamics, digital/physical community strategy, social tech, cultural patterns
- life-reflection: Deep human insight: life stages, clarity, purpose, meaning, long-term reflection, inner transformation
- market-news: Announcements, event-recaps, links, news highlights, content recovery, lightweight informational posts
- playful: Humour, meme-y content, lists, quips, light takes
- other: Anything that doesn't fit the above categories"""

SCORE_GUIDANCE = """   - Extremely low-effort content (single emoji, "gm", "lol", "👀", or similar) should be scored between 0 and 5
   - Very short acknowledgements that add only a tiny bit of signal (e.g. "that's fair", "ok true") should typically be scored between 5 and 20"""

IMAGE_ONLY_GUIDANCE = (
    "   - IMPORTANT: Image-only casts (no text, only images) should typically be scored between 5 and 30, "
    "unless the image is clearly high-effort original art, meaningful visual commentary, or substantial "
    "visual content. Most image-only posts without context should score 5-20.\n"
)


class QualityScorer:
    """Builds the scoring prompts and turns the model's answers into numbers."""

    def __init__(self, client: Optional[ScorerClient] = None, settings: Settings = default_settings):
        self.client = client or default_scorer_client
        self.settings = settings

    @property
    def is_configured(self) -> bool:
        return self.client.is_configured

    def _commentary(self, text: str) -> str:
        limit = self.settings.COMMENTARY_PROMPT_CHARS
        text = text.strip()
        return text[:limit] + ("..." if len(text) > limit else "")

    def get_quality_prompt(self, content: str, is_image_only: bool = False) -> str:
        return f"""Analyze this Farcaster cast and provide:
1. A quality score from 0-100 based on depth, clarity, and value
{SCORE_GUIDANCE}
{IMAGE_ONLY_GUIDANCE if is_image_only else ''}   - Reserve scores above 60 for posts with substantial thought, argument, reflection, or original perspective
2. A category from this list: {', '.join(VALID_CATEGORIES)}

Category descriptions:
{CATEGORY_DESCRIPTIONS}

{content}

Respond in JSON format:
{{
  "qualityScore": <number 0-100>,
  "category": "<one of the categories above>",
  "reasoning": "<brief explanation>"
}}"""

    def get_parent_quote_prompt(self, text: str) -> str:
        return f"""Analyze this additional text from a quote cast where someone is quoting their parent cast and adding commentary. Score ONLY the additional text quality (0-100), ignoring the quoted content.

Context: This is additional commentary added when quoting a parent cast. Only the additional text contributes value here.

Evaluate:
1. Does this text add value, insight, or thoughtful commentary? (score 40-100)
2. Is this text neutral - just acknowledging, agreeing, or minimal commentary? (score 10-30)
3. Is this text low-effort, spam, or harmful? (score 0-10)

Additional text: "{self._commentary(text)}"

Respond in JSON format:
{{
  "qualityScore": <number 0-100>,
  "reasoning": "<brief explanation>"
}}"""

    def get_adjustment_prompt(self, text: str) -> str:
        base = self.settings.QUOTE_BASE_ADJUSTMENT
        return f"""Analyze this additional text from a quote cast (someone quoting another cast and adding their own commentary). Determine how this additional text impacts the overall quality:

Context: This is additional commentary added to a quoted cast. The base score adjustment is {base} from the original cast.

Evaluate:
1. Does this text add value, insight, or thoughtful commentary? (positive adjustment: -5 to 0, or even +5 for exceptional commentary)
2. Is this text neutral - just acknowledging, agreeing, or minimal commentary? (keep at {base})
3. Does this text negatively impact the reader's experience - spam, trolling, low-effort, or harmful content? (negative adjustment: -15 to -30)

Additional text: "{self._commentary(text)}"

Respond in JSON format:
{{
  "adjustment": <number representing change from base {base}, e.g., -5 means final adjustment is {base - 5}, +5 means final adjustment is {base + 5}>,
  "reasoning": "<brief explanation>"
}}"""

    def get_feedback_prompt(self, cast_text: str, embedded_cast_texts: List[str], links: List[str],
                            curator_feedback: str, current_quality_score: int) -> str:
        s = self.settings
        if cast_text.strip():
            text_limit = s.CAST_TEXT_PROMPT_CHARS
            cast_section = f"Cast Text:\n{cast_text[:text_limit]}{'...' if len(cast_text) > text_limit else ''}"
        else:
            cast_section = "Cast Text: (No text content - cast may contain only embedded casts or links)"

        embedded = ""
        if embedded_cast_texts:
            limit = s.FEEDBACK_EMBED_PROMPT_CHARS
            embedded = "\n\nEmbedded Casts:\n" + "".join(
                f"\n--- Embedded Cast {i} ---\n{text[:limit]}{'...' if len(text) > limit else ''}\n"
                for i, text in enumerate(embedded_cast_texts, 1)
            )

        links_section = ""
        if links:
            links_section = "\n\nLinks:\n" + "".join(f"{i}. {url}\n" for i, url in enumerate(links, 1))

        return f"""You are re-evaluating a cast's quality score based on curator feedback.

Current Quality Score: {current_quality_score}/100

Curator Feedback:
{curator_feedback}

{cast_section}{embedded}{links_section}

Please re-analyze the quality considering the curator's feedback. The curator has already curated this cast and is providing specific feedback about why the quality score should change.

Provide:
1. A new quality score from 0-100 based on the curator's feedback and the full context
{SCORE_GUIDANCE}
   - Reserve scores above 60 for posts with substantial thought, argument, reflection, or original perspective
2. A category from this list: {', '.join(VALID_CATEGORIES)}
3. Brief reasoning for the new score

Respond in JSON format:
{{
  "qualityScore": <number 0-100>,
  "category": "<one of the categories above>",
  "reasoning": "<brief explanation of the new score considering curator feedback>"
}}"""

    def _to_result(self, data: dict) -> AnalysisResult:
        reasoning = data.get("reasoning")
        return AnalysisResult(
            quality_score=coerce_score(data.get("qualityScore"), default=0),
            category=match_category(data.get("category")),
            reasoning=str(reasoning) if reasoning is not None else None,
        )

    async def score_content(self, content: ExtractedContent) -> AnalysisResult:
        """Full rubric: score and category. Raises ScorerError on any failure."""
        prompt = self.get_quality_prompt(content.compose(self.settings), content.is_image_only)
        raw = await self.client.complete(QUALITY_SYSTEM, prompt, self.settings.SCORER_MAX_TOKENS)
        return self._to_result(unwrap_json(raw))

    async def score_parent_quote_text(self, text: str) -> int:
        prompt = self.get_parent_quote_prompt(text)
        raw = await self.client.complete(COMMENTARY_SYSTEM, prompt, self.settings.ADJUSTMENT_MAX_TOKENS)
        data = unwrap_json(raw)
        return coerce_score(data.get("qualityScore"), default=self.settings.PARENT_QUOTE_SHORT_SCORE)

    async def score_commentary_delta(self, text: str) -> int:
        """Signed change from the base quote adjustment, clamped to the configured range."""
        prompt = self.get_adjustment_prompt(text)
        raw = await self.client.complete(COMMENTARY_SYSTEM, prompt, self.settings.ADJUSTMENT_MAX_TOKENS)
        data = unwrap_json(raw)
        return coerce_delta(
            data.get("adjustment"),
            self.settings.QUOTE_ADJUSTMENT_MIN,
            self.settings.QUOTE_ADJUSTMENT_MAX,
        )

    async def rescore_with_feedback(self, cast_text: str, embedded_cast_texts: List[str], links: List[str],
                                    curator_feedback: str, current_quality_score: int) -> AnalysisResult:
        prompt = self.get_feedback_prompt(cast_text, embedded_cast_texts, links, curator_feedback, current_quality_score)
        raw = await self.client.complete(FEEDBACK_SYSTEM, prompt, self.settings.FEEDBACK_MAX_TOKENS)
        result = self._to_result(unwrap_json(raw))
        logger.info(
            f"Quality re-analysis completed: score={result.quality_score}, "
            f"category={result.category.value}, previous={current_quality_score}"
        )
        return result
