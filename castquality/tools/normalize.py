"""
Unwrapping and normalisation of scorer output.

Model output drifts in format: JSON is sometimes fenced in a markdown code
block, scores arrive as strings or out of range, and categories come back in
free text. Everything returned to callers passes through here.
"""
import json
import math
import re
from typing import Any, Dict, Optional

from castquality.models.casts import Category
from castquality.services.errors import ScorerResponseError

_OPENING_FENCE = re.compile(r"^```(?:json)?[ \t]*\n?", re.IGNORECASE)
_CLOSING_FENCE = re.compile(r"\n?```\s*$")
_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")

VALID_CATEGORIES = [c.value for c in Category]


def unwrap_json(content: Optional[str]) -> Dict[str, Any]:
    """Strip an optional markdown fence and parse the JSON object inside."""
    if content is None:
        raise ScorerResponseError("Empty scorer response")

    payload = content.strip()
    if payload.startswith("```"):
        payload = _OPENING_FENCE.sub("", payload, count=1)
        payload = _CLOSING_FENCE.sub("", payload, count=1)

    try:
        data = json.loads(payload)
    except json.JSONDecodeError as e:
        raise ScorerResponseError(f"Scorer response is not JSON: {e}") from e

    if not isinstance(data, dict):
        raise ScorerResponseError(f"Scorer response is not a JSON object: {type(data).__name__}")
    return data


def _to_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        if math.isnan(value):
            return None
        return float(value)
    if value is None:
        return None
    match = _LEADING_INT.match(str(value))
    if not match:
        return None
    return float(match.group(1))


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def coerce_score(value: Any, default: int = 0) -> int:
    """Coerce a scorer-provided score into an integer in [0, 100]."""
    number = _to_number(value)
    if number is None:
        number = float(default)
    number = min(max(number, 0.0), 100.0)
    return round_half_up(number)


def coerce_delta(value: Any, low: int, high: int) -> int:
    """Coerce a signed adjustment; missing or invalid values mean no change."""
    number = _to_number(value)
    if number is None:
        number = 0.0
    return round_half_up(min(max(number, float(low)), float(high)))


def match_category(value: Any) -> Category:
    """Match free-text category output down to the closed category set."""
    if not isinstance(value, str):
        return Category.OTHER
    candidate = re.sub(r"[\s_]+", "-", value.strip().lower())
    if not candidate:
        return Category.OTHER
    if candidate in VALID_CATEGORIES:
        return Category(candidate)
    for name in VALID_CATEGORIES:
        if name in candidate or candidate in name:
            return Category(name)
    return Category.OTHER
