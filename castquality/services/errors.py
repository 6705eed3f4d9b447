"""Exception types raised at the integration boundaries of the pipeline."""

from typing import Optional


class QualityAnalysisError(Exception):
    """Base error for quality analysis"""


class ScorerNotConfiguredError(QualityAnalysisError):
    def __init__(self, message: str = "DEEPSEEK_API_KEY not configured"):
        super().__init__(message)


class ScorerError(QualityAnalysisError):
    """The external scorer could not produce a usable answer."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class ScorerResponseError(ScorerError):
    """The scorer answered, but not with a JSON object."""


class ContentSourceError(QualityAnalysisError):
    def __init__(self, message: str, cast_hash: Optional[str] = None):
        self.cast_hash = cast_hash
        super().__init__(message)
