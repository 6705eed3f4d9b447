from abc import ABC, abstractmethod
from typing import List, Optional
from castquality.models.casts import AnalysisResult, Cast, ScoreRecord

class CastStore(ABC):
    """One storage backend holding casts and their score records."""

    name: str = "store"

    @abstractmethod
    async def get(self, cast_hash: str) -> Optional[ScoreRecord]:
        pass

    @abstractmethod
    async def save_score(self, cast_hash: str, result: AnalysisResult) -> None:
        pass

    @abstractmethod
    async def insert_placeholder(self, cast: Cast) -> None:
        """Store a cast whose original context (curation, thread) is unknown."""
        pass

    @abstractmethod
    async def list_unscored(self, limit: Optional[int] = None) -> List[ScoreRecord]:
        pass
