from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from pathlib import Path
from typing import List, Optional

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file='.env', env_file_encoding='utf-8', extra='ignore')

    # System
    LOG_LEVEL: str = "INFO"
    LOG_TO_FILE: bool = True
    DATA_DIR: Path = Path("./data")
    DATABASE_PATH: Optional[Path] = None

    # External scorer (OpenAI-compatible chat completions)
    DEEPSEEK_API_KEY: Optional[str] = None
    DEEPSEEK_API_URL: str = "https://api.deepseek.com"
    DEEPSEEK_MODEL: str = "deepseek-chat"
    SCORER_TEMPERATURE: float = 0.3
    SCORER_MAX_TOKENS: int = 200
    ADJUSTMENT_MAX_TOKENS: int = 150
    FEEDBACK_MAX_TOKENS: int = 300
    SCORER_TIMEOUT: float = 30.0

    # Content source
    NEYNAR_API_KEY: Optional[str] = None
    NEYNAR_API_URL: str = "https://api.neynar.com"
    NEYNAR_TIMEOUT: float = 10.0

    # Long-form articles
    BLOG_API_URL: str = "http://localhost:3000/api/blog"
    ARTICLE_FETCH_TIMEOUT: float = 15.0

    # Thresholds (product tuning, pending review)
    MIN_CONTENT_LENGTH: int = 10
    DEFAULT_QUALITY_SCORE: int = 50
    SYMBOL_ONLY_CAP: int = 5
    SHORT_TEXT_CAP: int = 20
    SHORT_TEXT_MAX_WORDS: int = 3
    SHORT_TEXT_MAX_CHARS: int = 30
    LOW_EFFORT_PHRASES: List[str] = Field(default_factory=lambda: [
        "gm", "gn", "gm gm", "lol", "lmao", "lfg", "wow", "nice", "ok", "same", "ty", "👀",
    ])
    COMMENTARY_MAX_WORDS: int = 2
    PARENT_QUOTE_SYMBOL_SCORE: int = 5
    PARENT_QUOTE_SHORT_SCORE: int = 10
    QUOTE_BASE_ADJUSTMENT: int = -10
    QUOTE_ADJUSTMENT_MIN: int = -30
    QUOTE_ADJUSTMENT_MAX: int = 10

    # Prompt budget (characters)
    CAST_TEXT_PROMPT_CHARS: int = 2000
    QUOTED_TEXT_PROMPT_CHARS: int = 500
    ARTICLE_PROMPT_CHARS: int = 2000
    COMMENTARY_PROMPT_CHARS: int = 500
    FEEDBACK_EMBED_PROMPT_CHARS: int = 1000

    # Batch
    BATCH_SIZE: int = 5
    BATCH_DELAY_SECONDS: float = 1.0

    @property
    def database_path(self) -> Path:
        return self.DATABASE_PATH or self.DATA_DIR / "casts.db"


settings = Settings()
