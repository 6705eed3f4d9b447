import aiosqlite
import json
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Tuple
from castquality.config import settings
from castquality.models.casts import AnalysisResult, Cast, ScoreRecord
from castquality.services.base_store import CastStore
from castquality.services.logger import logger
from castquality.tools.normalize import match_category

PARENT_CAST_PLACEHOLDER_HASH = "0x0000000000000000000000000000000000000000"

INIT_SQL = """
CREATE TABLE IF NOT EXISTS curated_casts (
    cast_hash TEXT PRIMARY KEY,
    cast_data JSON NOT NULL,
    cast_text TEXT,
    author_fid INTEGER,
    quality_score INTEGER,
    category TEXT,
    quality_analyzed_at TIMESTAMP,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS cast_replies (
    reply_cast_hash TEXT PRIMARY KEY,
    curated_cast_hash TEXT NOT NULL,
    parent_cast_hash TEXT,
    root_cast_hash TEXT,
    reply_depth INTEGER DEFAULT 0,
    is_quote_cast BOOLEAN DEFAULT 0,
    quoted_cast_hash TEXT,
    cast_text TEXT,
    author_fid INTEGER,
    cast_data JSON NOT NULL,
    quality_score INTEGER,
    category TEXT,
    quality_analyzed_at TIMESTAMP,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE INDEX IF NOT EXISTS curated_casts_quality_category_idx ON curated_casts (quality_score, category);
CREATE INDEX IF NOT EXISTS cast_replies_quality_category_idx ON cast_replies (quality_score, category);
"""


def _utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


class Database:
    def __init__(self, db_path: Optional[Path] = None):
        self.db_path = db_path or settings.database_path

    async def init(self):
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        async with aiosqlite.connect(self.db_path) as db:
            await db.executescript(INIT_SQL)
            await db.commit()
        logger.info(f"Database initialized at {self.db_path}")

    def get_connection(self):
        return aiosqlite.connect(self.db_path)


class CastTable(CastStore):
    """Adapts one SQLite table to the CastStore interface."""

    table: str = ""
    key_column: str = ""

    def __init__(self, database: Database):
        self.database = database

    @property
    def name(self) -> str:
        return self.table

    def _to_record(self, row) -> ScoreRecord:
        analyzed_at = row["quality_analyzed_at"]
        return ScoreRecord(
            cast_hash=row[self.key_column],
            quality_score=row["quality_score"],
            category=match_category(row["category"]),
            analyzed_at=datetime.fromisoformat(analyzed_at) if analyzed_at else None,
            cast=Cast.from_data(json.loads(row["cast_data"]) if row["cast_data"] else {}),
        )

    async def get(self, cast_hash: str) -> Optional[ScoreRecord]:
        async with self.database.get_connection() as conn:
            conn.row_factory = aiosqlite.Row
            cursor = await conn.execute(
                f"SELECT * FROM {self.table} WHERE {self.key_column} = ? LIMIT 1", (cast_hash,)
            )
            row = await cursor.fetchone()
        return self._to_record(row) if row else None

    async def save_score(self, cast_hash: str, result: AnalysisResult) -> None:
        async with self.database.get_connection() as conn:
            await conn.execute(
                f"""
                UPDATE {self.table}
                SET quality_score = ?, category = ?, quality_analyzed_at = ?
                WHERE {self.key_column} = ?
                """,
                (result.quality_score, result.category.value, _utcnow(), cast_hash)
            )
            await conn.commit()

    async def list_unscored(self, limit: Optional[int] = None) -> List[ScoreRecord]:
        sql = f"SELECT * FROM {self.table} WHERE quality_score IS NULL ORDER BY created_at"
        params: Tuple = ()
        if limit is not None:
            sql += " LIMIT ?"
            params = (limit,)
        async with self.database.get_connection() as conn:
            conn.row_factory = aiosqlite.Row
            cursor = await conn.execute(sql, params)
            rows = await cursor.fetchall()
        return [self._to_record(row) for row in rows]


class CuratedCastTable(CastTable):
    table = "curated_casts"
    key_column = "cast_hash"

    async def insert_placeholder(self, cast: Cast) -> None:
        await self.save_cast(cast)

    async def save_cast(self, cast: Cast) -> None:
        async with self.database.get_connection() as conn:
            await conn.execute(
                """
                INSERT INTO curated_casts (cast_hash, cast_data, cast_text, author_fid)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(cast_hash) DO UPDATE SET cast_data = excluded.cast_data
                """,
                (cast.hash, json.dumps(cast.to_data()), cast.text, cast.author_fid)
            )
            await conn.commit()


class CastReplyTable(CastTable):
    table = "cast_replies"
    key_column = "reply_cast_hash"

    async def insert_placeholder(self, cast: Cast) -> None:
        await self.save_reply(
            cast,
            curated_cast_hash=PARENT_CAST_PLACEHOLDER_HASH,
            root_cast_hash=PARENT_CAST_PLACEHOLDER_HASH,
            reply_depth=0,
            track_quote=False,
        )

    async def save_reply(self, cast: Cast, curated_cast_hash: str, root_cast_hash: Optional[str] = None,
                         reply_depth: int = 0, track_quote: bool = True) -> None:
        # Placeholders are stored outside any thread, so their quote linkage is not recorded
        quoted = cast.quoted_cast_hashes if track_quote else []
        async with self.database.get_connection() as conn:
            await conn.execute(
                """
                INSERT INTO cast_replies (
                    reply_cast_hash, curated_cast_hash, parent_cast_hash, root_cast_hash, reply_depth,
                    is_quote_cast, quoted_cast_hash, cast_text, author_fid, cast_data
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(reply_cast_hash) DO UPDATE SET cast_data = excluded.cast_data
                """,
                (
                    cast.hash, curated_cast_hash, cast.parent_hash, root_cast_hash, reply_depth,
                    bool(quoted), quoted[0] if quoted else None, cast.text, cast.author_fid,
                    json.dumps(cast.to_data()),
                )
            )
            await conn.commit()


class PostStore:
    """
    Priority-ordered list of storage backends.

    Lookups walk the backends in order; casts never seen before are written to
    the placeholder backend.
    """

    def __init__(self, backends: List[CastStore], placeholder_backend: Optional[CastStore] = None):
        if not backends:
            raise ValueError("PostStore needs at least one backend")
        self.backends = list(backends)
        self.placeholder_backend = placeholder_backend or self.backends[-1]

    async def find(self, cast_hash: str) -> Optional[Tuple[CastStore, ScoreRecord]]:
        for backend in self.backends:
            record = await backend.get(cast_hash)
            if record is not None:
                return backend, record
        return None


db = Database()
curated_casts = CuratedCastTable(db)
cast_replies = CastReplyTable(db)
post_store = PostStore([curated_casts, cast_replies], placeholder_backend=cast_replies)
