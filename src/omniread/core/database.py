"""
SQLite storage for processed articles and the reading history.

- articles: full records so a history entry can be reopened later
- history: short summaries, most recent first, capped at history.limit
"""

import sqlite3
import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional

from .models import ArticleData, HistoryItem
from .paths import resolve_data_file

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 20

_ARTICLE_COLUMNS = (
    'id', 'url', 'original_title', 'translated_title', 'summary', 'content',
    'language', 'original_language', 'reading_time', 'timestamp',
)


class DatabaseManager:
    """Owns the article/history database file."""

    def __init__(self, config: Dict[str, Any]):
        """Resolve the database path from config and ensure the schema exists."""
        self.config = config
        self.db_path = str(resolve_data_file(config['database']['path'], ensure_parent=True))
        limit = (config.get('history') or {}).get('limit', DEFAULT_HISTORY_LIMIT)
        self.history_limit = max(1, int(limit))
        self._init_db()

    def _init_db(self):
        with self.get_connection(row_factory=False) as conn:
            cursor = conn.cursor()
            cursor.execute('''
                CREATE TABLE IF NOT EXISTS articles (
                    id TEXT PRIMARY KEY,
                    url TEXT NOT NULL,
                    original_title TEXT NOT NULL,
                    translated_title TEXT NOT NULL,
                    summary TEXT NOT NULL,
                    content TEXT NOT NULL,
                    language TEXT NOT NULL,
                    original_language TEXT,
                    reading_time REAL,
                    timestamp INTEGER NOT NULL,
                    audio_path TEXT
                )
            ''')
            cursor.execute('''
                CREATE TABLE IF NOT EXISTS history (
                    seq INTEGER PRIMARY KEY AUTOINCREMENT,
                    id TEXT NOT NULL UNIQUE,
                    title TEXT NOT NULL,
                    summary TEXT,
                    timestamp INTEGER NOT NULL
                )
            ''')

    @contextmanager
    def get_connection(self, row_factory: bool = True):
        """Context manager for database connections with automatic commit/rollback."""
        conn = sqlite3.connect(self.db_path)
        if row_factory:
            conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def save_article(self, article: ArticleData) -> None:
        """Insert or replace the full article record."""
        values = [getattr(article, col) for col in _ARTICLE_COLUMNS]
        placeholders = ', '.join('?' for _ in _ARTICLE_COLUMNS)
        with self.get_connection() as conn:
            conn.execute(
                f"INSERT OR REPLACE INTO articles ({', '.join(_ARTICLE_COLUMNS)}) VALUES ({placeholders})",
                values,
            )
        logger.debug("Saved article %s", article.id[:8])

    def get_article(self, article_id: str) -> Optional[ArticleData]:
        """Return the stored article, accepting a unique id prefix."""
        if not article_id:
            return None
        with self.get_connection() as conn:
            rows = conn.execute(
                "SELECT * FROM articles WHERE substr(id, 1, ?) = ? ORDER BY timestamp DESC LIMIT 2",
                (len(article_id), article_id),
            ).fetchall()
        exact = [row for row in rows if row['id'] == article_id]
        if exact:
            rows = exact
        if not rows:
            return None
        if len(rows) > 1:
            raise ValueError(f"Article id prefix '{article_id}' is ambiguous")
        return ArticleData.from_dict(dict(rows[0]))

    def get_audio_path(self, article_id: str) -> Optional[str]:
        with self.get_connection() as conn:
            row = conn.execute("SELECT audio_path FROM articles WHERE id = ?", (article_id,)).fetchone()
        return row['audio_path'] if row else None

    def set_audio_path(self, article_id: str, path: Optional[str]) -> None:
        with self.get_connection() as conn:
            conn.execute("UPDATE articles SET audio_path = ? WHERE id = ?", (path, article_id))

    def add_history(self, item: HistoryItem) -> List[HistoryItem]:
        """Put *item* at the front of the history and trim to the limit."""
        with self.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("DELETE FROM history WHERE id = ?", (item.id,))
            cursor.execute(
                "INSERT INTO history (id, title, summary, timestamp) VALUES (?, ?, ?, ?)",
                (item.id, item.title, item.summary, item.timestamp),
            )
            cursor.execute(
                """
                DELETE FROM history
                WHERE seq NOT IN (SELECT seq FROM history ORDER BY seq DESC LIMIT ?)
                """,
                (self.history_limit,),
            )
            if cursor.rowcount:
                logger.debug("Trimmed %d old history entries", cursor.rowcount)
        return self.get_history()

    def get_history(self) -> List[HistoryItem]:
        """Return history entries, most recent first."""
        with self.get_connection() as conn:
            rows = conn.execute(
                "SELECT id, title, summary, timestamp FROM history ORDER BY seq DESC LIMIT ?",
                (self.history_limit,),
            ).fetchall()
        return [HistoryItem(row['id'], row['title'], row['summary'] or '', row['timestamp']) for row in rows]

    def iter_articles(self) -> Iterator[ArticleData]:
        with self.get_connection() as conn:
            for row in conn.execute("SELECT * FROM articles ORDER BY timestamp DESC"):
                yield ArticleData.from_dict(dict(row))

    def clear_history(self) -> List[str]:
        """Remove history and stored articles; return audio paths that were recorded."""
        with self.get_connection() as conn:
            audio_paths = [
                row['audio_path']
                for row in conn.execute("SELECT audio_path FROM articles WHERE audio_path IS NOT NULL")
            ]
            conn.execute("DELETE FROM history")
            conn.execute("DELETE FROM articles")
        logger.info("Cleared history database %s", self.db_path)
        return audio_paths

    def close_all_connections(self):
        """Connections are opened per operation; nothing to close."""
        pass


__all__ = ['DatabaseManager', 'DEFAULT_HISTORY_LIMIT']
