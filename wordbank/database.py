"""
SQLite storage for dictionary entries, one row per word.

Single statements run in autocommit mode; ``bulk_insert`` and
``delete_not_in`` wrap their statements in one transaction and roll it back
completely on any failure.
"""

import json
import logging
import sqlite3
from pathlib import Path
from typing import Iterable, List, Optional

from .models import CandidateRecord, StorageError, normalize_word

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS words (
    word TEXT PRIMARY KEY,
    definition TEXT NOT NULL,
    synonyms TEXT,
    antonyms TEXT,
    example_sentence TEXT,
    source TEXT,
    category TEXT,
    added_at TEXT DEFAULT CURRENT_TIMESTAMP
)
"""

INSERT_SQL = (
    "INSERT OR IGNORE INTO words "
    "(word, definition, synonyms, antonyms, example_sentence, source, category) "
    "VALUES (?, ?, ?, ?, ?, ?, ?)"
)


def _row_values(word: str, record: CandidateRecord) -> tuple:
    return (
        normalize_word(word),
        record.definition,
        json.dumps(list(record.synonyms), ensure_ascii=False),
        json.dumps(list(record.antonyms), ensure_ascii=False),
        record.example_sentence,
        record.source_tag,
        record.category,
    )


def _decode_list(value: Optional[str]) -> tuple:
    if not value:
        return ()
    try:
        data = json.loads(value)
    except ValueError:
        return ()
    return tuple(data) if isinstance(data, list) else ()


class WordDatabase:
    def __init__(self, db_path: str = './database.sqlite'):
        self.db_path = db_path
        self._conn: Optional[sqlite3.Connection] = None

    def __enter__(self) -> "WordDatabase":
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    def open(self) -> None:
        """Open the connection and create the schema if needed."""
        if self._conn is not None:
            return
        try:
            if self.db_path != ':memory:':
                Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(self.db_path, isolation_level=None)
            self._conn.execute(SCHEMA)
        except (sqlite3.Error, OSError) as e:
            self._conn = None
            logger.error(f"Failed to initialize database at {self.db_path}: {e}")
            raise StorageError(f"Failed to initialize database: {e}") from e
        logger.info(f"Database connection opened: {self.db_path}")

    initialize = open

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None
            logger.info("Database connection closed")

    def _require(self) -> sqlite3.Connection:
        if self._conn is None:
            raise StorageError("Database connection is not open")
        return self._conn

    def exists(self, word: str) -> bool:
        conn = self._require()
        try:
            row = conn.execute("SELECT 1 FROM words WHERE word = ?", (normalize_word(word),)).fetchone()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to look up {word!r}: {e}") from e
        return row is not None

    def insert(self, word: str, record: CandidateRecord) -> bool:
        """Insert one entry; returns False (without raising) if the word is already stored."""
        conn = self._require()
        try:
            cursor = conn.execute(INSERT_SQL, _row_values(word, record))
        except sqlite3.Error as e:
            logger.error(f"Failed to insert {word!r}: {e}")
            raise StorageError(f"Failed to insert {word!r}: {e}") from e
        inserted = cursor.rowcount > 0
        if inserted:
            logger.debug(f"Inserted {word!r}")
        else:
            logger.debug(f"{word!r} already stored")
        return inserted

    def bulk_insert(self, records: Iterable[CandidateRecord]) -> int:
        """Insert many entries in a single all-or-nothing transaction."""
        conn = self._require()
        inserted = 0
        try:
            conn.execute("BEGIN")
            for record in records:
                cursor = conn.execute(INSERT_SQL, _row_values(record.word, record))
                if cursor.rowcount > 0:
                    inserted += 1
            conn.execute("COMMIT")
        except Exception as e:
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            logger.error(f"Bulk insert failed and was rolled back: {e}")
            raise StorageError(f"Bulk insert failed: {e}") from e
        logger.info(f"Bulk inserted {inserted} words")
        return inserted

    def count(self) -> int:
        conn = self._require()
        try:
            return conn.execute("SELECT COUNT(*) FROM words").fetchone()[0]
        except sqlite3.Error as e:
            raise StorageError(f"Failed to count words: {e}") from e

    def delete_not_in(self, allowed_categories: Iterable[str]) -> int:
        """Delete entries whose category is missing or outside the allow-list."""
        allowed = {c.strip().lower() for c in allowed_categories}
        conn = self._require()
        try:
            rows = conn.execute("SELECT word, category FROM words").fetchall()
            doomed = [(word,) for word, category in rows
                      if not category or category.strip().lower() not in allowed]
            if not doomed:
                return 0
            conn.execute("BEGIN")
            conn.executemany("DELETE FROM words WHERE word = ?", doomed)
            conn.execute("COMMIT")
        except Exception as e:
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            raise StorageError(f"Failed to delete disallowed categories: {e}") from e
        logger.info(f"Deleted {len(doomed)} words outside the allowed categories")
        return len(doomed)

    def all_entries(self) -> List[CandidateRecord]:
        conn = self._require()
        try:
            rows = conn.execute(
                "SELECT word, definition, synonyms, antonyms, example_sentence, source, category "
                "FROM words ORDER BY word"
            ).fetchall()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to read words: {e}") from e
        return [
            CandidateRecord(
                word=word,
                definition=definition,
                synonyms=_decode_list(synonyms),
                antonyms=_decode_list(antonyms),
                example_sentence=example,
                source_tag=source or 'Unknown',
                category=category,
            )
            for word, definition, synonyms, antonyms, example, source, category in rows
        ]
