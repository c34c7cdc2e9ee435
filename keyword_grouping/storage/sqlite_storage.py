"""SQLite storage for keyword similarity groups and keyword embeddings."""

import json
import logging
import sqlite3
from pathlib import Path
from typing import Dict, List, Optional, Union

import numpy as np

from keyword_grouping.clustering import KeywordGroup
from keyword_grouping.DEFAULT_CONSTS import DEFAULT_GROUP_KEYS

LOGGER = logging.getLogger(__name__)


class KeywordGroupStore:
    """
    Manages the SQLite database that keeps keyword groups per scope.

    A scope is an opaque key (for example ``"<website>:<topic cluster>"``).
    Storing groups for a scope replaces whatever was stored for it before.

    Schema:
    - keyword_similarity_groups: one row per group and scope
    - keyword_embeddings: latest embedding per (scope, keyword)
    """

    def __init__(self, db_path: Union[str, Path]):
        """
        Initialize the store.

        Args:
            db_path: Path to SQLite database file (``":memory:"`` for a
                throwaway database)
        """
        self.db_path = db_path if db_path == ":memory:" else Path(db_path)
        if isinstance(self.db_path, Path):
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.conn = None
        self._init_database()

    def _init_database(self):
        """Initialize database schema if not exists."""
        self.conn = sqlite3.connect(str(self.db_path))
        self.conn.row_factory = sqlite3.Row

        self.conn.execute(
            """
            CREATE TABLE IF NOT EXISTS keyword_similarity_groups (
                row_id INTEGER PRIMARY KEY AUTOINCREMENT,
                scope TEXT NOT NULL,
                group_id INTEGER NOT NULL,
                keywords TEXT NOT NULL,  -- JSON list, primary first
                primary_keyword TEXT NOT NULL,
                secondary_keywords TEXT NOT NULL,  -- JSON list
                average_similarity_score REAL NOT NULL,
                recommended_article_count INTEGER NOT NULL,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                UNIQUE (scope, group_id)
            )
        """
        )

        self.conn.execute(
            """
            CREATE TABLE IF NOT EXISTS keyword_embeddings (
                scope TEXT NOT NULL,
                keyword TEXT NOT NULL,
                embedding TEXT NOT NULL,  -- JSON array of floats
                dimension INTEGER NOT NULL,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                PRIMARY KEY (scope, keyword)
            )
        """
        )

        self.conn.execute(
            """
            CREATE INDEX IF NOT EXISTS idx_groups_primary
            ON keyword_similarity_groups(scope, primary_keyword)
        """
        )

        self.conn.commit()
        LOGGER.info(f"Initialized keyword group database at {self.db_path}")

    @staticmethod
    def _check_scope(scope: str):
        if not scope:
            raise ValueError("scope cannot be empty")

    def store_similarity_groups(self, scope: str, groups: List[KeywordGroup]) -> int:
        """
        Replace all groups stored for a scope.

        Args:
            scope: Scope key
            groups: New groups for the scope

        Returns:
            Number of groups stored
        """
        self._check_scope(scope)
        keys = DEFAULT_GROUP_KEYS

        rows = []
        for group in groups:
            record = group.to_record(keys)
            rows.append(
                (
                    scope,
                    record[keys.group_id],
                    json.dumps(record[keys.keywords]),
                    record[keys.primary_keyword],
                    json.dumps(record[keys.secondary_keywords]),
                    record[keys.average_similarity_score],
                    record[keys.recommended_article_count],
                )
            )

        try:
            self.conn.execute(
                "DELETE FROM keyword_similarity_groups WHERE scope = ?", (scope,)
            )
            self.conn.executemany(
                """
                INSERT INTO keyword_similarity_groups (
                    scope, group_id, keywords, primary_keyword,
                    secondary_keywords, average_similarity_score,
                    recommended_article_count
                ) VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                rows,
            )
            self.conn.commit()
        except sqlite3.Error as e:
            self.conn.rollback()
            LOGGER.error(f"Failed to store similarity groups for {scope}: {e}")
            raise

        LOGGER.info(f"Stored {len(rows)} similarity groups for {scope}")
        return len(rows)

    def get_similarity_groups(self, scope: str) -> List[KeywordGroup]:
        """
        Retrieve the groups stored for a scope.

        Args:
            scope: Scope key

        Returns:
            Groups ordered by group_id (empty if nothing stored)
        """
        cursor = self.conn.execute(
            "SELECT * FROM keyword_similarity_groups WHERE scope = ? ORDER BY group_id",
            (scope,),
        )
        return [self._row_to_group(row) for row in cursor.fetchall()]

    def get_group_by_primary(
        self, scope: str, primary_keyword: str
    ) -> Optional[KeywordGroup]:
        """
        Retrieve the group labelled by a primary keyword.

        Args:
            scope: Scope key
            primary_keyword: Primary keyword of the group

        Returns:
            The group or None
        """
        cursor = self.conn.execute(
            """
            SELECT * FROM keyword_similarity_groups
            WHERE scope = ? AND primary_keyword = ?
            ORDER BY group_id LIMIT 1
            """,
            (scope, primary_keyword),
        )
        row = cursor.fetchone()
        if row is None:
            return None
        return self._row_to_group(row)

    def get_group_record(self, scope: str, group_id: int) -> Optional[Dict]:
        """Full stored record of one group, including persistence-only fields."""
        cursor = self.conn.execute(
            "SELECT * FROM keyword_similarity_groups WHERE scope = ? AND group_id = ?",
            (scope, group_id),
        )
        row = cursor.fetchone()
        if row is None:
            return None

        keys = DEFAULT_GROUP_KEYS
        return {
            "scope": row["scope"],
            keys.group_id: row["group_id"],
            keys.keywords: json.loads(row["keywords"]),
            keys.primary_keyword: row["primary_keyword"],
            keys.secondary_keywords: json.loads(row["secondary_keywords"]),
            keys.average_similarity_score: row["average_similarity_score"],
            keys.recommended_article_count: row["recommended_article_count"],
            "created_at": row["created_at"],
        }

    def list_scopes(self) -> List[str]:
        """All scopes that have groups stored."""
        cursor = self.conn.execute(
            "SELECT DISTINCT scope FROM keyword_similarity_groups ORDER BY scope"
        )
        return [row["scope"] for row in cursor.fetchall()]

    def update_keyword_embeddings(
        self, scope: str, keyword_embeddings: Dict[str, np.ndarray]
    ) -> int:
        """
        Insert or replace embedding vectors for keywords of a scope.

        Args:
            scope: Scope key
            keyword_embeddings: Mapping from keyword to embedding

        Returns:
            Number of keywords written
        """
        self._check_scope(scope)

        rows = [
            (
                scope,
                keyword,
                json.dumps(np.asarray(embedding, dtype=np.float64).tolist()),
                len(embedding),
            )
            for keyword, embedding in keyword_embeddings.items()
        ]

        self.conn.executemany(
            """
            INSERT OR REPLACE INTO keyword_embeddings
            (scope, keyword, embedding, dimension, updated_at)
            VALUES (?, ?, ?, ?, CURRENT_TIMESTAMP)
            """,
            rows,
        )
        self.conn.commit()

        LOGGER.info(f"Updated embeddings for {len(rows)} keywords in {scope}")
        return len(rows)

    def get_keyword_embeddings(self, scope: str) -> Dict[str, np.ndarray]:
        """
        Retrieve stored embeddings for a scope.

        Args:
            scope: Scope key

        Returns:
            Mapping from keyword to embedding vector
        """
        cursor = self.conn.execute(
            "SELECT keyword, embedding FROM keyword_embeddings WHERE scope = ? ORDER BY keyword",
            (scope,),
        )
        return {
            row["keyword"]: np.array(json.loads(row["embedding"]), dtype=np.float64)
            for row in cursor.fetchall()
        }

    @staticmethod
    def _row_to_group(row: sqlite3.Row) -> KeywordGroup:
        """Convert SQLite row to a KeywordGroup."""
        return KeywordGroup(
            group_id=row["group_id"],
            primary_keyword=row["primary_keyword"],
            secondary_keywords=json.loads(row["secondary_keywords"]),
            average_similarity=row["average_similarity_score"],
        )

    def close(self):
        """Close database connection."""
        if self.conn:
            self.conn.close()
            self.conn = None

    def __enter__(self):
        """Enter context manager."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Exit context manager and close connection."""
        self.close()
