"""SQLite persistence for keyword similarity groups and keyword embeddings."""

from .sqlite_storage import KeywordGroupStore

__all__ = [
    "KeywordGroupStore",
]
