"""
Embedding utilities for keyword grouping.

- keyword_embedder: KeywordEmbedder class for batched, rate-limited keyword
  embedding through LangChain (OpenAI) or sentence-transformers models

Recommended usage:
    from keyword_grouping.embeddings import KeywordEmbedder
"""

from .keyword_embedder import KeywordEmbedder

__all__ = [
    "KeywordEmbedder",
]
