"""
KeywordEmbedder class for keyword embedding operations.

This module turns keyword strings into dense vectors through an external
embedding model:
- OpenAI embeddings through LangChain (default: text-embedding-3-small)
- Any LangChain ``Embeddings`` object or sentence-transformers model

Keywords are sent in fixed-size batches, one request at a time, with a short
pause between requests to stay under the provider's rate limit. A failed
batch aborts the whole call; there is no partial result.
"""

import logging
import time
from typing import Any, Callable, Dict, List, Optional

import numpy as np

from keyword_grouping.DEFAULT_CONSTS import (
    DEFAULT_EMBEDDING_MODEL,
    EMBEDDING_BATCH_DELAY_SECONDS,
    EMBEDDING_BATCH_SIZE,
)
from keyword_grouping.exceptions import DimensionMismatch, EmbeddingFailure

LOGGER = logging.getLogger(__name__)


class KeywordEmbedder:
    """
    Class for keyword embedding operations.

    Wraps either a LangChain embeddings model (``embed_documents`` /
    ``embed_query``) or a sentence-transformers model (``encode``) behind one
    batched interface.
    """

    def __init__(
        self,
        embedding_model: Optional[Any] = None,
        model_name: Optional[str] = None,
        batch_size: int = EMBEDDING_BATCH_SIZE,
        batch_delay_seconds: float = EMBEDDING_BATCH_DELAY_SECONDS,
        sleep_fn: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize the keyword embedder.

        Parameters
        ----------
        embedding_model : Optional[Any]
            Pre-loaded embedding model. When None, an OpenAI model is created
            through ``langchain_openai.OpenAIEmbeddings``.
        model_name : Optional[str]
            Name of the embedding model; used to build the default model and
            for logging
        batch_size : int
            Maximum number of keywords per embedding request
        batch_delay_seconds : float
            Pause between consecutive requests
        sleep_fn : Callable[[float], None]
            Function used to pause between requests
        """
        if not 1 <= batch_size <= EMBEDDING_BATCH_SIZE:
            raise ValueError(
                f"batch_size must be in range [1, {EMBEDDING_BATCH_SIZE}], "
                f"got {batch_size}"
            )
        if batch_delay_seconds < 0:
            raise ValueError(
                f"batch_delay_seconds must be non-negative, got {batch_delay_seconds}"
            )

        self.batch_size = batch_size
        self.batch_delay_seconds = batch_delay_seconds
        self._sleep = sleep_fn

        if embedding_model is None:
            model_name = model_name or DEFAULT_EMBEDDING_MODEL
            try:
                from langchain_openai import OpenAIEmbeddings
            except ImportError as exc:
                raise ImportError(
                    "langchain-openai is required for the default embedding model. "
                    "Install it with: pip install langchain-openai"
                ) from exc

            LOGGER.info(f"Loading embedding model: {model_name}")
            embedding_model = OpenAIEmbeddings(model=model_name)

        self.model = embedding_model
        self.model_type = self._detect_model_type(embedding_model)
        self.model_name = model_name or self._detect_model_name(embedding_model)

    @staticmethod
    def _detect_model_type(model: Any) -> str:
        """Return 'langchain' or 'sentence-transformers' for a model object."""
        if hasattr(model, "embed_documents") and hasattr(model, "embed_query"):
            return "langchain"
        if hasattr(model, "encode"):
            return "sentence-transformers"
        raise ValueError(
            f"Unable to detect model type for {type(model).__name__}. "
            "Expected a LangChain Embeddings object or a sentence-transformers model."
        )

    @staticmethod
    def _detect_model_name(model: Any) -> str:
        """Best-effort model name for logging."""
        for attr in ("model", "model_name"):
            value = getattr(model, attr, None)
            if isinstance(value, str):
                return value
        return type(model).__name__

    def _embed_batch(self, batch: List[str]) -> np.ndarray:
        """Embed one batch and check the response shape."""
        try:
            if self.model_type == "langchain":
                vectors = self.model.embed_documents(batch)
            else:
                vectors = self.model.encode(
                    batch,
                    batch_size=len(batch),
                    show_progress_bar=False,
                    convert_to_numpy=True,
                )
        except Exception as e:
            LOGGER.error(f"Embedding request failed for batch of {len(batch)}: {e}")
            raise EmbeddingFailure(
                f"Embedding model {self.model_name} failed for a batch of "
                f"{len(batch)} keywords: {e}"
            ) from e

        if len(vectors) != len(batch):
            raise EmbeddingFailure(
                f"Embedding model returned {len(vectors)} vectors "
                f"for {len(batch)} keywords"
            )

        lengths = {len(vector) for vector in vectors}
        if len(lengths) > 1:
            raise DimensionMismatch(
                f"Embedding model returned vectors of different lengths: {sorted(lengths)}"
            )

        return np.asarray(vectors, dtype=np.float64)

    def create_embeddings(
        self,
        keywords: List[str],
        show_progress: bool = False,
    ) -> Dict[str, np.ndarray]:
        """
        Create embeddings for a list of keywords.

        Parameters
        ----------
        keywords : List[str]
            Keywords to embed; duplicates are embedded once
        show_progress : bool
            Whether to show a progress bar over batches

        Returns
        -------
        Dict[str, np.ndarray]
            Mapping from keyword to embedding vector, in input order

        Raises
        ------
        ValueError
            If the keyword list is empty
        EmbeddingFailure
            If any batch request fails
        DimensionMismatch
            If the model returns vectors of different lengths

        Examples
        --------
        >>> embedder = KeywordEmbedder()
        >>> embeddings = embedder.create_embeddings(["running shoes", "bread baking"])
        >>> len(embeddings)
        2
        """
        if not keywords:
            raise ValueError("Keyword list cannot be empty")

        # Remove duplicates while preserving order
        unique_keywords = list(dict.fromkeys(keywords))

        if len(unique_keywords) < len(keywords):
            LOGGER.warning(
                f"Removed {len(keywords) - len(unique_keywords)} duplicate keywords"
            )

        LOGGER.info(
            f"Generating embeddings for {len(unique_keywords)} keywords "
            f"with {self.model_name}"
        )

        batch_starts = range(0, len(unique_keywords), self.batch_size)
        if show_progress:
            from tqdm import tqdm

            batch_starts = tqdm(batch_starts, desc="Embedding keywords")

        keyword_embeddings: Dict[str, np.ndarray] = {}
        dimension = None

        for start in batch_starts:
            batch = unique_keywords[start : start + self.batch_size]
            vectors = self._embed_batch(batch)

            if dimension is None:
                dimension = vectors.shape[1]
            elif vectors.shape[1] != dimension:
                raise DimensionMismatch(
                    f"Batch starting at {start} has dimension {vectors.shape[1]}, "
                    f"expected {dimension}"
                )

            for keyword, vector in zip(batch, vectors):
                keyword_embeddings[keyword] = vector

            LOGGER.debug(f"Embedded batch {start}-{start + len(batch)}")

            # Rate limiting between requests
            if start + self.batch_size < len(unique_keywords) and self.batch_delay_seconds:
                self._sleep(self.batch_delay_seconds)

        LOGGER.info(
            f"Successfully generated embeddings with dimension {dimension} "
            f"for {len(keyword_embeddings)} keywords"
        )

        return keyword_embeddings

    def embed_keyword(self, keyword: str) -> np.ndarray:
        """
        Create the embedding for a single keyword.

        Parameters
        ----------
        keyword : str
            Keyword to embed

        Returns
        -------
        np.ndarray
            Embedding vector
        """
        if not keyword:
            raise ValueError("Keyword cannot be empty")

        try:
            if self.model_type == "langchain":
                vector = self.model.embed_query(keyword)
            else:
                vector = self.model.encode([keyword], convert_to_numpy=True)[0]
        except Exception as e:
            LOGGER.error(f"Embedding request failed for '{keyword}': {e}")
            raise EmbeddingFailure(
                f"Embedding model {self.model_name} failed for '{keyword}': {e}"
            ) from e

        return np.asarray(vector, dtype=np.float64)
