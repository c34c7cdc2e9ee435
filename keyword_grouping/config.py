"""
Configuration dataclass for keyword similarity grouping runs.

Holds the caller-tunable knobs of one clustering invocation with JSON
serialization support, so a grouping run can be reproduced later.
"""

import json
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Dict, Optional, Union

from keyword_grouping.DEFAULT_CONSTS import (
    DEFAULT_EMBEDDING_MODEL,
    DEFAULT_SIMILARITY_THRESHOLD,
    EMBEDDING_BATCH_DELAY_SECONDS,
    EMBEDDING_BATCH_SIZE,
)


@dataclass
class ClusteringConfig:
    """Configuration for a keyword grouping run.

    Parameters
    ----------
    similarity_threshold : float
        Inclusive cosine similarity bar for group membership, in [0, 1]
    target_article_count : int, optional
        Stop seeding new groups once this many exist (None = no limit)
    embedding_model : str
        Embedding model name used when no model object is supplied
    batch_size : int
        Keywords per embedding request, at most ``EMBEDDING_BATCH_SIZE``
    batch_delay_seconds : float
        Pause between consecutive embedding requests

    Examples
    --------
    >>> config = ClusteringConfig(similarity_threshold=0.8, target_article_count=5)
    >>> config.save("runs/config.json")
    >>> loaded = ClusteringConfig.load("runs/config.json")
    """

    similarity_threshold: float = DEFAULT_SIMILARITY_THRESHOLD
    target_article_count: Optional[int] = None
    embedding_model: str = DEFAULT_EMBEDDING_MODEL
    batch_size: int = EMBEDDING_BATCH_SIZE
    batch_delay_seconds: float = EMBEDDING_BATCH_DELAY_SECONDS

    def __post_init__(self):
        """Validate configuration values."""
        if not 0.0 <= self.similarity_threshold <= 1.0:
            raise ValueError(
                f"similarity_threshold must be in range [0, 1], "
                f"got {self.similarity_threshold}"
            )

        if self.target_article_count is not None and self.target_article_count < 1:
            raise ValueError(
                f"target_article_count must be at least 1, "
                f"got {self.target_article_count}"
            )

        if not 1 <= self.batch_size <= EMBEDDING_BATCH_SIZE:
            raise ValueError(
                f"batch_size must be in range [1, {EMBEDDING_BATCH_SIZE}], "
                f"got {self.batch_size}"
            )

        if self.batch_delay_seconds < 0:
            raise ValueError(
                f"batch_delay_seconds must be non-negative, "
                f"got {self.batch_delay_seconds}"
            )

        if not self.embedding_model:
            raise ValueError("embedding_model cannot be empty")

    def save(self, path: Union[str, Path]) -> None:
        """Save configuration to JSON file.

        Parameters
        ----------
        path : str or Path
            Output path for the config file
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w", encoding="utf-8") as f:
            json.dump(asdict(self), f, indent=2)

    @classmethod
    def load(cls, path: Union[str, Path]) -> "ClusteringConfig":
        """Load configuration from JSON file.

        Parameters
        ----------
        path : str or Path
            Path to a file written by :meth:`save`

        Returns
        -------
        ClusteringConfig
            Loaded configuration object
        """
        path = Path(path)

        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)

        return cls(**data)

    def to_dict(self) -> Dict:
        """Convert configuration to dictionary."""
        return asdict(self)
