#!/usr/bin/env python3
"""Command-line tool for grouping keywords by semantic similarity.

Reads keywords from a text file (one per line) or a CSV column, groups them
and writes the groups to a JSON file and/or a SQLite database.

Example
-------
    keyword-grouping --keywords-file keywords.txt --threshold 0.8 \\
        --output groups.json --db groups.db --scope "example.com:running"
"""

import argparse
import dataclasses
import logging
import sys
from pathlib import Path
from typing import Any, List, Optional

from keyword_grouping.clustering import cluster_keywords_by_similarity, save_groups
from keyword_grouping.config import ClusteringConfig
from keyword_grouping.embeddings import KeywordEmbedder
from keyword_grouping.exceptions import EmbeddingFailure
from keyword_grouping.storage import KeywordGroupStore

LOGGER = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Group keywords that one article can cover together.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument(
        "--keywords-file",
        type=Path,
        required=True,
        help="Text file with one keyword per line, or a CSV file (see --column)",
    )
    parser.add_argument(
        "--column", default="keyword", help="Keyword column when reading a CSV file"
    )
    parser.add_argument(
        "--config", type=Path, default=None, help="ClusteringConfig JSON file"
    )
    parser.add_argument(
        "--threshold", type=float, default=None, help="Similarity threshold override"
    )
    parser.add_argument(
        "--target-article-count",
        type=int,
        default=None,
        help="Stop seeding new groups after this many",
    )
    parser.add_argument("--model", default=None, help="Embedding model override")
    parser.add_argument(
        "--batch-size", type=int, default=None, help="Keywords per embedding request"
    )
    parser.add_argument("--output", type=Path, default=None, help="JSON output path")
    parser.add_argument("--db", type=Path, default=None, help="SQLite database path")
    parser.add_argument("--scope", default=None, help="Scope key used with --db")
    parser.add_argument(
        "--progress", action="store_true", help="Show embedding progress bar"
    )

    args = parser.parse_args(argv)
    if args.db is not None and not args.scope:
        parser.error("--scope is required when --db is given")
    return args


def load_keywords(path: Path, column: str = "keyword") -> List[str]:
    """Read keywords from a text or CSV file, skipping blank entries."""
    if path.suffix.lower() == ".csv":
        import pandas as pd

        df = pd.read_csv(path)
        if column not in df.columns:
            raise ValueError(f"Column '{column}' not found in {path}")
        values = df[column].dropna().astype(str).tolist()
    else:
        with open(path, "r", encoding="utf-8") as f:
            values = f.read().splitlines()

    return [value.strip() for value in values if value.strip()]


def build_config(args: argparse.Namespace) -> ClusteringConfig:
    """Config file values with command-line overrides applied."""
    config = ClusteringConfig.load(args.config) if args.config else ClusteringConfig()

    overrides = {
        "similarity_threshold": args.threshold,
        "target_article_count": args.target_article_count,
        "embedding_model": args.model,
        "batch_size": args.batch_size,
    }
    overrides = {key: value for key, value in overrides.items() if value is not None}

    return dataclasses.replace(config, **overrides)


def build_embedder(
    config: ClusteringConfig, embedding_model: Optional[Any] = None
) -> KeywordEmbedder:
    return KeywordEmbedder(
        embedding_model=embedding_model,
        model_name=config.embedding_model,
        batch_size=config.batch_size,
        batch_delay_seconds=config.batch_delay_seconds,
    )


def main(argv: Optional[List[str]] = None, embedding_model: Optional[Any] = None) -> int:
    logging.basicConfig(
        level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s"
    )
    args = parse_args(argv)
    config = build_config(args)
    keywords = load_keywords(args.keywords_file, args.column)

    LOGGER.info(f"Loaded {len(keywords)} keywords from {args.keywords_file}")

    embedder = build_embedder(config, embedding_model) if len(set(keywords)) > 1 else None

    try:
        groups = cluster_keywords_by_similarity(
            keywords,
            embedder=embedder,
            similarity_threshold=config.similarity_threshold,
            target_article_count=config.target_article_count,
            show_progress=args.progress,
        )
    except EmbeddingFailure as e:
        LOGGER.error(f"Embedding failed, try again later: {e}")
        return 1

    if args.output is not None:
        save_groups(groups, args.output, metadata={"config": config.to_dict()})

    if args.db is not None:
        with KeywordGroupStore(args.db) as store:
            store.store_similarity_groups(args.scope, groups)

    for group in groups:
        print(
            f"[{group.group_id}] {group.primary_keyword} "
            f"(+{len(group.secondary_keywords)}, avg={group.average_similarity})"
        )

    return 0


if __name__ == "__main__":
    sys.exit(main())
