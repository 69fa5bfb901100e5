"""
Command-line scored search.

Usage:
    python -m scored_search --query "python web" --fields Title,Content
    python -m scored_search --query "pyhton" --fields Title,Content --boost Title=2
    python -m scored_search --query '"machine learning"' --fields Content --take 5 --json
    python -m scored_search --query "django" --fields Title --type myapp.models.Post --single
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Dict, List, Optional

from whoosh.index import EmptyIndexError

from .config import SearchConfig, configure_logging
from .errors import ConfigurationError, ParseFailure
from .options import SearchOptions
from .searcher import ScoredSearcher

logger = logging.getLogger(__name__)


def _parse_boost(value: str) -> tuple:
    name, sep, weight = value.partition("=")
    if not sep or not name.strip():
        raise argparse.ArgumentTypeError(f"Boost must look like FIELD=WEIGHT, got '{value}'")
    try:
        return name.strip(), float(weight)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Boost weight must be a number, got '{weight}'")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Scored search over a Whoosh index")
    parser.add_argument(
        "--config",
        default="config.yml",
        help="Path to configuration file (default: %(default)s)",
    )
    parser.add_argument(
        "--index",
        dest="index_dir",
        default=None,
        help="Path to the index directory (overrides search.index_dir)",
    )
    parser.add_argument("--query", required=True, help="Search keywords")
    parser.add_argument(
        "--fields",
        default=None,
        help="Comma-separated fields to search (overrides search.fields)",
    )
    parser.add_argument(
        "--boost",
        action="append",
        type=_parse_boost,
        default=[],
        metavar="FIELD=WEIGHT",
        help="Field boost for multi-field searches (repeatable)",
    )
    parser.add_argument("--type", default=None, help="Only return documents of this type")
    parser.add_argument("--sort-by", default=None, help="Comma-separated secondary sort fields")
    parser.add_argument("--max-hits", type=int, default=None, help="Maximum number of hits to consider")
    parser.add_argument("--skip", type=int, default=None, help="Number of ranked hits to skip")
    parser.add_argument("--take", type=int, default=None, help="Number of hits to return")
    parser.add_argument("--weighting", default=None, help="Scoring model (bm25f or tf_idf)")
    parser.add_argument("--single", action="store_true", help="Only return the best match")
    parser.add_argument("--json", action="store_true", help="Output results as JSON")
    return parser.parse_args(argv)


def _load_config(args: argparse.Namespace) -> SearchConfig:
    config_path = Path(args.config)
    if config_path.exists():
        config = SearchConfig.from_yaml(config_path)
    else:
        config = SearchConfig.from_app_config({})

    if args.index_dir:
        config.index_dir = str(Path(args.index_dir).resolve())
    if args.weighting:
        config.weighting = args.weighting.lower()
    if args.max_hits is not None:
        config.maximum_number_of_hits = args.max_hits
    return config


def _build_options(args: argparse.Namespace, config: SearchConfig) -> SearchOptions:
    boosts: Dict[str, float] = dict(config.boosts)
    boosts.update(dict(args.boost))
    return SearchOptions(
        keywords=args.query,
        fields=args.fields if args.fields else config.fields,
        maximum_number_of_hits=config.maximum_number_of_hits,
        boosts=boosts,
        type=args.type,
        sort_by=args.sort_by,
        skip=args.skip,
        take=args.take,
    )


def _print_document(rank: int, document: Dict, score: Optional[float] = None) -> None:
    title = document.get("Title") or document.get("title") or "(untitled)"
    print(f"{rank}. {title}")
    if score is not None:
        print(f"   Score: {score:.6f}")
    for name, value in document.items():
        if name in ("Title", "title"):
            continue
        text = str(value)
        print(f"   {name}: {text[:80] + '...' if len(text) > 80 else text}")
    print()


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)

    try:
        config = _load_config(args)
        configure_logging(config.logs.log_level, config.logs.log_file)
        options = _build_options(args, config)
        searcher = ScoredSearcher.from_config(config)
    except (ConfigurationError, EmptyIndexError, FileNotFoundError) as e:
        configure_logging()
        logger.error(str(e))
        return 1

    try:
        if args.single:
            document = searcher.scored_search_single(options)
            if args.json:
                print(json.dumps(document, indent=2, default=str))
            elif document is None:
                print("No match")
            else:
                _print_document(1, document)
            return 0

        results = searcher.scored_search(options)

        if args.json:
            print(json.dumps(results.to_dict(), indent=2, default=str))
        else:
            print(f"\n{'=' * 60}")
            print(f"Query: {options.keywords}")
            print(f"Fields: {', '.join(options.fields)}")
            print(f"Results: {len(results)} of {results.total_hits} hits ({results.elapsed} ms)")
            print(f"{'=' * 60}\n")

            start = (options.skip or 0) + 1
            for rank, result in enumerate(results, start=start):
                _print_document(rank, result.document, result.score)

        return 0

    except ParseFailure as e:
        logger.error(f"Search failed: {e}")
        return 1

    finally:
        searcher.close()


if __name__ == "__main__":
    sys.exit(main())
