"""
Scored search entry points.

ScoredSearcher ties the Query Builder and the Result Assembler together:

    raw keywords -> build -> execute                      (normal path)
    raw keywords -> build fails -> escape -> build -> execute
                                                          (one retry)

Only a query syntax failure triggers the retry, and only once; if the
escaped keywords still cannot be parsed, ParseFailure reaches the caller.
Engine and storage errors are never retried.
"""

import asyncio
import logging
import time
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Optional, Union

from . import syntax
from .assembler import ResultAssembler
from .index import IndexProvider, WhooshIndexProvider
from .options import DEFAULT_MAXIMUM_NUMBER_OF_HITS, SearchOptions
from .query import QueryBuilder
from .results import SearchResultCollection
from .sorting import SortSpec

logger = logging.getLogger(__name__)


class ScoredSearcher:
    """
    Scored, paginated search over one index.

    Each call opens its own snapshot of the index, so a single searcher can be
    shared by any number of threads. The provider and schema are set once
    here and never modified.
    """

    def __init__(self, provider: IndexProvider, schema=None):
        """
        Args:
            provider: Opens index snapshots (see WhooshIndexProvider)
            schema: Schema whose analyzers are used for query parsing
                (defaults to the index schema)
        """
        self.provider = provider
        self.schema = schema if schema is not None else provider.schema
        self.builder = QueryBuilder(self.schema)
        self.assembler = ResultAssembler(provider)

    @classmethod
    def open(
        cls,
        index_dir: Union[str, Path],
        indexname: Optional[str] = None,
        weighting=None,
        schema=None,
    ) -> "ScoredSearcher":
        provider = WhooshIndexProvider.from_directory(index_dir, indexname=indexname, weighting=weighting)
        return cls(provider, schema=schema)

    @classmethod
    def from_config(cls, config) -> "ScoredSearcher":
        """Create a searcher from a SearchConfig."""
        return cls.open(config.index_dir, indexname=config.indexname, weighting=config.weighting)

    def close(self) -> None:
        index = getattr(self.provider, "index", None)
        if index is not None:
            index.close()

    def _search(self, options: SearchOptions) -> SearchResultCollection:
        outcome = self.builder.build(options)

        if not outcome.ok:
            logger.warning(f"Query parse failed: {outcome.error}, using escaped query")
            outcome = self.builder.build(options, syntax.escape(options.keywords))

        return self.assembler.execute(options, outcome.unwrap(), SortSpec.from_options(options))

    def scored_search(
        self,
        options: Union[SearchOptions, str],
        fields: Union[str, Iterable[str], None] = None,
        maximum_number_of_hits: int = DEFAULT_MAXIMUM_NUMBER_OF_HITS,
        boosts: Optional[Mapping[str, float]] = None,
        type: Any = None,
        sort_by: Union[str, Iterable[str], None] = None,
        skip: Optional[int] = None,
        take: Optional[int] = None,
    ) -> SearchResultCollection:
        """
        Search by relevance.

        Either pass a SearchOptions instance, or the keywords followed by the
        remaining option values (fields and sort_by may be comma-separated
        strings).

        Returns:
            SearchResultCollection with elapsed set in milliseconds

        Raises:
            ConfigurationError: invalid options
            ParseFailure: keywords unparseable even after escaping
        """
        start = time.perf_counter()

        if not isinstance(options, SearchOptions):
            options = SearchOptions(
                options, fields, maximum_number_of_hits, boosts, type, sort_by, skip, take
            )

        results = self._search(options)
        results.elapsed = int((time.perf_counter() - start) * 1000)

        logger.debug(
            f"Search {options.keywords!r} returned {len(results)} of {results.total_hits} hits "
            f"in {results.elapsed} ms"
        )
        return results

    def scored_search_single(self, options: SearchOptions) -> Optional[Dict[str, Any]]:
        """Return the stored fields of the best match, or None if nothing matched."""
        results = self.scored_search(replace(options, maximum_number_of_hits=1))
        first = results.first()
        return first.document if first is not None else None

    async def scored_search_async(self, options: Union[SearchOptions, str], **kwargs) -> SearchResultCollection:
        """Run scored_search on a worker thread."""
        return await asyncio.to_thread(self.scored_search, options, **kwargs)
