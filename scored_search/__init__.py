"""
Scored, paginated keyword search over a Whoosh index.

This package provides:
- SearchOptions: validated description of one search call
- QueryBuilder: single-field classic parse or multi-field fuzzy conjunction
- ResultAssembler: bounded, composite-sorted, paginated, type-filtered results
- ScoredSearcher: escaped retry on syntax errors, timing, single-result helper
"""

from .assembler import ResultAssembler
from .config import SearchConfig, load_yaml_config
from .errors import ConfigurationError, DocumentNotFoundError, ParseFailure, SearchError
from .index import RawHit, WhooshIndexProvider
from .options import TYPE_FIELD, SearchOptions, qualified_type_name
from .query import FUZZY_OPERATOR, ParseOutcome, QueryBuilder
from .results import SearchResult, SearchResultCollection
from .searcher import ScoredSearcher
from .sorting import RELEVANCE, SortSpec

__all__ = [
    'ConfigurationError',
    'DocumentNotFoundError',
    'FUZZY_OPERATOR',
    'ParseFailure',
    'ParseOutcome',
    'QueryBuilder',
    'RELEVANCE',
    'RawHit',
    'ResultAssembler',
    'ScoredSearcher',
    'SearchConfig',
    'SearchError',
    'SearchOptions',
    'SearchResult',
    'SearchResultCollection',
    'SortSpec',
    'TYPE_FIELD',
    'WhooshIndexProvider',
    'load_yaml_config',
    'qualified_type_name',
]
