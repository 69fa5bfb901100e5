"""
Result Assembler.

Runs a built query against a fresh index snapshot and shapes the ranked hits
into a SearchResultCollection:

1. open a snapshot (always closed again, also on errors)
2. search, bounded by maximum_number_of_hits, in SortSpec order
3. total_hits = number of hits returned by that bounded search
4. drop the first ``skip`` hits, keep at most ``take`` of the rest
5. resolve each remaining hit to its stored document
6. with a type filter, keep only documents whose ``Type`` field equals it

Type filtering happens after the skip/take window, so a page can hold fewer
than ``take`` results when documents of other types fall inside it.
"""

import logging
from typing import List

from .index import IndexProvider, RawHit
from .options import TYPE_FIELD, SearchOptions
from .results import SearchResult, SearchResultCollection
from .sorting import SortSpec

logger = logging.getLogger(__name__)


def paginate(hits: List[RawHit], skip=None, take=None) -> List[RawHit]:
    """Apply skip then take to the ranked hits."""
    if skip is not None:
        hits = hits[skip:]
    if take is not None:
        hits = hits[:take]
    return hits


class ResultAssembler:
    def __init__(self, provider: IndexProvider):
        self.provider = provider

    def execute(self, options: SearchOptions, query, sort_spec: SortSpec) -> SearchResultCollection:
        results = SearchResultCollection()

        with self.provider.open_snapshot() as snapshot:
            hits = snapshot.search(query, options.maximum_number_of_hits, sort_spec)
            results.total_hits = len(hits)

            window = paginate(hits, options.skip, options.take)
            for hit in window:
                document = snapshot.document(hit.doc_id)

                if options.type is not None and document.get(TYPE_FIELD) != options.type:
                    continue

                results.results.append(SearchResult(document=document, score=hit.score))

        if options.type is not None:
            logger.debug(
                f"Type filter {options.type} kept {len(results.results)} of "
                f"{len(window)} windowed hits"
            )
        return results
