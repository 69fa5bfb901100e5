"""
Index access for scored search.

The index itself (storage, postings, analysis) is owned by Whoosh. This
module only defines what the search layer needs from it: open an isolated
read snapshot per call, run a query with a hit bound and a composite sort,
and resolve stored documents by hit id while the snapshot is open.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Protocol, Union

from whoosh import index as windex
from whoosh import scoring

from .errors import ConfigurationError, DocumentNotFoundError
from .sorting import SortSpec

logger = logging.getLogger(__name__)

WEIGHTINGS = {
    "bm25f": scoring.BM25F,
    "tf_idf": scoring.TF_IDF,
}
DEFAULT_WEIGHTING = "bm25f"


def make_weighting(weighting: Union[str, scoring.WeightingModel, None]) -> scoring.WeightingModel:
    """Resolve a weighting model instance from a registry name."""
    if weighting is None:
        weighting = DEFAULT_WEIGHTING
    if isinstance(weighting, str):
        name = weighting.strip().lower()
        if name not in WEIGHTINGS:
            raise ConfigurationError(
                f"Unknown weighting '{weighting}'. Supported: {', '.join(sorted(WEIGHTINGS))}"
            )
        return WEIGHTINGS[name]()
    return weighting


@dataclass(frozen=True)
class RawHit:
    """A match inside one snapshot: internal document number and score."""
    doc_id: int
    score: float


class IndexSnapshot(Protocol):
    def search(self, query, limit: int, sort_spec: SortSpec) -> List[RawHit]: ...

    def document(self, doc_id: int) -> Dict[str, Any]: ...

    def close(self) -> None: ...


class IndexProvider(Protocol):
    schema: Any

    def open_snapshot(self): ...


class WhooshSnapshot:
    """One open Whoosh searcher, i.e. a point-in-time view of the index."""

    def __init__(self, searcher):
        self.searcher = searcher

    def _column(self, fieldname: str):
        reader = self.searcher.reader()
        if reader.has_column(fieldname):
            return reader.column_reader(fieldname)
        return None

    def search(self, query, limit: int, sort_spec: SortSpec) -> List[RawHit]:
        """
        Return at most ``limit`` hits ordered by ``sort_spec``.

        Every match is scored so the bound is applied after the composite
        sort, never to an approximate or early-terminated ranking.
        """
        results = self.searcher.search(query, limit=None)
        hits = [RawHit(hit.docnum, hit.score) for hit in results]

        columns = {name: self._column(name) for name in sort_spec.fields}

        def values_for(doc_id: int) -> Dict[str, Any]:
            values: Dict[str, Any] = {}
            stored = None
            for name, column in columns.items():
                if column is not None:
                    values[name] = column[doc_id]
                    continue
                if stored is None:
                    stored = self.searcher.stored_fields(doc_id)
                values[name] = stored.get(name)
            return values

        hits.sort(key=lambda h: sort_spec.sort_key(h.score, h.doc_id, values_for(h.doc_id)))
        logger.debug(f"Query matched {len(hits)} documents, keeping {min(limit, len(hits))}")
        return hits[:limit]

    def document(self, doc_id: int) -> Dict[str, Any]:
        """Stored fields of a hit; a missing or deleted document is an integrity error."""
        reader = self.searcher.reader()
        if doc_id < 0 or doc_id >= reader.doc_count_all() or reader.is_deleted(doc_id):
            raise DocumentNotFoundError(doc_id)
        return dict(self.searcher.stored_fields(doc_id))

    def close(self) -> None:
        self.searcher.close()


class WhooshIndexProvider:
    """
    Opens snapshots of a Whoosh index.

    The index and the weighting model are fixed at construction and shared,
    read-only, by every search call.
    """

    def __init__(self, index, weighting: Union[str, scoring.WeightingModel, None] = None):
        self.index = index
        self.weighting = make_weighting(weighting)

    @property
    def schema(self):
        return self.index.schema

    @classmethod
    def from_directory(
        cls,
        index_dir: Union[str, Path],
        indexname: Optional[str] = None,
        weighting: Union[str, scoring.WeightingModel, None] = None,
    ) -> "WhooshIndexProvider":
        index_dir = Path(index_dir)
        if not index_dir.exists():
            raise FileNotFoundError(f"Index directory not found: {index_dir}")

        ix = windex.open_dir(str(index_dir), indexname=indexname, readonly=True)
        logger.info(f"Opened index with {ix.doc_count()} documents")
        return cls(ix, weighting=weighting)

    @contextmanager
    def open_snapshot(self) -> Iterator[WhooshSnapshot]:
        snapshot = WhooshSnapshot(self.index.searcher(weighting=self.weighting))
        try:
            yield snapshot
        finally:
            snapshot.close()
