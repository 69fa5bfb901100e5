"""Search result types."""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Mapping, Optional


@dataclass(frozen=True)
class SearchResult:
    """A matched document (its stored fields) with its relevance score."""
    document: Mapping[str, Any]
    score: float

    def get(self, fieldname: str, default: Any = None) -> Any:
        return self.document.get(fieldname, default)

    def to_dict(self) -> Dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "score": round(self.score, 6),
            "document": dict(self.document),
        }


@dataclass
class SearchResultCollection:
    """
    Results of one scored search.

    ``total_hits`` counts the hits returned by the bounded engine search,
    before skip/take and type filtering. ``elapsed`` is the wall time of the
    whole call in milliseconds.
    """
    results: List[SearchResult] = field(default_factory=list)
    total_hits: int = 0
    elapsed: int = 0

    def __len__(self) -> int:
        return len(self.results)

    def __iter__(self) -> Iterator[SearchResult]:
        return iter(self.results)

    def first(self) -> Optional[SearchResult]:
        return self.results[0] if self.results else None

    def to_dict(self) -> Dict:
        return {
            "total_hits": self.total_hits,
            "elapsed": self.elapsed,
            "results": [r.to_dict() for r in self.results],
        }
