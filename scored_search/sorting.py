"""Composite sort: relevance first, caller fields as tie-breakers."""

from dataclasses import dataclass
from typing import Any, Mapping, Tuple

from .options import SearchOptions

# Synthetic key for the engine relevance score; always the primary sort key
RELEVANCE = "_score"


def as_sort_string(value: Any) -> str:
    """Sort value of a stored field; missing values sort first."""
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return as_sort_string(value[0]) if value else ""
    return str(value)


@dataclass(frozen=True)
class SortSpec:
    """Ordered sort keys: relevance (descending) then fields (ascending, as strings)."""
    fields: Tuple[str, ...] = ()

    @classmethod
    def from_options(cls, options: SearchOptions) -> "SortSpec":
        return cls(tuple(options.sort_by))

    @property
    def keys(self) -> Tuple[str, ...]:
        return (RELEVANCE,) + self.fields

    def sort_key(self, score: float, doc_id: int, values: Mapping[str, Any]) -> Tuple:
        """
        Key for sorted(): higher score first, then each field ascending, then
        document number so equal keys keep index order.
        """
        return (
            (-score,)
            + tuple(as_sort_string(values.get(name)) for name in self.fields)
            + (doc_id,)
        )
