"""
Search request options.

A SearchOptions instance describes one scored search call: the keywords,
which fields they are matched against (and how strongly each field counts),
an optional document type filter, secondary sort fields and the skip/take
window. Options are validated on construction and are immutable afterwards.
"""

import inspect
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple, Union

from .errors import ConfigurationError

DEFAULT_MAXIMUM_NUMBER_OF_HITS = 1000

# Stored field holding the fully qualified type name of an indexed document
TYPE_FIELD = "Type"


def qualified_type_name(value: Union[type, str]) -> str:
    """Return the identifier stored in the ``Type`` field for a class or name."""
    if isinstance(value, str):
        return value
    if inspect.isclass(value):
        return f"{value.__module__}.{value.__qualname__}"
    raise ConfigurationError(f"type must be a class or a string, got {value!r}")


def _split_names(value: Union[str, Iterable[str], None], label: str) -> Tuple[str, ...]:
    """Accept a comma-separated string or an iterable of names."""
    if value is None:
        return ()
    if isinstance(value, str):
        items = value.split(",")
    else:
        items = list(value)

    names = []
    for item in items:
        if not isinstance(item, str):
            raise ConfigurationError(f"{label} entries must be strings, got {item!r}")
        name = item.strip()
        if name:
            names.append(name)
    return tuple(names)


def _ordered_boosts(
    boosts: Optional[Mapping[str, float]], fields: Tuple[str, ...]
) -> Dict[str, float]:
    """Copy boosts into a dict ordered by field list position, then by name."""
    if not boosts:
        return {}

    position = {name: i for i, name in enumerate(fields)}
    ordered: Dict[str, float] = {}
    for name in sorted(boosts, key=lambda n: (position.get(n, len(fields)), n)):
        weight = boosts[name]
        try:
            weight = float(weight)
        except (TypeError, ValueError):
            raise ConfigurationError(f"Boost for field '{name}' must be a number, got {weight!r}")
        if weight <= 0:
            raise ConfigurationError(f"Boost for field '{name}' must be positive, got {weight}")
        ordered[name] = weight
    return ordered


@dataclass(frozen=True)
class SearchOptions:
    """
    Options for a single scored search.

    ``fields`` and ``sort_by`` may be given as a comma-separated string or any
    iterable of names; they are stored as tuples. ``type`` may be a class or
    its qualified name and is stored as the qualified name.
    """
    keywords: str
    fields: Tuple[str, ...]
    maximum_number_of_hits: int = DEFAULT_MAXIMUM_NUMBER_OF_HITS
    boosts: Dict[str, float] = field(default_factory=dict)
    type: Optional[str] = None
    sort_by: Tuple[str, ...] = ()
    skip: Optional[int] = None
    take: Optional[int] = None

    def __post_init__(self):
        if not isinstance(self.keywords, str):
            raise ConfigurationError(f"keywords must be a string, got {self.keywords!r}")
        if not self.keywords.strip():
            raise ConfigurationError("keywords cannot be empty")

        fields = _split_names(self.fields, "fields")
        if not fields:
            raise ConfigurationError("fields cannot be empty")
        object.__setattr__(self, "fields", fields)
        object.__setattr__(self, "sort_by", _split_names(self.sort_by, "sort_by"))
        object.__setattr__(self, "boosts", _ordered_boosts(self.boosts, fields))

        if self.type is not None:
            object.__setattr__(self, "type", qualified_type_name(self.type))

        if isinstance(self.maximum_number_of_hits, bool) or not isinstance(self.maximum_number_of_hits, int):
            raise ConfigurationError("maximum_number_of_hits must be an integer")
        if self.maximum_number_of_hits < 1:
            raise ConfigurationError("maximum_number_of_hits must be >= 1")

        for name in ("skip", "take"):
            value = getattr(self, name)
            if value is None:
                continue
            if isinstance(value, bool) or not isinstance(value, int):
                raise ConfigurationError(f"{name} must be an integer or None")
            if value < 0:
                raise ConfigurationError(f"{name} must be >= 0")

    @property
    def is_multi_field(self) -> bool:
        return len(self.fields) > 1

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "keywords": self.keywords,
            "fields": list(self.fields),
            "maximum_number_of_hits": self.maximum_number_of_hits,
            "boosts": dict(self.boosts),
            "type": self.type,
            "sort_by": list(self.sort_by),
            "skip": self.skip,
            "take": self.take,
        }
