"""Errors raised by the scored search layer.

Only ParseFailure is ever recovered from (once, by the escaped retry in
ScoredSearcher). Engine failures coming out of Whoosh or the filesystem are
not wrapped here; they reach the caller as raised.
"""


class SearchError(Exception):
    """Base class for errors raised by this package."""


class ConfigurationError(SearchError, ValueError):
    """Raised for invalid search options or a missing/malformed configuration."""


class ParseFailure(SearchError):
    """Raised when the keyword string is not valid query syntax."""

    def __init__(self, keywords: str, reason: str):
        super().__init__(f"Cannot parse query {keywords!r}: {reason}")
        self.keywords = keywords
        self.reason = reason


class DocumentNotFoundError(SearchError, LookupError):
    """Raised when a hit no longer resolves to a stored document in the snapshot."""

    def __init__(self, doc_id: int):
        super().__init__(f"Document {doc_id} not found in index snapshot")
        self.doc_id = doc_id
