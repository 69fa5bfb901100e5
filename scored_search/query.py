"""
Query Builder.

Turns SearchOptions into a single Whoosh query:

- one field: the keywords are parsed as-is with the classic grammar
  (booleans, phrases, wildcards, ranges), no fuzzy expansion is added;
- several fields: every whitespace-separated keyword becomes a fuzzy term
  matched across all fields with the per-field boosts, and all keywords are
  required (AND). Operator words (AND, OR, NOT, &&, ||, !) are not
  keywords here and fail the build.

Building never raises on bad input. It returns a ParseOutcome so callers can
branch on a syntax failure explicitly.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from whoosh import query as wq
from whoosh.qparser import (
    FuzzyTermPlugin,
    MultifieldParser,
    OrGroup,
    PlusMinusPlugin,
    QueryParser,
)
from whoosh.qparser.common import QueryParserError

from . import syntax
from .errors import ParseFailure
from .options import SearchOptions

logger = logging.getLogger(__name__)

# Appended to every keyword of a multi-field search: edit distance 2
FUZZY_OPERATOR = "~2"

# +/- only count as operators at the start of a term
_PLUS_EXPR = r"(?<![^\s(])\+"
_MINUS_EXPR = r"(?<![^\s(])-"


@dataclass(frozen=True)
class ParseOutcome:
    """Either a built query or the reason the keywords could not be parsed."""
    keywords: str
    query: Optional[wq.Query] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> wq.Query:
        """Return the query, raising ParseFailure if parsing failed."""
        if self.error is not None:
            raise ParseFailure(self.keywords, self.error)
        return self.query


def find_error(q: wq.Query) -> Optional[str]:
    """Return the first parser error recorded anywhere in a query tree."""
    error = getattr(q, "error", None)
    if error:
        return str(error)
    for child in q.children():
        error = find_error(child)
        if error:
            return error
    return None


def apply_prohibitions(q: wq.Query) -> wq.Query:
    """
    Give NOT clauses their classic must-not meaning.

    Whoosh's OrGroup keeps ``NOT x`` as an optional clause of its own, so
    ``python NOT rust`` would match every document without "rust". Here the
    negated children of an Or are pulled out into ``AndNot(positives,
    negatives)``, the same shape ``-rust`` parses to. A query made only of
    negations matches nothing.
    """
    q = _prohibit(q)
    if isinstance(q, wq.Not):
        return wq.NullQuery
    return q


def _prohibit(q: wq.Query) -> wq.Query:
    q = q.apply(_prohibit)

    if isinstance(q, wq.Or):
        negatives = [c.query for c in q.subqueries if isinstance(c, wq.Not)]
        if not negatives:
            return q
        positives = [c for c in q.subqueries if not isinstance(c, wq.Not)]
        if not positives:
            return wq.NullQuery
        return wq.AndNot(wq.Or(positives, boost=q.boost), wq.Or(negatives)).normalize()

    if isinstance(q, wq.And) and q.subqueries and all(isinstance(c, wq.Not) for c in q.subqueries):
        return wq.NullQuery

    return q


class QueryBuilder:
    """
    Builds queries against a schema.

    The schema carries the field analyzers used while parsing; it is the same
    schema the index was written with and is never modified here.
    """

    def __init__(self, schema):
        self.schema = schema

    def _configure(self, parser):
        parser.add_plugin(FuzzyTermPlugin())
        parser.add_plugin(PlusMinusPlugin(_PLUS_EXPR, _MINUS_EXPR))
        return parser

    def single_field_parser(self, fieldname: str) -> QueryParser:
        return self._configure(QueryParser(fieldname, self.schema, group=OrGroup))

    def multi_field_parser(self, options: SearchOptions) -> QueryParser:
        parser = MultifieldParser(
            list(options.fields),
            self.schema,
            fieldboosts=dict(options.boosts),
            group=OrGroup,
        )
        return self._configure(parser)

    def _parse(self, parser, text: str) -> ParseOutcome:
        reason = syntax.check(text)
        if reason is not None:
            return ParseOutcome(text, error=reason)

        try:
            q = parser.parse(syntax.for_parser(text))
        except QueryParserError as e:
            return ParseOutcome(text, error=str(e))

        reason = find_error(q)
        if reason is not None:
            return ParseOutcome(text, error=reason)
        return ParseOutcome(text, query=apply_prohibitions(q))

    def build(self, options: SearchOptions, keywords: Optional[str] = None) -> ParseOutcome:
        """
        Build the query for options.

        Args:
            options: Search options (fields and boosts)
            keywords: Keywords to use instead of options.keywords (the
                escaped retry passes its escaped copy here)

        Returns:
            ParseOutcome holding either the query or the parse error
        """
        if keywords is None:
            keywords = options.keywords

        if options.is_multi_field:
            outcome = self.fuzzy_conjunction(options, keywords)
        else:
            outcome = self._parse(self.single_field_parser(options.fields[0]), keywords)

        if outcome.ok:
            logger.debug(f"Built query {outcome.query!r} from {keywords!r}")
        return outcome

    def fuzzy_conjunction(self, options: SearchOptions, keywords: str) -> ParseOutcome:
        """Require every keyword, each as a fuzzy term across all boosted fields."""
        parser = self.multi_field_parser(options)
        subqueries: List[wq.Query] = []

        for term in keywords.split():
            term = syntax.strip_fuzzy(term)
            # nothing left once escaped characters are dropped, e.g. "\-"
            if not syntax.for_parser(term).strip():
                continue
            if term in syntax.BINARY_OPERATORS or term in syntax.NOT_OPERATORS:
                return ParseOutcome(keywords, error=f"operator '{term}' without operands")
            outcome = self._parse(parser, term + FUZZY_OPERATOR)
            if not outcome.ok:
                return ParseOutcome(keywords, error=outcome.error)
            subqueries.append(outcome.query)

        if not subqueries:
            return ParseOutcome(keywords, query=wq.NullQuery)
        return ParseOutcome(keywords, query=wq.And(subqueries).normalize())
