"""
Classic query grammar guard.

Whoosh's parser never rejects input: unbalanced quotes or dangling operators
are quietly turned into whatever query it can salvage. The scored search
contract needs malformed keywords to be detected so the escaped retry can
run, so raw keyword strings are checked here against the classic
(Lucene-style) grammar before they reach the Whoosh parser.

Supported syntax:
    "machine learning"        phrase (optionally ~slop / ^boost)
    title:python              field prefix
    python AND web, a || b    boolean operators (AND OR NOT && || !)
    +python -java             required / prohibited prefixes
    (python OR ruby) AND web  groups
    [a TO z], {1 TO 5}        ranges
    pyth*n, pyhton~2, web^2   wildcards, fuzzy terms, boosts

Escaping any reserved character with a backslash makes it literal.
"""

import re
from typing import List, Optional, Tuple

RESERVED_CHARACTERS = '\\+-!():^[]"{}~*?|&/'

BINARY_OPERATORS = frozenset({"AND", "OR", "&&", "||"})
NOT_OPERATORS = frozenset({"NOT", "!"})

_BOOST_RE = re.compile(r"\^(?P<value>\d+(\.\d+)?)?")
_PHRASE_SUFFIX_RE = re.compile(r"(~\d*(\.\d+)?)?(\^\d+(\.\d+)?)?")
_RANGE_BODY_RE = re.compile(r"^\s*\S+\s+TO\s+\S+\s*$")
_FUZZY_RE = re.compile(r"\\?~(\d+(\.\d+)?)?")
_ESCAPED_RE = re.compile(r"\\(.)", re.DOTALL)

_WORD_BREAKS = ' \t\r\n()"[]{}'
# Stand-in for escaped characters so they never look like operators
_LITERAL = "x"

_OPERATOR_REWRITES = [
    (re.compile(r"(?<!\S)&&(?!\S)"), "AND"),
    (re.compile(r"(?<!\S)\|\|(?!\S)"), "OR"),
    (re.compile(r"(?<![^\s(])!\s*"), "NOT "),
]


class _Malformed(Exception):
    pass


def escape(text: str) -> str:
    """Backslash-escape every reserved character so it is matched literally."""
    return "".join("\\" + ch if ch in RESERVED_CHARACTERS else ch for ch in text)


def strip_fuzzy(term: str) -> str:
    """Remove fuzzy operators (and their edit distances) embedded in a term."""
    return _FUZZY_RE.sub("", term)


def for_parser(text: str) -> str:
    """
    Prepare checked text for the Whoosh parser.

    Escaped characters become separators (field analyzers discard them as
    punctuation) and the symbolic boolean operators are spelled out.
    """
    text = _ESCAPED_RE.sub(" ", text)
    for pattern, replacement in _OPERATOR_REWRITES:
        text = pattern.sub(replacement, text)
    return text


def check(text: str) -> Optional[str]:
    """
    Check text against the classic query grammar.

    Returns:
        A short description of the first problem found, or None if the text
        is well formed.
    """
    try:
        tokens = _tokenize(text)
        _check_sequence(tokens)
    except _Malformed as e:
        return str(e)
    return None


def _read_escaped(text: str, pos: int) -> int:
    if pos + 1 >= len(text):
        raise _Malformed("trailing escape character")
    return pos + 2


def _read_delimited(text: str, pos: int, closers: str, problem: str) -> int:
    """Return the position just past the closing delimiter."""
    i = pos + 1
    while i < len(text):
        ch = text[i]
        if ch == "\\":
            i = _read_escaped(text, i)
            continue
        if ch in closers:
            return i + 1
        i += 1
    raise _Malformed(problem)


def _tokenize(text: str) -> List[Tuple[str, str]]:
    tokens: List[Tuple[str, str]] = []
    depth = 0
    i = 0
    n = len(text)

    while i < n:
        ch = text[i]

        if ch.isspace():
            i += 1
        elif ch == '"':
            end = _read_delimited(text, i, '"', "unterminated phrase")
            suffix = _PHRASE_SUFFIX_RE.match(text, end)
            end = suffix.end()
            tokens.append(("term", text[i:end]))
            i = end
        elif ch == "(":
            depth += 1
            tokens.append(("open", ch))
            i += 1
        elif ch == ")":
            depth -= 1
            if depth < 0:
                raise _Malformed("unbalanced parenthesis")
            tokens.append(("close", ch))
            i += 1
        elif ch in "[{":
            end = _read_delimited(text, i, "]}", "unterminated range")
            if not _RANGE_BODY_RE.match(text[i + 1:end - 1]):
                raise _Malformed("range must look like [low TO high]")
            tokens.append(("term", text[i:end]))
            i = end
        elif ch in "]}":
            raise _Malformed(f"unexpected '{ch}'")
        else:
            start = i
            plain = []
            while i < n and text[i] not in _WORD_BREAKS:
                if text[i] == "\\":
                    i = _read_escaped(text, i)
                    plain.append(_LITERAL)
                else:
                    plain.append(text[i])
                    i += 1
            word = "".join(plain)
            attached = i < n and text[i] in '"([{'
            tokens.append(_classify_word(word, attached, text[start:i]))

    if depth != 0:
        raise _Malformed("unbalanced parenthesis")
    return tokens


def _classify_word(word: str, attached: bool, raw: str) -> Tuple[str, str]:
    """Classify a bare word, validating its term syntax."""
    if word in BINARY_OPERATORS:
        return ("binary", word)
    if word in NOT_OPERATORS:
        return ("not", word)

    value = word
    if value[0] in "+-!":
        value = value[1:]
        if not value and not attached:
            raise _Malformed(f"dangling operator '{word}'")

    if ":" in value:
        fieldname, _, value = value.partition(":")
        if not fieldname:
            raise _Malformed(f"missing field name in '{raw}'")
        if ":" in value:
            raise _Malformed(f"unexpected ':' in '{raw}'")
        if not value and not attached:
            raise _Malformed(f"missing value for field '{fieldname}'")
        if not value:
            return ("prefix", raw)

    if not value:
        return ("prefix", raw)
    if value[0] in "*?":
        raise _Malformed(f"leading wildcard in '{raw}'")
    if value[0] in "~^":
        raise _Malformed(f"operator '{value[0]}' without a term in '{raw}'")
    if value[0] == "/" and (len(value) < 2 or not value.endswith("/")):
        raise _Malformed(f"unterminated regular expression in '{raw}'")

    for match in _BOOST_RE.finditer(value):
        if match.group("value") is None or match.end() != len(value):
            raise _Malformed(f"boost must be a trailing number in '{raw}'")

    return ("term", raw)


def _check_sequence(tokens: List[Tuple[str, str]]) -> None:
    """Reject operators that have nothing to bind to."""
    previous = None
    for kind, value in tokens:
        if kind == "binary" and previous in (None, "binary", "not", "open", "prefix"):
            raise _Malformed(f"dangling operator '{value}'")
        if kind == "close" and previous in ("binary", "not", "prefix"):
            raise _Malformed("operator before ')'")
        if kind == "close" and previous == "open":
            raise _Malformed("empty group")
        previous = kind

    if previous in ("binary", "not", "prefix"):
        raise _Malformed("query ends with an operator")
