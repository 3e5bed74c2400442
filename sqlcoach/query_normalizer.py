"""
Query normalization and syntax pre-check
========================================
Cheap, deterministic text processing that runs before any analysis:
- Comment stripping (sqlparse)
- Lexical normalization for case/whitespace-insensitive comparison
- Shallow syntax sanity checks that catch common typos

The pre-check is intentionally not a SQL parser.
"""

import re
import logging
from typing import Optional

import sqlparse
from sqlparse.exceptions import SQLParseError

from .schemas import SyntaxCheck

logger = logging.getLogger(__name__)

DEFAULT_MAX_QUERY_LENGTH = 10000

STATEMENT_KEYWORDS = ('select', 'insert', 'update', 'delete', 'create', 'alter', 'drop', 'with')

_PUNCTUATION = re.compile(r'\s*(,|<=|>=|!=|<>|=)\s*')
_WHITESPACE = re.compile(r'\s+')
_TRAILING_SEMICOLONS = re.compile(r'\s*;[\s;]*$')
_LEADING_KEYWORD = re.compile(r'^(?:%s)\b' % '|'.join(STATEMENT_KEYWORDS))
_FROM_KEYWORD = re.compile(r'\bfrom\b')
_STRING_LITERAL = re.compile(r"'[^']*'")
_ALIAS = re.compile(r'\bas\s+\w+')
_LITERAL_KEYWORDS = re.compile(r'\b(?:true|false|null)\b')


def _space_punctuation(match: re.Match) -> str:
    token = match.group(1)
    return ', ' if token == ',' else f' {token} '


def normalize(raw: str) -> str:
    """
    Canonicalize query text for comparison

    Lower-cases, standardizes spacing around commas and comparison
    operators, collapses whitespace, strips trailing semicolons and trims.
    Clause order is preserved. normalize(normalize(x)) == normalize(x).
    """
    text = (raw or '').lower()
    text = _PUNCTUATION.sub(_space_punctuation, text)
    text = _WHITESPACE.sub(' ', text)
    text = _TRAILING_SEMICOLONS.sub('', text)
    return text.strip()


def strip_comments(raw: str) -> str:
    """Remove -- and /* */ comments, falling back to the raw text if sqlparse gives up"""
    if not raw:
        return ''
    try:
        return sqlparse.format(raw, strip_comments=True)
    except SQLParseError as e:
        logger.warning(f"Could not strip comments, analyzing raw text: {e}")
        return raw


def prepare(raw: str) -> str:
    """Comment-free, normalized form of a query used by every comparison"""
    return normalize(strip_comments(raw))


def collapse_whitespace(raw: str) -> str:
    """Comment-free query with original casing, for display"""
    return _WHITESPACE.sub(' ', strip_comments(raw)).strip()


def _is_bare_literal_select(normalized: str) -> bool:
    # select 1, select 'a' as label, select 2 + 3
    select_list = normalized[len('select'):].strip()
    if not select_list:
        return False
    select_list = _STRING_LITERAL.sub('', select_list)
    select_list = _ALIAS.sub('', select_list)
    select_list = _LITERAL_KEYWORDS.sub('', select_list)
    return not re.search(r'[a-z_]', select_list)


def check_length(raw: str, max_length: Optional[int] = DEFAULT_MAX_QUERY_LENGTH) -> SyntaxCheck:
    """
    Length limit on the raw text, applied before comment stripping or any
    pattern matching. Blank input is left for check_syntax to report as empty.
    """
    if max_length is not None and len(raw) > max_length and raw.strip():
        return SyntaxCheck(valid=False, error=f'Query too long (max {max_length} characters)')
    return SyntaxCheck(valid=True)


def check_syntax(normalized: str, max_length: Optional[int] = DEFAULT_MAX_QUERY_LENGTH) -> SyntaxCheck:
    """
    Shallow syntax pre-check on a normalized query. First failure wins.

    Args:
        normalized: Output of normalize()/prepare()
        max_length: Longest accepted query, None to disable

    Returns:
        SyntaxCheck with valid=False and a human readable error on failure
    """
    query = normalized.strip()

    if not query:
        return SyntaxCheck(valid=False, error='Query is empty')

    if max_length is not None and len(query) > max_length:
        return SyntaxCheck(valid=False, error=f'Query too long (max {max_length} characters)')

    depth = 0
    for char in query:
        if char == '(':
            depth += 1
        elif char == ')':
            depth -= 1
            if depth < 0:
                return SyntaxCheck(valid=False, error='Unmatched closing parenthesis')
    if depth != 0:
        return SyntaxCheck(valid=False, error='Unmatched opening parenthesis')

    if query.count("'") % 2 != 0:
        return SyntaxCheck(valid=False, error='Unmatched single quote')

    if not _LEADING_KEYWORD.match(query):
        return SyntaxCheck(
            valid=False,
            error='Query must start with a valid SQL keyword (SELECT, INSERT, UPDATE, DELETE, etc.)'
        )

    if query.startswith('select') and not _FROM_KEYWORD.search(query) \
            and not _is_bare_literal_select(query):
        return SyntaxCheck(valid=False, error='SELECT statements typically require a FROM clause')

    return SyntaxCheck(valid=True)
