"""
Structural Analyzer
===================
Regex-driven feature extraction from a normalized query: which clauses are
present, which tables and columns are referenced, and a coarse complexity
estimate. It describes what is there and makes no judgment.

Extraction is heuristic and substring based. Nested subqueries, CTEs that
reuse an alias or keywords inside string literals can fool it; that is an
accepted limitation of a pedagogical static checker.
"""

import re
import logging
from typing import List, Optional, Tuple

from .schemas import Complexity, StructuralAnalysis

logger = logging.getLogger(__name__)

_HAS_SELECT = re.compile(r'\bselect\b', re.IGNORECASE)
_HAS_FROM = re.compile(r'\bfrom\b', re.IGNORECASE)
_HAS_WHERE = re.compile(r'\bwhere\b', re.IGNORECASE)
_HAS_JOIN = re.compile(r'\b(?:(?:inner|left|right|full|cross)\s+(?:outer\s+)?)?join\b', re.IGNORECASE)
_HAS_GROUP_BY = re.compile(r'\bgroup\s+by\b', re.IGNORECASE)
_HAS_ORDER_BY = re.compile(r'\border\s+by\b', re.IGNORECASE)
_HAS_LIMIT = re.compile(r'\blimit\b', re.IGNORECASE)
_HAS_AGGREGATE = re.compile(r'\b(?:count|sum|avg|max|min)\s*\(', re.IGNORECASE)

_TABLE_REFERENCE = re.compile(
    r'\b(?:from|join|into|(?<!for )update)\s+([a-z_][\w$]*(?:\.[a-z_][\w$]*)?)',
    re.IGNORECASE
)

# Keywords that end one clause and start another at the same nesting level
_CLAUSE_BOUNDARY = re.compile(
    r'\b(select|from|where|group\s+by|having|order\s+by|limit|union|intersect|except|'
    r'(?:(?:natural\s+)?(?:inner|left|right|full|cross)\s+(?:outer\s+)?)?join)\b',
    re.IGNORECASE
)

_FUNCTION_CALL = re.compile(r'^(\w+)\s*\((.*)\)$', re.DOTALL)
_IDENTIFIER = re.compile(r'^[a-z_]\w*(?:\.[a-z_]\w*)?$', re.IGNORECASE)
_DISTINCT_PREFIX = re.compile(r'^distinct\s+', re.IGNORECASE)
# Explicit or implicit alias after a column, call or literal: 'sum(x) total', 'name as n'
_ALIAS_SUFFIX = re.compile(r'''(?<=[\w)"'])(?:\s+as)?\s+(?!end\b)[\w"]+$''', re.IGNORECASE)
_QUALIFIER = re.compile(r'^[\w"]+\.')

# Weighted feature counts behind estimated_complexity
COMPLEXITY_WEIGHTS = {
    'join': 2,
    'group_by': 1,
    'aggregate': 1,
    'nested_select': 2,
    'many_tables': 1,
}
COMPLEX_THRESHOLD = 4
MODERATE_THRESHOLD = 2


def _top_level_mask(text: str) -> List[bool]:
    """True for every character outside parentheses and string literals"""
    mask = []
    depth = 0
    in_quote = False
    for char in text:
        if in_quote:
            mask.append(False)
            if char == "'":
                in_quote = False
            continue
        if char == "'":
            in_quote = True
            mask.append(False)
        elif char == '(':
            depth += 1
            mask.append(False)
        elif char == ')':
            depth = max(depth - 1, 0)
            mask.append(False)
        else:
            mask.append(depth == 0)
    return mask


def _clause_kind(keyword: str) -> str:
    kind = ' '.join(keyword.lower().split())
    return 'join' if kind.endswith('join') else kind


def _top_level_boundaries(text: str) -> List[Tuple[str, int]]:
    mask = _top_level_mask(text)
    return [
        (_clause_kind(match.group(1)), match.start())
        for match in _CLAUSE_BOUNDARY.finditer(text)
        if mask[match.start()]
    ]


def _split_top_level(text: str, separator: str = ',') -> List[str]:
    mask = _top_level_mask(text)
    parts = []
    start = 0
    for index, char in enumerate(text):
        if char == separator and mask[index]:
            parts.append(text[start:index])
            start = index + 1
    parts.append(text[start:])
    return parts


def extract_clause(query: str, keyword: str) -> str:
    """
    Clause text from its keyword through the next top-level clause boundary

    Consecutive joins are reported as one clause. Falls back to the first
    nested occurrence when the clause only appears inside a subquery.

    Args:
        query: Query text, any casing
        keyword: One of select, from, join, where, group by, order by, limit

    Returns:
        Clause substring without a trailing semicolon, '' if absent
    """
    keyword = _clause_kind(keyword)
    boundaries = _top_level_boundaries(query)
    for index, (kind, start) in enumerate(boundaries):
        if kind != keyword:
            continue
        end = len(query)
        for next_kind, next_start in boundaries[index + 1:]:
            if keyword == 'join' and next_kind == 'join':
                continue
            end = next_start
            break
        return query[start:end].strip().rstrip(';').strip()

    pattern = _HAS_JOIN if keyword == 'join' else re.compile(
        r'\b%s\b' % r'\s+'.join(keyword.split()), re.IGNORECASE)
    match = pattern.search(query)
    if not match:
        return ''
    clause = re.match(r'[^;)]*', query[match.start():]).group(0)
    return clause.strip()


def _select_list(normalized: str) -> Optional[str]:
    boundaries = _top_level_boundaries(normalized)
    for index, (kind, start) in enumerate(boundaries):
        if kind != 'select':
            continue
        following = boundaries[index + 1] if index + 1 < len(boundaries) else None
        if following is None or following[0] != 'from':
            return None
        return normalized[start + len('select'):following[1]]
    return None


def _unwrap_function(expression: str) -> str:
    # upper(name) -> name, sum(o.total) -> o.total, count(*) -> count
    while True:
        match = _FUNCTION_CALL.match(expression)
        if not match:
            return expression
        inner = _DISTINCT_PREFIX.sub('', match.group(2).strip())
        if _IDENTIFIER.match(inner) or _FUNCTION_CALL.match(inner):
            expression = inner
            continue
        return match.group(1)


def extract_columns(normalized: str) -> List[str]:
    """Column identifiers of the SELECT list, wildcard excluded, de-duplicated"""
    select_list = _select_list(normalized)
    if select_list is None or select_list.strip() == '*':
        return []

    columns: List[str] = []
    for item in _split_top_level(select_list):
        column = _DISTINCT_PREFIX.sub('', item.strip())
        column = _ALIAS_SUFFIX.sub('', column)
        column = _unwrap_function(column.strip())
        column = _QUALIFIER.sub('', column).strip()
        if column and column != '*' and column not in columns:
            columns.append(column)
    return columns


def extract_tables(normalized: str) -> List[str]:
    """Table identifiers after FROM/JOIN (and INTO/UPDATE), first-seen order"""
    tables: List[str] = []
    for match in _TABLE_REFERENCE.finditer(normalized):
        table = match.group(1)
        if table not in tables:
            tables.append(table)
    return tables


def estimate_complexity(has_join: bool, has_group_by: bool, has_aggregate: bool,
                        nested_select: bool, table_count: int) -> Complexity:
    score = 0
    score += COMPLEXITY_WEIGHTS['join'] if has_join else 0
    score += COMPLEXITY_WEIGHTS['group_by'] if has_group_by else 0
    score += COMPLEXITY_WEIGHTS['aggregate'] if has_aggregate else 0
    score += COMPLEXITY_WEIGHTS['nested_select'] if nested_select else 0
    score += COMPLEXITY_WEIGHTS['many_tables'] if table_count > 2 else 0

    if score >= COMPLEX_THRESHOLD:
        return Complexity.COMPLEX
    if score >= MODERATE_THRESHOLD:
        return Complexity.MODERATE
    return Complexity.SIMPLE


def analyze(normalized: str) -> StructuralAnalysis:
    """Describe the clauses, tables and columns present in a normalized query"""
    has_join = bool(_HAS_JOIN.search(normalized))
    has_group_by = bool(_HAS_GROUP_BY.search(normalized))
    has_aggregate = bool(_HAS_AGGREGATE.search(normalized))
    tables = extract_tables(normalized)
    nested_select = len(_HAS_SELECT.findall(normalized)) > 1
    if nested_select:
        logger.debug(f"Nested SELECT found; tables {tables} may include subquery references")

    return StructuralAnalysis(
        has_select=bool(_HAS_SELECT.search(normalized)),
        has_from=bool(_HAS_FROM.search(normalized)),
        has_where=bool(_HAS_WHERE.search(normalized)),
        has_join=has_join,
        has_group_by=has_group_by,
        has_order_by=bool(_HAS_ORDER_BY.search(normalized)),
        has_limit=bool(_HAS_LIMIT.search(normalized)),
        has_aggregate=has_aggregate,
        tables=tables,
        columns=extract_columns(normalized),
        estimated_complexity=estimate_complexity(
            has_join, has_group_by, has_aggregate, nested_select, len(tables)),
    )
