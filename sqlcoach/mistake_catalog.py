"""
Common SQL Mistake Catalog
==========================
Reference data for pattern-based mistake detection:
- Known anti-patterns with severity/category metadata
- Remediation text used by the explainer
- Immutable catalog container with lookups
- Registry for swapping catalogs without locking

Detection is regex-only. A query can match zero, one or many entries; the
result is always returned in catalog order so callers can treat catalog
order as the primary tie-break.
"""

import re
import logging
from functools import lru_cache
from types import MappingProxyType
from typing import Collection, Dict, Iterable, Iterator, List, Optional, Pattern, Tuple

from .errors import CatalogError
from .schemas import MistakeCategory, MistakeDefinition, MistakeExample, Severity

logger = logging.getLogger(__name__)

# Patterns run against raw learner text, which may span several lines.
# Built-in patterns must stay linear in the query length: anchor with ^ and a
# tempered prefix, or keep each scan from crossing the next keyword.
PATTERN_FLAGS = re.IGNORECASE | re.DOTALL


@lru_cache(maxsize=512)
def compile_pattern(pattern: str) -> Pattern:
    """Compile a detection or forbidden pattern with the catalog flags"""
    return re.compile(pattern, PATTERN_FLAGS)


def _mistake(mistake_id: str, name: str, patterns: Tuple[str, ...], issue: str,
             correction: str, impact: str, wrong: str, right: str,
             prevention: str, severity: Severity, category: MistakeCategory,
             heuristic: bool = False) -> MistakeDefinition:
    return MistakeDefinition(
        id=mistake_id,
        name=name,
        detection_patterns=patterns,
        issue=issue,
        correction=correction,
        real_world_impact=impact,
        example=MistakeExample(wrong=wrong, right=right),
        prevention=prevention,
        severity=severity,
        category=category,
        heuristic=heuristic,
    )


MISTAKE_DEFINITIONS: Tuple[MistakeDefinition, ...] = (
    _mistake(
        'select-star',
        'SELECT * Anti-pattern',
        (r'SELECT\s+\*\s+FROM', r'SELECT\s+\*\s*,'),
        "Using SELECT * retrieves all columns, even those you don't need.",
        'Explicitly list only the columns you need: SELECT id, name, email FROM users',
        'In production, SELECT * can transfer megabytes of unnecessary data, slow down queries '
        'by 10-100x, and break applications when schema changes add new columns.',
        'SELECT * FROM users WHERE active = true;',
        'SELECT id, name, email FROM users WHERE active = true;',
        'Always specify column names explicitly. Create views for common column sets.',
        Severity.MEDIUM, MistakeCategory.PERFORMANCE,
    ),
    _mistake(
        'missing-where',
        'Missing WHERE Clause',
        (r'^(?!.*\bWHERE\b)(?=.*\bDELETE\s+FROM\b).*$',
         r'^(?!.*\bWHERE\b)(?=.*\bUPDATE\s+[\w."]+\s+SET\b).*$'),
        'UPDATE or DELETE without WHERE affects ALL rows in the table.',
        'Always include a WHERE clause to target specific rows.',
        'A missing WHERE clause in production once deleted 77 million user records at GitLab, '
        'causing 6 hours of downtime. This is one of the most dangerous SQL mistakes.',
        'DELETE FROM orders;',
        "DELETE FROM orders WHERE status = 'cancelled' AND created_at < '2024-01-01';",
        'Use transactions, test with SELECT first, and implement database safeguards that '
        'reject WHERE-less mutations.',
        Severity.CRITICAL, MistakeCategory.DATA_INTEGRITY,
    ),
    _mistake(
        'sql-injection-risk',
        'Potential SQL Injection',
        (r"'\s*\+\s*\w+\s*\+\s*'",
         r"'\s*\|\|\s*\w+",
         r"CONCAT\s*\(\s*['\"]",
         r"'\s*OR\s*'1'\s*=\s*'1'",
         r"'\s*;\s*DROP",
         r"--\s*$"),
        'String concatenation in queries can allow SQL injection attacks.',
        'Use parameterized queries or prepared statements instead.',
        'SQL injection remains the #1 web vulnerability. In 2017, Equifax was breached via SQL '
        'injection, exposing 147 million records and costing $700M+ in settlements.',
        "SELECT * FROM users WHERE name = '\" + user_input + \"';",
        'SELECT * FROM users WHERE name = $1; -- with parameterized input',
        'Never concatenate user input into queries. Use parameterized queries, ORMs, or '
        'prepared statements.',
        Severity.CRITICAL, MistakeCategory.SECURITY,
    ),
    _mistake(
        'implicit-join',
        'Implicit JOIN (Comma Syntax)',
        (r'\bFROM\s+\w+(?:\s+(?:AS\s+)?\w+)?\s*,\s*\w+',),
        'Comma-separated tables create implicit CROSS JOINs, which are hard to read and error-prone.',
        'Use explicit JOIN syntax with ON conditions.',
        'Implicit joins make code reviews harder and often hide missing join conditions, causing '
        'incorrect results or massive Cartesian products that crash databases.',
        'SELECT * FROM orders, customers WHERE orders.customer_id = customers.id;',
        'SELECT * FROM orders INNER JOIN customers ON orders.customer_id = customers.id;',
        'Always use explicit JOIN keywords. Configure linters to flag comma joins.',
        Severity.MEDIUM, MistakeCategory.STYLE,
    ),
    _mistake(
        'not-using-aliases',
        'Missing Table Aliases',
        (r'\bJOIN\s+\w+\s+ON\s+\w+\.\w+\s*=',),
        'Long table names repeated throughout queries reduce readability.',
        'Use short, meaningful aliases for tables.',
        'Without aliases, complex queries become unreadable and maintenance-prone. Teams waste '
        'hours debugging ambiguous column references.',
        'SELECT orders.id, customers.name FROM orders JOIN customers ON orders.customer_id = customers.id;',
        'SELECT o.id, c.name FROM orders o JOIN customers c ON o.customer_id = c.id;',
        'Establish naming conventions for aliases (first letter or short abbreviation).',
        Severity.LOW, MistakeCategory.STYLE,
    ),
    _mistake(
        'n-plus-one',
        'N+1 Query Pattern',
        (r'^(?:(?!SELECT).)*SELECT.*WHERE\s+\w+\s*=\s*\?',
         r'^(?:(?!SELECT).)*SELECT.*WHERE\s+id\s*=\s*\d+'),
        'Fetching related data one row at a time causes excessive database roundtrips.',
        'Use JOINs or batch queries with IN clauses.',
        'N+1 queries are the #1 cause of slow page loads. A page showing 50 products with '
        'categories makes 51 queries instead of 1-2, often adding 5-10 seconds to load time.',
        '-- For each order:\nSELECT * FROM order_items WHERE order_id = 1;\n'
        'SELECT * FROM order_items WHERE order_id = 2;\n-- ...repeated N times',
        'SELECT * FROM order_items WHERE order_id IN (1, 2, 3, ...);',
        'Use eager loading in ORMs. Monitor query counts per request. Use batch fetching.',
        Severity.HIGH, MistakeCategory.PERFORMANCE,
        heuristic=True,
    ),
    _mistake(
        'like-wildcard-start',
        'Leading Wildcard in LIKE',
        (r'LIKE\s+[\'"]%',),
        'LIKE patterns starting with % cannot use indexes, forcing full table scans.',
        'Restructure queries to avoid leading wildcards, or use full-text search.',
        "A LIKE '%search%' on a million-row table can take 10+ seconds. Full-text search "
        'indexes can return results in milliseconds.',
        "SELECT * FROM products WHERE name LIKE '%phone%';",
        "SELECT * FROM products WHERE to_tsvector('english', name) @@ to_tsquery('phone');",
        'Use full-text search (PostgreSQL tsvector, MySQL FULLTEXT, Elasticsearch). Consider '
        'search-optimized columns.',
        Severity.HIGH, MistakeCategory.PERFORMANCE,
    ),
    _mistake(
        'null-comparison',
        'NULL Comparison Error',
        (r'\b(?:WHERE|AND|OR|ON|HAVING)\s+[\w.]+\s*(?:=|!=|<>)\s*NULL\b',),
        'NULL cannot be compared with = or !=. These comparisons always return NULL (unknown).',
        'Use IS NULL or IS NOT NULL for NULL comparisons.',
        "This logic error silently returns wrong results. WHERE status != 'deleted' won't "
        'return rows where status is NULL, potentially hiding data.',
        'SELECT * FROM users WHERE deleted_at = NULL;',
        'SELECT * FROM users WHERE deleted_at IS NULL;',
        'Understand three-valued logic in SQL. Use COALESCE to handle NULLs explicitly.',
        Severity.HIGH, MistakeCategory.CORRECTNESS,
    ),
    _mistake(
        'group-by-non-aggregated',
        'Non-aggregated Column in GROUP BY',
        # First two-column SELECT list, then its first aggregate, then a single-column GROUP BY
        (r'^(?:(?!\bSELECT\s+\w+(?:\.\w+)?\s*,\s*\w+(?:\.\w+)?\s*,).)*'
         r'\bSELECT\s+\w+(?:\.\w+)?\s*,\s*\w+(?:\.\w+)?\s*,'
         r'(?:(?!\b(?:COUNT|SUM|AVG|MIN|MAX)\s*\().)*\b(?:COUNT|SUM|AVG|MIN|MAX)\s*\('
         r'.*\bGROUP\s+BY\s+\w+(?:\.\w+)?\s*(?:;|$|\bHAVING\b|\bORDER\b|\bLIMIT\b)',),
        'Selecting columns not in GROUP BY or aggregate functions returns unpredictable results.',
        'Include all selected columns in GROUP BY or wrap them in aggregate functions.',
        "MySQL's permissive mode hides this error, causing silent data corruption. Results vary "
        'between executions, making bugs extremely hard to track.',
        'SELECT customer_id, order_date, SUM(amount) FROM orders GROUP BY customer_id;',
        'SELECT customer_id, MAX(order_date), SUM(amount) FROM orders GROUP BY customer_id;',
        'Enable ONLY_FULL_GROUP_BY mode in MySQL. PostgreSQL enforces this by default.',
        Severity.HIGH, MistakeCategory.CORRECTNESS,
    ),
    _mistake(
        'order-by-rand',
        'ORDER BY RANDOM() Antipattern',
        (r'ORDER\s+BY\s+RAND\s*\(\s*\)',
         r'ORDER\s+BY\s+RANDOM\s*\(\s*\)',
         r'ORDER\s+BY\s+NEWID\s*\(\s*\)'),
        'ORDER BY RANDOM() scans and sorts the entire table, even for LIMIT 1.',
        'Use offset-based random selection or pre-generated random columns.',
        'On a table with 1M rows, ORDER BY RANDOM() LIMIT 1 takes 2-5 seconds instead of '
        'milliseconds, potentially crashing your database under load.',
        'SELECT * FROM products ORDER BY RANDOM() LIMIT 5;',
        'SELECT * FROM products WHERE id >= (SELECT FLOOR(RANDOM() * (SELECT MAX(id) FROM products))) LIMIT 5;',
        'For random samples, use TABLESAMPLE or application-side random ID generation.',
        Severity.MEDIUM, MistakeCategory.PERFORMANCE,
    ),
    _mistake(
        'distinct-overuse',
        'DISTINCT as a Band-Aid',
        (r'^(?:(?!\bSELECT\s+DISTINCT\b).)*\bSELECT\s+DISTINCT\b.*\bJOIN\b',),
        'DISTINCT often masks underlying JOIN problems that create duplicates.',
        'Fix the root cause (incorrect joins) instead of hiding duplicates with DISTINCT.',
        'DISTINCT sorts the entire result set, which is expensive. The hidden join bug may also '
        'cause incorrect counts or aggregations elsewhere.',
        'SELECT DISTINCT customer_name FROM customers c JOIN orders o ON c.id = o.customer_id;',
        'SELECT customer_name FROM customers WHERE EXISTS (SELECT 1 FROM orders WHERE customer_id = customers.id);',
        "If you need DISTINCT, ask why duplicates exist. Often it's a many-to-many join issue.",
        Severity.MEDIUM, MistakeCategory.CORRECTNESS,
    ),
    _mistake(
        'subquery-in-select',
        'Correlated Subquery in SELECT',
        # SELECT list, then "(SELECT ... FROM ... WHERE" with no other SELECT/FROM in between
        (r'\bSELECT\b(?:(?!\b(?:SELECT|FROM)\b)[^;])*?\(\s*SELECT\b'
         r'(?:(?!\b(?:SELECT|FROM)\b)[^;])*\bFROM\b'
         r'(?:(?!\b(?:SELECT|FROM)\b)[^;])*?\bWHERE\b',),
        'Correlated subqueries in SELECT execute once per row, causing O(n^2) performance.',
        'Rewrite as a JOIN or use window functions.',
        'A report with 10,000 rows and a correlated subquery runs 10,000+ queries. What should '
        'take 100ms takes 30+ seconds.',
        'SELECT name, (SELECT COUNT(*) FROM orders WHERE customer_id = c.id) FROM customers c;',
        'SELECT c.name, COUNT(o.id) FROM customers c LEFT JOIN orders o ON c.id = o.customer_id GROUP BY c.id, c.name;',
        'Profile queries with EXPLAIN. Look for "dependent subquery" warnings.',
        Severity.HIGH, MistakeCategory.PERFORMANCE,
    ),
    _mistake(
        'or-vs-union',
        'Multiple OR Conditions',
        (r'\b(\w+(?:\.\w+)?)\s*=\s*[^\s=]+\s+OR\s+\1\s*=\s*[^\s=]+\s+OR\s+\1\s*=',),
        'Multiple OR conditions often prevent index usage and create complex execution plans.',
        'Use IN clause or UNION ALL for better index utilization.',
        'OR conditions on different columns prevent index intersection in many databases, '
        'causing full table scans.',
        "SELECT * FROM products WHERE category = 'A' OR category = 'B' OR category = 'C';",
        "SELECT * FROM products WHERE category IN ('A', 'B', 'C');",
        'Use IN for same-column conditions. Consider UNION ALL for cross-column OR logic.',
        Severity.MEDIUM, MistakeCategory.PERFORMANCE,
    ),
    _mistake(
        'count-star-vs-column',
        'COUNT(*) vs COUNT(column) Confusion',
        (r'\bCOUNT\s*\(\s*(?!DISTINCT\b)[A-Za-z_]\w*\s*\)',),
        'COUNT(column) ignores NULLs, which may not be intended. COUNT(*) counts all rows.',
        'Use COUNT(*) for row counts, COUNT(column) only when NULL exclusion is intentional.',
        'Reports showing "500 orders" when COUNT(discount_code) was used miss the 200 orders '
        'without discounts, causing incorrect business decisions.',
        'SELECT COUNT(email) FROM users; -- excludes users without email',
        'SELECT COUNT(*) FROM users; -- counts all users',
        'Be explicit about intent. Add comments explaining why COUNT(column) is used.',
        Severity.MEDIUM, MistakeCategory.CORRECTNESS,
    ),
    _mistake(
        'missing-index-hint',
        'Filtering on Non-indexed Column',
        (r'WHERE\s+(?:created_at|updated_at|status|type|category|is_active|is_deleted)\s*(?:=|>|<|LIKE)',),
        'Frequently filtered columns without indexes cause full table scans.',
        'Create indexes on columns used in WHERE, JOIN, and ORDER BY clauses.',
        'A missing index on a datetime filter can make a "get recent orders" query 1000x slower '
        'as the table grows.',
        "-- No index on 'status'\nSELECT * FROM orders WHERE status = 'pending';",
        "-- After: CREATE INDEX idx_orders_status ON orders(status);\nSELECT * FROM orders WHERE status = 'pending';",
        'Use EXPLAIN to check query plans. Monitor slow query logs. Create composite indexes '
        'for common filter combinations.',
        Severity.HIGH, MistakeCategory.PERFORMANCE,
        heuristic=True,
    ),
    _mistake(
        'having-without-group-by',
        'HAVING Without GROUP BY',
        (r'^(?!.*\bGROUP\s+BY\b).*\bHAVING\b',),
        'HAVING filters groups, but the query never groups its rows.',
        'Use WHERE to filter rows, or add GROUP BY before HAVING.',
        'Without GROUP BY the whole table becomes one group, so HAVING either returns every row '
        'or nothing. Reports built on it silently show all-or-nothing totals.',
        'SELECT customer_id, amount FROM orders HAVING amount > 100;',
        'SELECT customer_id, amount FROM orders WHERE amount > 100;',
        'Filter rows with WHERE and groups with HAVING. Write GROUP BY first, then HAVING.',
        Severity.MEDIUM, MistakeCategory.CORRECTNESS,
    ),
    _mistake(
        'like-without-wildcard',
        'Inefficient LIKE Usage',
        (r"\bLIKE\s+'[^'%_]*'",),
        'LIKE without any wildcard is just an equality test written the slow way.',
        'Use = for exact matches, and LIKE only when the pattern contains % or _.',
        'Some planners skip index lookups for LIKE, so an exact match written as LIKE can scan '
        'the whole table.',
        "SELECT * FROM users WHERE email LIKE 'ann@example.com';",
        "SELECT * FROM users WHERE email = 'ann@example.com';",
        'Reach for LIKE only when you need pattern matching.',
        Severity.LOW, MistakeCategory.STYLE,
    ),
    _mistake(
        'and-or-precedence',
        'Logic Error with AND/OR',
        # The first connective after WHERE, then the other one before any parenthesis or next WHERE
        (r'\bWHERE\b(?:(?!\b(?:AND|WHERE)\b)[^();])*\bAND\b(?:(?!\bWHERE\b)[^();])*?\bOR\b',
         r'\bWHERE\b(?:(?!\b(?:OR|WHERE)\b)[^();])*\bOR\b(?:(?!\bWHERE\b)[^();])*?\bAND\b'),
        'Mixing AND and OR without parentheses relies on operator precedence (AND binds first).',
        'Wrap OR branches in parentheses so the grouping is explicit.',
        "WHERE status = 'active' AND role = 'admin' OR role = 'owner' returns inactive owners too, "
        'a classic source of permission leaks.',
        "SELECT * FROM users WHERE status = 'active' AND role = 'admin' OR role = 'owner';",
        "SELECT * FROM users WHERE status = 'active' AND (role = 'admin' OR role = 'owner');",
        'Always parenthesize mixed AND/OR conditions.',
        Severity.MEDIUM, MistakeCategory.CORRECTNESS,
    ),
    _mistake(
        'double-quoted-string',
        'Double-Quoted String Literal',
        (r'(?:=|<>|!=|\bLIKE|\bIN\s*\()\s*"[^"]*"',),
        'Double quotes mark identifiers in standard SQL, not string values.',
        "Use single quotes for string literals: WHERE status = 'active'.",
        'PostgreSQL reads "active" as a column name and fails, while MySQL accepts it, so the '
        'query breaks when it moves between databases.',
        'SELECT * FROM users WHERE status = "active";',
        "SELECT * FROM users WHERE status = 'active';",
        'Single quotes for values, double quotes only for identifiers that need quoting.',
        Severity.MEDIUM, MistakeCategory.CORRECTNESS,
    ),
    _mistake(
        'unnecessary-temp-table',
        'Creating Unnecessary Temporary Tables',
        (r'\bCREATE\s+(?:LOCAL\s+|GLOBAL\s+)?TEMP(?:ORARY)?\s+TABLE\b',),
        'Creating temp tables when subqueries or CTEs would suffice.',
        'Use subqueries, CTEs (WITH clause), or views instead.',
        'Unnecessary disk I/O, slower performance, more complexity.',
        "CREATE TEMP TABLE active_users AS SELECT * FROM users WHERE status = 'active';",
        "WITH active_users AS (SELECT * FROM users WHERE status = 'active') SELECT * FROM active_users;",
        'Use CTEs and subqueries. Only create temp tables for complex, multi-step operations.',
        Severity.LOW, MistakeCategory.STYLE,
    ),
)


class MistakeCatalog:
    """Immutable, ordered collection of mistake definitions"""

    def __init__(self, definitions: Iterable[MistakeDefinition]):
        definitions = tuple(definitions)
        by_id: Dict[str, MistakeDefinition] = {}
        for definition in definitions:
            if definition.id in by_id:
                raise CatalogError(f"Duplicate mistake id: {definition.id}")
            if not definition.detection_patterns:
                raise CatalogError(f"Mistake '{definition.id}' has no detection patterns")
            by_id[definition.id] = definition
            # Fail at construction, not in the middle of a validation
            for pattern in definition.detection_patterns:
                try:
                    compile_pattern(pattern)
                except re.error as e:
                    raise CatalogError(f"Mistake '{definition.id}' has an invalid pattern: {e}")

        self._definitions = definitions
        self._by_id = MappingProxyType(by_id)

    def __iter__(self) -> Iterator[MistakeDefinition]:
        return iter(self._definitions)

    def __len__(self) -> int:
        return len(self._definitions)

    def __contains__(self, mistake_id: object) -> bool:
        return mistake_id in self._by_id

    @property
    def ids(self) -> List[str]:
        return [definition.id for definition in self._definitions]

    def get(self, mistake_id: str) -> Optional[MistakeDefinition]:
        return self._by_id.get(mistake_id)

    def by_category(self, category: MistakeCategory) -> List[MistakeDefinition]:
        return [d for d in self._definitions if d.category == MistakeCategory(category)]

    def by_severity(self, severity: Severity) -> List[MistakeDefinition]:
        return [d for d in self._definitions if d.severity == Severity(severity)]

    def detect(self,
               raw_query: str,
               include_heuristic: bool = False,
               enabled_checks: Optional[Collection[str]] = None) -> List[MistakeDefinition]:
        """
        Scan a raw query against every catalog entry

        Args:
            raw_query: Learner query text, not normalized
            include_heuristic: Run low-precision detectors for every exercise
            enabled_checks: Heuristic mistake ids opted in by the exercise

        Returns:
            Matched definitions in catalog order
        """
        enabled = set(enabled_checks or ())
        detected = []
        for definition in self._definitions:
            if definition.heuristic and not include_heuristic and definition.id not in enabled:
                continue
            if any(compile_pattern(p).search(raw_query) for p in definition.detection_patterns):
                detected.append(definition)
        return detected


class CatalogRegistry:
    """
    Holds the active catalog behind a single reference

    Swapping replaces the reference in one assignment, so a validation that
    already read `current` keeps a consistent catalog until it finishes.
    """

    def __init__(self, catalog: MistakeCatalog):
        self._catalog = catalog

    @property
    def current(self) -> MistakeCatalog:
        return self._catalog

    def swap(self, catalog: MistakeCatalog) -> MistakeCatalog:
        """Install a new catalog and return the previous one"""
        if not isinstance(catalog, MistakeCatalog):
            raise CatalogError("Only a MistakeCatalog can be installed")
        previous = self._catalog
        self._catalog = catalog
        logger.info(f"Mistake catalog swapped: {len(previous)} -> {len(catalog)} definitions")
        return previous


DEFAULT_CATALOG = MistakeCatalog(MISTAKE_DEFINITIONS)
