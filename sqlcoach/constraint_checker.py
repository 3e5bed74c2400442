"""
Constraint Checker
==================
Exercise-specific correctness checks:
- Required clauses, tables and columns
- Forbidden regex patterns
- Test case execution through a scoring strategy chosen by exercise shape

Structured test cases are used when the exercise provides them; otherwise a
single synthetic "Solution Match" case compares feature sets of the learner
query and the canonical solution.
"""

import re
import logging
from typing import List

from .mistake_catalog import compile_pattern
from .query_normalizer import normalize, prepare
from .schemas import (
    ExerciseSpec, ForbiddenCheck, RequiredCheck, StructuralAnalysis,
    TestCase, TestCaseResult
)
from .structure_analyzer import extract_columns, extract_tables

logger = logging.getLogger(__name__)

SOLUTION_MATCH_THRESHOLD = 0.7

# Fixed vocabulary used to fingerprint a query for solution matching
SQL_KEYWORDS = (
    'SELECT', 'FROM', 'WHERE', 'JOIN', 'LEFT', 'RIGHT', 'INNER', 'OUTER',
    'GROUP BY', 'ORDER BY', 'HAVING', 'INSERT', 'UPDATE', 'DELETE',
    'CREATE', 'TABLE', 'INDEX', 'DROP', 'ALTER', 'AND', 'OR', 'NOT',
    'IN', 'BETWEEN', 'LIKE', 'IS NULL', 'IS NOT NULL', 'COUNT', 'SUM',
    'AVG', 'MAX', 'MIN', 'DISTINCT', 'AS', 'ON', 'LIMIT', 'OFFSET'
)

_KEYWORD_PATTERNS = tuple(
    (keyword, re.compile(r'\b%s\b' % r'\s+'.join(keyword.split()), re.IGNORECASE))
    for keyword in SQL_KEYWORDS
)


def check_required(spec: ExerciseSpec, analysis: StructuralAnalysis,
                   normalized_query: str) -> RequiredCheck:
    """Collect every required clause, expected table and expected column that is missing"""
    missing: List[str] = []

    for clause in spec.required_clauses or []:
        if normalize(clause) not in normalized_query:
            missing.append(clause)

    tables = {table.lower() for table in analysis.tables}
    for table in spec.expected_tables or []:
        if table.lower() not in tables:
            missing.append(f'table: {table}')

    columns = {column.lower() for column in analysis.columns}
    for column in spec.expected_columns or []:
        if column.lower() not in columns:
            missing.append(f'column: {column}')

    return RequiredCheck(passed=not missing, missing=missing)


def check_forbidden(spec: ExerciseSpec, raw_query: str) -> ForbiddenCheck:
    """
    Test each forbidden pattern against the raw query

    Patterns are compiled when the ExerciseSpec is built, so a malformed
    regex fails at content-load time rather than here.
    """
    violations = [
        pattern for pattern in spec.forbidden_patterns or []
        if compile_pattern(pattern).search(raw_query)
    ]
    return ForbiddenCheck(passed=not violations, violations=violations)


def extract_key_elements(normalized: str) -> List[str]:
    """Keywords, tables and columns of a query, de-duplicated in that order"""
    elements = [keyword for keyword, pattern in _KEYWORD_PATTERNS if pattern.search(normalized)]
    elements.extend(extract_tables(normalized))
    elements.extend(extract_columns(normalized))

    seen = set()
    unique = []
    for element in elements:
        key = element.lower()
        if key not in seen:
            seen.add(key)
            unique.append(element)
    return unique


class ScoringStrategy:
    """Produces the test case results the scorer turns into a pass ratio"""

    name = "base"

    def run(self, spec: ExerciseSpec, normalized_query: str,
            analysis: StructuralAnalysis) -> List[TestCaseResult]:
        raise NotImplementedError


class StructuredTestStrategy(ScoringStrategy):
    """Evaluates the exercise's structured test cases independently"""

    name = "test-cases"

    def run(self, spec: ExerciseSpec, normalized_query: str,
            analysis: StructuralAnalysis) -> List[TestCaseResult]:
        test_cases = spec.test_cases or []
        default_weight = 1 / len(test_cases) if test_cases else 0.0
        return [
            self._evaluate(test_case, normalized_query, analysis, default_weight)
            for test_case in test_cases
        ]

    def _evaluate(self, test_case: TestCase, normalized_query: str,
                  analysis: StructuralAnalysis, default_weight: float) -> TestCaseResult:
        weight = default_weight if test_case.weight is None else min(max(test_case.weight, 0.0), 1.0)

        def failed(message: str) -> TestCaseResult:
            return TestCaseResult(name=test_case.name, passed=False, message=message, weight=weight)

        for required in test_case.should_contain or []:
            if normalize(required) not in normalized_query:
                return failed(f'Missing required element: "{required}"')

        for forbidden in test_case.should_not_contain or []:
            if normalize(forbidden) in normalized_query:
                return failed(f'Should not contain: "{forbidden}"')

        columns = {column.lower() for column in analysis.columns}
        for column in test_case.expected_columns or []:
            if column.lower() not in columns:
                return failed(f'Missing expected column: "{column}"')

        return TestCaseResult(name=test_case.name, passed=True, message='Test passed', weight=weight)


class SolutionMatchStrategy(ScoringStrategy):
    """Feature-overlap comparison against the canonical solution"""

    name = "solution-match"

    def __init__(self, threshold: float = SOLUTION_MATCH_THRESHOLD):
        self.threshold = threshold

    def run(self, spec: ExerciseSpec, normalized_query: str,
            analysis: StructuralAnalysis) -> List[TestCaseResult]:
        solution_elements = extract_key_elements(prepare(spec.solution))
        user_elements = {element.lower() for element in extract_key_elements(normalized_query)}

        matched = sum(1 for element in solution_elements if element.lower() in user_elements)
        ratio = matched / len(solution_elements) if solution_elements else 0.0
        passed = ratio >= self.threshold

        logger.debug(f"Solution match: {matched}/{len(solution_elements)} elements ({ratio:.2f})")

        message = (
            'Query structure matches expected solution' if passed
            else f'Query matches {int(ratio * 100 + 0.5)}% of expected elements'
        )
        return [TestCaseResult(name='Solution Match', passed=passed, message=message, weight=1.0)]


def select_strategy(spec: ExerciseSpec) -> ScoringStrategy:
    """Structured test cases when the exercise has any, solution matching otherwise"""
    if spec.test_cases:
        return StructuredTestStrategy()
    return SolutionMatchStrategy()


def run_test_cases(spec: ExerciseSpec, normalized_query: str,
                   analysis: StructuralAnalysis) -> List[TestCaseResult]:
    strategy = select_strategy(spec)
    logger.debug(f"Scoring with {strategy.name} strategy")
    return strategy.run(spec, normalized_query, analysis)
