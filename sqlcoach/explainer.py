"""
Explainer
=========
Turns the raw pipeline outcome into learner-facing feedback:
- Primary issue and its real-world impact
- Four-level hint ladder, vaguest first
- Score-banded next steps
- Logical execution order of the clauses present

Catalog order is the only tie-break here. Severity matters to the scorer,
not to which mistake gets explained.
"""

from typing import List, Optional, Tuple

from .query_normalizer import collapse_whitespace, prepare
from .schemas import (
    ExecutionStep, ExerciseSpec, ForbiddenCheck, MistakeCategory,
    MistakeDefinition, RequiredCheck, StructuralAnalysis
)
from .scorer import DEFAULT_PASSING_SCORE
from .structure_analyzer import analyze, extract_clause, extract_tables

HINT_COUNT = 4
MAX_NEXT_STEPS = 5
EXAMPLE_PREVIEW_LENGTH = 50

SYNTAX_ERROR_IMPACT = (
    'Syntax errors prevent your query from running at all. '
    'The database will reject it immediately.'
)

# What to inspect for each mistake category
CATEGORY_FOCUS = {
    MistakeCategory.PERFORMANCE: 'selecting data',
    MistakeCategory.SECURITY: 'handling input',
    MistakeCategory.CORRECTNESS: 'structuring your logic',
    MistakeCategory.DATA_INTEGRITY: 'modifying rows',
    MistakeCategory.STYLE: 'writing your SQL',
}

# Logical evaluation order: operation, StructuralAnalysis flag, clause keyword
EXECUTION_ORDER = (
    ('FROM', 'has_from', 'from'),
    ('JOIN', 'has_join', 'join'),
    ('WHERE', 'has_where', 'where'),
    ('GROUP BY', 'has_group_by', 'group by'),
    ('SELECT', 'has_select', 'select'),
    ('ORDER BY', 'has_order_by', 'order by'),
    ('LIMIT', 'has_limit', 'limit'),
)

STEP_DESCRIPTIONS = {
    'JOIN': 'Combine rows from multiple tables based on join conditions',
    'WHERE': 'Filter rows based on conditions',
    'GROUP BY': 'Group rows for aggregation',
    'ORDER BY': 'Sort the results',
    'LIMIT': 'Limit the number of returned rows',
}


def primary_issue(mistakes: List[MistakeDefinition],
                  required_check: RequiredCheck,
                  forbidden_check: ForbiddenCheck,
                  score: int,
                  passing_score: int = DEFAULT_PASSING_SCORE) -> Tuple[Optional[str], Optional[str]]:
    """
    Pick the single explanation shown for the point loss

    Priority: first detected mistake, first missing required element, first
    forbidden violation, generic structural message below the pass mark.

    Returns:
        (issue, real_world_impact), both None when the query is fine
    """
    if mistakes:
        return mistakes[0].issue, mistakes[0].real_world_impact

    if required_check.missing:
        return (
            f'Missing required element: {required_check.missing[0]}',
            'Incomplete queries may not return the expected results or may fail entirely in production.'
        )

    if forbidden_check.violations:
        return (
            f'Forbidden pattern detected: {forbidden_check.violations[0]}',
            'This pattern is discouraged for this exercise to teach best practices.'
        )

    if score < passing_score:
        return (
            'Your query structure differs significantly from the expected solution.',
            'While your query might work, following the expected pattern helps build '
            'consistent SQL skills.'
        )

    return None, None


def _preview(text: str) -> str:
    if len(text) <= EXAMPLE_PREVIEW_LENGTH:
        return text
    return text[:EXAMPLE_PREVIEW_LENGTH] + '...'


def _authored_hint(spec: ExerciseSpec, index: int) -> Optional[str]:
    if index < len(spec.hints) and spec.hints[index].strip():
        return spec.hints[index]
    return None


def _missing_clause_nudge(analysis: StructuralAnalysis, solution: StructuralAnalysis) -> Optional[str]:
    if solution.has_where and not analysis.has_where:
        return 'Consider whether you need to filter your results in some way.'
    if solution.has_join and not analysis.has_join:
        return 'Does the answer need data from more than one table?'
    if solution.has_group_by and not analysis.has_group_by:
        return 'Think about whether the results should be summarized per group.'
    return None


def _first_solution_line(spec: ExerciseSpec) -> str:
    for line in spec.solution.splitlines():
        if line.strip():
            return line.strip()
    return spec.solution.strip()


def build_hints(spec: ExerciseSpec,
                analysis: StructuralAnalysis,
                mistakes: List[MistakeDefinition]) -> List[str]:
    """
    Build the four-level hint ladder

    Each level prefers the primary mistake, then the exercise's authored
    hint for that level, then synthesized text, so the ladder is always
    complete.
    """
    mistake = mistakes[0] if mistakes else None
    normalized_solution = prepare(spec.solution)
    hints = []

    # Level 1: conceptual
    if mistake:
        hints.append(
            f'Think about {mistake.category.value} best practices. '
            f'What might be inefficient or risky in your query?'
        )
    else:
        hints.append(
            _missing_clause_nudge(analysis, analyze(normalized_solution))
            or _authored_hint(spec, 0)
            or 'Review the basic structure of your query. Is something missing or in the wrong order?'
        )

    # Level 2: directional
    if mistake:
        hints.append(
            f'Your query has a {mistake.category.value} issue. '
            f'Look at how you\'re {CATEGORY_FOCUS[mistake.category]}.'
        )
    else:
        hints.append(
            _authored_hint(spec, 1)
            or 'Compare the clauses in your query with what the problem asks for.'
        )

    # Level 3: specific
    if mistake:
        hints.append(f'Issue detected: {mistake.name}. {mistake.correction}')
    elif _authored_hint(spec, 2):
        hints.append(_authored_hint(spec, 2))
    else:
        solution_tables = extract_tables(normalized_solution)
        if solution_tables:
            hints.append(f'Make sure you\'re using the correct table(s): {", ".join(solution_tables)}')
        else:
            hints.append('Check that every column you need comes from the table you are querying.')

    # Level 4: near-solution
    if mistake:
        hints.append(
            f'Instead of patterns like "{_preview(mistake.example.wrong)}", '
            f'try "{_preview(mistake.example.right)}"'
        )
    else:
        hints.append(
            _authored_hint(spec, 3)
            or f'Your query should start similar to: {_first_solution_line(spec)}'
        )

    return hints[:HINT_COUNT]


def build_next_steps(spec: ExerciseSpec,
                     analysis: StructuralAnalysis,
                     mistakes: List[MistakeDefinition],
                     score: int,
                     passing_score: int = DEFAULT_PASSING_SCORE) -> List[str]:
    """Score-banded advice, at most five entries"""
    steps = []

    if score >= 90:
        steps.append('Great work! Try optimizing your query further or add comments explaining your approach.')
        steps.append('Consider edge cases: what happens with NULL values or empty results?')
        if mistakes:
            steps.append(f'Polish: {mistakes[0].prevention}')
    elif score >= passing_score:
        steps.append('Your query works but could be improved. Review any warnings above.')
        if mistakes:
            steps.append(f'Fix the {mistakes[0].name} issue for better {mistakes[0].category.value}.')
        steps.append('Try running EXPLAIN on your query to understand its execution plan.')
    elif score >= 50:
        steps.append('You\'re on the right track. Focus on the hints provided.')
        steps.append('Review the lesson content about SQL query structure.')
        if not analysis.has_select:
            steps.append('Make sure your query starts with SELECT.')
        if not analysis.has_from:
            steps.append('Add a FROM clause to specify which table to query.')
        if mistakes:
            steps.append(f'Fix the {mistakes[0].name} issue first.')
    else:
        steps.append('Start with the basic structure: SELECT columns FROM table')
        if spec.description:
            steps.append(f'Read the exercise again carefully: {spec.description}')
        else:
            steps.append('Read through the exercise description again carefully.')
        steps.append('Use the starter code as a foundation and modify it step by step.')
        steps.append('Check the first hint for guidance on what approach to take.')

    return steps[:MAX_NEXT_STEPS]


def _step_description(operation: str, analysis: StructuralAnalysis) -> str:
    if operation == 'FROM':
        return f'Load data from table(s): {", ".join(analysis.tables) or "specified table"}'
    if operation == 'SELECT':
        return f'Select columns: {", ".join(analysis.columns) or "*"}'
    return STEP_DESCRIPTIONS[operation]


def build_execution_steps(raw_query: str, analysis: StructuralAnalysis) -> List[ExecutionStep]:
    """
    Clauses present in the query, in the order a database logically evaluates them

    Steps are numbered 1..k over the clauses actually present.
    """
    display_query = collapse_whitespace(raw_query)
    steps = []
    for operation, flag, keyword in EXECUTION_ORDER:
        if not getattr(analysis, flag):
            continue
        steps.append(ExecutionStep(
            step=len(steps) + 1,
            operation=operation,
            description=_step_description(operation, analysis),
            clause=extract_clause(display_query, keyword),
        ))
    return steps


def syntax_failure_hints(error: str) -> List[str]:
    return [
        'Check for typos in SQL keywords.',
        'Make sure all parentheses and quotes are properly matched.',
        'Verify that your query follows standard SQL syntax.',
        f'The error is: {error}',
    ]


def syntax_failure_next_steps() -> List[str]:
    return [
        'Fix the syntax error first.',
        'Try a simpler version of your query.',
        'Use the starter code as a reference.',
    ]
