"""
Scorer
======
Turns constraint outcomes and detected mistakes into a 0-100 score.

Start at 100 and deduct:
- up to 40 points for test case shortfall (weighted pass ratio)
- a severity-based penalty for every detected mistake, compounding
- 10 points per missing required element
- 10 points per forbidden pattern violation
"""

import math
from typing import Iterable, List

from .schemas import (
    ForbiddenCheck, MistakeDefinition, RequiredCheck, Severity, TestCaseResult
)

MAX_SCORE = 100
DEFAULT_PASSING_SCORE = 70
TEST_CASE_WEIGHT = 40
MISSING_REQUIRED_PENALTY = 10
FORBIDDEN_VIOLATION_PENALTY = 10

SEVERITY_PENALTIES = {
    Severity.CRITICAL: 30,
    Severity.HIGH: 15,
    Severity.MEDIUM: 8,
    Severity.LOW: 4,
}


def weighted_pass_ratio(test_results: Iterable[TestCaseResult]) -> float:
    """Weighted share of passing test cases; 1.0 when there is no weight at all"""
    total = 0.0
    passed = 0.0
    for result in test_results:
        total += result.weight
        if result.passed:
            passed += result.weight
    return passed / total if total > 0 else 1.0


def mistake_penalty(mistakes: Iterable[MistakeDefinition]) -> int:
    return sum(SEVERITY_PENALTIES[mistake.severity] for mistake in mistakes)


def score(test_results: List[TestCaseResult], mistakes: List[MistakeDefinition],
          required_check: RequiredCheck, forbidden_check: ForbiddenCheck) -> int:
    """
    Score a validated query

    Returns:
        Integer in [0, 100], halves rounded up
    """
    value = float(MAX_SCORE)
    value -= (1 - weighted_pass_ratio(test_results)) * TEST_CASE_WEIGHT
    value -= mistake_penalty(mistakes)
    value -= len(required_check.missing) * MISSING_REQUIRED_PENALTY
    value -= len(forbidden_check.violations) * FORBIDDEN_VIOLATION_PENALTY

    value = max(0.0, min(float(MAX_SCORE), value))
    return int(math.floor(value + 0.5))


def has_critical(mistakes: Iterable[MistakeDefinition]) -> bool:
    return any(mistake.severity == Severity.CRITICAL for mistake in mistakes)


def is_passing(score_value: int, mistakes: Iterable[MistakeDefinition],
               passing_score: int = DEFAULT_PASSING_SCORE) -> bool:
    """A critical mistake fails the query whatever its score"""
    return score_value >= passing_score and not has_critical(mistakes)
