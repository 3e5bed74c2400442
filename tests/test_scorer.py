"""
Unit tests for score arithmetic
"""

import unittest

from sqlcoach import schemas, scorer
from sqlcoach.mistake_catalog import DEFAULT_CATALOG
from sqlcoach.schemas import ForbiddenCheck, RequiredCheck

PASSED_REQUIRED = RequiredCheck(passed=True)
PASSED_FORBIDDEN = ForbiddenCheck(passed=True)


def result(passed, weight):
    return schemas.TestCaseResult(name='case', passed=passed, message='', weight=weight)


class TestWeightedPassRatio(unittest.TestCase):
    """Test weighted pass ratio"""

    def test_weighted(self):
        """Test passed weight over total weight"""
        ratio = scorer.weighted_pass_ratio([result(True, 0.25), result(False, 0.75)])
        self.assertEqual(ratio, 0.25)

    def test_zero_total_weight(self):
        """Test no weight at all counts as a full pass"""
        self.assertEqual(scorer.weighted_pass_ratio([]), 1.0)
        self.assertEqual(scorer.weighted_pass_ratio([result(False, 0.0)]), 1.0)


class TestScore(unittest.TestCase):
    """Test score deductions"""

    def test_perfect(self):
        """Test nothing to deduct"""
        self.assertEqual(scorer.score([result(True, 1.0)], [], PASSED_REQUIRED, PASSED_FORBIDDEN), 100)

    def test_test_shortfall(self):
        """Test up to 40 points for failing test cases"""
        self.assertEqual(scorer.score([result(False, 1.0)], [], PASSED_REQUIRED, PASSED_FORBIDDEN), 60)
        self.assertEqual(
            scorer.score([result(True, 0.5), result(False, 0.5)], [], PASSED_REQUIRED, PASSED_FORBIDDEN), 80)

    def test_mistakes_compound(self):
        """Test every detected mistake deducts by severity"""
        mistakes = [DEFAULT_CATALOG.get('missing-where'), DEFAULT_CATALOG.get('null-comparison')]
        self.assertEqual(scorer.score([], mistakes, PASSED_REQUIRED, PASSED_FORBIDDEN), 55)

        mistakes = [DEFAULT_CATALOG.get('select-star'), DEFAULT_CATALOG.get('not-using-aliases')]
        self.assertEqual(scorer.score([], mistakes, PASSED_REQUIRED, PASSED_FORBIDDEN), 88)

    def test_required_and_forbidden_penalties(self):
        """Test 10 points per missing element and per violation"""
        required = RequiredCheck(passed=False, missing=['JOIN', 'table: orders'])
        forbidden = ForbiddenCheck(passed=False, violations=['\\*'])
        self.assertEqual(scorer.score([], [], required, forbidden), 70)

    def test_clamped_at_zero(self):
        """Test score never goes negative"""
        required = RequiredCheck(passed=False, missing=['a'] * 20)
        self.assertEqual(scorer.score([result(False, 1.0)], [], required, PASSED_FORBIDDEN), 0)

    def test_rounds_half_up(self):
        """Test 87.5 rounds to 88"""
        results = [result(True, 0.6875), result(False, 0.3125)]
        self.assertEqual(scorer.score(results, [], PASSED_REQUIRED, PASSED_FORBIDDEN), 88)

    def test_returns_int(self):
        """Test the score is an integer"""
        value = scorer.score([result(True, 1.0), result(False, 2.0)], [], PASSED_REQUIRED, PASSED_FORBIDDEN)
        self.assertIsInstance(value, int)


class TestIsPassing(unittest.TestCase):
    """Test the pass decision"""

    def test_threshold(self):
        """Test the default pass mark of 70"""
        self.assertTrue(scorer.is_passing(70, []))
        self.assertFalse(scorer.is_passing(69, []))

    def test_critical_mistake_always_fails(self):
        """Test a critical mistake overrides a high score"""
        self.assertFalse(scorer.is_passing(95, [DEFAULT_CATALOG.get('sql-injection-risk')]))
        self.assertTrue(scorer.is_passing(95, [DEFAULT_CATALOG.get('select-star')]))

    def test_custom_passing_score(self):
        """Test a configured pass mark"""
        self.assertFalse(scorer.is_passing(75, [], passing_score=80))


if __name__ == '__main__':
    unittest.main()
