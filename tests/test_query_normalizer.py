"""
Unit tests for query normalization and the syntax pre-check
"""

import unittest

from sqlcoach.query_normalizer import (
    check_length, check_syntax, collapse_whitespace, normalize, prepare, strip_comments
)


class TestNormalize(unittest.TestCase):
    """Test lexical normalization"""

    def test_lowercases_and_collapses_whitespace(self):
        """Test case folding and whitespace runs"""
        self.assertEqual(
            normalize('SELECT  id,name\n\tFROM   Users ;'),
            'select id, name from users'
        )

    def test_spaces_comparison_operators(self):
        """Test spacing around = and other comparison operators"""
        self.assertEqual(normalize('WHERE a=1 AND b<>2 AND c>=3'), 'where a = 1 and b <> 2 and c >= 3')

    def test_strips_trailing_semicolons(self):
        """Test trailing semicolons are removed"""
        self.assertEqual(normalize('select 1;'), 'select 1')
        self.assertEqual(normalize('select 1 ; ;'), 'select 1')

    def test_keeps_clause_order(self):
        """Test normalization never reorders text"""
        self.assertEqual(normalize('FROM users SELECT id'), 'from users select id')

    def test_handles_empty_and_none(self):
        """Test degenerate input"""
        self.assertEqual(normalize(''), '')
        self.assertEqual(normalize(None), '')
        self.assertEqual(normalize(' \n\t '), '')

    def test_idempotent(self):
        """Test normalize(normalize(x)) == normalize(x)"""
        samples = [
            'SELECT id , name FROM users;',
            'a ,;',
            'a = ;',
            'x=1;;  ',
            "SELECT 'a,b' , c FROM t WHERE d!=e",
            ' , leading comma',
            'a ; = b',
            'UPDATE t SET a=1,b=2 WHERE id=3 ;',
            '',
        ]
        for sample in samples:
            with self.subTest(sample=sample):
                once = normalize(sample)
                self.assertEqual(normalize(once), once)


class TestCommentStripping(unittest.TestCase):
    """Test comment removal before analysis"""

    def test_strips_line_comment(self):
        """Test starter-code style leading comment"""
        self.assertEqual(
            prepare('-- Select name and email from users\nSELECT name, email FROM users;'),
            'select name, email from users'
        )

    def test_strips_block_comment(self):
        """Test /* */ comments"""
        self.assertEqual(prepare('SELECT /* all of them */ name FROM users'), 'select name from users')

    def test_empty_input(self):
        """Test empty input stays empty"""
        self.assertEqual(strip_comments(''), '')
        self.assertEqual(prepare(''), '')

    def test_collapse_whitespace_keeps_case(self):
        """Test the display form keeps original casing"""
        self.assertEqual(
            collapse_whitespace('SELECT Name\n  FROM Users'),
            'SELECT Name FROM Users'
        )


class TestCheckSyntax(unittest.TestCase):
    """Test the shallow syntax pre-check"""

    def test_valid_query(self):
        """Test a well formed SELECT passes"""
        result = check_syntax('select name from users')
        self.assertTrue(result.valid)
        self.assertIsNone(result.error)

    def test_empty_query(self):
        """Test empty input is rejected first"""
        self.assertEqual(check_syntax('').error, 'Query is empty')
        self.assertEqual(check_syntax('   ').error, 'Query is empty')

    def test_query_too_long(self):
        """Test configurable length limit"""
        result = check_syntax('select 1', max_length=5)
        self.assertFalse(result.valid)
        self.assertEqual(result.error, 'Query too long (max 5 characters)')

    def test_length_limit_disabled(self):
        """Test None disables the length limit"""
        self.assertTrue(check_syntax('select 1 from t' + ' ' * 20 + 'x', max_length=None).valid)

    def test_raw_length(self):
        """Test the raw limit counts whitespace and comments"""
        self.assertTrue(check_length('select 1', max_length=8).valid)
        self.assertEqual(check_length('select 1 ' + ' ' * 10, max_length=8).error,
                         'Query too long (max 8 characters)')
        self.assertEqual(check_length('/* long */ select 1', max_length=8).error,
                         'Query too long (max 8 characters)')

    def test_raw_length_ignores_blank_input(self):
        """Test blank input is left for the empty-query rule"""
        self.assertTrue(check_length(' ' * 50, max_length=8).valid)
        self.assertTrue(check_length('x' * 50, max_length=None).valid)

    def test_unmatched_opening_parenthesis(self):
        """Test unclosed parenthesis"""
        self.assertEqual(check_syntax('select (id from users').error, 'Unmatched opening parenthesis')

    def test_unmatched_closing_parenthesis(self):
        """Test closing parenthesis without an opener"""
        self.assertEqual(check_syntax('select id) from (users').error, 'Unmatched closing parenthesis')

    def test_unmatched_single_quote(self):
        """Test odd number of single quotes"""
        self.assertEqual(
            check_syntax("select name from users where name = 'bob").error,
            'Unmatched single quote'
        )

    def test_invalid_leading_keyword(self):
        """Test unknown statement keyword"""
        result = check_syntax('show tables')
        self.assertFalse(result.valid)
        self.assertTrue(result.error.startswith('Query must start with a valid SQL keyword'))

    def test_keyword_prefix_is_not_a_keyword(self):
        """Test 'selection' does not count as SELECT"""
        self.assertFalse(check_syntax('selection from t').valid)

    def test_select_requires_from(self):
        """Test SELECT without FROM"""
        self.assertEqual(
            check_syntax('select id').error,
            'SELECT statements typically require a FROM clause'
        )

    def test_bare_literal_select_allowed(self):
        """Test literal-only SELECT lists need no FROM"""
        for query in ('select 1', 'select 2 + 3', "select 'a' as label", 'select null'):
            with self.subTest(query=query):
                self.assertTrue(check_syntax(query).valid)

    def test_function_select_requires_from(self):
        """Test a function call is not a bare literal"""
        self.assertFalse(check_syntax('select now()').valid)

    def test_other_statements(self):
        """Test non-SELECT statements pass the keyword rule"""
        for query in ('delete from orders', 'update t set a = 1', 'with x as (select 1) select * from x'):
            with self.subTest(query=query):
                self.assertTrue(check_syntax(query).valid)

    def test_first_failure_wins(self):
        """Test parenthesis rule is checked before the keyword rule"""
        self.assertEqual(check_syntax('show (tables').error, 'Unmatched opening parenthesis')


if __name__ == '__main__':
    unittest.main()
