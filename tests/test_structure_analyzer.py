"""
Unit tests for the structural analyzer
"""

import unittest

from sqlcoach.query_normalizer import prepare
from sqlcoach.schemas import Complexity
from sqlcoach.structure_analyzer import analyze, extract_clause, extract_columns, extract_tables


class TestAnalyzeFlags(unittest.TestCase):
    """Test clause presence flags"""

    def test_simple_select(self):
        """Test flags of a plain SELECT"""
        analysis = analyze(prepare('SELECT name FROM users'))
        self.assertTrue(analysis.has_select)
        self.assertTrue(analysis.has_from)
        self.assertFalse(analysis.has_where)
        self.assertFalse(analysis.has_join)
        self.assertFalse(analysis.has_group_by)
        self.assertFalse(analysis.has_order_by)
        self.assertFalse(analysis.has_limit)
        self.assertFalse(analysis.has_aggregate)
        self.assertEqual(analysis.estimated_complexity, Complexity.SIMPLE)

    def test_full_query(self):
        """Test every flag on a query using all clauses"""
        analysis = analyze(prepare(
            'SELECT status, COUNT(*) FROM orders o LEFT JOIN customers c ON o.customer_id = c.id '
            'WHERE o.total > 10 GROUP BY status ORDER BY status LIMIT 5'
        ))
        self.assertTrue(analysis.has_where)
        self.assertTrue(analysis.has_join)
        self.assertTrue(analysis.has_group_by)
        self.assertTrue(analysis.has_order_by)
        self.assertTrue(analysis.has_limit)
        self.assertTrue(analysis.has_aggregate)

    def test_keywords_in_comments_are_ignored(self):
        """Test comment text does not set flags after comment stripping"""
        analysis = analyze(prepare('-- join where group by\nSELECT name FROM users'))
        self.assertFalse(analysis.has_join)
        self.assertFalse(analysis.has_where)
        self.assertFalse(analysis.has_group_by)


class TestExtractTables(unittest.TestCase):
    """Test table extraction"""

    def test_from_and_join_tables_in_order(self):
        """Test both sides of a join are found once each, first-seen order"""
        tables = extract_tables(prepare('SELECT * FROM t1 JOIN t2 ON t1.id = t2.t1_id'))
        self.assertEqual(tables, ['t1', 't2'])

    def test_deduplicates(self):
        """Test a self join reports the table once"""
        tables = extract_tables(prepare('SELECT a.id FROM emp a JOIN emp b ON a.boss = b.id'))
        self.assertEqual(tables, ['emp'])

    def test_subquery_tables(self):
        """Test tables referenced by subqueries"""
        tables = extract_tables(prepare(
            'SELECT name FROM users WHERE id IN (SELECT user_id FROM orders)'))
        self.assertEqual(tables, ['users', 'orders'])

    def test_mutation_targets(self):
        """Test UPDATE and INSERT INTO targets"""
        self.assertEqual(extract_tables(prepare('UPDATE users SET active = 1 WHERE id = 2')), ['users'])
        self.assertEqual(extract_tables(prepare('INSERT INTO logs VALUES (1)')), ['logs'])

    def test_for_update_is_not_a_table(self):
        """Test SELECT ... FOR UPDATE"""
        self.assertEqual(extract_tables(prepare('SELECT id FROM jobs FOR UPDATE')), ['jobs'])


class TestExtractColumns(unittest.TestCase):
    """Test SELECT list column extraction"""

    def test_wildcard_is_empty(self):
        """Test SELECT * yields no columns"""
        self.assertEqual(extract_columns(prepare('SELECT * FROM users')), [])

    def test_qualifiers_and_aliases_stripped(self):
        """Test table qualifiers and AS aliases are removed"""
        columns = extract_columns(prepare(
            'SELECT o.order_id, c.customer_name AS name FROM orders o JOIN customers c ON o.cid = c.id'))
        self.assertEqual(columns, ['order_id', 'customer_name'])

    def test_function_wrappers_stripped(self):
        """Test function calls unwrap to their column"""
        columns = extract_columns(prepare(
            'SELECT UPPER(u.name), SUM(o.total) AS spent, COUNT(*) FROM users u JOIN orders o ON o.uid = u.id'))
        self.assertEqual(columns, ['name', 'total', 'count'])

    def test_implicit_aliases_stripped(self):
        """Test aliases written without AS are removed before unwrapping"""
        columns = extract_columns(prepare(
            'SELECT SUM(o.total) total_spent, c.name n, COUNT(*) orders FROM orders o JOIN customers c ON o.cid = c.id'))
        self.assertEqual(columns, ['total', 'name', 'count'])

    def test_expressions_keep_their_last_operand(self):
        """Test an operator before the last word is not mistaken for an alias"""
        self.assertEqual(extract_columns(prepare('SELECT price * qty FROM items')), ['price * qty'])

    def test_commas_inside_calls_do_not_split(self):
        """Test only top-level commas separate columns"""
        columns = extract_columns(prepare("SELECT COALESCE(nickname, name) AS label, email FROM users"))
        self.assertEqual(columns, ['coalesce', 'email'])

    def test_distinct_prefix(self):
        """Test DISTINCT is not a column"""
        self.assertEqual(extract_columns(prepare('SELECT DISTINCT city FROM users')), ['city'])

    def test_deduplicates(self):
        """Test repeated columns are reported once"""
        self.assertEqual(extract_columns(prepare('SELECT a.id, b.id FROM a JOIN b ON a.id = b.id')), ['id'])

    def test_no_from(self):
        """Test a literal SELECT has no columns"""
        self.assertEqual(extract_columns(prepare('SELECT 1')), [])

    def test_subquery_in_from_uses_outer_list(self):
        """Test the outer SELECT list is used"""
        columns = extract_columns(prepare('SELECT x FROM (SELECT a AS x FROM t) sub'))
        self.assertEqual(columns, ['x'])


class TestComplexity(unittest.TestCase):
    """Test estimated complexity scoring"""

    def test_join_is_moderate(self):
        """Test join alone scores 2"""
        analysis = analyze(prepare('SELECT a.x FROM a JOIN b ON a.id = b.id'))
        self.assertEqual(analysis.estimated_complexity, Complexity.MODERATE)

    def test_join_group_aggregate_is_complex(self):
        """Test join + group by + aggregate scores 4"""
        analysis = analyze(prepare(
            'SELECT u.name, COUNT(o.id) FROM users u LEFT JOIN orders o ON o.user_id = u.id GROUP BY u.name'))
        self.assertEqual(analysis.estimated_complexity, Complexity.COMPLEX)

    def test_nested_select_is_moderate(self):
        """Test a subquery scores 2"""
        analysis = analyze(prepare('SELECT name FROM users WHERE id IN (SELECT user_id FROM orders)'))
        self.assertEqual(analysis.estimated_complexity, Complexity.MODERATE)

    def test_group_and_aggregate_is_moderate(self):
        """Test group by + aggregate scores 2"""
        analysis = analyze(prepare('SELECT status, COUNT(*) FROM orders GROUP BY status'))
        self.assertEqual(analysis.estimated_complexity, Complexity.MODERATE)


class TestExtractClause(unittest.TestCase):
    """Test clause text extraction"""

    QUERY = 'SELECT name FROM users WHERE id = 1 ORDER BY name LIMIT 5;'

    def test_clause_ends_at_next_boundary(self):
        """Test WHERE stops at ORDER BY"""
        self.assertEqual(extract_clause(self.QUERY, 'where'), 'WHERE id = 1')
        self.assertEqual(extract_clause(self.QUERY, 'from'), 'FROM users')
        self.assertEqual(extract_clause(self.QUERY, 'order by'), 'ORDER BY name')

    def test_last_clause_drops_semicolon(self):
        """Test the trailing semicolon is not part of the clause"""
        self.assertEqual(extract_clause(self.QUERY, 'limit'), 'LIMIT 5')

    def test_consecutive_joins_form_one_clause(self):
        """Test JOIN covers every consecutive join"""
        query = 'SELECT * FROM a JOIN b ON a.id = b.id LEFT JOIN c ON c.id = a.id WHERE a.x = 1'
        self.assertEqual(extract_clause(query, 'join'), 'JOIN b ON a.id = b.id LEFT JOIN c ON c.id = a.id')
        self.assertEqual(extract_clause(query, 'from'), 'FROM a')

    def test_subquery_keywords_do_not_end_clause(self):
        """Test nested clauses stay inside the outer WHERE"""
        query = 'SELECT name FROM users WHERE id IN (SELECT user_id FROM orders WHERE total > 5) ORDER BY name'
        self.assertEqual(
            extract_clause(query, 'where'),
            'WHERE id IN (SELECT user_id FROM orders WHERE total > 5)'
        )

    def test_missing_clause(self):
        """Test absent clause yields an empty string"""
        self.assertEqual(extract_clause(self.QUERY, 'group by'), '')


if __name__ == '__main__':
    unittest.main()
