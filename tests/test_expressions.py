import unittest
import numpy as np

from portfolio_qp.core.expressions import LinearExpr, QuadExpr, Variable


class TestExpressions(unittest.TestCase):
    def setUp(self):
        self.x = Variable(0, 0.0, 1.0, "x")
        self.y = Variable(1, 0.0, 1.0, "y")
        self.point = np.array([0.25, 0.75])

    def test_default_name(self):
        self.assertEqual(Variable(2).name, "x3")

    def test_linear_arithmetic(self):
        expr = 2 * self.x + 3 * self.y - 1
        self.assertIsInstance(expr, LinearExpr)
        self.assertFalse(expr.is_quadratic)
        self.assertEqual(expr.terms, {0: 2.0, 1: 3.0})
        self.assertAlmostEqual(expr.value(self.point), 0.5 + 2.25 - 1)

    def test_reverse_subtraction(self):
        expr = 1 - self.x
        self.assertEqual(expr.terms, {0: -1.0})
        self.assertEqual(expr.constant, 1.0)

    def test_builtin_sum(self):
        expr = sum([self.x, self.y])
        self.assertEqual(expr.terms, {0: 1.0, 1: 1.0})

    def test_product_of_variables_is_quadratic(self):
        expr = self.x * self.y
        self.assertIsInstance(expr, QuadExpr)
        self.assertTrue(expr.is_quadratic)
        self.assertAlmostEqual(expr.value(self.point), 0.25 * 0.75)

    def test_mixed_expression(self):
        expr = 0.1 * self.x + 0.2 * self.y - 0.5 * (self.x * self.x)
        self.assertIsInstance(expr, QuadExpr)
        self.assertAlmostEqual(expr.value(self.point), 0.025 + 0.15 - 0.5 * 0.0625)

    def test_numpy_scalar_coefficient(self):
        expr = np.float64(2.0) * self.x
        self.assertIsInstance(expr, LinearExpr)
        self.assertEqual(expr.terms, {0: 2.0})

    def test_add_term_accumulates(self):
        q = QuadExpr()
        q.add_term(1.0, self.x, self.y).add_term(2.0, self.x, self.y).add_term(0.5, self.y)
        self.assertEqual(q.quad_terms, {(0, 1): 3.0})
        self.assertEqual(q.terms, {1: 0.5})
        np.testing.assert_allclose(q.quadratic_matrix(2), [[0.0, 3.0], [0.0, 0.0]])

    def test_scaling_leaves_original_untouched(self):
        q = QuadExpr().add_term(1.0, self.x, self.x)
        scaled = -2.0 * q
        self.assertEqual(q.quad_terms, {(0, 0): 1.0})
        self.assertEqual(scaled.quad_terms, {(0, 0): -2.0})

    def test_cubic_product_rejected(self):
        with self.assertRaises(TypeError):
            (self.x * self.y) * self.x

    def test_zero_quadratic_terms_are_not_quadratic(self):
        q = 0.0 * (self.x * self.y)
        self.assertFalse(q.is_quadratic)


if __name__ == "__main__":
    unittest.main()
