import unittest
import numpy as np

from portfolio_qp.core.loader import SAMPLE_PRICES
from portfolio_qp.core.statistics import (
    annualized_return,
    asset_returns,
    covariance,
    covariance_matrix,
    portfolio_variance,
    validate_prices,
    variance_terms,
    weighted_return,
)
from portfolio_qp.exceptions import InsufficientDataError


class TestCovariance(unittest.TestCase):
    def test_self_covariance_is_sample_variance(self):
        x = [0.02, 0.03, 0.02, 0.05]
        self.assertAlmostEqual(covariance(x, x), np.var(x, ddof=1), places=15)
        self.assertAlmostEqual(covariance(x, x), 0.0002, places=12)

    def test_pairwise_value(self):
        self.assertAlmostEqual(
            covariance(SAMPLE_PRICES[0], SAMPLE_PRICES[1]), -0.0004 / 3, places=12
        )

    def test_single_observation_rejected(self):
        with self.assertRaises(InsufficientDataError):
            covariance([1.0], [2.0])

    def test_length_mismatch_rejected(self):
        with self.assertRaises(InsufficientDataError):
            covariance([1.0, 2.0, 3.0], [1.0, 2.0])

    def test_matrix_is_symmetric_and_matches_numpy(self):
        cov = covariance_matrix(SAMPLE_PRICES)
        self.assertEqual(cov.shape, (3, 3))
        np.testing.assert_allclose(cov, cov.T)
        np.testing.assert_allclose(cov, np.cov(np.array(SAMPLE_PRICES)), atol=1e-15)

    def test_matrix_diagonal_holds_variances(self):
        cov = covariance_matrix(SAMPLE_PRICES)
        for i, row in enumerate(SAMPLE_PRICES):
            self.assertAlmostEqual(cov[i, i], np.var(row, ddof=1), places=15)


class TestReturns(unittest.TestCase):
    def test_flat_series_returns_zero(self):
        self.assertEqual(annualized_return([5.0, 5.0, 5.0, 5.0]), 0.0)

    def test_sample_asset_returns(self):
        returns = asset_returns(SAMPLE_PRICES)
        self.assertEqual(returns.shape, (3,))
        # Compounding then taking the 250th root gives back the mean daily return
        self.assertAlmostEqual(returns[0], (0.5 - 1 / 3 + 1.5) / 3, places=10)
        self.assertAlmostEqual(returns[1], (0.0 + 4.0 - 0.8) / 3, places=10)
        self.assertAlmostEqual(returns[2], (-0.5 - 0.2 - 0.5) / 3, places=10)

    def test_large_returns_do_not_overflow(self):
        self.assertTrue(np.isfinite(annualized_return([1.0, 30.0, 900.0])))

    def test_single_price_rejected(self):
        with self.assertRaises(InsufficientDataError):
            annualized_return([1.0])

    def test_zero_price_rejected(self):
        with self.assertRaises(InsufficientDataError):
            annualized_return([1.0, 0.0, 2.0])

    def test_total_loss_returns_minus_one(self):
        self.assertEqual(annualized_return([1.0, 0.0]), -1.0)

    def test_negative_price_rejected(self):
        with self.assertRaises(InsufficientDataError):
            annualized_return([1.0, -3.0])


class TestPortfolioMeasures(unittest.TestCase):
    def setUp(self):
        self.cov = np.array([[0.04, 0.01, 0.0],
                             [0.01, 0.09, 0.02],
                             [0.0, 0.02, 0.16]])
        self.weights = np.array([0.2, 0.5, 0.3])

    def test_variance_matches_quadratic_form(self):
        expected = self.weights @ self.cov @ self.weights
        self.assertAlmostEqual(portfolio_variance(self.weights, self.cov), expected, places=15)

    def test_variance_terms_cover_every_pair(self):
        terms = list(variance_terms(self.cov))
        self.assertEqual(len(terms), 9)
        self.assertIn((0.04, 0, 0), terms)
        self.assertIn((0.02, 2, 1), terms)

    def test_weighted_return(self):
        self.assertAlmostEqual(
            weighted_return(self.weights, [0.1, 0.2, 0.3]), 0.21, places=12
        )


class TestValidatePrices(unittest.TestCase):
    def test_returns_read_only_array(self):
        table = validate_prices(SAMPLE_PRICES, ["A", "B", "C"])
        self.assertEqual(table.shape, (3, 4))
        with self.assertRaises(ValueError):
            table[0, 0] = 1.0

    def test_empty_table(self):
        with self.assertRaises(InsufficientDataError):
            validate_prices([])

    def test_too_few_prices(self):
        with self.assertRaises(InsufficientDataError):
            validate_prices([[1.0], [2.0]])

    def test_ragged_rows(self):
        with self.assertRaises(InsufficientDataError):
            validate_prices([[1.0, 2.0, 3.0], [1.0, 2.0]])

    def test_name_count_mismatch(self):
        with self.assertRaises(InsufficientDataError):
            validate_prices(SAMPLE_PRICES, ["A", "B"])

    def test_non_finite_prices(self):
        with self.assertRaises(InsufficientDataError):
            validate_prices([[1.0, float("nan"), 2.0]])

    def test_zero_price(self):
        with self.assertRaises(InsufficientDataError):
            validate_prices([[1.0, 0.0, 2.0]])

    def test_trailing_zero_price_allowed(self):
        table = validate_prices([[1.0, 2.0, 0.0]])
        self.assertEqual(table.shape, (1, 3))

    def test_total_loss_asset_is_annualized(self):
        table = validate_prices([[1.0, 0.0], [2.0, 3.0]])
        returns = asset_returns(table)
        self.assertEqual(returns[0], -1.0)
        self.assertAlmostEqual(returns[1], 0.5, places=10)

    def test_negative_price(self):
        with self.assertRaises(InsufficientDataError):
            validate_prices([[1.0, -2.0, 3.0]])

    def test_is_a_value_error(self):
        self.assertTrue(issubclass(InsufficientDataError, ValueError))


if __name__ == "__main__":
    unittest.main()
