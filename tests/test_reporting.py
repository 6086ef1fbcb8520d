import unittest
import numpy as np

from portfolio_qp.reporting import format_covariance, format_returns, format_weights


class TestConsoleReport(unittest.TestCase):
    def test_covariance_block(self):
        text = format_covariance(np.array([[1.0, 0.5], [0.5, 2.0]]))
        self.assertEqual(
            text,
            "Covariance Matrix:\n"
            "1.0000\t0.5000\t\n"
            "0.5000\t2.0000\t\n"
            "============"
        )

    def test_empty_covariance(self):
        self.assertEqual(format_covariance(np.zeros((0, 0))), "")

    def test_returns_block(self):
        text = format_returns(["A", "B"], [0.5, -0.4])
        self.assertEqual(text, "Annualized Returns\nA\t0.50\nB\t-0.40\n")

    def test_empty_returns(self):
        self.assertEqual(format_returns([], []), "")

    def test_weights_block(self):
        text = format_weights(
            ["A", "B"], [0.5, 0.5], [0.1, 0.3], np.diag([0.04, 0.09])
        )
        lines = text.splitlines()
        self.assertEqual(lines[1], "Resulting Weights:")
        self.assertEqual(lines[2], "1 : A 50.0%")
        self.assertEqual(lines[3], "2 : B 50.0%")
        self.assertEqual(lines[4], "Total Return: 0.20, Total Variance: 0.0325")

    def test_tiny_negative_weight_prints_as_zero(self):
        text = format_weights(["A", "B"], [-1e-12, 1.0], [0.1, 0.3], np.eye(2))
        self.assertIn("1 : A 0.0%", text)
        self.assertIn("2 : B 100.0%", text)


if __name__ == "__main__":
    unittest.main()
