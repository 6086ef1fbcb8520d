import logging
import os
import tempfile
import unittest
from unittest import mock

import numpy as np
import pandas as pd

from portfolio_qp.cli.main import build_parser, main, run_pipeline, setup_logger
from portfolio_qp.config import OptimizationConfig
from portfolio_qp.exceptions import InsufficientDataError, SolverError


class TestPipeline(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.logger = setup_logger("portfolio_qp_test", None)

    def tearDown(self):
        self.tmp.cleanup()

    def _config(self, **overrides):
        config = OptimizationConfig()
        config.log_dir = self.tmp.name
        for key, value in overrides.items():
            setattr(config, key, value)
        return config

    def test_default_run(self):
        results = run_pipeline(self._config(), self.logger)
        self.assertEqual(results['asset_names'], ["A", "B", "C"])
        self.assertEqual(results['cov_matrix'].shape, (3, 3))
        self.assertEqual(results['returns'].shape, (3,))
        self.assertAlmostEqual(np.sum(results['weights']), 1.0, places=6)
        self.assertGreaterEqual(results['stats']['variance'], 0.0)

    def test_report_is_logged(self):
        with self.assertLogs(self.logger, level=logging.INFO) as captured:
            run_pipeline(self._config(), self.logger)
        output = "\n".join(captured.output)
        self.assertIn("Covariance Matrix:", output)
        self.assertIn("Annualized Returns", output)
        self.assertIn("Resulting Weights:", output)
        self.assertIn("Total Return:", output)

    def test_solver_failure_is_logged_not_raised(self):
        with mock.patch("portfolio_qp.cli.main.optimize_portfolio",
                        side_effect=SolverError("backend crashed")):
            with self.assertLogs(self.logger, level=logging.ERROR) as captured:
                results = run_pipeline(self._config(), self.logger)
        self.assertIsNone(results['weights'])
        self.assertIn("Solver exception caught: backend crashed", captured.output[0])

    def test_no_solution_skips_weights(self):
        with mock.patch("portfolio_qp.cli.main.optimize_portfolio",
                        return_value=(None, None)):
            results = run_pipeline(self._config(), self.logger)
        self.assertIsNone(results['weights'])
        self.assertIsNone(results['stats'])

    def test_malformed_file_raises(self):
        path = os.path.join(self.tmp.name, "short.csv")
        with open(path, "w") as f:
            f.write("A,B\n1.0,2.0\n")
        with self.assertRaises(InsufficientDataError):
            run_pipeline(self._config(data_file=path), self.logger)

    def test_asset_with_total_loss(self):
        path = os.path.join(self.tmp.name, "loss.csv")
        with open(path, "w") as f:
            f.write("A,B\n1.0,2.0\n0.0,3.0\n")
        results = run_pipeline(self._config(data_file=path), self.logger)
        self.assertEqual(results['returns'][0], -1.0)
        self.assertAlmostEqual(np.sum(results['weights']), 1.0, places=6)

    def test_excel_sheet_by_index(self):
        path = os.path.join(self.tmp.name, "prices.xlsx")
        with pd.ExcelWriter(path) as writer:
            pd.DataFrame({"X": [1.0, 2.0]}).to_excel(writer, sheet_name="Notes", index=False)
            pd.DataFrame({"A": [1.0, 1.1, 1.2], "B": [2.0, 1.9, 2.1]}).to_excel(
                writer, sheet_name="Prices", index=False)
        args = build_parser().parse_args(["--file", path, "--sheet", "1"])
        results = run_pipeline(OptimizationConfig.from_args(args), self.logger)
        self.assertEqual(results['asset_names'], ["A", "B"])

    def test_plots_saved(self):
        plot_dir = os.path.join(self.tmp.name, "plots")
        run_pipeline(self._config(plot_dir=plot_dir), self.logger)
        self.assertTrue(os.path.exists(os.path.join(plot_dir, "weights.png")))
        self.assertTrue(os.path.exists(os.path.join(plot_dir, "covariance.png")))


class TestMain(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()

    def tearDown(self):
        logger = logging.getLogger("portfolio_qp")
        for handler in list(logger.handlers):
            handler.close()
        logger.handlers.clear()
        self.tmp.cleanup()

    def test_runs_without_arguments(self):
        self.assertEqual(main(["--log-dir", self.tmp.name]), 0)
        self.assertTrue(any(name.startswith("log_portfolio_qp_")
                            for name in os.listdir(self.tmp.name)))

    def test_cvxpy_backend_with_export(self):
        lp_path = os.path.join(self.tmp.name, "model.lp")
        code = main(["--log-dir", self.tmp.name, "--backend", "cvxpy",
                     "--export", lp_path, "--rho", "0.5"])
        self.assertEqual(code, 0)
        self.assertTrue(os.path.exists(lp_path))

    def test_bad_input_returns_error_code(self):
        missing = os.path.join(self.tmp.name, "missing.csv")
        self.assertEqual(main(["--log-dir", self.tmp.name, "--file", missing]), 1)

    def test_config_from_args(self):
        args = build_parser().parse_args(["--rho", "0.2", "--trading-days", "252"])
        config = OptimizationConfig.from_args(args)
        self.assertEqual(config.rho, 0.2)
        self.assertEqual(config.trading_days, 252)
        self.assertEqual(config.backend, "scipy")
        self.assertIsNone(config.export_path)

    def test_sheet_argument(self):
        parser = build_parser()
        self.assertEqual(parser.parse_args(["--sheet", "1"]).sheet, 1)
        self.assertEqual(parser.parse_args(["--sheet", "Prices"]).sheet, "Prices")
        self.assertIsNone(parser.parse_args([]).sheet)


if __name__ == "__main__":
    unittest.main()
