"""
Main Runner Script for Mean-Variance Optimization
=================================================

Runs the full pipeline:
1. Load daily prices (built-in example or a CSV/Excel file)
2. Compute the covariance matrix and annualized returns
3. Build the mean-variance model on a solver session
4. Optionally export the model in LP format
5. Solve and report the weights, total return and total variance

Usage:
    portfolio-qp                          # Run on the built-in example
    portfolio-qp --file prices.csv        # Run on a price file
    portfolio-qp --rho 0.5                # Change the risk aversion
    portfolio-qp --backend cvxpy          # Solve with cvxpy
    portfolio-qp --export model.lp        # Also write the LP model
"""

import sys
import argparse
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

import matplotlib.pyplot as plt

from portfolio_qp.config import OptimizationConfig
from portfolio_qp.core.loader import PriceLoader, sample_prices
from portfolio_qp.core.model import optimize_portfolio
from portfolio_qp.core.solvers import BACKENDS
from portfolio_qp.core.statistics import asset_returns, covariance_matrix
from portfolio_qp.exceptions import SolverError
from portfolio_qp.reporting import format_covariance, format_returns, format_weights
from portfolio_qp.visualization import plot_covariance_heatmap, plot_portfolio_weights


# =============================================================================
# LOGGING SETUP
# =============================================================================

def setup_logger(script_name: str = "portfolio_qp",
                 log_dir: Optional[str] = "logs") -> logging.Logger:
    """
    Sets up a logger that writes to both file and console.

    Args:
        script_name: Name of the script (used in log filename)
        log_dir: Directory for log files; None logs to the console only

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(script_name)
    logger.setLevel(logging.INFO)
    logger.propagate = False

    # Clear existing handlers (prevent duplicates)
    if logger.hasHandlers():
        for handler in list(logger.handlers):
            handler.close()
        logger.handlers.clear()

    formatter = logging.Formatter(
        '%(asctime)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    if log_dir is not None:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y_%m_%d_%H%M")
        log_filename = log_path / f"log_{script_name}_{timestamp}.txt"

        file_handler = logging.FileHandler(log_filename, encoding='utf-8')
        file_handler.setLevel(logging.INFO)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    return logger


# =============================================================================
# PIPELINE CHECKPOINTS
# =============================================================================

class PipelineCheckpoint:
    """
    Logs the progress of the pipeline stages.
    """

    def __init__(self, logger: logging.Logger):
        self.logger = logger
        self.steps_completed: List[str] = []
        self.start_time = datetime.now()
        self.current_step = None

    def start_step(self, step_name: str):
        """Mark a step as started."""
        self.current_step = step_name
        self.logger.info(f"[CHECKPOINT] Starting: {step_name}")

    def complete_step(self, step_name: str):
        """Mark a step as completed."""
        self.steps_completed.append(step_name)
        self.logger.info(f"[CHECKPOINT] Completed: {step_name}")

    def log_final_report(self):
        elapsed = (datetime.now() - self.start_time).total_seconds()
        self.logger.info("=" * 60)
        self.logger.info("  RUN COMPLETE")
        self.logger.info("=" * 60)
        self.logger.info(f"  Steps completed: {len(self.steps_completed)}")
        self.logger.info(f"  Total time: {elapsed:.2f} seconds")
        self.logger.info("=" * 60)


def _log_block(logger: logging.Logger, text: str):
    for line in text.splitlines():
        logger.info(line)


# =============================================================================
# PIPELINE
# =============================================================================

def run_pipeline(
    config: OptimizationConfig,
    logger: Optional[logging.Logger] = None
) -> Dict[str, Any]:
    """
    Run load -> preprocess -> build -> solve -> report.

    Solver failures are logged and end the run without raising; malformed
    input raises ``InsufficientDataError``.

    Args:
        config: Run configuration
        logger: Logger instance

    Returns:
        Dictionary with prices, asset_names, cov_matrix, returns, weights
        and stats (weights and stats are None without a solution)
    """
    if logger is None:
        logger = setup_logger(log_dir=config.log_dir)

    checkpoint = PipelineCheckpoint(logger)
    results: Dict[str, Any] = {'weights': None, 'stats': None}

    logger.info("=" * 60)
    logger.info("  MEAN-VARIANCE PORTFOLIO OPTIMIZATION")
    logger.info("=" * 60)
    for line in config.summary_lines():
        logger.info(line)
    logger.info("=" * 60)

    # Step 1: Load data
    checkpoint.start_step("Load Prices")
    if config.data_file:
        prices, asset_names = PriceLoader().load(config.data_file, config.sheet)
    else:
        prices, asset_names = sample_prices()
    results['prices'] = prices
    results['asset_names'] = asset_names
    logger.info(f"Assets: {', '.join(asset_names)} ({prices.shape[1]} prices each)")
    checkpoint.complete_step("Load Prices")

    # Step 2: Preprocess
    checkpoint.start_step("Compute Statistics")
    cov = covariance_matrix(prices)
    returns = asset_returns(prices, config.trading_days)
    results['cov_matrix'] = cov
    results['returns'] = returns
    _log_block(logger, format_covariance(cov))
    _log_block(logger, format_returns(asset_names, returns))
    checkpoint.complete_step("Compute Statistics")

    # Step 3: Build and solve
    checkpoint.start_step("Solve Model")
    try:
        weights, stats = optimize_portfolio(
            returns, cov, config.rho,
            asset_names=asset_names,
            backend=config.backend,
            export_path=config.export_path
        )
    except SolverError as e:
        logger.error(f"Solver exception caught: {e}")
        checkpoint.log_final_report()
        return results
    checkpoint.complete_step("Solve Model")

    # Step 4: Report
    if weights is None:
        logger.warning("Solver found no optimal solution; no weights to report")
    else:
        results['weights'] = weights
        results['stats'] = stats
        _log_block(logger, format_weights(asset_names, weights, returns, cov))

        if config.plot_dir:
            checkpoint.start_step("Generate Plots")
            plot_dir = Path(config.plot_dir)
            plot_dir.mkdir(parents=True, exist_ok=True)

            plot_portfolio_weights(
                weights, asset_names,
                title=f"Mean-Variance Weights (rho={config.rho})",
                save_path=str(plot_dir / "weights.png")
            )
            logger.info("Saved: weights.png")

            plot_covariance_heatmap(
                cov, asset_names,
                save_path=str(plot_dir / "covariance.png")
            )
            logger.info("Saved: covariance.png")

            plt.close('all')
            checkpoint.complete_step("Generate Plots")

    checkpoint.log_final_report()
    return results


# =============================================================================
# MAIN ENTRY POINT
# =============================================================================

def _sheet(value: str):
    """Excel sheet argument: a digit string is a 0-based index, anything else a name."""
    return int(value) if value.isdigit() else value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Mean-Variance Portfolio Optimization',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  portfolio-qp                                  # Built-in 3-asset example
  portfolio-qp --file prices.csv --rho 0.5
  portfolio-qp --backend cvxpy --export model.lp
        """
    )

    parser.add_argument(
        '--file', '-f',
        dest='data_file',
        type=str,
        help='CSV or Excel file of daily prices (dates in rows, assets in columns)'
    )
    parser.add_argument(
        '--sheet', '-s',
        type=_sheet,
        help='Sheet name or 0-based index for Excel files (default: first sheet)'
    )
    parser.add_argument(
        '--rho', '-r',
        type=float,
        help=f'Risk aversion (default: {OptimizationConfig.DEFAULT_RHO})'
    )
    parser.add_argument(
        '--trading-days',
        type=int,
        help='Trading days per year (default: 250)'
    )
    parser.add_argument(
        '--backend', '-b',
        choices=sorted(BACKENDS),
        help='Solver backend (default: scipy)'
    )
    parser.add_argument(
        '--export', '-e',
        dest='export_path',
        type=str,
        help='Write the model in LP format to this path'
    )
    parser.add_argument(
        '--plot',
        dest='plot_dir',
        type=str,
        help='Save weight and covariance plots to this directory'
    )
    parser.add_argument(
        '--log-dir',
        type=str,
        help='Directory for log files (default: logs)'
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the optimization script."""
    args = build_parser().parse_args(argv)
    config = OptimizationConfig.from_args(args)

    logger = setup_logger("portfolio_qp", config.log_dir)

    try:
        run_pipeline(config, logger)
        return 0

    except Exception as e:
        logger.error(f"Run failed: {e}")
        import traceback
        logger.error(traceback.format_exc())
        return 1


if __name__ == "__main__":
    sys.exit(main())
