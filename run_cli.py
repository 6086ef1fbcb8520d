"""
CLI entry point for the mean-variance optimization.

Usage:
    python run_cli.py                      # Run on the built-in example
    python run_cli.py --file prices.csv    # Run on a price file
    python run_cli.py --rho 0.5            # Change the risk aversion

For installed package, use: portfolio-qp
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent))

from portfolio_qp.cli.main import main

if __name__ == "__main__":
    sys.exit(main())
