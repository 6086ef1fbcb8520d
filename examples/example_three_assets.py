"""
Three-Asset Mean-Variance Example
Assets: A, B, C (4 daily prices each)
Risk aversion: rho = 0.05

Builds the model step by step on a solver session instead of going through
optimize_portfolio(), and writes the LP file next to this script.
"""

from pathlib import Path

from portfolio_qp.core.loader import sample_prices
from portfolio_qp.core.solvers import open_session
from portfolio_qp.core.statistics import asset_returns, covariance_matrix, variance_terms
from portfolio_qp.exceptions import SolverError
from portfolio_qp.reporting import format_covariance, format_returns, format_weights

OUTPUT_DIR = Path(__file__).parent.parent / 'output'
OUTPUT_DIR.mkdir(exist_ok=True)

rho = 0.05

# === Pre-process data ===
prices, assets = sample_prices()
cov = covariance_matrix(prices)
print(format_covariance(cov))
exp_returns = asset_returns(prices)
print(format_returns(assets, exp_returns))

# === Model ===
try:
    with open_session("scipy") as session:
        weights = session.num_var_array(len(assets), 0.0, 1.0, assets)

        exp_ret = session.scal_prod(exp_returns, weights)

        pvar = session.quad_num_expr()
        for c, i, j in variance_terms(cov):
            pvar.add_term(c, weights[i], weights[j])

        session.add_maximize(exp_ret - (rho / 2) * pvar)
        session.add_eq(session.sum(weights), 1.0)

        session.export_model(str(OUTPUT_DIR / "portfolio.lp"))

        if session.solve():
            w = session.get_values(weights)
            print(format_weights(assets, w, exp_returns, cov))
        else:
            print(f"No solution: {session.status}")
except SolverError as e:
    print(f"Solver exception caught: {e}")
