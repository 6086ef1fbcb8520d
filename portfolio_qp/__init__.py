"""
Mean-Variance Portfolio QP
==========================

Sample statistics from daily prices and a mean-variance quadratic program
solved through a pluggable solver session.

Usage:
    from portfolio_qp import covariance_matrix, asset_returns, optimize_portfolio

    cov = covariance_matrix(prices)
    mu = asset_returns(prices)
    weights, stats = optimize_portfolio(mu, cov, rho=0.05)

Classes:
    SolverSession - Solver capability interface (scipy / cvxpy backends)
    PriceLoader - Price loading from CSV/Excel

Functions:
    covariance_matrix - Sample covariance of price series
    asset_returns - Annualized return per asset
    build_mean_variance_model - Objective and constraint on a session
    optimize_portfolio - Scoped build-and-solve
"""

from portfolio_qp.core.statistics import (
    covariance,
    covariance_matrix,
    annualized_return,
    asset_returns,
    weighted_return,
    portfolio_variance
)
from portfolio_qp.core.model import build_mean_variance_model, optimize_portfolio
from portfolio_qp.core.solvers import SolverSession, open_session
from portfolio_qp.core.loader import PriceLoader, sample_prices
from portfolio_qp.exceptions import InsufficientDataError, PortfolioQPError, SolverError

__version__ = "1.0.0"

__all__ = [
    "covariance",
    "covariance_matrix",
    "annualized_return",
    "asset_returns",
    "weighted_return",
    "portfolio_variance",
    "build_mean_variance_model",
    "optimize_portfolio",
    "SolverSession",
    "open_session",
    "PriceLoader",
    "sample_prices",
    "InsufficientDataError",
    "PortfolioQPError",
    "SolverError",
]
