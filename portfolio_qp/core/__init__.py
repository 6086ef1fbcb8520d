"""Core computational modules: statistics, model building and solver sessions."""

from portfolio_qp.core.statistics import covariance_matrix, asset_returns
from portfolio_qp.core.model import build_mean_variance_model, optimize_portfolio
from portfolio_qp.core.solvers import SolverSession, ScipySession, CvxpySession, open_session
from portfolio_qp.core.loader import PriceLoader, sample_prices

__all__ = [
    "covariance_matrix",
    "asset_returns",
    "build_mean_variance_model",
    "optimize_portfolio",
    "SolverSession",
    "ScipySession",
    "CvxpySession",
    "open_session",
    "PriceLoader",
    "sample_prices",
]
