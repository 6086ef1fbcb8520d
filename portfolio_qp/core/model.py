"""
Mean-Variance Model Builder
===========================

Expresses the classical risk-adjusted utility problem on a solver session:

    maximize:   w^T * mu - (rho / 2) * w^T * Sigma * w
    subject to: sum(w) = 1
                0 <= w_i <= 1

where mu is the vector of annualized asset returns, Sigma the covariance
matrix and rho the risk aversion. With rho = 0 the problem reduces to
maximizing expected return; larger rho penalizes variance more.

The rho / 2 scaling is the usual modeling convention. rho is taken as given
and is not range-checked.
"""

import logging
import numpy as np
from typing import Any, Dict, List, Optional, Sequence, Tuple

from portfolio_qp.core.expressions import LinearExpr, QuadExpr, Variable
from portfolio_qp.core.solvers import SolverSession, open_session
from portfolio_qp.core.statistics import (
    names_or_default,
    portfolio_variance,
    variance_terms,
    weighted_return,
)
from portfolio_qp.exceptions import InsufficientDataError

logger = logging.getLogger(__name__)


def build_mean_variance_model(
    session: SolverSession,
    expected_returns: Sequence[float],
    cov_matrix: np.ndarray,
    rho: float,
    asset_names: Optional[Sequence[str]] = None
) -> Tuple[List[Variable], LinearExpr, QuadExpr]:
    """
    Add the mean-variance variables, objective and constraint to a session.

    Args:
        session: Open solver session with no objective yet
        expected_returns: Annualized return per asset
        cov_matrix: Covariance matrix (m x m)
        rho: Risk aversion
        asset_names: Optional names for the weight variables

    Returns:
        Tuple of (weight variables, expected return expression,
        portfolio variance expression)

    Raises:
        InsufficientDataError: If the return vector and covariance matrix
            do not describe the same assets
    """
    expected_returns = np.asarray(expected_returns, dtype=float).flatten()
    cov_matrix = np.asarray(cov_matrix, dtype=float)
    m = len(expected_returns)

    if m == 0:
        raise InsufficientDataError("insufficient data: no assets to allocate")
    if cov_matrix.shape != (m, m):
        raise InsufficientDataError(
            f"Covariance matrix shape {cov_matrix.shape} doesn't match "
            f"number of assets {m}"
        )

    names = names_or_default(m, asset_names)

    # Weights bounded 0 <= w_i <= 1
    weights = session.num_var_array(m, 0.0, 1.0, names)

    # Expected portfolio return: sum_i w_i * mu_i
    exp_return = session.scal_prod(expected_returns, weights)

    # Portfolio variance: sum_i sum_j cov(i, j) * w_i * w_j
    variance = session.quad_num_expr()
    for coef, i, j in variance_terms(cov_matrix):
        variance.add_term(coef, weights[i], weights[j])

    session.add_maximize(exp_return - (float(rho) / 2.0) * variance)

    session.add_eq(session.sum(weights), 1.0, name="budget")

    return weights, exp_return, variance


def solution_stats(
    weights: Sequence[float],
    expected_returns: Sequence[float],
    cov_matrix: np.ndarray,
    rho: float
) -> Dict[str, float]:
    """
    Recompute portfolio statistics directly from a weight vector.

    Returns:
        Dictionary with return, variance, std and objective (utility)
    """
    ret = weighted_return(weights, expected_returns)
    var = portfolio_variance(weights, cov_matrix)

    return {
        'return': ret,
        'variance': var,
        'std': float(np.sqrt(max(var, 0.0))),
        'objective': ret - (rho / 2.0) * var
    }


def optimize_portfolio(
    expected_returns: Sequence[float],
    cov_matrix: np.ndarray,
    rho: float,
    asset_names: Optional[Sequence[str]] = None,
    backend: str = "scipy",
    export_path: Optional[str] = None,
    **session_kwargs: Any
) -> Tuple[Optional[np.ndarray], Optional[Dict[str, float]]]:
    """
    Build and solve the mean-variance model in a scoped solver session.

    The session is ended on every path, including solver failures.

    Args:
        expected_returns: Annualized return per asset
        cov_matrix: Covariance matrix
        rho: Risk aversion
        asset_names: Optional asset names (used as variable names)
        backend: Solver backend name ('scipy' or 'cvxpy')
        export_path: If given, write the model in LP format before solving
        **session_kwargs: Passed to the session constructor

    Returns:
        Tuple of (weights, stats_dict), or (None, None) when the solver
        finds no optimal solution

    Raises:
        SolverError: If the solver cannot build or solve the model
    """
    with open_session(backend, **session_kwargs) as session:
        weights, exp_return, variance = build_mean_variance_model(
            session, expected_returns, cov_matrix, rho, asset_names
        )

        if export_path:
            session.export_model(export_path)

        if not session.solve():
            logger.warning(f"No optimal solution found ({session.backend}: {session.status})")
            return None, None

        w = session.get_values(weights)
        stats = solution_stats(w, expected_returns, cov_matrix, rho)
        stats['solver_return'] = session.get_value(exp_return)
        stats['solver_variance'] = session.get_value(variance)
        stats['solver_objective'] = session.get_objective_value()

    return w, stats
