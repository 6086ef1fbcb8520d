"""
Console report formatting.

Each function returns plain text (lines joined with newlines) so callers can
log it, print it or test it.
"""

import numpy as np
from typing import Sequence

from portfolio_qp.core.statistics import portfolio_variance, weighted_return


def format_covariance(cov_matrix: np.ndarray) -> str:
    """
    Covariance matrix, four decimals per entry, closed by a '=' rule.

    Returns:
        Report text, or '' for an empty matrix
    """
    cov_matrix = np.asarray(cov_matrix, dtype=float)
    rows = cov_matrix.shape[0] if cov_matrix.ndim else 0
    if rows == 0:
        return ""

    cols = cov_matrix.shape[1]
    lines = ["Covariance Matrix:"]
    for i in range(rows):
        lines.append("".join(f"{cov_matrix[i, j]:.4f}\t" for j in range(cols)))
    lines.append("=" * (6 * cols))
    return "\n".join(lines)


def format_returns(asset_names: Sequence[str], returns: Sequence[float]) -> str:
    """Annualized return per asset, two decimals. '' when there are none."""
    if len(returns) == 0:
        return ""

    lines = ["Annualized Returns"]
    for name, ret in zip(asset_names, returns):
        lines.append(f"{name}\t{ret:.2f}")
    lines.append("")
    return "\n".join(lines)


def format_weights(
    asset_names: Sequence[str],
    weights: Sequence[float],
    returns: Sequence[float],
    cov_matrix: np.ndarray
) -> str:
    """
    Solved weights as percentages plus the realized portfolio totals.

    Total return and variance are recomputed from the weights with
    ``weighted_return`` and ``portfolio_variance``.
    """
    lines = ["", "Resulting Weights:"]
    for i, (name, w) in enumerate(zip(asset_names, weights)):
        # + 0.0 turns a rounded -0.0 into 0.0
        pct = round(float(w) * 100, 1) + 0.0
        lines.append(f"{i + 1} : {name} {pct:.1f}%")

    total_return = weighted_return(weights, returns)
    total_variance = portfolio_variance(weights, cov_matrix)
    lines.append(f"Total Return: {total_return:.2f}, Total Variance: {total_variance:.4f}")
    return "\n".join(lines)
