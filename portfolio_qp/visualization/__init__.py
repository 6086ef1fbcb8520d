"""Visualization modules for solved portfolios."""

from portfolio_qp.visualization.plots import (
    plot_portfolio_weights,
    plot_covariance_heatmap
)

__all__ = [
    "plot_portfolio_weights",
    "plot_covariance_heatmap",
]
