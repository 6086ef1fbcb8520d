"""Text reports for covariance, returns and solved portfolios."""

from portfolio_qp.reporting.console import (
    format_covariance,
    format_returns,
    format_weights
)

__all__ = [
    "format_covariance",
    "format_returns",
    "format_weights",
]
