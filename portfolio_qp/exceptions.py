"""Exception types raised by the portfolio QP package."""


class PortfolioQPError(Exception):
    """Base class for all package errors."""


class InsufficientDataError(PortfolioQPError, ValueError):
    """Raised when price data cannot support the requested statistic."""


class SolverError(PortfolioQPError):
    """Raised when a solver session fails to build or solve a model."""
