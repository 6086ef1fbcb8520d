"""
Statistics Preprocessor
=======================

Turns raw daily price series into the inputs of the mean-variance model:
- Sample covariance matrix of the price series
- Annualized expected return per asset

It also holds the two portfolio measures used to check a solved allocation:
- Weighted (expected) portfolio return: w^T * mu
- Portfolio variance: w^T * Sigma * w

Price data is laid out with one row per asset and one column per day, so
``prices[i]`` is the PriceSeries of asset ``i``.
"""

import numpy as np
from typing import Iterator, List, Optional, Sequence, Tuple

from portfolio_qp.exceptions import InsufficientDataError

TRADING_DAYS = 250


def validate_prices(
    prices: Sequence[Sequence[float]],
    asset_names: Optional[Sequence[str]] = None
) -> np.ndarray:
    """
    Check a price table and return it as a read-only 2D float array.

    Args:
        prices: One row of daily prices per asset
        asset_names: Optional asset identifiers, one per row

    Returns:
        Array of shape (n_assets, n_days) that cannot be written to

    Raises:
        InsufficientDataError: If the table is empty, ragged, too short,
            mismatched with ``asset_names``, non-finite, negative or contains
            a zero price that a daily return would divide by
    """
    rows = [list(row) for row in prices]
    if not rows:
        raise InsufficientDataError("insufficient data: no price series given")

    lengths = {len(row) for row in rows}
    if len(lengths) != 1:
        raise InsufficientDataError(
            f"insufficient data: price series have different lengths {sorted(lengths)}"
        )

    if asset_names is not None and len(asset_names) != len(rows):
        raise InsufficientDataError(
            f"insufficient data: {len(asset_names)} asset names but "
            f"{len(rows)} price series"
        )

    table = np.array(rows, dtype=float)
    if table.shape[1] < 2:
        raise InsufficientDataError(
            f"insufficient data: need at least 2 prices per asset, got {table.shape[1]}"
        )

    if not np.all(np.isfinite(table)):
        raise InsufficientDataError("insufficient data: prices contain NaN or Inf")

    if np.any(table < 0):
        raise InsufficientDataError("insufficient data: negative price in series")

    # Every price except the last one is a denominator of a daily return
    if np.any(table[:, :-1] == 0):
        raise InsufficientDataError("insufficient data: zero price in series")

    table.setflags(write=False)
    return table


def covariance(x: Sequence[float], y: Sequence[float]) -> float:
    """
    Sample covariance of two equal-length series.

    Formula: cov(x, y) = sum((x_t - mean_x) * (y_t - mean_y)) / (n - 1)

    Args:
        x: First series
        y: Second series

    Returns:
        Unbiased sample covariance

    Raises:
        InsufficientDataError: If the lengths differ or n <= 1
    """
    x = np.asarray(x, dtype=float)
    y = np.asarray(y, dtype=float)
    n = len(x)

    if len(y) != n:
        raise InsufficientDataError(
            f"insufficient data: series lengths differ ({n} vs {len(y)})"
        )
    if n <= 1:
        raise InsufficientDataError(
            f"insufficient data: covariance needs at least 2 observations, got {n}"
        )

    return float(np.sum((x - x.mean()) * (y - y.mean())) / (n - 1))


def covariance_matrix(prices: Sequence[Sequence[float]]) -> np.ndarray:
    """
    Pairwise sample covariance of every asset's price series.

    Each row of ``prices`` represents one asset, so m rows give an m x m
    matrix. Only the upper triangle is computed; the lower triangle is
    mirrored from it.

    Args:
        prices: One row of daily prices per asset

    Returns:
        Symmetric covariance matrix (variances on the diagonal)
    """
    m = len(prices)
    cov = np.zeros((m, m))

    for i in range(m):
        for j in range(i, m):
            cov[i, j] = covariance(prices[i], prices[j])
            cov[j, i] = cov[i, j]

    return cov


def annualized_return(
    daily_prices: Sequence[float],
    periods: int = TRADING_DAYS
) -> float:
    """
    Annualize the average daily simple return of a price series.

    Daily return:  r_t = (p_{t+1} - p_t) / p_t
    Annualized:    ((1 + mean(r))^periods)^(1/periods) - 1

    Args:
        daily_prices: Prices of one asset in time order
        periods: Trading days per year (default: 250)

    Returns:
        Annualized return as a decimal

    Raises:
        InsufficientDataError: With fewer than 2 prices, a negative price or
            a zero price before the last one
    """
    p = np.asarray(daily_prices, dtype=float)
    if len(p) < 2:
        raise InsufficientDataError(
            f"insufficient data: need at least 2 prices, got {len(p)}"
        )
    if np.any(p < 0):
        raise InsufficientDataError("insufficient data: negative price in series")
    if np.any(p[:-1] == 0):
        raise InsufficientDataError("insufficient data: zero price in series")

    daily_returns = np.diff(p) / p[:-1]
    growth = 1.0 + daily_returns.mean()
    # Non-negative prices keep every daily return at or above -100%, so
    # growth is only zero when each day loses everything
    if growth == 0:
        return -1.0

    # Compound over the year, then take the per-period root, in log space
    # so growth ** periods cannot overflow
    annual_log_growth = periods * np.log(growth)
    return float(np.exp(annual_log_growth / periods) - 1.0)


def asset_returns(
    prices: Sequence[Sequence[float]],
    periods: int = TRADING_DAYS
) -> np.ndarray:
    """Annualized return of each asset row, aligned with ``prices``."""
    return np.array([annualized_return(row, periods) for row in prices])


def variance_terms(cov: np.ndarray) -> Iterator[Tuple[float, int, int]]:
    """
    Yield the terms of the bilinear form w^T * Sigma * w.

    Every (i, j) pair is produced, diagonal included, as
    ``(cov[i][j], i, j)``. The model builder and ``portfolio_variance`` both
    consume these terms so the variance formula lives in one place.
    """
    cov = np.asarray(cov, dtype=float)
    m = cov.shape[0]
    for i in range(m):
        for j in range(m):
            yield float(cov[i, j]), i, j


def weighted_return(weights: Sequence[float], returns: Sequence[float]) -> float:
    """
    Expected portfolio return.

    Formula: mu_p = sum(w_i * mu_i)
    """
    return float(np.dot(np.asarray(weights, dtype=float),
                        np.asarray(returns, dtype=float)))


def portfolio_variance(weights: Sequence[float], cov: np.ndarray) -> float:
    """
    Portfolio variance from the bilinear form.

    Formula: sigma_p^2 = sum_i sum_j cov[i][j] * w_i * w_j

    Args:
        weights: Portfolio weights
        cov: Covariance matrix

    Returns:
        Portfolio variance
    """
    w = np.asarray(weights, dtype=float)
    return float(sum(c * w[i] * w[j] for c, i, j in variance_terms(cov)))


def names_or_default(n_assets: int, asset_names: Optional[Sequence[str]] = None) -> List[str]:
    """Asset names, falling back to Asset_1, Asset_2, ..."""
    if asset_names is None:
        return [f"Asset_{i+1}" for i in range(n_assets)]
    return list(asset_names)
