"""
Plotting Module for Mean-Variance Results
=========================================

Optional figures for a solved portfolio:
- Bar chart of the solved weights
- Heatmap of the covariance matrix used in the model
"""

import numpy as np
import matplotlib.pyplot as plt
from matplotlib.figure import Figure
from typing import List, Optional, Tuple


def plot_portfolio_weights(
    weights: np.ndarray,
    asset_names: List[str],
    title: str = "Portfolio Weights",
    figsize: Tuple[int, int] = (10, 6),
    save_path: Optional[str] = None
) -> Figure:
    """
    Create a bar chart of portfolio weights.

    Args:
        weights: Array of portfolio weights
        asset_names: List of asset names
        title: Plot title
        figsize: Figure size
        save_path: Optional path to save figure

    Returns:
        matplotlib Figure object
    """
    weights = np.asarray(weights, dtype=float)
    fig, ax = plt.subplots(figsize=figsize)

    bars = ax.bar(asset_names, weights * 100, color='steelblue', edgecolor='black')

    for bar, w in zip(bars, weights):
        ax.annotate(f'{w*100:.1f}%',
                    xy=(bar.get_x() + bar.get_width() / 2, bar.get_height()),
                    xytext=(0, 3),
                    textcoords='offset points',
                    ha='center', va='bottom',
                    fontsize=10, fontweight='bold')

    ax.set_ylim(0, 110)
    ax.set_xlabel('Assets', fontsize=12)
    ax.set_ylabel('Weight %', fontsize=12)
    ax.set_title(title, fontsize=14, fontweight='bold')
    ax.grid(True, axis='y', alpha=0.3)

    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches='tight')

    return fig


def plot_covariance_heatmap(
    cov_matrix: np.ndarray,
    asset_names: List[str],
    title: str = "Covariance Matrix",
    figsize: Tuple[int, int] = (7, 6),
    save_path: Optional[str] = None
) -> Figure:
    """
    Create an annotated heatmap of the covariance matrix.

    Args:
        cov_matrix: Covariance matrix (n x n)
        asset_names: List of asset names
        title: Plot title
        figsize: Figure size
        save_path: Optional path to save figure

    Returns:
        matplotlib Figure object
    """
    cov_matrix = np.asarray(cov_matrix, dtype=float)
    n = cov_matrix.shape[0]
    fig, ax = plt.subplots(figsize=figsize)

    limit = np.abs(cov_matrix).max() or 1.0
    im = ax.imshow(cov_matrix, cmap='RdBu_r', vmin=-limit, vmax=limit)
    fig.colorbar(im, ax=ax, fraction=0.046, pad=0.04)

    ax.set_xticks(range(n))
    ax.set_yticks(range(n))
    ax.set_xticklabels(asset_names)
    ax.set_yticklabels(asset_names)

    for i in range(n):
        for j in range(n):
            ax.text(j, i, f'{cov_matrix[i, j]:.4f}',
                    ha='center', va='center', fontsize=9)

    ax.set_title(title, fontsize=14, fontweight='bold')
    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches='tight')

    return fig
