"""
Diagnostic plots for LDU addressing and matrices.
"""

import matplotlib.pyplot as plt
import numpy as np

from lduflow.addressing.valence import (
    neighbour_valence,
    owner_valence,
    validate_unroll_width,
)


def plot_valence_histogram(addressing, unroll_width=3, ax=None, title=None):
    """
    Histogram of owner and neighbour valence per cell.

    The unroll width is marked so it is visible whether the unrolled fast
    reduction applies to this mesh.

    Parameters:
    -----------
    addressing : LduAddressing
    unroll_width : int, optional
        Buffer width of the fast reduction
    ax : matplotlib.axes.Axes, optional
        Axes to plot on. If None, a new figure is created.
    title : str, optional
        Title for the plot

    Returns:
    --------
    ax : matplotlib.axes.Axes
    """
    unroll_width = validate_unroll_width(unroll_width)
    if ax is None:
        _, ax = plt.subplots(figsize=(6, 4))

    own = owner_valence(addressing)
    nei = neighbour_valence(addressing)
    top = max(int(own.max()) if own.size else 0, int(nei.max()) if nei.size else 0, unroll_width)
    bins = np.arange(top + 2) - 0.5

    ax.hist([own, nei], bins=bins, label=["owner", "neighbour"])
    ax.axvline(unroll_width + 0.5, color="k", linestyle="--", label=f"unroll width {unroll_width}")
    ax.set_xlabel("faces per cell")
    ax.set_ylabel("cells")
    ax.legend()
    if title:
        ax.set_title(title)
    return ax


def plot_sparsity(matrix, ax=None, title=None, markersize=2):
    """Sparsity pattern of an LduMatrix (via its CSR copy)."""
    if ax is None:
        _, ax = plt.subplots(figsize=(5, 5))
    ax.spy(matrix.to_csr(), markersize=markersize)
    ax.set_title(title or f"{matrix.n_cells} cells, {matrix.n_faces} faces")
    return ax
