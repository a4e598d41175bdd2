from .plotting import plot_sparsity, plot_valence_histogram

__all__ = ["plot_sparsity", "plot_valence_histogram"]
