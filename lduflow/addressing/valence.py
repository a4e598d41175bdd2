"""Owner / neighbour valence of LDU addressing, used to gate the unrolled fast path."""

import numpy as np


def owner_valence(addressing):
    """Number of faces owned by each cell."""
    return np.diff(addressing.owner_start)


def neighbour_valence(addressing):
    """Number of faces for which each cell is the neighbour."""
    return np.diff(addressing.losort_start)


def max_valence(addressing):
    """Return (max owner valence, max neighbour valence), zeros for an empty mesh."""
    own = owner_valence(addressing)
    nei = neighbour_valence(addressing)
    max_own = int(own.max()) if own.size else 0
    max_nei = int(nei.max()) if nei.size else 0
    return max_own, max_nei


def validate_unroll_width(unroll_width):
    if isinstance(unroll_width, bool) or not isinstance(unroll_width, (int, np.integer)):
        raise ValueError(f"unroll_width must be an integer, got {unroll_width!r}")
    if unroll_width < 1:
        raise ValueError(f"unroll_width must be >= 1, got {unroll_width}")
    return int(unroll_width)


def fits_unroll_width(addressing, unroll_width):
    """True if no cell has more owner or neighbour faces than the unrolled buffer holds."""
    unroll_width = validate_unroll_width(unroll_width)
    max_own, max_nei = max_valence(addressing)
    return max_own <= unroll_width and max_nei <= unroll_width
