"""Combining and unary operators used as policies by the traversal kernels.

Binary operators must be associative and commutative; a task folds its
contributions in a fixed order, so results are still reproducible for a
given addressing.
"""

import numpy as np
from numba import njit


# ──────────────────────────────────────────────────────────────────────────────
# Combining operators
# ──────────────────────────────────────────────────────────────────────────────
@njit
def sum_op(a, b):
    return a + b


@njit
def max_op(a, b):
    return np.maximum(a, b)


@njit
def min_op(a, b):
    return np.minimum(a, b)


# ──────────────────────────────────────────────────────────────────────────────
# Unary operators
# ──────────────────────────────────────────────────────────────────────────────
@njit
def identity_op(x):
    return x


@njit
def negate_op(x):
    return -x


@njit
def mag_op(x):
    return np.abs(x)
