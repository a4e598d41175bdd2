"""
Coarse-level coefficient agglomeration.

Each reducer runs one task per output range (coarse face, or coarse cell for
the diagonal variants) and gathers the fine entries ``sort[start[k]:start[k+1]]``
into slot k with ``+=``. They run once per coarse-level construction and only
read the fine coefficients and the level's tables.
"""

import numpy as np
from numba import prange

from lduflow.matrix.ldu_matrix import LduMatrix
from lduflow.operations.engine import jit_kernel, resolve_engine


# ──────────────────────────────────────────────────────────────────────────────
# Reducer loops
# ──────────────────────────────────────────────────────────────────────────────
def agglomerate_sym_loop(coarse, fine, sort, start):
    for k in prange(start.shape[0] - 1):
        out = coarse[k]
        for i in range(start[k], start[k + 1]):
            out = out + fine[sort[i]]
        coarse[k] = out
    return coarse


def agglomerate_diag_sym_loop(coarse_diag, fine, sort, start):
    for k in prange(start.shape[0] - 1):
        out = coarse_diag[k]
        for i in range(start[k], start[k + 1]):
            out += 2.0 * fine[sort[i]]
        coarse_diag[k] = out
    return coarse_diag


def agglomerate_asym_loop(coarse_upper, coarse_lower, fine_upper, fine_lower, flip, sort, start):
    for k in prange(start.shape[0] - 1):
        uc = coarse_upper[k]
        lc = coarse_lower[k]
        for i in range(start[k], start[k + 1]):
            index = sort[i]
            if not flip[index]:
                uc += fine_upper[index]
                lc += fine_lower[index]
            else:
                # fine owner sits on the coarse neighbour side
                uc += fine_lower[index]
                lc += fine_upper[index]
        coarse_upper[k] = uc
        coarse_lower[k] = lc
    return coarse_upper, coarse_lower


def agglomerate_diag_asym_loop(coarse_diag, fine_upper, fine_lower, sort, start):
    for k in prange(start.shape[0] - 1):
        out = coarse_diag[k]
        for i in range(start[k], start[k + 1]):
            index = sort[i]
            out += fine_upper[index] + fine_lower[index]
        coarse_diag[k] = out
    return coarse_diag


# ──────────────────────────────────────────────────────────────────────────────
# Reducers
# ──────────────────────────────────────────────────────────────────────────────
def agglomerate_sym(coarse, fine, sort, start, engine=None):
    """coarse[k] += sum of fine[sort[i]] over range k (shared off-diagonal array)."""
    kernel = jit_kernel(agglomerate_sym_loop, resolve_engine(engine))
    return kernel(coarse, fine, sort, start)


def agglomerate_diag_sym(coarse_diag, fine, sort, start, engine=None):
    """coarse_diag[k] += 2 * sum of fine[sort[i]] over range k."""
    kernel = jit_kernel(agglomerate_diag_sym_loop, resolve_engine(engine))
    return kernel(coarse_diag, fine, sort, start)


def agglomerate_asym(
    coarse_upper, coarse_lower, fine_upper, fine_lower, flip, sort, start, engine=None
):
    """
    Accumulate fine upper/lower into coarse upper/lower per range, swapping
    the pair for fine faces whose orientation is flipped.
    """
    kernel = jit_kernel(agglomerate_asym_loop, resolve_engine(engine))
    return kernel(coarse_upper, coarse_lower, fine_upper, fine_lower, flip, sort, start)


def agglomerate_diag_asym(coarse_diag, fine_upper, fine_lower, sort, start, engine=None):
    """coarse_diag[k] += sum of (fine_upper + fine_lower) over range k, orientation-free."""
    kernel = jit_kernel(agglomerate_diag_asym_loop, resolve_engine(engine))
    return kernel(coarse_diag, fine_upper, fine_lower, sort, start)


# ──────────────────────────────────────────────────────────────────────────────
# Level transfer
# ──────────────────────────────────────────────────────────────────────────────
def restrict_field(fine_field, level, engine=None):
    """
    Sum a fine cell field into the coarse cells.

    Scalar fields have shape (n_fine_cells,), vector fields
    (n_fine_cells, n_components); the coarse field keeps the trailing shape.
    """
    fine_field = np.ascontiguousarray(fine_field, dtype=np.float64)
    if fine_field.ndim not in (1, 2) or fine_field.shape[0] != level.n_fine_cells:
        raise ValueError(
            f"fine field has shape {fine_field.shape}, expected ({level.n_fine_cells},) "
            f"or ({level.n_fine_cells}, n_components)"
        )
    coarse = np.zeros((level.n_coarse_cells,) + fine_field.shape[1:], dtype=np.float64)
    return agglomerate_sym(coarse, fine_field, level.cell_sort, level.cell_sort_start, engine)


def prolong_field(coarse_field, level):
    """Inject a coarse cell field back onto the fine cells."""
    return np.asarray(coarse_field)[level.restrict_addr]


def agglomerate_matrix(fine, level):
    """
    Build the coarse LduMatrix of ``level`` from the fine matrix.

    The coarse diagonal is the restricted fine diagonal plus the fine faces
    that collapsed inside a coarse cell; the coarse off-diagonals gather the
    fine faces merged into each coarse face. Symmetric storage stays
    symmetric.
    """
    engine = fine.settings.kernels.engine
    n_coarse_faces = level.addressing.n_faces

    coarse_diag = restrict_field(fine.diag, level, engine)

    if fine.is_symmetric:
        coarse_upper = np.zeros(n_coarse_faces)
        agglomerate_sym(
            coarse_upper, fine.upper, level.face_sort, level.face_sort_start, engine
        )
        agglomerate_diag_sym(
            coarse_diag, fine.upper, level.diag_sort, level.diag_sort_start, engine
        )
        coarse_lower = None
    else:
        coarse_upper = np.zeros(n_coarse_faces)
        coarse_lower = np.zeros(n_coarse_faces)
        agglomerate_asym(
            coarse_upper,
            coarse_lower,
            fine.upper,
            fine.lower,
            level.face_flip,
            level.face_sort,
            level.face_sort_start,
            engine,
        )
        agglomerate_diag_asym(
            coarse_diag,
            fine.upper,
            fine.lower,
            level.diag_sort,
            level.diag_sort_start,
            engine,
        )

    return LduMatrix(
        level.addressing,
        coarse_diag,
        coarse_upper,
        coarse_lower,
        patches=level.patches,
        settings=fine.settings,
    )
