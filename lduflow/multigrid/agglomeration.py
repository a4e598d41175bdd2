"""
Coarse-level construction for algebraic multigrid.

A coarse level is described by the fine -> coarse cell map (restrict
addressing). From it we derive, once per level:

- the coarse LDU addressing (coarse faces owner-sorted, owner < neighbour),
- face_restrict_addr[f]: coarse face of fine face f if >= 0, otherwise
  -1 - coarseCell for a fine face whose two cells fall in the same coarse cell,
- face_flip[f]: the fine owner maps to the coarse neighbour,
- gather tables (sort + range start) grouping fine faces by coarse face,
  collapsed fine faces by coarse cell, and fine cells by coarse cell.

All tables are immutable; a changed agglomeration builds a new level.
"""

import logging

import numpy as np
from pyamg.aggregation.aggregate import standard_aggregation
from pyamg.strength import symmetric_strength_of_connection

from lduflow.addressing.builder import (
    AddressingError,
    build_addressing,
    build_patch_addressing,
    range_table,
)

log = logging.getLogger(__name__)


class AgglomerationLevel:
    """Immutable fine -> coarse tables of one multigrid level."""

    def __init__(
        self,
        fine_addressing,
        addressing,
        restrict_addr,
        face_restrict_addr,
        face_flip,
        face_sort,
        face_sort_start,
        diag_sort,
        diag_sort_start,
        cell_sort,
        cell_sort_start,
        patches=(),
    ):
        # --- Addressing ---
        self.fine_addressing = fine_addressing
        self.addressing = addressing
        self.patches = tuple(patches)

        # --- Restriction Maps ---
        self.restrict_addr = restrict_addr
        self.face_restrict_addr = face_restrict_addr
        self.face_flip = face_flip

        # --- Gather Tables ---
        self.face_sort = face_sort
        self.face_sort_start = face_sort_start
        self.diag_sort = diag_sort
        self.diag_sort_start = diag_sort_start
        self.cell_sort = cell_sort
        self.cell_sort_start = cell_sort_start

    @property
    def n_fine_cells(self):
        return self.fine_addressing.n_cells

    @property
    def n_coarse_cells(self):
        return self.addressing.n_cells


def aggregate_cells(matrix, theta=0.0):
    """
    Fine -> coarse cell map from pyamg standard aggregation.

    Strength of connection is taken on |A| + |A|^T so asymmetric matrices
    aggregate on a symmetric graph. Cells pyamg leaves unaggregated (no
    strong connections) become singleton coarse cells.
    """
    A = matrix.to_csr()
    magnitude = abs(A)
    C = symmetric_strength_of_connection((magnitude + magnitude.T).tocsr(), theta=theta)
    agg_op = standard_aggregation(C.tocsr())[0].tocsr()

    n_fine = matrix.n_cells
    restrict = np.full(n_fine, -1, dtype=np.int64)
    rows = np.repeat(np.arange(n_fine), np.diff(agg_op.indptr))
    restrict[rows] = agg_op.indices

    isolated = np.flatnonzero(restrict < 0)
    restrict[isolated] = agg_op.shape[1] + np.arange(isolated.shape[0])

    # renumber so coarse cells are contiguous
    _, restrict = np.unique(restrict, return_inverse=True)
    return np.ascontiguousarray(restrict.ravel(), dtype=np.int64)


def build_coarse_level(fine_addressing, restrict_addr, patches=()):
    """
    Derive the coarse addressing and agglomeration tables for one level.

    Parameters
    ----------
    fine_addressing : LduAddressing
    restrict_addr : array_like of int, shape (n_fine_cells,)
        Coarse cell of every fine cell; coarse cells 0..n_coarse-1 must all
        be non-empty.
    patches : sequence of PatchAddressing
        Fine patches; coarse patches keep their faces with owning cells mapped
        to coarse cells.

    Returns
    -------
    AgglomerationLevel
    """
    restrict = np.ascontiguousarray(restrict_addr, dtype=np.int64)
    n_fine = fine_addressing.n_cells
    if restrict.shape != (n_fine,):
        raise AddressingError(
            f"restrict addressing has shape {restrict.shape}, expected ({n_fine},)"
        )
    if n_fine and restrict.min() < 0:
        raise AddressingError("restrict addressing contains negative coarse cells")

    n_coarse = int(restrict.max()) + 1 if n_fine else 0
    if np.any(np.bincount(restrict, minlength=n_coarse) == 0):
        raise AddressingError("restrict addressing leaves coarse cells empty")

    lower = fine_addressing.lower
    upper = fine_addressing.upper
    c_own = restrict[lower]
    c_nei = restrict[upper]

    # ––– coarse faces –––––––––––––––––––––––––––––––––––––––––––––––––––––––
    merged_mask = c_own != c_nei
    lo = np.minimum(c_own, c_nei)[merged_mask]
    hi = np.maximum(c_own, c_nei)[merged_mask]
    keys = lo * n_coarse + hi
    unique_keys, inverse = np.unique(keys, return_inverse=True)
    addressing = build_addressing(n_coarse, unique_keys // n_coarse, unique_keys % n_coarse)

    face_restrict = np.empty(lower.shape[0], dtype=np.int64)
    face_restrict[merged_mask] = inverse.ravel()
    face_restrict[~merged_mask] = -1 - c_own[~merged_mask]
    face_flip = c_own > c_nei

    # ––– gather tables ––––––––––––––––––––––––––––––––––––––––––––––––––––––
    merged = np.flatnonzero(merged_mask)
    merged_target = face_restrict[merged]
    face_sort = merged[np.argsort(merged_target, kind="stable")]
    face_sort_start = range_table(merged_target, addressing.n_faces)

    collapsed = np.flatnonzero(~merged_mask)
    collapsed_target = c_own[collapsed]
    diag_sort = collapsed[np.argsort(collapsed_target, kind="stable")]
    diag_sort_start = range_table(collapsed_target, n_coarse)

    cell_sort = np.argsort(restrict, kind="stable")
    cell_sort_start = range_table(restrict, n_coarse)

    coarse_patches = [
        build_patch_addressing(n_coarse, restrict[np.asarray(patch.face_cells)])
        for patch in patches
    ]

    log.info(
        "Coarse level: %d -> %d cells, %d -> %d faces (%d collapsed)",
        n_fine,
        n_coarse,
        lower.shape[0],
        addressing.n_faces,
        collapsed.shape[0],
    )

    def contiguous(a):
        return np.ascontiguousarray(a, dtype=np.int64)

    return AgglomerationLevel(
        fine_addressing,
        addressing,
        restrict,
        face_restrict,
        np.ascontiguousarray(face_flip),
        contiguous(face_sort),
        face_sort_start,
        contiguous(diag_sort),
        diag_sort_start,
        contiguous(cell_sort),
        cell_sort_start,
        coarse_patches,
    )
