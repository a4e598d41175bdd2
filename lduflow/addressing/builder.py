"""Construction and validation of LDU addressing tables.

Tables are built once per mesh (or coarse level) and never patched. Any
inconsistency is a construction-time defect and is rejected with an
``AddressingError`` here, since the traversal kernels do no bounds checking.
"""

import logging

import numpy as np

from lduflow.addressing.addressing_data import LduAddressing, PatchAddressing

log = logging.getLogger(__name__)


class AddressingError(ValueError):
    """Raised when addressing tables are inconsistent."""


def ensure_contiguous(*arrays):
    return [np.ascontiguousarray(a, dtype=np.int64) for a in arrays]


def range_table(keys, n_bins):
    """Start offsets (length n_bins+1) of each key's range after a stable sort by key."""
    counts = np.bincount(keys, minlength=n_bins)
    start = np.zeros(n_bins + 1, dtype=np.int64)
    np.cumsum(counts, out=start[1:])
    return start


def build_addressing(n_cells, lower, upper):
    """
    Build the owner-range, neighbour-range and neighbour-order tables.

    Parameters
    ----------
    n_cells : int
        Number of cells N.
    lower, upper : array_like of int
        Owner and neighbour cell of each internal face, faces sorted by owner.

    Returns
    -------
    LduAddressing
        Validated addressing.
    """
    lower, upper = ensure_contiguous(lower, upper)
    _check_faces(n_cells, lower, upper)

    owner_start = range_table(lower, n_cells)
    losort = np.argsort(upper, kind="stable").astype(np.int64)
    losort_start = range_table(upper, n_cells)

    return assemble_addressing(n_cells, lower, upper, owner_start, losort, losort_start)


def assemble_addressing(n_cells, lower, upper, owner_start, losort, losort_start):
    """Wrap externally supplied tables after checking them against the face arrays."""
    lower, upper, owner_start, losort, losort_start = ensure_contiguous(
        lower, upper, owner_start, losort, losort_start
    )
    _check_faces(n_cells, lower, upper)
    n_faces = lower.shape[0]

    _check_range_table("owner_start", owner_start, n_cells, n_faces)
    _check_range_table("losort_start", losort_start, n_cells, n_faces)

    owner_of_range = np.repeat(np.arange(n_cells, dtype=np.int64), np.diff(owner_start))
    if not np.array_equal(owner_of_range, lower):
        raise AddressingError("owner_start does not match the owner of each face")

    if losort.shape[0] != n_faces:
        raise AddressingError(
            f"losort has {losort.shape[0]} entries, expected {n_faces}"
        )
    if n_faces and (losort.min() < 0 or losort.max() >= n_faces):
        raise AddressingError("losort contains face indices out of range")
    if not np.array_equal(np.sort(losort), np.arange(n_faces)):
        raise AddressingError("losort is not a permutation of the face indices")

    nei_of_range = np.repeat(np.arange(n_cells, dtype=np.int64), np.diff(losort_start))
    if not np.array_equal(upper[losort], nei_of_range):
        raise AddressingError("losort lists faces under the wrong neighbour cell")

    log.debug("Built LDU addressing: %d cells, %d faces", n_cells, n_faces)
    return LduAddressing(np.int64(n_cells), lower, upper, owner_start, losort, losort_start)


def build_patch_addressing(n_cells, face_cells):
    """
    Group the faces of one boundary patch by owning cell.

    Faces sharing an owning cell end up in one range so that a single task
    accumulates them; distinct cells never share a task.
    """
    (face_cells,) = ensure_contiguous(face_cells)
    if face_cells.ndim != 1:
        raise AddressingError("face_cells must be one-dimensional")
    if face_cells.size and (face_cells.min() < 0 or face_cells.max() >= n_cells):
        raise AddressingError(
            f"patch face cells out of range [0, {n_cells})"
        )

    sort_addr = np.argsort(face_cells, kind="stable").astype(np.int64)
    sort_cells, counts = np.unique(face_cells, return_counts=True)
    sort_start = np.zeros(sort_cells.shape[0] + 1, dtype=np.int64)
    np.cumsum(counts, out=sort_start[1:])

    sort_cells, sort_addr, sort_start = ensure_contiguous(sort_cells, sort_addr, sort_start)
    return PatchAddressing(face_cells, sort_cells, sort_addr, sort_start)


def validate_patch_addressing(n_cells, patch):
    """Check a patch grouping that was not produced by build_patch_addressing."""
    face_cells = np.asarray(patch.face_cells)
    sort_cells = np.asarray(patch.sort_cells)
    sort_addr = np.asarray(patch.sort_addr)
    sort_start = np.asarray(patch.sort_start)
    n_faces = face_cells.shape[0]

    if sort_start.shape[0] != sort_cells.shape[0] + 1:
        raise AddressingError("sort_start must have one entry more than sort_cells")
    _check_monotone("sort_start", sort_start, n_faces)
    if np.any(np.diff(sort_cells) <= 0):
        raise AddressingError("sort_cells must be strictly increasing")
    if sort_cells.size and (sort_cells[0] < 0 or sort_cells[-1] >= n_cells):
        raise AddressingError("sort_cells out of range")
    if not np.array_equal(np.sort(sort_addr), np.arange(n_faces)):
        raise AddressingError("sort_addr is not a permutation of the patch faces")

    cell_of_range = np.repeat(sort_cells, np.diff(sort_start))
    if not np.array_equal(face_cells[sort_addr], cell_of_range):
        raise AddressingError("sort_addr groups faces under the wrong cell")


def _check_faces(n_cells, lower, upper):
    if n_cells < 0:
        raise AddressingError(f"n_cells must be non-negative, got {n_cells}")
    if lower.ndim != 1 or upper.ndim != 1:
        raise AddressingError("lower and upper must be one-dimensional")
    if lower.shape[0] != upper.shape[0]:
        raise AddressingError(
            f"lower ({lower.shape[0]}) and upper ({upper.shape[0]}) differ in length"
        )
    if lower.shape[0] == 0:
        return

    if lower.min() < 0 or upper.max() >= n_cells:
        raise AddressingError(f"face cell indices out of range [0, {n_cells})")
    if np.any(lower >= upper):
        bad = int(np.flatnonzero(lower >= upper)[0])
        raise AddressingError(
            f"face {bad} has owner {lower[bad]} >= neighbour {upper[bad]}"
        )
    if np.any(np.diff(lower) < 0):
        raise AddressingError("faces are not sorted by owner cell")

    keys = lower * n_cells + upper
    if np.unique(keys).shape[0] != keys.shape[0]:
        raise AddressingError("duplicate faces between the same pair of cells")


def _check_range_table(name, table, n_cells, n_entries):
    if table.shape[0] != n_cells + 1:
        raise AddressingError(
            f"{name} has {table.shape[0]} entries, expected {n_cells + 1}"
        )
    _check_monotone(name, table, n_entries)


def _check_monotone(name, table, n_entries):
    if table.shape[0] == 0 or table[0] != 0 or table[-1] != n_entries:
        raise AddressingError(f"{name} must start at 0 and end at {n_entries}")
    if np.any(np.diff(table) < 0):
        raise AddressingError(f"{name} is decreasing")
