"""Structured (Cartesian) LDU addressing generated in memory.

Cells are numbered ``c = i + j * nx``. Each cell owns its east face (to
``c + 1``) and its north face (to ``c + nx``), which gives owner-sorted,
upper-triangular face ordering. Boundary faces are grouped into the patches
bottom, right, top and left (the naming of the Gmsh generators).
"""

import numpy as np

from lduflow.addressing.builder import build_addressing, build_patch_addressing

PATCH_NAMES = ("bottom", "right", "top", "left")


def structured_faces(nx, ny):
    """Return (lower, upper) of the internal faces of an nx x ny grid."""
    if nx < 1 or ny < 1:
        raise ValueError(f"grid must have at least one cell per direction, got {nx}x{ny}")

    lower = []
    upper = []
    for c in range(nx * ny):
        i = c % nx
        j = c // nx
        if i + 1 < nx:
            lower.append(c)
            upper.append(c + 1)
        if j + 1 < ny:
            lower.append(c)
            upper.append(c + nx)
    return np.array(lower, dtype=np.int64), np.array(upper, dtype=np.int64)


def structured_patch_cells(nx, ny):
    """Owning cell of every boundary face, per patch name."""
    i = np.arange(nx, dtype=np.int64)
    j = np.arange(ny, dtype=np.int64)
    return {
        "bottom": i,
        "right": (nx - 1) + j * nx,
        "top": i + (ny - 1) * nx,
        "left": j * nx,
    }


def generate(nx=4, ny=4):
    """
    Generate addressing for an nx x ny Cartesian grid.

    Returns
    -------
    addressing : LduAddressing
    patches : dict[str, PatchAddressing]
        Patch addressing in PATCH_NAMES order.
    """
    n_cells = nx * ny
    lower, upper = structured_faces(nx, ny)
    addressing = build_addressing(n_cells, lower, upper)

    patch_cells = structured_patch_cells(nx, ny)
    patches = {
        name: build_patch_addressing(n_cells, patch_cells[name]) for name in PATCH_NAMES
    }
    return addressing, patches
