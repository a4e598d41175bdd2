"""
LduAddressing / PatchAddressing: immutable addressing tables for LDU matrices.

The tables turn the face -> cell scatter of a finite volume matrix into a
cell -> face gather, so every per-cell task reads a contiguous range and
writes only its own output slot.

Indexing Conventions:
- Face-based arrays (lower, upper) use internal face indexing (0 to n_faces-1).
- Range tables (owner_start, losort_start) have length n_cells+1.
    * owner_start[c]:owner_start[c+1]   -> faces f with lower[f] == c
    * losort_start[c]:losort_start[c+1] -> positions in losort, losort[i] is a
      face f with upper[f] == c
- Patch arrays use patch-local face indexing (0 to n_patch_faces-1).

Construct through lduflow.addressing.builder, which validates the tables.
"""

from numba import types
from numba.experimental import jitclass

ldu_addressing_spec = [
    ("n_cells", types.int64),
    # --- Face Connectivity ---
    ("lower", types.int64[:]),          # Owner cell of each face
    ("upper", types.int64[:]),          # Neighbour cell of each face (lower < upper)
    # --- Owner Ranges ---
    ("owner_start", types.int64[:]),    # Start of each cell's owned faces
    # --- Neighbour Ranges ---
    ("losort", types.int64[:]),         # Face indices ordered by neighbour cell
    ("losort_start", types.int64[:]),   # Start of each cell's range in losort
]


@jitclass(ldu_addressing_spec)
class LduAddressing:
    def __init__(self, n_cells, lower, upper, owner_start, losort, losort_start):
        self.n_cells = n_cells

        # --- Connectivity ---
        self.lower = lower
        self.upper = upper

        # --- Range Tables ---
        self.owner_start = owner_start
        self.losort = losort
        self.losort_start = losort_start

    @property
    def n_faces(self):
        return self.lower.shape[0]


patch_addressing_spec = [
    ("face_cells", types.int64[:]),     # Owning cell of each patch face
    ("sort_cells", types.int64[:]),     # Distinct owning cells, ascending
    ("sort_addr", types.int64[:]),      # Patch faces grouped by owning cell
    ("sort_start", types.int64[:]),     # Start of each sort_cells entry in sort_addr
]


@jitclass(patch_addressing_spec)
class PatchAddressing:
    def __init__(self, face_cells, sort_cells, sort_addr, sort_start):
        self.face_cells = face_cells
        self.sort_cells = sort_cells
        self.sort_addr = sort_addr
        self.sort_start = sort_start

    @property
    def n_faces(self):
        return self.face_cells.shape[0]
