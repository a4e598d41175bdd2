"""
Multigrid module for lduflow.

Coarse-level construction and coefficient agglomeration for algebraic
multigrid on LDU matrices.
"""

from .agglomerate_matrix import (
    agglomerate_asym,
    agglomerate_diag_asym,
    agglomerate_diag_sym,
    agglomerate_matrix,
    agglomerate_sym,
    prolong_field,
    restrict_field,
)
from .agglomeration import AgglomerationLevel, aggregate_cells, build_coarse_level
from .hierarchy import MultigridHierarchy, build_hierarchy

__all__ = [
    "AgglomerationLevel",
    "aggregate_cells",
    "build_coarse_level",
    "agglomerate_sym",
    "agglomerate_diag_sym",
    "agglomerate_asym",
    "agglomerate_diag_asym",
    "agglomerate_matrix",
    "restrict_field",
    "prolong_field",
    "MultigridHierarchy",
    "build_hierarchy",
]
