"""
Multigrid hierarchy built by repeated cell aggregation and coefficient agglomeration.
"""

import logging

from lduflow.config import load_settings
from lduflow.multigrid.agglomerate_matrix import agglomerate_matrix
from lduflow.multigrid.agglomeration import aggregate_cells, build_coarse_level

log = logging.getLogger(__name__)


class MultigridHierarchy:
    """
    Matrices and agglomeration levels from fine to coarse.

    ``matrices[0]`` is the fine matrix; ``levels[k]`` maps ``matrices[k]`` onto
    ``matrices[k + 1]``.
    """

    def __init__(self, matrices, levels):
        self.matrices = list(matrices)
        self.levels = list(levels)

    def __len__(self):
        return len(self.matrices)

    @property
    def n_cells(self):
        return [m.n_cells for m in self.matrices]


def build_hierarchy(matrix, settings=None):
    """
    Coarsen ``matrix`` until the coarsest level is small enough.

    Coarsening stops when the coarse level has at most ``n_coarsest_cells``
    cells, when aggregation no longer reduces the cell count, or when
    ``max_levels`` matrices have been built.

    Parameters
    ----------
    matrix : LduMatrix
        Fine-level matrix.
    settings : Settings, dict or path, optional
        Defaults to the settings of ``matrix``.

    Returns
    -------
    MultigridHierarchy
    """
    settings = matrix.settings if settings is None else load_settings(settings)
    agglomeration = settings.agglomeration

    matrices = [matrix]
    levels = []
    current = matrix
    while (
        len(matrices) < agglomeration.max_levels
        and current.n_cells > agglomeration.n_coarsest_cells
    ):
        restrict = aggregate_cells(current, theta=agglomeration.strength_theta)
        n_coarse = int(restrict.max()) + 1
        if n_coarse >= current.n_cells:
            log.info("Aggregation stalled at %d cells", current.n_cells)
            break

        level = build_coarse_level(current.addressing, restrict, current.patches)
        current = agglomerate_matrix(current, level)
        levels.append(level)
        matrices.append(current)

    log.info(
        "Built hierarchy with %d levels: %s cells",
        len(matrices),
        " -> ".join(str(m.n_cells) for m in matrices),
    )
    return MultigridHierarchy(matrices, levels)
