from functools import lru_cache

from numba import prange

from lduflow.operations.engine import jit_kernel, resolve_engine
from lduflow.operations.ops import sum_op


@lru_cache(maxsize=None)
def _patch_operation_kernel(fun, op, engine):
    def patch_operation_loop(out, sort_cells, sort_start, sort_addr, data):
        for i in prange(sort_cells.shape[0]):
            cell = sort_cells[i]
            acc = out[cell]
            for j in range(sort_start[i], sort_start[i + 1]):
                acc = op(acc, fun(cell, sort_addr[j], data))
            out[cell] = acc
        return out

    return jit_kernel(patch_operation_loop, engine)


def matrix_patch_operation(patch, out, fun, op=sum_op, engine=None):
    """
    Fold the boundary-face contributions of one patch into a cell array.

    Patch faces are grouped by owning cell (patch.sort_cells / sort_start /
    sort_addr), one task per distinct cell, so faces sharing a cell are
    accumulated sequentially and never race on out[cell]. Only the cells of
    this patch are touched.

    Parameters
    ----------
    patch : PatchAddressing
    out : ndarray
        Cell array updated in place, shape (n_cells,) or (n_cells, n_components).
    fun : FaceAccessor
        Accessor indexed by patch-local face number.
    op : jitted binary function
        Combining operator (default: sum).
    engine : str, optional
    """
    kernel = _patch_operation_kernel(fun.kernel, op, resolve_engine(engine))
    kernel(out, patch.sort_cells, patch.sort_start, patch.sort_addr, fun.data)
    return out
