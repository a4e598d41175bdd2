from functools import lru_cache

from numba import prange

from lduflow.operations.engine import jit_kernel, resolve_engine
from lduflow.operations.ops import sum_op


@lru_cache(maxsize=None)
def _matrix_operation_kernel(o_fun, n_fun, o_op, n_op, engine):
    def matrix_operation_loop(inp, out, own_start, losort_start, losort, o_data, n_data):
        n_cells = own_start.shape[0] - 1
        for cell in prange(n_cells):
            acc = inp[cell]

            # ––– owner side: contiguous face range –––
            for face in range(own_start[cell], own_start[cell + 1]):
                acc = o_op(acc, o_fun(cell, face, o_data))

            # ––– neighbour side: faces through the neighbour-order permutation –––
            for i in range(losort_start[cell], losort_start[cell + 1]):
                acc = n_op(acc, n_fun(cell, losort[i], n_data))

            out[cell] = acc
        return out

    return jit_kernel(matrix_operation_loop, engine)


def matrix_operation(
    inp,
    out,
    addressing,
    o_fun,
    n_fun,
    o_op=sum_op,
    n_op=sum_op,
    engine=None,
):
    """
    Generic per-cell sparse reduction over LDU addressing.

    For every cell c independently::

        out[c] = inp[c] o_op oFun(c, f0) o_op ... n_op nFun(c, g0) n_op ...

    with f over the faces owned by c and g over the faces whose neighbour is c
    (taken in losort order). Each task writes only out[c], so no
    synchronisation is needed; ``inp`` and ``out`` may be the same array.

    Parameters
    ----------
    inp : ndarray
        Start value per cell, shape (n_cells,) or (n_cells, n_components).
    out : ndarray
        Output, same shape as ``inp``.
    addressing : LduAddressing
    o_fun, n_fun : FaceAccessor
        Owner-side and neighbour-side accessor policies.
    o_op, n_op : jitted binary function
        Associative, commutative combining operators (default: sum).
    engine : str, optional
        "parallel", "serial" or "python".

    Returns
    -------
    out : ndarray
    """
    kernel = _matrix_operation_kernel(
        o_fun.kernel, n_fun.kernel, o_op, n_op, resolve_engine(engine)
    )
    kernel(
        inp,
        out,
        addressing.owner_start,
        addressing.losort_start,
        addressing.losort,
        o_fun.data,
        n_fun.data,
    )
    return out
