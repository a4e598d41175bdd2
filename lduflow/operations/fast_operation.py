"""
Fixed-unroll scalar sum reduction for low-valence meshes.

Most finite volume cells have at most three owner-side and three
neighbour-side faces. The first ``unroll_width`` contributions of each side
are written into a fixed buffer that is summed once; owner faces beyond the
width are added through a plain loop, and neighbour faces beyond the width go
through a separate accumulator that is added to the result before returning.

For cells within the width the result is bit-identical to matrix_operation
with sum operators (unused buffer slots add exact zeros). Above the width the
summation is reassociated, so results agree to round-off only. Callers should
pick this path only after fits_unroll_width() has confirmed the mesh valence.
"""

from functools import lru_cache

import numpy as np
from numba import prange

from lduflow.addressing.valence import validate_unroll_width
from lduflow.operations.engine import jit_kernel, resolve_engine

DEFAULT_UNROLL_WIDTH = 3


@lru_cache(maxsize=None)
def _fast_operation_kernel(o_fun, n_fun, width, engine):
    def fast_operation_loop(inp, out, own_start, losort_start, losort, o_data, n_data):
        n_cells = own_start.shape[0] - 1
        for cell in prange(n_cells):
            buffer = np.zeros(2 * width)

            o_begin = own_start[cell]
            o_size = own_start[cell + 1] - o_begin
            n_begin = losort_start[cell]
            n_size = losort_start[cell + 1] - n_begin

            for i in range(width):
                if i < o_size:
                    buffer[i] = o_fun(cell, o_begin + i, o_data)

            for i in range(width):
                if i < n_size:
                    buffer[width + i] = n_fun(cell, losort[n_begin + i], n_data)

            total = inp[cell]
            for i in range(2 * width):
                total += buffer[i]

            for i in range(width, o_size):
                total += o_fun(cell, o_begin + i, o_data)

            n_extra = 0.0
            for i in range(width, n_size):
                n_extra += n_fun(cell, losort[n_begin + i], n_data)

            out[cell] = total + n_extra
        return out

    return jit_kernel(fast_operation_loop, engine)


def matrix_fast_operation(
    inp,
    out,
    addressing,
    o_fun,
    n_fun,
    unroll_width=DEFAULT_UNROLL_WIDTH,
    engine=None,
):
    """
    Scalar sum-only counterpart of matrix_operation.

    Parameters
    ----------
    inp, out : ndarray of float, shape (n_cells,)
    addressing : LduAddressing
    o_fun, n_fun : FaceAccessor
        Accessors returning scalars.
    unroll_width : int
        Number of contributions per side held in the local buffer.
    engine : str, optional
    """
    if np.ndim(inp) != 1:
        raise ValueError("matrix_fast_operation supports scalar (1-D) fields only")
    width = validate_unroll_width(unroll_width)
    kernel = _fast_operation_kernel(o_fun.kernel, n_fun.kernel, width, resolve_engine(engine))
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
