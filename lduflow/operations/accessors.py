"""
Face accessor policies.

An accessor maps ``(cell, face)`` to the contribution that face makes to the
cell's reduction. It is a pair of a jitted kernel ``kernel(cell, face, data)``
and the read-only arrays ``data`` it gathers from, so the traversal loops are
written once and only the accessor changes per use:

- matrix_coeffs:           op(coeffs[face])
- matrix_coeffs_multiply:  op(coeffs[face] * psi[addr[face]])
- matrix_interface:        -coeffs[face] * values[face]

The unary ``op`` is bound into the kernel when the accessor is created;
kernels are cached per op so each combination is compiled once.
"""

from functools import lru_cache
from typing import NamedTuple

import numpy as np
from numba import njit

from lduflow.operations.ops import identity_op


class FaceAccessor(NamedTuple):
    kernel: object
    data: tuple


@lru_cache(maxsize=None)
def _coeffs_kernel(op):
    @njit
    def value(cell, face, data):
        return op(data[0][face])

    return value


@lru_cache(maxsize=None)
def _coeffs_multiply_kernel(op):
    @njit
    def value(cell, face, data):
        coeffs, psi, addr = data
        return op(coeffs[face] * psi[addr[face]])

    return value


@njit
def _interface_value(cell, face, data):
    coeffs, values = data
    return -coeffs[face] * values[face]


def matrix_coeffs(coeffs, op=identity_op):
    """Plain coefficient lookup."""
    return FaceAccessor(_coeffs_kernel(op), (np.ascontiguousarray(coeffs),))


def matrix_coeffs_multiply(coeffs, psi, addr, op=identity_op):
    """
    Coefficient times the field value at the opposite end of the face.

    Parameters
    ----------
    coeffs : ndarray
        Face coefficients (upper for owner-side faces, lower for neighbour-side).
    psi : ndarray
        Cell field, shape (n_cells,) or (n_cells, n_components).
    addr : ndarray of int
        Opposite-cell table: addressing.upper for owner-side faces,
        addressing.lower for neighbour-side faces.
    """
    return FaceAccessor(
        _coeffs_multiply_kernel(op),
        (
            np.ascontiguousarray(coeffs),
            np.ascontiguousarray(psi),
            np.ascontiguousarray(addr, dtype=np.int64),
        ),
    )


def matrix_interface(coeffs, values):
    """Boundary coupling moved across the equation: -coeffs * values per patch face."""
    return FaceAccessor(
        _interface_value, (np.ascontiguousarray(coeffs), np.ascontiguousarray(values))
    )
