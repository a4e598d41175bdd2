"""
Sparse traversal kernels over LDU addressing.

The three traversals (per-cell, unrolled per-cell, per-patch) are each written
once and specialised by accessor and operator policies.
"""

from .accessors import FaceAccessor, matrix_coeffs, matrix_coeffs_multiply, matrix_interface
from .fast_operation import DEFAULT_UNROLL_WIDTH, matrix_fast_operation
from .matrix_operation import matrix_operation
from .ops import identity_op, mag_op, max_op, min_op, negate_op, sum_op
from .patch_operation import matrix_patch_operation

__all__ = [
    "FaceAccessor",
    "matrix_coeffs",
    "matrix_coeffs_multiply",
    "matrix_interface",
    "matrix_operation",
    "matrix_fast_operation",
    "matrix_patch_operation",
    "DEFAULT_UNROLL_WIDTH",
    "sum_op",
    "max_op",
    "min_op",
    "identity_op",
    "negate_op",
    "mag_op",
]
