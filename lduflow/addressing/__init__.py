"""
Addressing module for lduflow.

Provides the immutable owner/neighbour range tables and patch groupings that
the sparse traversal kernels gather through.
"""

from .addressing_data import LduAddressing, PatchAddressing
from .builder import (
    AddressingError,
    assemble_addressing,
    build_addressing,
    build_patch_addressing,
    validate_patch_addressing,
)
from .structured import generate as generate_structured
from .valence import fits_unroll_width, max_valence

__all__ = [
    "LduAddressing",
    "PatchAddressing",
    "AddressingError",
    "assemble_addressing",
    "build_addressing",
    "build_patch_addressing",
    "validate_patch_addressing",
    "generate_structured",
    "fits_unroll_width",
    "max_valence",
]
