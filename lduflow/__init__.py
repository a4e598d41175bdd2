"""
lduflow: sparse traversal kernels and multigrid agglomeration for LDU matrices.
"""

from lduflow.addressing import (
    AddressingError,
    LduAddressing,
    PatchAddressing,
    build_addressing,
    build_patch_addressing,
    generate_structured,
)
from lduflow.config import Settings, load_settings
from lduflow.matrix import LduMatrix
from lduflow.multigrid import build_coarse_level, build_hierarchy

__all__ = [
    "AddressingError",
    "LduAddressing",
    "PatchAddressing",
    "build_addressing",
    "build_patch_addressing",
    "generate_structured",
    "Settings",
    "load_settings",
    "LduMatrix",
    "build_coarse_level",
    "build_hierarchy",
]
