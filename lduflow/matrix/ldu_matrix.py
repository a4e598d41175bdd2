"""
LduMatrix: diagonal + per-face upper/lower coefficients on fixed LDU addressing.

Row c of the matrix holds
- diag[c] at column c,
- upper[f] at column upper_addr[f] for every face f owned by c,
- lower[f] at column lower_addr[f] for every face f whose neighbour is c.

Symmetric storage keeps a single off-diagonal array (``lower=None``) that is
read for both triangles; the choice is made once at construction.
"""

import logging

import numpy as np
from scipy.sparse import coo_matrix

from lduflow.addressing.valence import fits_unroll_width
from lduflow.config import load_settings
from lduflow.operations.accessors import (
    matrix_coeffs,
    matrix_coeffs_multiply,
    matrix_interface,
)
from lduflow.operations.fast_operation import matrix_fast_operation
from lduflow.operations.matrix_operation import matrix_operation
from lduflow.operations.ops import identity_op, mag_op, negate_op
from lduflow.operations.patch_operation import matrix_patch_operation

log = logging.getLogger(__name__)


def _as_coeffs(name, values, expected):
    values = np.ascontiguousarray(values, dtype=np.float64)
    if values.ndim != 1 or values.shape[0] != expected:
        raise ValueError(f"{name} must have shape ({expected},), got {values.shape}")
    return values


class LduMatrix:
    def __init__(self, addressing, diag, upper, lower=None, patches=(), settings=None):
        """
        Parameters
        ----------
        addressing : LduAddressing
        diag : array_like, shape (n_cells,)
        upper : array_like, shape (n_faces,)
            Coefficient of row lower_addr[f], column upper_addr[f].
        lower : array_like, shape (n_faces,), optional
            Coefficient of row upper_addr[f], column lower_addr[f]. None means
            symmetric storage (lower aliases upper).
        patches : sequence of PatchAddressing
            Boundary patches that interface coefficients refer to by index.
        settings : Settings, dict or path, optional
        """
        self.addressing = addressing
        self.settings = load_settings(settings)
        self.patches = tuple(patches)

        self.diag = _as_coeffs("diag", diag, addressing.n_cells)
        self.upper = _as_coeffs("upper", upper, addressing.n_faces)
        self._lower = None if lower is None else _as_coeffs("lower", lower, addressing.n_faces)

        self._fits_unroll = None

    # --- Storage ---
    @property
    def is_symmetric(self):
        return self._lower is None

    @property
    def lower(self):
        return self.upper if self._lower is None else self._lower

    @property
    def n_cells(self):
        return self.addressing.n_cells

    @property
    def n_faces(self):
        return self.addressing.n_faces

    # --- Path selection ---
    def uses_fast_path(self, psi):
        """True if a reduction over ``psi`` may take the unrolled scalar path."""
        kernels = self.settings.kernels
        if not kernels.fast_path or np.ndim(psi) != 1:
            return False
        if self._fits_unroll is None:
            self._fits_unroll = fits_unroll_width(self.addressing, kernels.unroll_width)
            log.debug(
                "Fast path %s for unroll width %d",
                "enabled" if self._fits_unroll else "disabled",
                kernels.unroll_width,
            )
        return self._fits_unroll

    def _reduce(self, inp, o_fun, n_fun):
        kernels = self.settings.kernels
        out = np.empty_like(inp)
        if self.uses_fast_path(inp):
            return matrix_fast_operation(
                inp,
                out,
                self.addressing,
                o_fun,
                n_fun,
                unroll_width=kernels.unroll_width,
                engine=kernels.engine,
            )
        return matrix_operation(
            inp, out, self.addressing, o_fun, n_fun, engine=kernels.engine
        )

    def _diag_times(self, psi):
        if psi.ndim == 1:
            return self.diag * psi
        return self.diag[:, None] * psi

    def _as_field(self, psi):
        psi = np.ascontiguousarray(psi, dtype=np.float64)
        if psi.shape[0] != self.n_cells:
            raise ValueError(
                f"field has {psi.shape[0]} entries, matrix has {self.n_cells} cells"
            )
        return psi

    # --- Operations ---
    def amul(self, psi, interfaces=()):
        """
        Matrix-vector product A psi.

        ``interfaces`` is a sequence of (patch_index, coeffs, values); each
        contributes -coeffs * values to the owning cells of that patch.
        """
        psi = self._as_field(psi)
        addr = self.addressing
        Apsi = self._reduce(
            self._diag_times(psi),
            matrix_coeffs_multiply(self.upper, psi, addr.upper),
            matrix_coeffs_multiply(self.lower, psi, addr.lower),
        )
        return self.update_interfaces(Apsi, interfaces)

    def residual(self, psi, source, interfaces=()):
        """source - A psi, with interface contributions carried with reversed sign."""
        psi = self._as_field(psi)
        source = self._as_field(source)
        addr = self.addressing
        rA = self._reduce(
            source - self._diag_times(psi),
            matrix_coeffs_multiply(self.upper, psi, addr.upper, op=negate_op),
            matrix_coeffs_multiply(self.lower, psi, addr.lower, op=negate_op),
        )
        negated = [(p, -np.asarray(coeffs), values) for p, coeffs, values in interfaces]
        return self.update_interfaces(rA, negated)

    def h_operation(self, psi):
        """Off-diagonal part moved to the right: -(sum of off-diagonal * psi) per cell."""
        psi = self._as_field(psi)
        addr = self.addressing
        return self._reduce(
            np.zeros_like(psi),
            matrix_coeffs_multiply(self.upper, psi, addr.upper, op=negate_op),
            matrix_coeffs_multiply(self.lower, psi, addr.lower, op=negate_op),
        )

    def sum_off_diag(self):
        """Row sums of the off-diagonal coefficients."""
        return self._fold_off_diag(identity_op)

    def sum_mag_off_diag(self):
        """Row sums of the off-diagonal coefficient magnitudes."""
        return self._fold_off_diag(mag_op)

    def _fold_off_diag(self, op):
        return self._reduce(
            np.zeros(self.n_cells),
            matrix_coeffs(self.upper, op=op),
            matrix_coeffs(self.lower, op=op),
        )

    def update_interfaces(self, out, interfaces):
        """Fold -coeffs * values of each (patch_index, coeffs, values) into ``out`` in place."""
        engine = self.settings.kernels.engine
        for patch_index, coeffs, values in interfaces:
            if not 0 <= patch_index < len(self.patches):
                raise ValueError(
                    f"interface patch index {patch_index} out of range [0, {len(self.patches)})"
                )
            patch = self.patches[patch_index]
            coeffs = np.asarray(coeffs, dtype=np.float64)
            values = np.asarray(values, dtype=np.float64)
            if coeffs.shape[0] != patch.n_faces or values.shape[0] != patch.n_faces:
                raise ValueError(
                    f"interface on patch {patch_index} needs {patch.n_faces} coefficients and values"
                )
            matrix_patch_operation(patch, out, matrix_interface(coeffs, values), engine=engine)
        return out

    def add_boundary_diag(self, internal_coeffs):
        """
        Diagonal including the boundary internal coefficients.

        ``internal_coeffs`` holds one array (or None) per patch, indexed by
        patch-local face.
        """
        if len(internal_coeffs) != len(self.patches):
            raise ValueError(
                f"internal_coeffs has {len(internal_coeffs)} entries, matrix has "
                f"{len(self.patches)} patches"
            )
        engine = self.settings.kernels.engine
        diag = self.diag.copy()
        for patch, coeffs in zip(self.patches, internal_coeffs):
            if coeffs is None:
                continue
            coeffs = _as_coeffs("internal_coeffs", coeffs, patch.n_faces)
            matrix_patch_operation(patch, diag, matrix_coeffs(coeffs), engine=engine)
        return diag

    def add_boundary_source(self, source, boundary):
        """Source plus the boundary coupling coeffs * values of each (patch_index, coeffs, values)."""
        out = self._as_field(source).copy()
        negated = [(p, -np.asarray(coeffs), values) for p, coeffs, values in boundary]
        return self.update_interfaces(out, negated)

    def to_csr(self):
        """Assemble a scipy CSR copy of the matrix."""
        addr = self.addressing
        n = self.n_cells
        cells = np.arange(n, dtype=np.int64)
        row = np.concatenate([cells, addr.lower, addr.upper])
        col = np.concatenate([cells, addr.upper, addr.lower])
        data = np.concatenate([self.diag, self.upper, self.lower])
        return coo_matrix((data, (row, col)), shape=(n, n)).tocsr()
