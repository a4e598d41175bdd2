import numpy as np
import pytest

from lduflow.addressing import build_addressing, fits_unroll_width
from lduflow.operations import (
    matrix_coeffs,
    matrix_coeffs_multiply,
    matrix_fast_operation,
    matrix_operation,
)


def _both_paths(case, unroll_width=3, engine=None):
    addr = case.addressing
    diag, upper, lower = case.coefficients()
    psi = case.rng.uniform(-1.0, 1.0, case.n_cells)
    o_fun = matrix_coeffs_multiply(upper, psi, addr.upper)
    n_fun = matrix_coeffs_multiply(lower, psi, addr.lower)

    generic = matrix_operation(diag * psi, np.empty(case.n_cells), addr, o_fun, n_fun, engine=engine)
    fast = matrix_fast_operation(
        diag * psi,
        np.empty(case.n_cells),
        addr,
        o_fun,
        n_fun,
        unroll_width=unroll_width,
        engine=engine,
    )
    return generic, fast


def test_exact_within_unroll_width(banded_case, engine):
    assert fits_unroll_width(banded_case.addressing, 3)
    generic, fast = _both_paths(banded_case, engine=engine)
    assert np.array_equal(fast, generic)


def test_structured_exact(structured):
    addr, _ = structured
    rng = np.random.default_rng(3)
    coeffs = rng.uniform(-1.0, 1.0, addr.n_faces)
    inp = rng.uniform(size=addr.n_cells)

    generic = matrix_operation(inp, np.empty_like(inp), addr, matrix_coeffs(coeffs), matrix_coeffs(coeffs))
    fast = matrix_fast_operation(inp, np.empty_like(inp), addr, matrix_coeffs(coeffs), matrix_coeffs(coeffs))
    assert np.array_equal(fast, generic)


def test_high_valence_keeps_all_contributions(hub_case):
    assert not fits_unroll_width(hub_case.addressing, 3)
    generic, fast = _both_paths(hub_case)
    assert np.allclose(fast, generic, rtol=1e-12, atol=1e-12), (
        f"max error {np.max(np.abs(fast - generic)):.3e}"
    )


@pytest.mark.parametrize("unroll_width", [1, 2, 5])
def test_other_unroll_widths(addressing_case, unroll_width):
    generic, fast = _both_paths(addressing_case, unroll_width=unroll_width)
    assert np.allclose(fast, generic, rtol=1e-12, atol=1e-12)


def test_neighbour_overflow_only():
    # cell 4 is the neighbour of four faces and owns none
    addr_lower = np.array([0, 1, 2, 3, 3])
    addr_upper = np.array([4, 4, 4, 4, 5])
    addr = build_addressing(6, addr_lower, addr_upper)
    coeffs = np.array([1.0, 2.0, 3.0, 4.0, 5.0])

    out = matrix_fast_operation(
        np.zeros(6), np.empty(6), addr, matrix_coeffs(coeffs), matrix_coeffs(coeffs), unroll_width=3
    )
    assert out[4] == 10.0
    assert out[3] == 9.0
    assert out[5] == 5.0


def test_rejects_bad_input(banded_case, subtests):
    addr = banded_case.addressing
    coeffs = np.ones(banded_case.n_faces)

    with subtests.test("vector field"):
        inp = np.zeros((banded_case.n_cells, 2))
        with pytest.raises(ValueError, match="scalar"):
            matrix_fast_operation(inp, np.empty_like(inp), addr, matrix_coeffs(coeffs), matrix_coeffs(coeffs))

    with subtests.test("unroll width"):
        inp = np.zeros(banded_case.n_cells)
        with pytest.raises(ValueError, match="unroll_width"):
            matrix_fast_operation(
                inp, np.empty_like(inp), addr, matrix_coeffs(coeffs), matrix_coeffs(coeffs), unroll_width=0
            )

    with subtests.test("unknown engine"):
        inp = np.zeros(banded_case.n_cells)
        with pytest.raises(ValueError, match="Unknown engine"):
            matrix_fast_operation(
                inp, np.empty_like(inp), addr, matrix_coeffs(coeffs), matrix_coeffs(coeffs), engine="gpu"
            )
