import numpy as np

from conftest import reference_csr
from lduflow.matrix import LduMatrix
from lduflow.multigrid import agglomerate_matrix, build_coarse_level
from lduflow.operations import (
    matrix_coeffs,
    matrix_coeffs_multiply,
    matrix_fast_operation,
    matrix_operation,
    max_op,
    min_op,
    negate_op,
)


def test_reproduces_sparse_matvec(addressing_case):
    case = addressing_case
    addr = case.addressing
    diag, upper, lower = case.coefficients()
    psi = case.rng.uniform(-1.0, 1.0, case.n_cells)

    out = np.empty(case.n_cells)
    matrix_operation(
        diag * psi,
        out,
        addr,
        matrix_coeffs_multiply(upper, psi, addr.upper),
        matrix_coeffs_multiply(lower, psi, addr.lower),
    )

    A = reference_csr(case.n_cells, case.lower, case.upper, diag, upper, lower)
    expected = A @ psi
    assert np.allclose(out, expected), (
        f"{case.label}: max error {np.max(np.abs(out - expected)):.3e}"
    )


def test_engines_agree(hub_case, engine):
    case = hub_case
    addr = case.addressing
    diag, upper, lower = case.coefficients()
    psi = case.rng.uniform(-1.0, 1.0, case.n_cells)

    def run(name):
        out = np.empty(case.n_cells)
        return matrix_operation(
            diag * psi,
            out,
            addr,
            matrix_coeffs_multiply(upper, psi, addr.upper),
            matrix_coeffs_multiply(lower, psi, addr.lower),
            engine=name,
        )

    assert np.array_equal(run(engine), run("python"))


def test_vector_field(hub_case):
    case = hub_case
    addr = case.addressing
    diag, upper, lower = case.coefficients()
    psi = case.rng.uniform(-1.0, 1.0, (case.n_cells, 2))

    out = np.empty_like(psi)
    matrix_operation(
        diag[:, None] * psi,
        out,
        addr,
        matrix_coeffs_multiply(upper, psi, addr.upper),
        matrix_coeffs_multiply(lower, psi, addr.lower),
    )

    A = reference_csr(case.n_cells, case.lower, case.upper, diag, upper, lower)
    assert out.shape == (case.n_cells, 2)
    assert np.allclose(out, A @ psi)


def test_in_place(banded_case):
    case = banded_case
    addr = case.addressing
    _, upper, lower = case.coefficients()

    separate = matrix_operation(
        np.ones(case.n_cells),
        np.empty(case.n_cells),
        addr,
        matrix_coeffs(upper),
        matrix_coeffs(lower),
    )
    inout = np.ones(case.n_cells)
    matrix_operation(inout, inout, addr, matrix_coeffs(upper), matrix_coeffs(lower))

    assert np.array_equal(separate, inout)


def test_max_and_min_operators(hub_case, subtests):
    case = hub_case
    addr = case.addressing
    _, upper, lower = case.coefficients()
    start = np.full(case.n_cells, -np.inf)

    expected_max = start.copy()
    expected_min = np.full(case.n_cells, np.inf)
    for f in range(case.n_faces):
        o, n = case.lower[f], case.upper[f]
        expected_max[o] = max(expected_max[o], upper[f])
        expected_max[n] = max(expected_max[n], lower[f])
        expected_min[o] = min(expected_min[o], upper[f])
        expected_min[n] = min(expected_min[n], lower[f])

    with subtests.test("max"):
        out = matrix_operation(
            start,
            np.empty(case.n_cells),
            addr,
            matrix_coeffs(upper),
            matrix_coeffs(lower),
            o_op=max_op,
            n_op=max_op,
        )
        assert np.array_equal(out, expected_max)

    with subtests.test("min"):
        out = matrix_operation(
            -start,
            np.empty(case.n_cells),
            addr,
            matrix_coeffs(upper),
            matrix_coeffs(lower),
            o_op=min_op,
            n_op=min_op,
        )
        assert np.array_equal(out, expected_min)


def test_negated_accessor(banded_case):
    case = banded_case
    addr = case.addressing
    diag, upper, lower = case.coefficients()
    psi = case.rng.uniform(-1.0, 1.0, case.n_cells)

    out = matrix_operation(
        np.zeros(case.n_cells),
        np.empty(case.n_cells),
        addr,
        matrix_coeffs_multiply(upper, psi, addr.upper, op=negate_op),
        matrix_coeffs_multiply(lower, psi, addr.lower, op=negate_op),
    )

    A = reference_csr(case.n_cells, case.lower, case.upper, np.zeros(case.n_cells), upper, lower)
    assert np.allclose(out, -(A @ psi))


def test_deterministic(hub_case, subtests):
    case = hub_case
    addr = case.addressing
    diag, upper, lower = case.coefficients()
    psi = case.rng.uniform(-1.0, 1.0, case.n_cells)
    o_fun = matrix_coeffs_multiply(upper, psi, addr.upper)
    n_fun = matrix_coeffs_multiply(lower, psi, addr.lower)

    def repeated(run):
        results = [run() for _ in range(3)]
        assert np.array_equal(results[0], results[1])
        assert np.array_equal(results[0], results[2])

    with subtests.test("matrix_operation"):
        repeated(
            lambda: matrix_operation(
                diag * psi, np.empty(case.n_cells), addr, o_fun, n_fun, engine="parallel"
            )
        )

    with subtests.test("matrix_fast_operation"):
        repeated(
            lambda: matrix_fast_operation(
                diag * psi, np.empty(case.n_cells), addr, o_fun, n_fun, engine="parallel"
            )
        )

    with subtests.test("agglomerate_matrix"):
        A = LduMatrix(addr, diag, upper, lower, settings={"kernels": {"engine": "parallel"}})
        level = build_coarse_level(addr, np.arange(case.n_cells) // 3)

        def coarse_coefficients():
            coarse = agglomerate_matrix(A, level)
            return np.concatenate([coarse.diag, coarse.upper, coarse.lower])

        repeated(coarse_coefficients)
