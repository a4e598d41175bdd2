import numpy as np

from lduflow.addressing import build_patch_addressing
from lduflow.operations import (
    matrix_coeffs,
    matrix_interface,
    matrix_patch_operation,
    max_op,
)


def test_multiple_faces_per_cell(engine):
    rng = np.random.default_rng(11)
    face_cells = np.array([2, 0, 2, 2, 5, 0, 7])
    patch = build_patch_addressing(9, face_cells)
    coeffs = rng.uniform(-1.0, 1.0, face_cells.shape[0])
    values = rng.uniform(-1.0, 1.0, face_cells.shape[0])
    start = rng.uniform(size=9)

    expected = start.copy()
    for face, cell in enumerate(face_cells):
        expected[cell] += -coeffs[face] * values[face]

    out = matrix_patch_operation(patch, start.copy(), matrix_interface(coeffs, values), engine=engine)
    assert np.allclose(out, expected)


def test_only_patch_cells_touched():
    face_cells = np.array([1, 3, 3])
    patch = build_patch_addressing(6, face_cells)
    out = np.full(6, 7.0)

    matrix_patch_operation(patch, out, matrix_coeffs(np.array([1.0, 2.0, 3.0])))

    assert list(out) == [7.0, 8.0, 7.0, 12.0, 7.0, 7.0]


def test_max_operator():
    face_cells = np.array([4, 4, 0, 4])
    patch = build_patch_addressing(5, face_cells)
    out = np.zeros(5)

    matrix_patch_operation(patch, out, matrix_coeffs(np.array([3.0, -1.0, -2.0, 5.0])), op=max_op)

    assert list(out) == [0.0, 0.0, 0.0, 0.0, 5.0]


def test_vector_values(structured):
    addr, patches = structured
    patch = patches["top"]
    coeffs = np.arange(1.0, patch.n_faces + 1.0)
    values = np.ones((patch.n_faces, 2))
    out = np.zeros((addr.n_cells, 2))

    matrix_patch_operation(patch, out, matrix_interface(coeffs, values))

    top_cells = np.asarray(patch.face_cells)
    assert np.allclose(out[top_cells, 0], -coeffs)
    assert np.allclose(out[top_cells, 1], -coeffs)
    assert np.count_nonzero(out) == 2 * patch.n_faces
