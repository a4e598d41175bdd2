# conftest.py

import matplotlib

matplotlib.use("Agg")

import numpy as np
import pytest
from scipy.sparse import coo_matrix

from lduflow.addressing import build_addressing, generate_structured


def random_faces(rng, n_cells, density=0.12, hub=True):
    """Random owner-sorted faces; the hub cells push valence above three."""
    pairs = set()
    for i in range(n_cells):
        for j in range(i + 1, n_cells):
            if rng.random() < density:
                pairs.add((i, j))
    if hub and n_cells > 8:
        for j in range(1, 7):
            pairs.add((0, j))
        for j in range(n_cells - 8, n_cells - 1):
            pairs.add((j, n_cells - 1))
    pairs = sorted(pairs)
    lower = np.array([p[0] for p in pairs], dtype=np.int64)
    upper = np.array([p[1] for p in pairs], dtype=np.int64)
    return lower, upper


def banded_faces(rng, n_cells, bandwidth=3, keep=0.7):
    """Faces to the next ``bandwidth`` cells, so no cell exceeds that valence."""
    lower = []
    upper = []
    for i in range(n_cells):
        for k in range(1, bandwidth + 1):
            if i + k < n_cells and rng.random() < keep:
                lower.append(i)
                upper.append(i + k)
    return np.array(lower, dtype=np.int64), np.array(upper, dtype=np.int64)


def reference_csr(n_cells, lower, upper, diag, upper_coeffs, lower_coeffs):
    """Independent CSR assembly from the raw face arrays."""
    rows = list(range(n_cells))
    cols = list(range(n_cells))
    data = list(diag)
    for f in range(lower.shape[0]):
        rows.append(lower[f])
        cols.append(upper[f])
        data.append(upper_coeffs[f])
        rows.append(upper[f])
        cols.append(lower[f])
        data.append(lower_coeffs[f])
    return coo_matrix((data, (rows, cols)), shape=(n_cells, n_cells)).tocsr()


class AddressingCase:
    def __init__(self, label, n_cells, lower, upper, rng):
        self.label = label
        self.n_cells = n_cells
        self.lower = lower
        self.upper = upper
        self.rng = rng
        self.addressing = build_addressing(n_cells, lower, upper)

    @property
    def n_faces(self):
        return self.lower.shape[0]

    def coefficients(self):
        diag = self.rng.uniform(4.0, 8.0, self.n_cells)
        upper = self.rng.uniform(-1.0, 1.0, self.n_faces)
        lower = self.rng.uniform(-1.0, 1.0, self.n_faces)
        return diag, upper, lower


def make_case(label):
    kind, seed = label.split("-")
    rng = np.random.default_rng(int(seed))
    n_cells = int(rng.integers(10, 51))
    if kind == "banded":
        lower, upper = banded_faces(rng, n_cells)
    else:
        lower, upper = random_faces(rng, n_cells)
    return AddressingCase(label, n_cells, lower, upper, rng)


@pytest.fixture
def addressing_case(case_label):
    return make_case(case_label)


@pytest.fixture
def banded_case():
    return make_case("banded-7")


@pytest.fixture
def hub_case():
    return make_case("random-7")


@pytest.fixture
def structured():
    """5 x 4 Cartesian grid: (addressing, patches dict)."""
    return generate_structured(5, 4)


def pytest_generate_tests(metafunc):
    if "case_label" in metafunc.fixturenames:
        metafunc.parametrize(
            "case_label",
            [
                "random-0",
                "random-1",
                "random-2",
                "random-3",
                "banded-0",
                "banded-1",
            ],
        )
    if "engine" in metafunc.fixturenames:
        metafunc.parametrize("engine", ["parallel", "serial", "python"])
