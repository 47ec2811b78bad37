import numpy as np
import pytest

from colmat.core.errors import (
    DimensionMismatch,
    IndexOutOfRange,
    InsufficientLength,
)
from colmat.core.matrix import Matrix
from colmat.core.vector import Vector

# ---------------------------------------------------------------------
# Scans
# ---------------------------------------------------------------------

def test_concrete_scans(sample):
    assert sample.col_min(0) == (1.0, 0)
    assert sample.col_max(1) == (6.0, 2)
    assert sample.row_min(2) == (5.0, 0)
    assert sample.row_max(0) == (2.0, 1)

def test_first_extreme_wins():
    A = Matrix.from_array([[3.0, 1.0, 3.0], [1.0, 1.0, 0.0], [3.0, 0.0, 3.0]])
    assert A.col_max(0) == (3.0, 0)
    assert A.col_min(0) == (1.0, 1)
    assert A.row_max(0) == (3.0, 0)
    assert A.row_min(1) == (0.0, 2)
    assert A.row_min(0) == (1.0, 1)

def test_nan_never_replaces_earlier_value():
    A = Matrix.from_array([[2.0], [np.nan], [1.0]])
    assert A.col_min(0) == (1.0, 2)
    B = Matrix.from_array([[np.nan], [0.0]])
    value, index = B.col_min(0)
    assert np.isnan(value) and index == 0

def test_scan_errors(sample):
    with pytest.raises(IndexOutOfRange):
        sample.col_min(2)
    with pytest.raises(IndexOutOfRange):
        sample.row_max(3)
    with pytest.raises(DimensionMismatch, match="empty"):
        Matrix(0, 2).col_max(0)

# ---------------------------------------------------------------------
# In-place updates
# ---------------------------------------------------------------------

def test_add_to_col_and_row(sample):
    sample.add_to_col(1, 10.0)
    sample.add_to_row(0, -1.0)
    assert np.array_equal(
        sample.to_numpy(), np.array([[0.0, 11.0], [3.0, 14.0], [5.0, 16.0]]),
    )

def test_subtract_row_mins(sample):
    sample.subtract_row_mins_from_rows()
    assert np.array_equal(sample.to_numpy(), np.array([[0.0, 1.0], [0.0, 1.0], [0.0, 1.0]]))

def test_subtract_col_mins(rng, kernel_name):
    data = rng.uniform(-5, 5, size=(5, 4))
    A = Matrix.from_array(data, kernels=kernel_name)
    A.subtract_col_mins_from_cols()
    out = A.to_numpy()
    assert np.all(out.min(axis=0) == 0.0)
    assert np.allclose(out, data - data.min(axis=0))

def test_subtract_mins_on_view_only_touches_view(rng):
    data = rng.uniform(1, 2, size=(3, 4))
    A = Matrix.from_array(data)
    A.columns_ref(1, 3).subtract_row_mins_from_rows()
    out = A.to_numpy()
    assert np.array_equal(out[:, [0, 3]], data[:, [0, 3]])
    assert np.all(out[:, 1:3].min(axis=1) == 0.0)

def test_set_and_set_diag():
    A = Matrix(3, 4)
    A.set(2.0)
    assert np.all(A.to_numpy() == 2.0)
    A.set_diag(-1.0)
    expected = np.full((3, 4), 2.0)
    expected[[0, 1, 2], [0, 1, 2]] = -1.0
    assert np.array_equal(A.to_numpy(), expected)
    A.set_diag(Vector.from_values([7.0, 8.0, 9.0, 10.0]))
    assert [A[i, i] for i in range(3)] == [7.0, 8.0, 9.0]
    assert A[0, 3] == 2.0
    with pytest.raises(InsufficientLength):
        A.set_diag([1.0, 2.0])

def test_set_column(sample):
    sample.set_column(0, [1.0, 1.0, 1.0], alpha=3.0)
    assert sample.to_numpy()[:, 0].tolist() == [3.0, 3.0, 3.0]
    sample.set_column(1, Vector.from_values([0.0, 1.0, 2.0]))
    assert sample.to_numpy()[:, 1].tolist() == [0.0, 1.0, 2.0]
    with pytest.raises(IndexOutOfRange):
        sample.set_column(2, [1.0, 1.0, 1.0])
    with pytest.raises(DimensionMismatch):
        sample.set_column(0, [1.0, 1.0])

def test_find_value(sample):
    sample[1, 1] = 1.0
    result = Matrix(3, 2)
    sample.find_value(1.0, result)
    assert np.array_equal(result.to_numpy(), np.array([[1.0, 0.0], [0.0, 1.0], [0.0, 0.0]]))
    with pytest.raises(DimensionMismatch, match="rows"):
        sample.find_value(1.0, Matrix(2, 2))
    with pytest.raises(DimensionMismatch, match="columns"):
        sample.find_value(1.0, Matrix(3, 3))

def test_find_value_tolerance():
    A = Matrix.from_array([[0.1 + 0.2, 0.3]])
    exact = Matrix(1, 2)
    A.find_value(0.3, exact)
    assert exact.to_numpy().tolist() == [[0.0, 1.0]]
    loose = Matrix(1, 2)
    A.find_value(0.3, loose, atol=1e-12)
    assert loose.to_numpy().tolist() == [[1.0, 1.0]]
