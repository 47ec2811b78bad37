import numpy as np
import pytest

from colmat.core import kernels as kn

# ---------------------------------------------------------------------
# View helpers
# ---------------------------------------------------------------------

def test_strided_view_aliases_buffer():
    buf = np.arange(10, dtype=np.float64)
    v = kn.strided_view(buf, 1, 3, 3)
    assert v.tolist() == [1.0, 4.0, 7.0]
    v[1] = -1.0
    assert buf[4] == -1.0

def test_strided_view_bounds():
    buf = np.zeros(5)
    with pytest.raises(ValueError, match="exceeds buffer"):
        kn.strided_view(buf, 2, 3, 2)
    with pytest.raises(ValueError, match="increment"):
        kn.strided_view(buf, 0, 2, 0)
    assert kn.strided_view(buf, 99, 0, 1).size == 0

def test_panel_view_column_major():
    buf = np.arange(12, dtype=np.float64)
    p = kn.panel_view(buf, 2, 3, 2, 4)
    # element (i, j) at 2 + 4*j + i
    assert np.array_equal(p, np.array([[2.0, 6.0], [3.0, 7.0], [4.0, 8.0]]))
    p[2, 1] = 100.0
    assert buf[8] == 100.0

def test_panel_view_bounds_and_ld():
    buf = np.zeros(6)
    with pytest.raises(ValueError, match="exceeds buffer"):
        kn.panel_view(buf, 1, 3, 2, 3)
    with pytest.raises(ValueError, match="leading dimension"):
        kn.panel_view(buf, 0, 3, 2, 2)
    assert kn.panel_view(buf, 0, 0, 4, 1).shape == (0, 4)

# ---------------------------------------------------------------------
# Gathers
# ---------------------------------------------------------------------

@pytest.fixture
def A(rng):
    return np.asfortranarray(rng.standard_normal((4, 5)))

def test_mat_col_extract_repeats_and_order(A):
    flat = A.ravel(order="F")
    idx = [3, 0, 3, 1]
    out = np.zeros(4 * len(idx) + 2)
    kn.mat_col_extract(flat, 0, idx, out, 2, 4, len(idx))
    got = out[2:].reshape((4, len(idx)), order="F")
    assert np.array_equal(got, A[:, idx])
    assert out[0] == 0.0 and out[1] == 0.0

def test_mat_col_extract_honours_k(A):
    flat = A.ravel(order="F")
    out = np.zeros(4 * 2)
    kn.mat_col_extract(flat, 0, [4, 2, 1], out, 0, 4, 2)
    assert np.array_equal(out.reshape((4, 2), order="F"), A[:, [4, 2]])

def test_mat_row_extract(A):
    flat = A.ravel(order="F")
    idx = [2, 2, 0]
    out = np.zeros(3 * 5)
    kn.mat_row_extract(flat, 0, idx, out, 0, 4, 5, 3)
    assert np.array_equal(out.reshape((3, 5), order="F"), A[idx, :])

# ---------------------------------------------------------------------
# Column-subset products
# ---------------------------------------------------------------------

def test_mult_submat_vec(A, rng):
    flat = A.ravel(order="F")
    idx = [4, 1, 1]
    x = rng.standard_normal(3)
    y = np.full(4, np.nan)
    kn.mult_submat_vec(2.0, flat, 0, idx, x, 0, 1, y, 0, 1, 4)
    assert np.allclose(y, 2.0 * A[:, idx] @ x)

def test_mult_submat_t_vec_strided(A, rng):
    flat = A.ravel(order="F")
    idx = [0, 3]
    x = rng.standard_normal(8)  # use every other element
    y = np.zeros(5)
    kn.mult_submat_t_vec(1.0, flat, 0, idx, x, 0, 2, y, 1, 2, 4)
    assert np.allclose(y[[1, 3]], A[:, idx].T @ x[::2])
    assert y[0] == 0.0 and y[2] == 0.0

# ---------------------------------------------------------------------
# Accumulate / copy
# ---------------------------------------------------------------------

def test_sum_vec_vec():
    x = np.array([1.0, 2.0, 3.0])
    y = np.array([10.0, 0.0, 20.0, 0.0, 30.0])
    kn.sum_vec_vec(-2.0, x, 0, 1, y, 0, 2, 3)
    assert y.tolist() == [8.0, 0.0, 16.0, 0.0, 24.0]

def test_copy_vec_vec():
    x = np.arange(6, dtype=np.float64)
    y = np.zeros(3)
    kn.copy_vec_vec(x, 1, 2, y, 0, 1, 3)
    assert y.tolist() == [1.0, 3.0, 5.0]
