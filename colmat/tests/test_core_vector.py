import numpy as np
import pytest

from colmat.core.errors import BufferReleasedError, DimensionMismatch, IndexOutOfRange
from colmat.core.vector import Vector, as_vector

def test_owned_vector():
    v = Vector(4)
    assert v.owned
    assert len(v) == v.length == 4
    assert v.inc == 1 and v.offset == 0
    v.set(2.5)
    assert list(v) == [2.5] * 4

def test_wrap_is_zero_copy_with_stride():
    data = np.arange(9, dtype=np.float64)
    v = Vector.wrap(data, offset=1, inc=3)
    assert not v.owned
    assert v.length == 3
    assert v.to_numpy().tolist() == [1.0, 4.0, 7.0]
    v[2] = -7.0
    assert data[7] == -7.0

def test_wrap_rejects_overrun():
    with pytest.raises(DimensionMismatch, match="exceeds buffer"):
        Vector.wrap(np.zeros(4), 3, inc=2)

def test_indexing():
    v = Vector.from_values([1.0, 2.0, 3.0])
    assert v[0] == 1.0 and v[-1] == 3.0
    with pytest.raises(IndexOutOfRange):
        v[3]

def test_copy_scale_accumulate(kernel_name):
    a = Vector.from_values([1.0, 2.0, 3.0], kernels=kernel_name)
    b = Vector(3, kernels=kernel_name)
    a.copy_to(b)
    b.scale(2.0)
    assert list(b) == [2.0, 4.0, 6.0]
    b.add_scaled(-1.0, a)
    assert list(b) == [1.0, 2.0, 3.0]
    with pytest.raises(DimensionMismatch):
        a.copy_to(Vector(2))
    with pytest.raises(DimensionMismatch):
        a.add_scaled(1.0, Vector(4))

def test_release_invalidates_views():
    with Vector(3) as owner:
        view = Vector._view(owner._buffer, 0, 3, 1, kernels=owner.kernels)
        view.set(0.0)
    with pytest.raises(BufferReleasedError):
        view.set(1.0)

def test_borrowed_release_keeps_storage():
    data = np.ones(3)
    v = Vector.wrap(data)
    v.release()
    assert v.to_numpy().tolist() == [1.0, 1.0, 1.0]

def test_as_vector_coercion():
    arr = np.zeros(3)
    v = as_vector(arr, writable=True)
    v[0] = 1.0
    assert arr[0] == 1.0
    assert as_vector([1, 2, 3]).to_numpy().tolist() == [1.0, 2.0, 3.0]
    with pytest.raises(TypeError):
        as_vector([1.0, 2.0], writable=True)
    with pytest.raises(TypeError):
        as_vector(np.zeros((2, 2)))
    with pytest.raises(TypeError):
        as_vector(3.0)
