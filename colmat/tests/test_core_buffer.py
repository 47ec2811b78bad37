import numpy as np
import pytest

from colmat.core import buffer as bf
from colmat.core.errors import AllocationError, BufferReleasedError

# ---------------------------------------------------------------------
# Allocation
# ---------------------------------------------------------------------

def test_acquire_returns_flat_float64():
    data = bf.acquire(12)
    assert data.shape == (12,)
    assert data.dtype == np.float64
    assert data.flags.c_contiguous

def test_acquire_zero_is_valid():
    assert bf.acquire(0).size == 0

def test_acquire_negative_fails():
    with pytest.raises(AllocationError, match="negative"):
        bf.acquire(-1)

def test_acquire_impossible_size_fails():
    with pytest.raises(AllocationError):
        bf.acquire(2**62)

def test_allocation_error_is_memory_error():
    with pytest.raises(MemoryError):
        bf.acquire(-5)

# ---------------------------------------------------------------------
# Borrowing rules
# ---------------------------------------------------------------------

@pytest.mark.parametrize(
    "bad",
    [
        [1.0, 2.0],
        np.arange(4, dtype=np.int64),
        np.zeros((2, 2)),
        np.zeros(8)[::2],
    ],
)
def test_as_flat_buffer_rejects(bad):
    with pytest.raises(TypeError):
        bf.as_flat_buffer(bad)

def test_as_flat_buffer_rejects_readonly():
    arr = np.zeros(3)
    arr.flags.writeable = False
    with pytest.raises(TypeError, match="writable"):
        bf.as_flat_buffer(arr)

def test_buffer_aliases_caller_memory():
    arr = np.zeros(4)
    buf = bf.Buffer(arr)
    buf.data[2] = 7.0
    assert arr[2] == 7.0

# ---------------------------------------------------------------------
# Release and generations
# ---------------------------------------------------------------------

def test_release_bumps_generation():
    buf = bf.Buffer.allocate(3)
    gen = buf.generation
    bf.release(buf)
    assert buf.released
    assert buf.generation == gen + 1
    with pytest.raises(BufferReleasedError):
        _ = buf.data

def test_release_twice_is_noop():
    buf = bf.Buffer.allocate(3)
    buf.release()
    gen = buf.generation
    buf.release()
    assert buf.generation == gen

def test_check_detects_stale_generation():
    buf = bf.Buffer.allocate(3)
    snapshot = buf.generation
    assert buf.check(snapshot) is buf.data
    buf.release()
    with pytest.raises(BufferReleasedError, match="outlived"):
        buf.check(snapshot)
