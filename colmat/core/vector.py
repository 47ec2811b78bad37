"""Strided 1-D view over doubles."""
from __future__ import annotations

import numbers
from typing import TYPE_CHECKING, Any

import numpy as np

from . import kernels as kn
from .backend import Kernels, get_kernels
from .buffer import Buffer
from .errors import DimensionMismatch, IndexOutOfRange

if TYPE_CHECKING:
    from collections.abc import Iterator

    from numpy.typing import NDArray
else:
    NDArray = np.ndarray  # type: ignore[misc,assignment]

__all__ = ["Vector", "as_vector"]


class Vector:
    """``length`` doubles at ``offset`` in a shared buffer, ``inc`` apart.

    ``Vector(length)`` owns a fresh allocation. Views produced by
    :meth:`wrap` or by ``Matrix.column_ref``/``Matrix.row_ref`` never own
    their storage and must not outlive it.
    """

    __slots__ = ("_buffer", "_generation", "_inc", "_kernels", "_length", "_offset", "_owned")

    def __init__(self, length: int, *, kernels: str | Kernels | None = None):
        n = int(length)
        self._init(Buffer.allocate(n), 0, n, 1, owned=True, kernels=get_kernels(kernels))

    def _init(  # noqa: PLR0913
        self, buffer: Buffer, offset: int, length: int, inc: int, *, owned: bool, kernels: Kernels,
    ) -> None:
        if length < 0:
            raise DimensionMismatch(f"vector length must be non-negative, got {length}")
        if inc < 1:
            raise ValueError(f"vector increment must be positive, got {inc}")
        if length and offset + (length - 1) * inc >= buffer.size:
            raise DimensionMismatch(
                f"vector of length {length} (offset {offset}, inc {inc}) "
                f"exceeds buffer of {buffer.size} elements",
            )
        self._buffer = buffer
        self._generation = buffer.generation
        self._offset = int(offset)
        self._length = int(length)
        self._inc = int(inc)
        self._owned = bool(owned)
        self._kernels = kernels

    @classmethod
    def _view(  # noqa: PLR0913
        cls, buffer: Buffer, offset: int, length: int, inc: int, *, kernels: Kernels,
        owned: bool = False,
    ) -> Vector:
        obj = cls.__new__(cls)
        obj._init(buffer, offset, length, inc, owned=owned, kernels=kernels)
        return obj

    @classmethod
    def wrap(
        cls,
        data: NDArray[np.float64],
        length: int | None = None,
        *,
        offset: int = 0,
        inc: int = 1,
        kernels: str | Kernels | None = None,
    ) -> Vector:
        """Borrow a contiguous float64 array; writes land in ``data``."""
        buffer = Buffer(data)
        if length is None:
            length = 0 if buffer.size <= offset else (buffer.size - offset - 1) // inc + 1
        return cls._view(buffer, offset, int(length), int(inc), kernels=get_kernels(kernels))

    @classmethod
    def from_values(cls, values: Any, *, kernels: str | Kernels | None = None) -> Vector:
        """Owned copy of any 1-D array-like."""
        arr = np.array(values, dtype=np.float64).reshape(-1)
        return cls._view(
            Buffer(np.ascontiguousarray(arr)), 0, arr.size, 1,
            kernels=get_kernels(kernels), owned=True,
        )

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------
    @property
    def length(self) -> int:
        return self._length

    @property
    def inc(self) -> int:
        return self._inc

    @property
    def offset(self) -> int:
        return self._offset

    @property
    def owned(self) -> bool:
        return self._owned

    @property
    def kernels(self) -> Kernels:
        return self._kernels

    @property
    def buffer(self) -> NDArray[np.float64]:
        """The flat storage this vector addresses (the raw head is ``offset``)."""
        return self._buffer.check(self._generation)

    def __len__(self) -> int:
        return self._length

    def to_numpy(self, *, copy: bool = False) -> NDArray[np.float64]:
        view = kn.strided_view(self.buffer, self._offset, self._length, self._inc)
        return view.copy() if copy else view

    def _position(self, i: int) -> int:
        k = int(i)
        if k < 0:
            k += self._length
        if not 0 <= k < self._length:
            raise IndexOutOfRange(f"index {i} out of range for vector of length {self._length}")
        return self._offset + k * self._inc

    def __getitem__(self, i: int) -> float:
        return float(self.buffer[self._position(i)])

    def __setitem__(self, i: int, value: float) -> None:
        self.buffer[self._position(i)] = value

    def __iter__(self) -> Iterator[float]:
        return iter(self.to_numpy(copy=True).tolist())

    def __repr__(self) -> str:  # pragma: no cover - convenience only
        kind = "owned" if self._owned else "view"
        return f"Vector(length={self._length}, inc={self._inc}, {kind})"

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------
    def set(self, value: float) -> None:
        self.to_numpy()[...] = value

    def copy_to(self, dst: Vector) -> None:
        """Copy this vector into ``dst`` through the copy kernel."""
        if dst.length != self._length:
            raise DimensionMismatch(
                f"destination has length {dst.length}, expected {self._length}",
            )
        self._kernels.copy(
            self._length, self.buffer, self._offset, self._inc, dst.buffer, dst.offset, dst.inc,
        )

    def scale(self, alpha: float) -> None:
        self._kernels.scal(self._length, alpha, self.buffer, self._offset, self._inc)

    def add_scaled(self, coeff: float, other: Vector) -> None:
        """``self += coeff * other``."""
        if other.length != self._length:
            raise DimensionMismatch(
                f"operand has length {other.length}, expected {self._length}",
            )
        kn.sum_vec_vec(
            coeff, other.buffer, other.offset, other.inc,
            self.buffer, self._offset, self._inc, self._length,
        )

    # ------------------------------------------------------------------
    # Lifetime
    # ------------------------------------------------------------------
    def release(self) -> None:
        """Release the storage if owned; views merely detach."""
        if self._owned:
            self._buffer.release()

    def __enter__(self) -> Vector:
        return self

    def __exit__(self, exc_type, exc, tb):
        self.release()
        return False


def as_vector(
    obj: Any, *, name: str = "vector", writable: bool = False, kernels: Kernels | None = None,
) -> Vector:
    """Coerce ``obj`` to a :class:`Vector`.

    Vectors pass through. A 1-D contiguous float64 array is borrowed so that
    writes land in the caller's memory. Read-only operands may be any 1-D
    array-like and are copied when needed.
    """
    if isinstance(obj, Vector):
        return obj
    if isinstance(obj, numbers.Number):
        raise TypeError(f"{name} must be a Vector or 1-D array, got a scalar")
    if (
        isinstance(obj, np.ndarray)
        and obj.dtype == np.float64
        and obj.ndim == 1
        and obj.flags.c_contiguous
        and obj.flags.writeable
    ):
        return Vector.wrap(obj, kernels=kernels)
    if writable:
        raise TypeError(f"{name} must be a Vector or a writable 1-D contiguous float64 array")
    arr = np.asarray(obj, dtype=np.float64)
    if arr.ndim != 1:
        raise TypeError(f"{name} must be 1-D, got {arr.ndim}-D")
    return Vector.from_values(arr, kernels=kernels)
