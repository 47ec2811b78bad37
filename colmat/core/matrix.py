"""Dense column-major matrix over a shared float64 buffer.

Element ``(i, j)`` of an ``m x n`` matrix lives at ``offset + j*m + i`` of the
flat buffer. A matrix either owns its buffer (fresh allocation, or an external
buffer handed over with ``owned=True``) or borrows it (an external buffer, or
a column range of another matrix). Borrowers never release storage and must
not outlive the owner; a release bumps the buffer generation so stale views
raise :class:`~colmat.core.errors.BufferReleasedError` instead of reading it.

All shape and range checks run before any kernel dispatch, so a detected
violation never leaves partial writes behind. Heavy arithmetic goes through
the kernel set held by the matrix (see :mod:`colmat.core.backend`); the
indexed gathers and column-subset products use :mod:`colmat.core.kernels`.
"""
from __future__ import annotations

import logging
import numbers
from typing import TYPE_CHECKING, Any

import numpy as np

from . import kernels as kn
from .backend import Kernels, get_kernels
from .buffer import Buffer
from .errors import (
    DimensionMismatch,
    IndexOutOfRange,
    InsufficientLength,
    InvalidRange,
    ShapeError,
)
from .vector import Vector, as_vector

if TYPE_CHECKING:
    from collections.abc import Sequence
    from typing import TextIO

    from numpy.typing import NDArray
else:
    Sequence = tuple  # type: ignore[assignment]
    NDArray = np.ndarray  # type: ignore[misc,assignment]

__all__ = ["Matrix", "multiply"]

_LOGGER = logging.getLogger(__name__)


def _index(value: Any, bound: int, what: str) -> int:
    if not isinstance(value, numbers.Integral):
        raise TypeError(f"{what} index must be an integer, got {type(value).__name__}")
    k = int(value)
    if not 0 <= k < bound:
        raise IndexOutOfRange(f"{what} number {k} beyond range [0, {bound}).")
    return k


def _index_array(indices: Any) -> NDArray[np.intp]:
    idx = np.asarray(indices)
    if idx.size and not np.issubdtype(idx.dtype, np.integer):
        raise TypeError(f"indices must be integers, got dtype {idx.dtype}")
    return idx.astype(np.intp, copy=False).reshape(-1)


class Matrix:
    """``rows x cols`` doubles stored column-major."""

    __slots__ = ("_buffer", "_cols", "_generation", "_kernels", "_offset", "_owned", "_rows")

    def __init__(self, rows: int, cols: int, *, kernels: str | Kernels | None = None):
        """Allocate an owned, uninitialized ``rows x cols`` matrix."""
        m, n = int(rows), int(cols)
        if m < 0 or n < 0:
            raise DimensionMismatch(f"matrix dimensions must be non-negative, got ({m}, {n})")
        self._init(Buffer.allocate(m * n), 0, m, n, owned=True, kernels=get_kernels(kernels))

    def _init(  # noqa: PLR0913
        self,
        buffer: Buffer,
        offset: int,
        rows: int,
        cols: int,
        *,
        owned: bool,
        kernels: Kernels,
        generation: int | None = None,
    ) -> None:
        self._buffer = buffer
        self._generation = buffer.generation if generation is None else generation
        self._offset = int(offset)
        self._rows = int(rows)
        self._cols = int(cols)
        self._owned = bool(owned)
        self._kernels = kernels

    # ------------------------------------------------------------------
    # Alternative constructors
    # ------------------------------------------------------------------
    @classmethod
    def wrap(
        cls,
        data: NDArray[np.float64],
        rows: int,
        cols: int,
        owned: bool = False,
        *,
        kernels: str | Kernels | None = None,
    ) -> Matrix:
        """Address an external flat buffer as a ``rows x cols`` matrix.

        With ``owned=True`` the matrix takes over the buffer and :meth:`release`
        invalidates it; otherwise the caller keeps ownership.
        """
        buffer = Buffer(data)
        m, n = int(rows), int(cols)
        if m < 0 or n < 0:
            raise DimensionMismatch(f"matrix dimensions must be non-negative, got ({m}, {n})")
        if buffer.size < m * n:
            raise InsufficientLength(
                f"buffer holds {buffer.size} doubles, a {m}x{n} matrix needs {m * n}",
            )
        obj = cls.__new__(cls)
        obj._init(buffer, 0, m, n, owned=owned, kernels=get_kernels(kernels))
        return obj

    @classmethod
    def view(cls, source: Matrix, start_col: int, num_cols: int) -> Matrix:
        """Zero-copy view of ``source`` columns ``[start_col, start_col + num_cols)``."""
        start, count = int(start_col), int(num_cols)
        if start < 0 or count < 0 or start + count > source._cols:
            raise InvalidRange(
                f"columns [{start}, {start + count}) fall outside a matrix with "
                f"{source._cols} columns",
            )
        source._data()
        obj = cls.__new__(cls)
        obj._init(
            source._buffer,
            source._offset + start * source._rows,
            source._rows,
            count,
            owned=False,
            kernels=source._kernels,
            generation=source._generation,
        )
        return obj

    @classmethod
    def from_array(
        cls, array: Any, *, copy: bool = True, kernels: str | Kernels | None = None,
    ) -> Matrix:
        """Bridge a host 2-D array.

        ``copy=True`` makes an owned column-major copy of any array-like.
        ``copy=False`` borrows an F-contiguous float64 array in place, so both
        sides see each other's writes.
        """
        if copy:
            arr = np.asarray(array, dtype=np.float64)
            if arr.ndim == 1:
                arr = arr.reshape(-1, 1)
            if arr.ndim != 2:
                raise TypeError(f"expected a 2-D array, got {arr.ndim}-D")
            flat = arr.flatten(order="F")
            return cls.wrap(flat, arr.shape[0], arr.shape[1], owned=True, kernels=kernels)
        if not isinstance(array, np.ndarray) or array.dtype != np.float64 or array.ndim != 2:
            raise TypeError("borrowing requires a 2-D float64 numpy array")
        if not array.flags.f_contiguous or not array.flags.writeable:
            raise TypeError("borrowing requires a writable Fortran-ordered (column-major) array")
        flat = array.ravel(order="F")
        return cls.wrap(flat, array.shape[0], array.shape[1], owned=False, kernels=kernels)

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------
    @property
    def rows(self) -> int:
        return self._rows

    @property
    def columns(self) -> int:
        return self._cols

    @property
    def shape(self) -> tuple[int, int]:
        return (self._rows, self._cols)

    @property
    def size(self) -> int:
        return self._rows * self._cols

    @property
    def owned(self) -> bool:
        return self._owned

    @property
    def offset(self) -> int:
        """Position of element ``(0, 0)`` within :attr:`buffer`."""
        return self._offset

    @property
    def buffer(self) -> NDArray[np.float64]:
        return self._data()

    @property
    def kernels(self) -> Kernels:
        return self._kernels

    @property
    def _ld(self) -> int:
        return max(1, self._rows)

    def _data(self) -> NDArray[np.float64]:
        return self._buffer.check(self._generation)

    def _pos(self, i: int, j: int) -> int:
        return self._offset + j * self._rows + i

    def __getitem__(self, key: tuple[int, int]) -> float:
        i, j = self._element(key)
        return float(self._data()[self._pos(i, j)])

    def __setitem__(self, key: tuple[int, int], value: float) -> None:
        i, j = self._element(key)
        self._data()[self._pos(i, j)] = value

    def _element(self, key: Any) -> tuple[int, int]:
        if not isinstance(key, tuple) or len(key) != 2:
            raise TypeError("matrix elements are addressed as m[i, j]")
        return _index(key[0], self._rows, "Row"), _index(key[1], self._cols, "Column")

    def to_numpy(self) -> NDArray[np.float64]:
        """Writable ``(rows, cols)`` view sharing this matrix's storage."""
        return kn.panel_view(self._data(), self._offset, self._rows, self._cols, self._ld)

    def __repr__(self) -> str:  # pragma: no cover - convenience only
        kind = "owned" if self._owned else "borrowed"
        return f"Matrix(rows={self._rows}, cols={self._cols}, {kind})"

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------
    def columns_ref(self, start: int, end: int) -> Matrix:
        """View of columns ``[start, end)``."""
        if start < 0:
            raise InvalidRange("start cannot be negative.")
        if end <= start:
            raise InvalidRange("end cannot be less than or equal to start.")
        if end > self._cols:
            raise InvalidRange("end cannot go beyond last column of matrix")
        return Matrix.view(self, start, end - start)

    def column_ref(self, index: int) -> Vector:
        j = _index(index, self._cols, "Column")
        self._data()
        return Vector._view(  # noqa: SLF001
            self._buffer, self._offset + j * self._rows, self._rows, 1, kernels=self._kernels,
        )

    def row_ref(self, index: int) -> Vector:
        i = _index(index, self._rows, "Row")
        self._data()
        return Vector._view(  # noqa: SLF001
            self._buffer, self._offset + i, self._cols, self._rows, kernels=self._kernels,
        )

    # ------------------------------------------------------------------
    # Extraction
    # ------------------------------------------------------------------
    def _as_output(self, out: Any, rows: int, cols: int, name: str) -> tuple[NDArray[np.float64], int]:
        """Resolve an output operand to ``(flat buffer, offset)`` of a ``rows x cols`` block."""
        if isinstance(out, Matrix):
            if out.shape != (rows, cols):
                raise DimensionMismatch(
                    f"{name} must be {rows}x{cols}, got {out.rows}x{out.columns}",
                )
            return out._data(), out._offset
        if isinstance(out, np.ndarray) and out.dtype == np.float64 and out.flags.writeable:
            if out.ndim == 1 and out.flags.c_contiguous:
                if out.size < rows * cols:
                    raise InsufficientLength(
                        f"{name} holds {out.size} doubles, {rows * cols} required",
                    )
                return out, 0
            if out.ndim == 2 and out.flags.f_contiguous:
                if out.shape != (rows, cols):
                    raise DimensionMismatch(f"{name} must be {rows}x{cols}, got {out.shape}")
                return out.ravel(order="F"), 0
        raise TypeError(f"{name} must be a Matrix or a writable float64 array")

    def column(self, index: int, out: Any) -> None:
        """Copy column ``index`` into ``out`` (length ``rows``)."""
        j = _index(index, self._cols, "Column")
        y = as_vector(out, name="out", writable=True, kernels=self._kernels)
        if y.length < self._rows:
            raise InsufficientLength(f"out has length {y.length}, {self._rows} required")
        self._kernels.copy(
            self._rows, self._data(), self._offset + j * self._rows, 1, y.buffer, y.offset, y.inc,
        )

    def extract_columns(self, indices: Sequence[int] | NDArray[np.intp], out: Any) -> None:
        """Gather columns ``indices`` (order kept, repeats allowed) into ``out``.

        Index values are not validated; they must lie in ``[0, cols)``.
        """
        idx = _index_array(indices)
        buf, off = self._as_output(out, self._rows, idx.size, "out")
        kn.mat_col_extract(self._data(), self._offset, idx, buf, off, self._rows, idx.size)

    def extract_rows(
        self, indices: Sequence[int] | NDArray[np.intp], out: Any, k: int | None = None,
    ) -> None:
        """Gather rows ``indices[:k]`` into the ``k x cols`` output."""
        idx = _index_array(indices)
        k = idx.size if k is None else int(k)
        if k > idx.size:
            raise InsufficientLength(f"requested {k} rows but only {idx.size} indices supplied")
        buf, off = self._as_output(out, k, self._cols, "out")
        kn.mat_row_extract(
            self._data(), self._offset, idx[:k], buf, off, self._rows, self._cols, k,
        )

    # ------------------------------------------------------------------
    # Products
    # ------------------------------------------------------------------
    def mult_vec(self, x: Any, y: Any, *, indices: Sequence[int] | None = None) -> None:
        """``y = A @ x``, or ``y = A[:, indices] @ x`` when ``indices`` is given."""
        xv = as_vector(x, name="x", kernels=self._kernels)
        yv = as_vector(y, name="y", writable=True, kernels=self._kernels)
        if indices is not None:
            idx = _index_array(indices)
            if xv.length != idx.size:
                raise DimensionMismatch("Dimension of x is not same as number of columns.")
            if yv.length != self._rows:
                raise DimensionMismatch("Dimension of y is not same as number of rows")
            kn.mult_submat_vec(
                1.0, self._data(), self._offset, idx,
                xv.buffer, xv.offset, xv.inc, yv.buffer, yv.offset, yv.inc, self._rows,
            )
            return
        if self._cols != xv.length:
            raise DimensionMismatch("x doesn't have appropriate size.")
        if self._rows != yv.length:
            raise DimensionMismatch("y doesn't have appropriate size.")
        # y := alpha*A*x + beta*y
        self._kernels.gemv(
            "N", self._rows, self._cols, 1.0, self._data(), self._offset, self._ld,
            xv.buffer, xv.offset, xv.inc, 0.0, yv.buffer, yv.offset, yv.inc,
        )

    def mult_t_vec(self, x: Any, y: Any, *, indices: Sequence[int] | None = None) -> None:
        """``y = A' @ x``, or ``y = A[:, indices]' @ x`` when ``indices`` is given."""
        xv = as_vector(x, name="x", kernels=self._kernels)
        yv = as_vector(y, name="y", writable=True, kernels=self._kernels)
        if self._rows != xv.length:
            raise DimensionMismatch("x doesn't have appropriate size.")
        if indices is not None:
            idx = _index_array(indices)
            if idx.size != yv.length:
                raise DimensionMismatch("y doesn't have appropriate size.")
            kn.mult_submat_t_vec(
                1.0, self._data(), self._offset, idx,
                xv.buffer, xv.offset, xv.inc, yv.buffer, yv.offset, yv.inc, self._rows,
            )
            return
        if self._cols != yv.length:
            raise DimensionMismatch("y doesn't have appropriate size.")
        self._kernels.gemv(
            "T", self._rows, self._cols, 1.0, self._data(), self._offset, self._ld,
            xv.buffer, xv.offset, xv.inc, 0.0, yv.buffer, yv.offset, yv.inc,
        )

    def add_column_to_vec(self, coeff: float, index: int, x: Any) -> None:
        """``x += coeff * A[:, index]``."""
        j = _index(index, self._cols, "Column")
        xv = as_vector(x, name="x", writable=True, kernels=self._kernels)
        if xv.length != self._rows:
            raise DimensionMismatch(f"x has length {xv.length}, expected {self._rows}")
        kn.sum_vec_vec(
            coeff, self._data(), self._offset + j * self._rows, 1,
            xv.buffer, xv.offset, xv.inc, self._rows,
        )

    def copy_matrix_to(self, dst: Matrix) -> bool:
        """Copy every element into ``dst``; ``False`` if the shapes differ."""
        if self._rows != dst.rows or self._cols != dst.columns:
            return False
        kn.copy_vec_vec(
            self._data(), self._offset, 1, dst._data(), dst._offset, 1, self.size,
        )
        return True

    # ------------------------------------------------------------------
    # Scans and in-place updates
    # ------------------------------------------------------------------
    @staticmethod
    def _extreme(values: NDArray[np.float64], *, largest: bool) -> tuple[float, int]:
        # Matches a left-to-right scan with strict comparisons: the first
        # extreme wins and NaN never displaces an earlier value.
        first = values[0]
        if np.isnan(first):
            return float(first), 0
        k = int(np.nanargmax(values) if largest else np.nanargmin(values))
        return float(values[k]), k

    def _column_values(self, col: int) -> NDArray[np.float64]:
        j = _index(col, self._cols, "Column")
        if self._rows == 0:
            raise DimensionMismatch("cannot scan a column of an empty matrix")
        return kn.strided_view(self._data(), self._offset + j * self._rows, self._rows, 1)

    def _row_values(self, row: int) -> NDArray[np.float64]:
        i = _index(row, self._rows, "Row")
        if self._cols == 0:
            raise DimensionMismatch("cannot scan a row of an empty matrix")
        return kn.strided_view(self._data(), self._offset + i, self._cols, self._rows)

    def col_max(self, col: int) -> tuple[float, int]:
        return self._extreme(self._column_values(col), largest=True)

    def col_min(self, col: int) -> tuple[float, int]:
        return self._extreme(self._column_values(col), largest=False)

    def row_max(self, row: int) -> tuple[float, int]:
        return self._extreme(self._row_values(row), largest=True)

    def row_min(self, row: int) -> tuple[float, int]:
        return self._extreme(self._row_values(row), largest=False)

    def add_to_col(self, col: int, value: float) -> None:
        j = _index(col, self._cols, "Column")
        kn.strided_view(self._data(), self._offset + j * self._rows, self._rows, 1)[...] += value

    def add_to_row(self, row: int, value: float) -> None:
        i = _index(row, self._rows, "Row")
        kn.strided_view(self._data(), self._offset + i, self._cols, self._rows)[...] += value

    def set_column(self, col: int, values: Any, alpha: float = 1.0) -> None:
        """``A[:, col] = alpha * values``."""
        if not isinstance(col, numbers.Integral) or not 0 <= int(col) < self._cols:
            raise IndexOutOfRange("Column number beyond range.")
        v = as_vector(values, name="values", kernels=self._kernels)
        if v.length != self._rows:
            raise DimensionMismatch("Number of rows mismatch")
        dst = kn.strided_view(self._data(), self._offset + int(col) * self._rows, self._rows, 1)
        src = v.to_numpy()
        if alpha == 1.0:
            dst[...] = src
        else:
            dst[...] = alpha * src

    def set(self, value: float) -> None:
        """Fill every element with ``value``."""
        kn.strided_view(self._data(), self._offset, self.size, 1)[...] = value

    def set_diag(self, value: float | Vector | NDArray[np.float64] | Sequence[float]) -> None:
        """Set the first ``min(rows, cols)`` diagonal entries from a scalar or a vector."""
        n = min(self._rows, self._cols)
        if isinstance(value, numbers.Number):
            src: Any = float(value)  # type: ignore[arg-type]
        else:
            v = as_vector(value, name="value", kernels=self._kernels)
            if v.length < n:
                raise InsufficientLength("Input vector has insufficient data.")
            src = v.to_numpy()[:n]
        kn.strided_view(self._data(), self._offset, n, self._rows + 1)[...] = src

    def subtract_col_mins_from_cols(self) -> None:
        """Shift every column so that its minimum becomes 0."""
        if self._rows == 0:
            return
        for c in range(self._cols):
            min_val, _ = self.col_min(c)
            self.add_to_col(c, -min_val)

    def subtract_row_mins_from_rows(self) -> None:
        """Shift every row so that its minimum becomes 0."""
        if self._cols == 0:
            return
        for r in range(self._rows):
            min_val, _ = self.row_min(r)
            self.add_to_row(r, -min_val)

    def find_value(self, value: float, result: Matrix, *, atol: float | None = None) -> None:
        """Write a 1.0/0.0 indicator of ``A == value`` into ``result``.

        Equality is exact unless ``atol`` is given, in which case
        ``|A - value| <= atol`` counts as a match.
        """
        if self._rows != result.rows:
            raise DimensionMismatch("Number of rows mismatch")
        if self._cols != result.columns:
            raise DimensionMismatch("Number of columns mismatch")
        src = kn.strided_view(self._data(), self._offset, self.size, 1)
        mask = src == value if atol is None else np.abs(src - value) <= float(atol)
        kn.strided_view(result._data(), result._offset, self.size, 1)[...] = mask

    # ------------------------------------------------------------------
    # Derived matrices
    # ------------------------------------------------------------------
    def gram(self, output: Matrix) -> None:
        """``output = A' A`` (``cols x cols``)."""
        if output.rows != output.columns:
            raise ShapeError("Gram matrix must be symmetric")
        if output.columns != self._cols:
            raise ShapeError(
                "Size of gram matrix must be equal to the number of columns in source matrix",
            )
        src = self._data()
        # Output is N x N, product is (N x M) x (M x N): m = N, n = N, k = M
        self._kernels.gemm(
            "T", "N", self._cols, self._cols, self._rows, 1.0,
            src, self._offset, self._ld,
            src, self._offset, self._ld,
            0.0, output._data(), output._offset, output._ld,
        )

    def frame(self, output: Matrix) -> None:
        """``output = A A'`` (``rows x rows``)."""
        if output.rows != output.columns:
            raise ShapeError("Frame matrix must be symmetric")
        if output.rows != self._rows:
            raise ShapeError(
                "Size of frame matrix must be equal to the number of rows in source matrix",
            )
        src = self._data()
        # Output is M x M, product is (M x N) x (N x M): m = M, n = M, k = N
        self._kernels.gemm(
            "N", "T", self._rows, self._rows, self._cols, 1.0,
            src, self._offset, self._ld,
            src, self._offset, self._ld,
            0.0, output._data(), output._offset, output._ld,
        )

    def swap_columns(self, i: int, j: int) -> None:
        a = _index(i, self._cols, "Column")
        b = _index(j, self._cols, "Column")
        data = self._data()
        self._kernels.swap(
            self._rows,
            data, self._offset + a * self._rows, 1,
            data, self._offset + b * self._rows, 1,
        )

    def swap_rows(self, i: int, j: int) -> None:
        a = _index(i, self._rows, "Row")
        b = _index(j, self._rows, "Row")
        data = self._data()
        self._kernels.swap(
            self._cols, data, self._offset + a, self._rows, data, self._offset + b, self._rows,
        )

    def scale_column(self, i: int, value: float) -> None:
        j = _index(i, self._cols, "Column")
        self._kernels.scal(self._rows, value, self._data(), self._offset + j * self._rows, 1)

    def scale_row(self, i: int, value: float) -> None:
        r = _index(i, self._rows, "Row")
        self._kernels.scal(self._cols, value, self._data(), self._offset + r, self._rows)

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------
    def print_matrix(self, name: str = "", file: TextIO | None = None) -> None:
        from colmat.output.printing import print_matrix

        print_matrix(self, name, file=file)

    def print_int_matrix(self, name: str = "", file: TextIO | None = None) -> None:
        from colmat.output.printing import print_matrix

        print_matrix(self, name, as_int=True, file=file)

    # ------------------------------------------------------------------
    # Lifetime
    # ------------------------------------------------------------------
    def release(self) -> None:
        """Release the buffer if owned; borrowed matrices never release."""
        if self._owned:
            self._buffer.release()

    def __enter__(self) -> Matrix:
        return self

    def __exit__(self, exc_type, exc, tb):
        self.release()
        return False


def multiply(  # noqa: PLR0913
    A: Matrix,
    B: Matrix,
    C: Matrix,
    transpose_a: bool = False,
    transpose_b: bool = False,
    *,
    check: bool = True,
) -> None:
    """``C = op(A) @ op(B)`` through the general matrix-matrix kernel.

    With ``check=False`` the operands are not validated for conformance; the
    BLAS parameters are derived from the declared shapes exactly as given and
    a mismatch surfaces only at the kernel boundary.
    """
    mm = A.columns if transpose_a else A.rows
    kk = A.rows if transpose_a else A.columns
    nn = B.rows if transpose_b else B.columns
    if check:
        kb = B.columns if transpose_b else B.rows
        if kk != kb:
            raise DimensionMismatch(
                f"inner dimensions differ: op(A) is {mm}x{kk}, op(B) is {kb}x{nn}",
            )
        if C.shape != (mm, nn):
            raise DimensionMismatch(f"C must be {mm}x{nn}, got {C.rows}x{C.columns}")
    else:
        _LOGGER.debug("Unchecked multiply: m=%d n=%d k=%d", mm, nn, kk)
    C.kernels.gemm(
        "T" if transpose_a else "N",
        "T" if transpose_b else "N",
        mm, nn, kk, 1.0,
        A.buffer, A.offset, max(1, A.rows),
        B.buffer, B.offset, max(1, B.rows),
        0.0, C.buffer, C.offset, max(1, C.rows),
    )
