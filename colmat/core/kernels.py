"""Custom strided kernels.

These are the operations the BLAS kernel set does not offer: indexed column
and row gathers, products against a column subset that is never materialized,
and plain accumulate/copy. Every kernel takes flat float64 buffers with an
explicit offset and increment, the same convention as the delegated kernels.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Any

import numpy as np
from numpy.lib.stride_tricks import as_strided

if TYPE_CHECKING:
    from numpy.typing import NDArray
else:
    NDArray = np.ndarray  # type: ignore[misc,assignment]

__all__ = [
    "copy_vec_vec",
    "mat_col_extract",
    "mat_row_extract",
    "mult_submat_t_vec",
    "mult_submat_vec",
    "panel_view",
    "strided_view",
    "sum_vec_vec",
]


def strided_view(buf: NDArray[np.float64], off: int, n: int, inc: int) -> NDArray[np.float64]:
    """Return a writable view of ``n`` elements starting at ``off`` with step ``inc``."""
    off, n, inc = int(off), int(n), int(inc)
    if n < 0:
        raise ValueError(f"vector length must be non-negative, got {n}")
    if n == 0:
        return buf[0:0]
    if inc < 1:
        raise ValueError(f"increment must be positive, got {inc}")
    last = off + (n - 1) * inc
    if off < 0 or last >= buf.size:
        raise ValueError(
            f"strided access [{off}:{last + 1}:{inc}] exceeds buffer of {buf.size} elements",
        )
    return buf[off : last + 1 : inc]


def panel_view(  # noqa: PLR0913
    buf: NDArray[np.float64], off: int, rows: int, cols: int, ld: int,
) -> NDArray[np.float64]:
    """Return a writable ``(rows, cols)`` column-major view with leading dimension ``ld``."""
    off, rows, cols, ld = int(off), int(rows), int(cols), int(ld)
    if rows < 0 or cols < 0:
        raise ValueError(f"panel shape must be non-negative, got ({rows}, {cols})")
    if ld < max(1, rows):
        raise ValueError(f"leading dimension {ld} must be at least max(1, {rows})")
    if rows == 0 or cols == 0:
        return np.empty((rows, cols), dtype=np.float64, order="F")
    end = off + (cols - 1) * ld + rows
    if off < 0 or end > buf.size:
        raise ValueError(
            f"panel ({rows}x{cols}, ld={ld}) at offset {off} exceeds buffer of {buf.size} elements",
        )
    item = buf.itemsize
    return as_strided(buf[off:], shape=(rows, cols), strides=(item, item * ld), writeable=True)


def _indices(indices: Any, k: int | None = None) -> NDArray[np.intp]:
    idx = np.asarray(indices, dtype=np.intp).reshape(-1)
    if k is not None:
        if k > idx.size:
            raise ValueError(f"requested {k} indices but only {idx.size} supplied")
        idx = idx[:k]
    return idx


def mat_col_extract(  # noqa: PLR0913
    a: NDArray[np.float64],
    offa: int,
    indices: Any,
    b: NDArray[np.float64],
    offb: int,
    m: int,
    k: int,
) -> None:
    """Gather columns ``indices[:k]`` of the ``m``-row matrix at ``a`` into ``b`` (m x k)."""
    idx = _indices(indices, k)
    if m == 0 or idx.size == 0:
        return
    dst = panel_view(b, offb, m, idx.size, m)
    for t, j in enumerate(idx):
        dst[:, t] = strided_view(a, offa + int(j) * m, m, 1)


def mat_row_extract(  # noqa: PLR0913
    a: NDArray[np.float64],
    offa: int,
    indices: Any,
    b: NDArray[np.float64],
    offb: int,
    m: int,
    n: int,
    k: int,
) -> None:
    """Gather rows ``indices[:k]`` of the ``m x n`` matrix at ``a`` into ``b`` (k x n)."""
    idx = _indices(indices, k)
    if n == 0 or idx.size == 0:
        return
    src = panel_view(a, offa, m, n, max(1, m))
    dst = panel_view(b, offb, idx.size, n, idx.size)
    dst[...] = src[idx, :]


def mult_submat_vec(  # noqa: PLR0913
    alpha: float,
    a: NDArray[np.float64],
    offa: int,
    indices: Any,
    x: NDArray[np.float64],
    offx: int,
    incx: int,
    y: NDArray[np.float64],
    offy: int,
    incy: int,
    m: int,
) -> None:
    """``y = alpha * A[:, indices] @ x`` without forming the column subset."""
    idx = _indices(indices)
    xv = strided_view(x, offx, idx.size, incx)
    yv = strided_view(y, offy, m, incy)
    acc = np.zeros(m, dtype=np.float64)
    for t, j in enumerate(idx):
        acc += (alpha * xv[t]) * strided_view(a, offa + int(j) * m, m, 1)
    yv[...] = acc


def mult_submat_t_vec(  # noqa: PLR0913
    alpha: float,
    a: NDArray[np.float64],
    offa: int,
    indices: Any,
    x: NDArray[np.float64],
    offx: int,
    incx: int,
    y: NDArray[np.float64],
    offy: int,
    incy: int,
    m: int,
) -> None:
    """``y = alpha * A[:, indices]' @ x`` without forming the column subset."""
    idx = _indices(indices)
    xv = strided_view(x, offx, m, incx)
    yv = strided_view(y, offy, idx.size, incy)
    out = np.empty(idx.size, dtype=np.float64)
    for t, j in enumerate(idx):
        out[t] = alpha * float(np.dot(strided_view(a, offa + int(j) * m, m, 1), xv))
    yv[...] = out


def sum_vec_vec(  # noqa: PLR0913
    alpha: float,
    x: NDArray[np.float64],
    offx: int,
    incx: int,
    y: NDArray[np.float64],
    offy: int,
    incy: int,
    n: int,
) -> None:
    """Accumulate ``y += alpha * x``."""
    xv = strided_view(x, offx, n, incx)
    yv = strided_view(y, offy, n, incy)
    if alpha == 1.0:
        yv += xv
    else:
        yv += alpha * xv


def copy_vec_vec(  # noqa: PLR0913
    x: NDArray[np.float64],
    offx: int,
    incx: int,
    y: NDArray[np.float64],
    offy: int,
    incy: int,
    n: int,
) -> None:
    """Dense copy ``y = x``."""
    strided_view(y, offy, n, incy)[...] = strided_view(x, offx, n, incx)
