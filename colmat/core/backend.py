"""Numeric kernel dispatch.

This module provides the dense kernel sets the matrix layer delegates to:
``swap``, ``scal``, ``copy``, ``gemv`` and ``gemm`` with the standard BLAS
calling convention (column-major, explicit leading dimension, explicit
offsets and increments into flat float64 buffers).

Two kernel sets are available. ``"blas"`` forwards to the optimized routines
exposed by :mod:`scipy.linalg.blas`; ``"reference"`` is a portable NumPy
rendition used for cross-checking. The process-wide default is read from the
``COLMAT_KERNELS`` environment variable.
"""
from __future__ import annotations

import logging
import os
from abc import ABC, abstractmethod
from functools import lru_cache
from typing import TYPE_CHECKING

import numpy as np
from scipy.linalg import blas as _blas

from .kernels import panel_view, strided_view

if TYPE_CHECKING:
    from numpy.typing import NDArray
else:
    NDArray = np.ndarray  # type: ignore[misc,assignment]

__all__ = [
    "BlasKernels",
    "KernelGuard",
    "Kernels",
    "ReferenceKernels",
    "available_kernels",
    "default_kernels",
    "get_kernels",
]

_LOGGER = logging.getLogger(__name__)

ENV_VAR = "COLMAT_KERNELS"
DEFAULT_KERNELS = "blas"


def _trans(flag: str) -> bool:
    """Map a BLAS transpose character to ``True`` for transposed."""
    f = str(flag).strip().upper()
    if f == "N":
        return False
    if f in {"T", "C"}:
        return True
    raise ValueError(f"transpose flag must be one of 'N', 'T', 'C'; got {flag!r}")


class Kernels(ABC):
    """Dense kernel set with the BLAS calling convention.

    Degenerate sizes and the ``beta == 0`` rule (the output operand is never
    read, so uninitialized outputs are safe) are handled here; subclasses only
    see non-empty problems.
    """

    name: str = "abstract"

    def swap(  # noqa: PLR0913
        self,
        n: int,
        x: NDArray[np.float64],
        offx: int,
        incx: int,
        y: NDArray[np.float64],
        offy: int,
        incy: int,
    ) -> None:
        """Exchange ``n`` strided elements of ``x`` and ``y``."""
        if n <= 0:
            return
        self._swap(n, x, offx, incx, y, offy, incy)

    def scal(self, n: int, alpha: float, x: NDArray[np.float64], offx: int, incx: int) -> None:
        """Multiply ``n`` strided elements of ``x`` by ``alpha`` in place."""
        if n <= 0:
            return
        self._scal(n, float(alpha), x, offx, incx)

    def copy(  # noqa: PLR0913
        self,
        n: int,
        x: NDArray[np.float64],
        offx: int,
        incx: int,
        y: NDArray[np.float64],
        offy: int,
        incy: int,
    ) -> None:
        """Copy ``n`` strided elements of ``x`` into ``y``."""
        if n <= 0:
            return
        self._copy(n, x, offx, incx, y, offy, incy)

    def gemv(  # noqa: PLR0913
        self,
        trans: str,
        m: int,
        n: int,
        alpha: float,
        a: NDArray[np.float64],
        offa: int,
        lda: int,
        x: NDArray[np.float64],
        offx: int,
        incx: int,
        beta: float,
        y: NDArray[np.float64],
        offy: int,
        incy: int,
    ) -> None:
        """``y := alpha*op(A)*x + beta*y`` for the ``m x n`` matrix ``A``."""
        t = _trans(trans)
        leny = n if t else m
        if leny <= 0:
            return
        if (m <= 0 or n <= 0) or alpha == 0.0:
            yv = strided_view(y, offy, leny, incy)
            if beta == 0.0:
                yv[...] = 0.0
            else:
                yv *= beta
            return
        self._gemv(t, m, n, float(alpha), a, offa, lda, x, offx, incx, float(beta), y, offy, incy)

    def gemm(  # noqa: PLR0913
        self,
        transa: str,
        transb: str,
        m: int,
        n: int,
        k: int,
        alpha: float,
        a: NDArray[np.float64],
        offa: int,
        lda: int,
        b: NDArray[np.float64],
        offb: int,
        ldb: int,
        beta: float,
        c: NDArray[np.float64],
        offc: int,
        ldc: int,
    ) -> None:
        """``C := alpha*op(A)*op(B) + beta*C`` with ``C`` of shape ``m x n``."""
        ta = _trans(transa)
        tb = _trans(transb)
        if m <= 0 or n <= 0:
            return
        if k <= 0 or alpha == 0.0:
            cv = panel_view(c, offc, m, n, ldc)
            if beta == 0.0:
                cv[...] = 0.0
            else:
                cv *= beta
            return
        self._gemm(
            ta, tb, m, n, k, float(alpha), a, offa, lda, b, offb, ldb, float(beta), c, offc, ldc,
        )

    @abstractmethod
    def _swap(self, n, x, offx, incx, y, offy, incy) -> None: ...

    @abstractmethod
    def _scal(self, n, alpha, x, offx, incx) -> None: ...

    @abstractmethod
    def _copy(self, n, x, offx, incx, y, offy, incy) -> None: ...

    @abstractmethod
    def _gemv(self, trans, m, n, alpha, a, offa, lda, x, offx, incx, beta, y, offy, incy) -> None: ...

    @abstractmethod
    def _gemm(
        self, transa, transb, m, n, k, alpha, a, offa, lda, b, offb, ldb, beta, c, offc, ldc,
    ) -> None: ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


class ReferenceKernels(Kernels):
    """Portable kernels over NumPy strided views."""

    name = "reference"

    def _swap(self, n, x, offx, incx, y, offy, incy) -> None:
        xv = strided_view(x, offx, n, incx)
        yv = strided_view(y, offy, n, incy)
        tmp = xv.copy()
        xv[...] = yv
        yv[...] = tmp

    def _scal(self, n, alpha, x, offx, incx) -> None:
        strided_view(x, offx, n, incx)[...] *= alpha

    def _copy(self, n, x, offx, incx, y, offy, incy) -> None:
        strided_view(y, offy, n, incy)[...] = strided_view(x, offx, n, incx)

    def _gemv(self, trans, m, n, alpha, a, offa, lda, x, offx, incx, beta, y, offy, incy) -> None:
        A = panel_view(a, offa, m, n, lda)
        op = A.T if trans else A
        xv = strided_view(x, offx, op.shape[1], incx)
        yv = strided_view(y, offy, op.shape[0], incy)
        res = alpha * (op @ xv)
        if beta != 0.0:
            res += beta * yv
        yv[...] = res

    def _gemm(
        self, transa, transb, m, n, k, alpha, a, offa, lda, b, offb, ldb, beta, c, offc, ldc,
    ) -> None:
        A = panel_view(a, offa, k, m, lda).T if transa else panel_view(a, offa, m, k, lda)
        B = panel_view(b, offb, n, k, ldb).T if transb else panel_view(b, offb, k, n, ldb)
        C = panel_view(c, offc, m, n, ldc)
        res = alpha * (A @ B)
        if beta != 0.0:
            res += beta * C
        C[...] = res


def _writeback(target: NDArray[np.float64], result: NDArray[np.float64]) -> None:
    # f2py works in place when the operand is already contiguous float64;
    # otherwise it hands back a fresh array.
    if result is not target:
        target[...] = result


class BlasKernels(Kernels):
    """Kernels delegated to the BLAS linked into SciPy."""

    name = "blas"

    def _swap(self, n, x, offx, incx, y, offy, incy) -> None:
        xo, yo = _blas.dswap(x, y, n=n, offx=offx, incx=incx, offy=offy, incy=incy)
        _writeback(x, xo)
        _writeback(y, yo)

    def _scal(self, n, alpha, x, offx, incx) -> None:
        _writeback(x, _blas.dscal(alpha, x, n=n, offx=offx, incx=incx))

    def _copy(self, n, x, offx, incx, y, offy, incy) -> None:
        _writeback(y, _blas.dcopy(x, y, n=n, offx=offx, incx=incx, offy=offy, incy=incy))

    def _gemv(self, trans, m, n, alpha, a, offa, lda, x, offx, incx, beta, y, offy, incy) -> None:
        A = panel_view(a, offa, m, n, lda)
        # bounds of the strided operands are checked before handing raw offsets to BLAS
        strided_view(x, offx, m if trans else n, incx)
        strided_view(y, offy, n if trans else m, incy)
        out = _blas.dgemv(
            alpha, A, x,
            beta=beta, y=y,
            offx=offx, incx=incx, offy=offy, incy=incy,
            trans=1 if trans else 0,
            overwrite_y=1,
        )
        _writeback(y, out)

    def _gemm(
        self, transa, transb, m, n, k, alpha, a, offa, lda, b, offb, ldb, beta, c, offc, ldc,
    ) -> None:
        A = panel_view(a, offa, k, m, lda) if transa else panel_view(a, offa, m, k, lda)
        B = panel_view(b, offb, n, k, ldb) if transb else panel_view(b, offb, k, n, ldb)
        C = panel_view(c, offc, m, n, ldc)
        out = _blas.dgemm(
            alpha, A, B,
            beta=beta, c=C,
            trans_a=1 if transa else 0,
            trans_b=1 if transb else 0,
            overwrite_c=1,
        )
        _writeback(C, out)


_REGISTRY: dict[str, type[Kernels]] = {
    BlasKernels.name: BlasKernels,
    ReferenceKernels.name: ReferenceKernels,
}


def available_kernels() -> list[str]:
    """Names accepted by :func:`get_kernels` and ``COLMAT_KERNELS``."""
    return sorted(_REGISTRY)


def _env_kernels() -> str:
    raw = str(os.environ.get(ENV_VAR, "")).strip().lower()
    if not raw:
        return DEFAULT_KERNELS
    if raw not in _REGISTRY:
        _LOGGER.warning(
            "Unknown %s=%r; expected one of %s. Using %r.",
            ENV_VAR, raw, available_kernels(), DEFAULT_KERNELS,
        )
        return DEFAULT_KERNELS
    return raw


@lru_cache(maxsize=None)
def _instance(name: str) -> Kernels:
    return _REGISTRY[name]()


@lru_cache(maxsize=1)
def default_kernels() -> Kernels:
    """Return the process-wide kernel set selected by the environment."""
    kernels = _instance(_env_kernels())
    _LOGGER.debug("Selected %s kernels", kernels.name)
    return kernels


def get_kernels(name: str | Kernels | None = None) -> Kernels:
    """Resolve a kernel set by name, instance or the configured default."""
    if name is None:
        return default_kernels()
    if isinstance(name, Kernels):
        return name
    key = str(name).strip().lower()
    if key not in _REGISTRY:
        raise ValueError(f"unknown kernel set {name!r}; expected one of {available_kernels()}")
    return _instance(key)


class KernelGuard:
    """Context manager to temporarily force the default kernel set."""

    def __init__(self, name: str):
        self.name = str(name).strip().lower()
        if self.name not in _REGISTRY:
            raise ValueError(f"unknown kernel set {name!r}; expected one of {available_kernels()}")
        self._prev_env: str | None = None

    def __enter__(self) -> Kernels:
        self._prev_env = os.environ.get(ENV_VAR)
        os.environ[ENV_VAR] = self.name
        default_kernels.cache_clear()
        return default_kernels()

    def __exit__(self, exc_type, exc, tb):
        if self._prev_env is None:
            os.environ.pop(ENV_VAR, None)
        else:
            os.environ[ENV_VAR] = self._prev_env
        default_kernels.cache_clear()
        return False
