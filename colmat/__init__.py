"""colmat: dense column-major matrix primitives.

This package provides owned and borrowed matrix/vector views over flat float64
buffers, delegates dense arithmetic to BLAS kernels, and adds the strided
gathers, column-subset products and reductions that numerical solvers built
on top of it rely on.
"""
from __future__ import annotations

from importlib import import_module
from typing import Any

__version__ = "0.1.0"

__all__ = [
    "AllocationError",
    "BufferReleasedError",
    "ColmatError",
    "DimensionMismatch",
    "IndexOutOfRange",
    "InsufficientLength",
    "InvalidRange",
    "KernelGuard",
    "Matrix",
    "ShapeError",
    "Vector",
    "available_kernels",
    "format_matrix",
    "get_kernels",
    "multiply",
    "print_matrix",
]

_LAZY_IMPORTS: dict[str, tuple[str, str]] = {
    "Matrix": ("colmat.core.matrix", "Matrix"),
    "multiply": ("colmat.core.matrix", "multiply"),
    "Vector": ("colmat.core.vector", "Vector"),
    "KernelGuard": ("colmat.core.backend", "KernelGuard"),
    "available_kernels": ("colmat.core.backend", "available_kernels"),
    "get_kernels": ("colmat.core.backend", "get_kernels"),
    "AllocationError": ("colmat.core.errors", "AllocationError"),
    "BufferReleasedError": ("colmat.core.errors", "BufferReleasedError"),
    "ColmatError": ("colmat.core.errors", "ColmatError"),
    "DimensionMismatch": ("colmat.core.errors", "DimensionMismatch"),
    "IndexOutOfRange": ("colmat.core.errors", "IndexOutOfRange"),
    "InsufficientLength": ("colmat.core.errors", "InsufficientLength"),
    "InvalidRange": ("colmat.core.errors", "InvalidRange"),
    "ShapeError": ("colmat.core.errors", "ShapeError"),
    "format_matrix": ("colmat.output.printing", "format_matrix"),
    "print_matrix": ("colmat.output.printing", "print_matrix"),
}


def __getattr__(name: str) -> Any:
    """Lazily import public classes and functions on first access."""
    if name in _LAZY_IMPORTS:
        module_name, attr_name = _LAZY_IMPORTS[name]
        module = import_module(module_name)
        attr = getattr(module, attr_name)
        globals()[name] = attr
        return attr
    raise AttributeError(f"module 'colmat' has no attribute '{name}'")


def __dir__() -> list[str]:
    """Ensure dir() exposes lazily imported names."""
    return sorted(set(globals()) | set(__all__))
