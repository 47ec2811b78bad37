"""Exception taxonomy for contract violations.

Every class also derives from the closest builtin so existing callers that
catch ``ValueError``/``IndexError``/``MemoryError`` keep working.
"""
from __future__ import annotations

__all__ = [
    "AllocationError",
    "BufferReleasedError",
    "ColmatError",
    "DimensionMismatch",
    "IndexOutOfRange",
    "InsufficientLength",
    "InvalidRange",
    "ShapeError",
]


class ColmatError(Exception):
    """Base class for all errors raised by colmat."""


class InvalidRange(ColmatError, ValueError):
    """A column range falls outside the source matrix."""


class IndexOutOfRange(ColmatError, IndexError):
    """A row or column index exceeds the matrix dimension."""


class DimensionMismatch(ColmatError, ValueError):
    """Operand lengths or shapes are incompatible with the operation."""


class InsufficientLength(DimensionMismatch):
    """An input vector is shorter than the operation requires."""


class ShapeError(ColmatError, ValueError):
    """An output matrix does not have the shape a derived matrix needs."""


class AllocationError(ColmatError, MemoryError):
    """The allocator could not satisfy a request."""


class BufferReleasedError(ColmatError, RuntimeError):
    """A view was used after the buffer it borrows from was released."""
