"""Buffer ownership layer.

A :class:`Buffer` is the storage record shared by an owning matrix/vector and
every view taken from it. The owner releases it; borrowers only snapshot its
``generation`` and refuse to dispatch once the snapshot is stale.
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import numpy as np

from .errors import AllocationError, BufferReleasedError

if TYPE_CHECKING:
    from numpy.typing import NDArray
else:
    NDArray = np.ndarray  # type: ignore[misc,assignment]

__all__ = ["Buffer", "acquire", "as_flat_buffer", "release"]

_LOGGER = logging.getLogger(__name__)


def acquire(n: int) -> NDArray[np.float64]:
    """Allocate ``n`` uninitialized doubles."""
    try:
        count = int(n)
    except (TypeError, ValueError) as exc:
        raise AllocationError(f"cannot allocate {n!r} doubles") from exc
    if count < 0:
        raise AllocationError(f"cannot allocate a negative number of doubles ({count})")
    try:
        return np.empty(count, dtype=np.float64)
    except (MemoryError, ValueError) as exc:
        raise AllocationError(f"allocation of {count} doubles failed: {exc}") from exc


def as_flat_buffer(data: Any, *, name: str = "buffer") -> NDArray[np.float64]:
    """Validate that ``data`` can be borrowed as a flat float64 buffer.

    Borrowing must alias the caller's memory, so nothing is converted here:
    the array must already be 1-D, C-contiguous, float64 and writable.
    """
    if not isinstance(data, np.ndarray):
        raise TypeError(f"{name} must be a numpy.ndarray, got {type(data).__name__}")
    if data.dtype != np.float64:
        raise TypeError(f"{name} must have dtype float64, got {data.dtype}")
    if data.ndim != 1 or not data.flags.c_contiguous:
        raise TypeError(f"{name} must be a 1-D contiguous array")
    if not data.flags.writeable:
        raise TypeError(f"{name} must be writable")
    return data


class Buffer:
    """Contiguous run of doubles plus a release generation counter."""

    __slots__ = ("_data", "_generation")

    def __init__(self, data: NDArray[np.float64]):
        self._data: NDArray[np.float64] | None = as_flat_buffer(data)
        self._generation = 0

    @classmethod
    def allocate(cls, n: int) -> Buffer:
        return cls(acquire(n))

    @property
    def data(self) -> NDArray[np.float64]:
        if self._data is None:
            raise BufferReleasedError("buffer has been released")
        return self._data

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def released(self) -> bool:
        return self._data is None

    @property
    def size(self) -> int:
        return 0 if self._data is None else int(self._data.size)

    def check(self, generation: int) -> NDArray[np.float64]:
        """Return the storage if ``generation`` is still current."""
        if self._data is None or generation != self._generation:
            raise BufferReleasedError(
                "view outlived the buffer it borrows from "
                f"(generation {generation}, buffer at {self._generation})",
            )
        return self._data

    def release(self) -> None:
        if self._data is None:
            return
        _LOGGER.debug("Releasing buffer of %d doubles", self._data.size)
        self._data = None
        self._generation += 1

    def __repr__(self) -> str:  # pragma: no cover - convenience only
        state = "released" if self._data is None else f"size={self._data.size}"
        return f"Buffer({state}, generation={self._generation})"


def release(buffer: Buffer) -> None:
    """Release ``buffer``; pairs with :func:`acquire` via :meth:`Buffer.allocate`."""
    buffer.release()
