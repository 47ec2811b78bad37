# colmat/core/__init__.py
"""Core computational modules for colmat."""
from . import backend, buffer, errors, kernels, matrix, vector

__all__ = ["backend", "buffer", "errors", "kernels", "matrix", "vector"]
