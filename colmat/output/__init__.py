# colmat/output/__init__.py
"""Diagnostic output for matrices."""
from .printing import format_matrix, print_matrix

__all__ = [
    "format_matrix",
    "print_matrix",
]
