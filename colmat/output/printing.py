"""Diagnostic dumps of matrix contents.

Debugging aid only: a label header followed by the values row by row. The
layout is meant for people, not for parsing.
"""
from __future__ import annotations

import sys
from typing import TYPE_CHECKING, cast

import numpy as np
from tabulate import tabulate

if TYPE_CHECKING:
    from typing import TextIO

    from colmat.core.matrix import Matrix

__all__ = ["format_matrix", "print_matrix"]


def format_matrix(
    matrix: Matrix, name: str = "", *, as_int: bool = False, floatfmt: str = ".4f",
) -> str:
    """Render ``matrix`` as text, one printed line per row."""
    lines: list[str] = []
    if name:
        lines.extend(["", f"{name} = ", ""])
    m, n = matrix.shape
    if m * n == 0:
        lines.extend([f"   Empty matrix: {m}-by-{n}", ""])
        return "\n".join(lines)
    values = matrix.to_numpy()
    if as_int:
        rows = values.astype(np.int64).tolist()
        body = cast("str", tabulate(rows, tablefmt="plain", disable_numparse=True))
    else:
        rows = values.tolist()
        body = cast("str", tabulate(rows, tablefmt="plain", floatfmt=floatfmt))
    lines.extend("   " + ln for ln in body.splitlines())
    lines.append("")
    return "\n".join(lines)


def print_matrix(
    matrix: Matrix, name: str = "", *, as_int: bool = False, file: TextIO | None = None,
) -> None:
    """Write :func:`format_matrix` output to ``file`` (stdout by default)."""
    print(format_matrix(matrix, name, as_int=as_int), file=sys.stdout if file is None else file)
