from __future__ import annotations

import sys
from pathlib import Path

import numpy as np
import pytest


def pytest_configure() -> None:
    """Ensure the repository root is on sys.path.

    Running pytest from a plain checkout (without ``pip install -e .``)
    would otherwise fail to import the top-level package ``colmat``.
    """

    repo_root = Path(__file__).resolve().parents[2]
    repo_root_str = str(repo_root)
    if repo_root_str not in sys.path:
        sys.path.insert(0, repo_root_str)


@pytest.fixture
def rng():
    return np.random.default_rng(42)


@pytest.fixture(params=["blas", "reference"])
def kernel_name(request):
    return request.param


@pytest.fixture
def sample(kernel_name):
    """A = [[1,2],[3,4],[5,6]] (3 rows, 2 cols)."""
    from colmat.core.matrix import Matrix

    return Matrix.from_array([[1.0, 2.0], [3.0, 4.0], [5.0, 6.0]], kernels=kernel_name)
