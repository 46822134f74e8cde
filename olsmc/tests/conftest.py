from __future__ import annotations

import sys
from pathlib import Path

import numpy as np
import pytest


def pytest_configure() -> None:
    """Ensure the repository root is on sys.path.

    The test suite lives inside the `olsmc` package, so pytest may pick
    `.../olsmc` as its rootdir. In that case, importing the top-level package
    `olsmc` fails unless the parent directory is on `sys.path`.
    """

    repo_root = Path(__file__).resolve().parents[2]
    repo_root_str = str(repo_root)
    if repo_root_str not in sys.path:
        sys.path.insert(0, repo_root_str)


@pytest.fixture
def scenario():
    """Reference scenario: slope 12.25, intercept 240.16, sigma 8.55, x = 0..9."""
    from olsmc.estimators.base import Parameters

    return Parameters(12.25, 240.16, 8.55, np.arange(10, dtype=float))


@pytest.fixture
def seed():
    return 20240917
