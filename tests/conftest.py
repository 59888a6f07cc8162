"""Global pytest configuration and shared fixtures for yale_engine."""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np
import pytest

from yale_engine import ElementType, YaleStorage, create

if TYPE_CHECKING:
    from collections.abc import Callable

    from numpy.typing import NDArray


# -----------------------------------------------------------------------------
# Reference matrices
# -----------------------------------------------------------------------------


@pytest.fixture
def scenario_3x3() -> YaleStorage:
    """3x3 float64 matrix with A[0,0]=1, A[0,2]=2, A[2,1]=3 (in that order)."""
    m = create(ElementType.FLOAT64, 3, 3)
    m.set(0, 0, 1.0)
    m.set(0, 2, 2.0)
    m.set(2, 1, 3.0)
    return m


@pytest.fixture
def rng() -> np.random.Generator:
    """Deterministic random generator."""
    return np.random.default_rng(12345)


@pytest.fixture
def sparse_dense(
    rng: np.random.Generator,
) -> Callable[[tuple[int, int]], NDArray[np.float64]]:
    """Factory for dense float64 arrays with about 30% small-integer nonzeros."""

    def _make(shape: tuple[int, int], density: float = 0.3) -> NDArray[np.float64]:
        values = rng.integers(1, 10, size=shape).astype(np.float64)
        mask = rng.random(shape) < density
        return np.where(mask, values, 0.0)

    return _make
