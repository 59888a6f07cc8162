# yale_engine/examples/laplacian_stencil.py
"""Assemble a 2D five-point Laplacian element by element and square it.

This example demonstrates the core API:

- create(...) with an explicit initial capacity and growth options.
- Element-wise assembly through YaleStorage.set, which grows storage on demand.
- multiply(...) for the sparse product, cross-checked against scipy.sparse.
- transpose(...) and equals(...) to confirm the operator is symmetric.

The grid has n x n interior points with Dirichlet boundaries, so the operator
is (n*n) x (n*n) with at most five entries per row.
"""

from __future__ import annotations

import numpy as np
from scipy.sparse import diags, identity, kron

from yale_engine import (
    ElementType,
    StorageOptions,
    YaleStorage,
    create,
    equals,
    multiply,
    transpose,
)

_GRID_POINTS = 12
_MISMATCH_ERROR = "yale product differs from scipy product by {err:.3e}"


def assemble_laplacian(n: int, *, options: StorageOptions) -> YaleStorage:
    """Build the five-point Laplacian on an n x n grid.

    Args:
        n: Interior points per dimension.
        options: Storage options (growth factor).

    Returns:
        Storage of shape (n*n, n*n).
    """
    size = n * n
    lap = create(ElementType.FLOAT64, size, size, options=options)
    for row in range(n):
        for col in range(n):
            k = row * n + col
            lap.set(k, k, -4.0)
            if col > 0:
                lap.set(k, k - 1, 1.0)
            if col < n - 1:
                lap.set(k, k + 1, 1.0)
            if row > 0:
                lap.set(k, k - n, 1.0)
            if row < n - 1:
                lap.set(k, k + n, 1.0)
    return lap


def scipy_laplacian(n: int):  # noqa: ANN201
    """Reference Laplacian built from Kronecker products."""
    one_d = diags([1.0, -2.0, 1.0], [-1, 0, 1], shape=(n, n))
    eye = identity(n)
    return (kron(eye, one_d) + kron(one_d, eye)).tocsr()


def main() -> None:
    """Assemble, square and verify the Laplacian."""
    options = StorageOptions(growth_factor=2.0)
    lap = assemble_laplacian(_GRID_POINTS, options=options)
    lap.check_invariants()

    print(f"operator: {lap!r}")
    print(f"stored off-diagonal entries: {lap.ndnz}")

    if not equals(lap, transpose(lap)):
        msg = "assembled Laplacian is not symmetric"
        raise RuntimeError(msg)

    squared = multiply(lap, lap)
    reference = scipy_laplacian(_GRID_POINTS)
    err = float(np.max(np.abs(squared.to_dense() - (reference @ reference).toarray())))
    if err > 1e-12:
        raise RuntimeError(_MISMATCH_ERROR.format(err=err))

    print(f"squared operator: {squared!r}")
    print(f"max abs difference vs scipy: {err:.3e}")


if __name__ == "__main__":
    main()
