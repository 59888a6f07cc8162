# src/yale_engine/sparse_multiply.py
"""Two-pass sparse matrix multiplication for yale storage.

The product ``C = L @ R`` is built in three steps:

1. :func:`symbolic_pass` walks the operands' structure only and fixes, for
   every result row, its off-diagonal columns (in discovery order) and the
   complete row-header array. The result can then be allocated exactly once.
2. :func:`numeric_pass` walks the same structure again and accumulates
   ``sum_k L[i, k] * R[k, j]`` straight into the pre-shaped result.
3. :func:`sort_columns` restores strictly increasing columns within each row.

The diagonal of each operand is always treated as structurally present, so
the result may carry explicit zeros where a stored diagonal is zero.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from typing import TYPE_CHECKING, Any

import numpy as np

from .dtypes import common_element_type
from .errors import raise_shape_mismatch
from .structure_ops import copy_with_type
from .yale_core import (
    YaleStorage,
    index_dtype_for_shape,
    minimum_capacity_for_shape,
)

if TYPE_CHECKING:
    from numpy.typing import NDArray


def _row_entries(storage: YaleStorage, row: int) -> Iterator[tuple[int, Any]]:
    """Yield (column, value) for a row: diagonal first, then stored entries."""
    if row < storage.cols:
        yield row, storage._a[row]
    columns, values = storage.row_view(row)
    yield from zip(columns.tolist(), values, strict=True)


def symbolic_pass(
    left: YaleStorage, right: YaleStorage
) -> tuple[NDArray[np.int64], list[list[int]]]:
    """Compute the structure of ``left @ right`` without touching values.

    Args:
        left: Left operand, shape (m, n).
        right: Right operand, shape (n, p).

    Returns:
        Tuple ``(ia, columns)``: the row-header array of the result (length
        m + 1, starting at m + 1) and, per result row, the off-diagonal columns
        in discovery order.
    """
    rows = left.rows
    ia = np.empty(rows + 1, dtype=np.int64)
    ia[0] = rows + 1
    columns: list[list[int]] = []

    for i in range(rows):
        seen: set[int] = set()
        row_columns: list[int] = []
        for k, _ in _row_entries(left, i):
            for j, _ in _row_entries(right, k):
                if j != i and j not in seen:
                    seen.add(j)
                    row_columns.append(j)
        columns.append(row_columns)
        ia[i + 1] = ia[i] + len(row_columns)

    return ia, columns


def numeric_pass(
    left: YaleStorage,
    right: YaleStorage,
    ia: NDArray[np.int64],
    columns: Sequence[Sequence[int]],
    out: YaleStorage,
) -> None:
    """Fill ``out`` with the values of ``left @ right``.

    ``out`` must already carry the row headers from :func:`symbolic_pass`;
    this pass writes the column indices and the accumulated values.
    """
    zero = out.zero
    for i in range(left.rows):
        acc: dict[int, Any] = {}
        for k, left_value in _row_entries(left, i):
            for j, right_value in _row_entries(right, k):
                product = left_value * right_value
                acc[j] = acc[j] + product if j in acc else product

        if i < out.cols:
            out._a[i] = acc.get(i, zero)

        start = int(ia[i])
        for offset, j in enumerate(columns[i]):
            out._ija[start + offset] = j
            out._a[start + offset] = acc.get(j, zero)


def sort_columns(storage: YaleStorage) -> None:
    """Sort each row's column indices in place, permuting values along."""
    for i in range(storage.rows):
        start, end = storage.row_range(i)
        if end - start < 2:
            continue
        order = np.argsort(storage._ija[start:end], kind="stable")
        storage._ija[start:end] = storage._ija[start:end][order]
        storage._a[start:end] = storage._a[start:end][order]


def multiply(
    left: YaleStorage,
    right: YaleStorage,
    result_shape: Sequence[int] | None = None,
) -> YaleStorage:
    """Return the matrix product ``left @ right`` as a new storage.

    Args:
        left: Left operand, shape (m, n).
        right: Right operand, shape (n, p).
        result_shape: Expected result shape; defaults to (m, p).

    Raises:
        ShapeMismatchError: If the inner dimensions differ or ``result_shape``
            is not (m, p).

    Returns:
        New storage of shape (m, p), allocated once with its exact size as
        capacity (raised to the minimum capacity for the shape).
    """
    if left.cols != right.rows:
        raise_shape_mismatch(operation="multiply", left=left.shape, right=right.shape)
    shape = (left.rows, right.cols)
    if result_shape is not None and tuple(result_shape) != shape:
        raise_shape_mismatch(
            operation="multiply result", left=tuple(result_shape), right=shape
        )

    if left.dtype != right.dtype:
        dtype = common_element_type(left.dtype, right.dtype)
        left = copy_with_type(left, dtype)
        right = copy_with_type(right, dtype)

    ia, columns = symbolic_pass(left, right)
    rows, cols = shape
    size = int(ia[-1])
    capacity = max(size, minimum_capacity_for_shape(rows, cols))

    ija = np.zeros(capacity, dtype=index_dtype_for_shape(rows, cols))
    ija[: rows + 1] = ia
    a = np.zeros(capacity, dtype=left.dtype)
    result = YaleStorage._from_arrays(
        shape, left.dtype, ija, a, size - rows - 1, options=left.options
    )

    numeric_pass(left, right, ia, columns, result)
    sort_columns(result)
    return result
