# src/yale_engine/structure_ops.py
"""Whole-matrix structure operations on yale storage.

This module provides the operations that build a new storage from existing
ones, or compare two storages:

- Structural merge (union of nonzero structure) and element-wise combination
  over the merged structure.
- Equality, treating structural absence and explicit zero as identical.
- Type-casting copies.
- Transpose (a full rebuild with rows and columns swapped).
- One-shot import from a classic (row-pointer, column-index, value) triple,
  plus dense and ``scipy.sparse`` interop built on top of it.

Design notes:
    * Every operation returns a fresh storage; the only in-place mutation is
      the insertion walk inside :func:`merge_structure`, and it touches the
      result only.
    * Bulk rebuilds (transpose, import) assemble IJA and A with vectorized
      numpy sorting and counting, then adopt the finished arrays.
"""

from __future__ import annotations

import warnings
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

import numpy as np
from scipy.sparse import coo_matrix, csr_matrix

from .config import DEFAULT_OPTIONS, StorageOptions
from .dtypes import ElementType, common_element_type, resolve_element_type
from .errors import (
    DuplicateEntryWarning,
    ElementTypeError,
    LegacyFormatError,
    raise_invariant_violation,
    raise_shape_mismatch,
)
from .search import find_insertion_point
from .yale_core import (
    YaleStorage,
    _normalize_shape,
    index_dtype_for_shape,
    minimum_capacity_for_shape,
)

if TYPE_CHECKING:
    from numpy.typing import ArrayLike, DTypeLike, NDArray


# Error / message constants -------------------------------------------------

_LEGACY_NDIM_ERROR = "ia, ja and a must all be 1D arrays"
_LEGACY_IA_LEN_ERROR = "ia must have rows + 1 = {expected} entries; got {actual}"
_LEGACY_IA_START_ERROR = "ia must start at 0; got {start}"
_LEGACY_IA_MONOTONE_ERROR = "ia must be non-decreasing"
_LEGACY_NNZ_ERROR = "ia[-1] = {end} must equal len(ja) = {n_ja} and len(a) = {n_a}"
_LEGACY_INDEX_KIND_ERROR = "ia and ja must hold integers; got {ia} and {ja}"
_LEGACY_COLUMN_ERROR = "column indices must lie in [0, {cols})"
_LEGACY_DUPLICATE_ERROR = (
    "{count} duplicate coordinate(s) in legacy input, first at ({row}, {col})"
)
_LEGACY_DUPLICATE_WARNING = (
    "{count} duplicate coordinate(s) in legacy input were summed"
)
_DENSE_NDIM_ERROR = "dense input must be 2D; got ndim={ndim}"
_SCIPY_OBJECT_ERROR = (
    "scipy.sparse cannot hold element type object; convert with astype() first"
)


# =============================================================================
# Structural merge
# =============================================================================


def merge_structure(
    template: YaleStorage,
    other: YaleStorage,
    *,
    element_type: ElementType | DTypeLike | None = None,
) -> YaleStorage:
    """Build a storage whose structure is the union of two same-shape storages.

    The result starts as a structure-only copy of ``template`` (all values
    zero) and gains a zero placeholder for every off-diagonal position present
    in ``other`` but missing from ``template``. Merging a storage with itself
    skips the walk entirely.

    Args:
        template: Storage whose structure seeds the result.
        other: Storage whose structure is merged in.
        element_type: Element type of the result; defaults to template's.

    Raises:
        ShapeMismatchError: If the shapes differ.

    Returns:
        New storage with zero values over the union structure.
    """
    if template.shape != other.shape:
        raise_shape_mismatch(
            operation="merge_structure", left=template.shape, right=other.shape
        )

    dtype = template.dtype if element_type is None else resolve_element_type(element_type)
    capacity = min(max(template.capacity, other.capacity), template.max_capacity)
    size = template.size

    ija = np.zeros(capacity, dtype=template.index_type)
    ija[:size] = template._ija[:size]
    a = np.zeros(capacity, dtype=dtype)
    result = YaleStorage._from_arrays(
        template.shape, dtype, ija, a, template.ndnz, options=template.options
    )

    if other is template:
        return result

    for i in range(result.rows):
        other_cols, _ = other.row_view(i)
        if other_cols.size == 0:
            continue

        # Columns of ``other`` arrive sorted, so each search can start just
        # past the previous hit or insertion.
        lo, hi = result.row_range(i)
        for col in other_cols.tolist():
            pos, found = find_insertion_point(result._ija, lo, hi, col)
            if not found:
                result._insert_at(pos, [col], structure_only=True)
                result._bump_row_starts(i, 1)
                result.ndnz += 1
                hi += 1
            lo = pos + 1

    return result


def combine(
    left: YaleStorage,
    right: YaleStorage,
    func: Callable[[Any, Any], Any],
    *,
    element_type: ElementType | DTypeLike | None = None,
) -> YaleStorage:
    """Apply a binary element-wise function over the merged structure.

    Every diagonal slot and every position stored in either operand receives
    ``func(left[i, j], right[i, j])``. Positions absent from both operands stay
    zero, so ``func(0, 0)`` is assumed to be zero.

    Args:
        left: Left operand.
        right: Right operand, same shape as ``left``.
        func: Binary scalar function (a numpy ufunc works).
        element_type: Result element type; defaults to the operands' common type.

    Returns:
        New storage holding the element-wise result.
    """
    dtype = (
        common_element_type(left.dtype, right.dtype)
        if element_type is None
        else resolve_element_type(element_type)
    )
    result = merge_structure(left, right, element_type=dtype)

    for i in range(min(result.rows, result.cols)):
        result._a[i] = func(left.get(i, i), right.get(i, i))

    for i in range(result.rows):
        start, end = result.row_range(i)
        for pos in range(start, end):
            j = int(result._ija[pos])
            result._a[pos] = func(left.get(i, j), right.get(i, j))

    return result


# =============================================================================
# Equality
# =============================================================================


def _row_is_zero(values: NDArray[Any]) -> bool:
    return values.size == 0 or not bool(np.any(values != 0))


def _rows_equal(
    l_cols: NDArray[np.unsignedinteger],
    l_vals: NDArray[Any],
    r_cols: NDArray[np.unsignedinteger],
    r_vals: NDArray[Any],
) -> bool:
    """Two-pointer comparison of two sorted off-diagonal rows."""
    lc = l_cols.tolist()
    rc = r_cols.tolist()
    ln, rn = len(lc), len(rc)
    li = ri = 0

    while li < ln or ri < rn:
        if li < ln and ri < rn and lc[li] == rc[ri]:
            if l_vals[li] != r_vals[ri]:
                return False
            li += 1
            ri += 1
        elif ri >= rn or (li < ln and lc[li] < rc[ri]):
            # Column present only on the left; the right reads zero there.
            if l_vals[li] != 0:
                return False
            li += 1
        else:
            if r_vals[ri] != 0:
                return False
            ri += 1

    return True


def equals(left: YaleStorage, right: YaleStorage) -> bool:
    """Whole-matrix equality; absent entries compare equal to explicit zeros.

    Element types may differ; values are compared with ``==``.

    Raises:
        ShapeMismatchError: If the shapes differ.
    """
    if left.shape != right.shape:
        raise_shape_mismatch(operation="equals", left=left.shape, right=right.shape)

    rows = left.rows
    if not bool(np.all(left._a[:rows] == right._a[:rows])):
        return False

    for i in range(rows):
        l_cols, l_vals = left.row_view(i)
        r_cols, r_vals = right.row_view(i)

        if l_cols.size == 0 and r_cols.size == 0:
            continue

        l_zero = _row_is_zero(l_vals)
        r_zero = _row_is_zero(r_vals)
        if l_zero or r_zero:
            if l_zero != r_zero:
                return False
            continue

        if not _rows_equal(l_cols, l_vals, r_cols, r_vals):
            return False

    return True


# =============================================================================
# Copy / cast
# =============================================================================


def copy_with_type(
    source: YaleStorage, element_type: ElementType | DTypeLike
) -> YaleStorage:
    """Deep copy with the values converted to ``element_type``.

    The index prefix is copied verbatim; the value prefix is copied raw when
    the element type is unchanged and converted with ``astype`` otherwise.
    Capacity is preserved; the tail past ``size`` is zero-filled.
    """
    dtype = resolve_element_type(element_type)
    size = source.size

    ija = np.zeros(source.capacity, dtype=source.index_type)
    ija[:size] = source._ija[:size]

    a = np.zeros(source.capacity, dtype=dtype)
    if dtype == source.dtype:
        a[:size] = source._a[:size]
    else:
        a[:size] = source._a[:size].astype(dtype)

    return YaleStorage._from_arrays(
        source.shape, dtype, ija, a, source.ndnz, options=source.options
    )


# =============================================================================
# Transpose
# =============================================================================


def _assemble(
    shape: tuple[int, int],
    dtype: np.dtype[Any],
    row_ids: NDArray[np.int64],
    col_ids: NDArray[np.int64],
    values: NDArray[Any],
    *,
    options: StorageOptions | None,
) -> YaleStorage:
    """Adopt (row, col, value) triples sorted row-major into a new storage.

    Diagonal triples land in the diagonal slots; every other triple becomes an
    off-diagonal entry. Coordinates must be unique and in range.
    """
    rows, cols = shape
    on_diag = row_ids == col_ids
    off = ~on_diag
    ndnz = int(np.count_nonzero(off))
    size = rows + 1 + ndnz
    capacity = max(size, minimum_capacity_for_shape(rows, cols))

    ija = np.zeros(capacity, dtype=index_dtype_for_shape(rows, cols))
    a = np.zeros(capacity, dtype=dtype)

    a[row_ids[on_diag]] = values[on_diag]

    counts = np.bincount(row_ids[off], minlength=rows)
    ija[0] = rows + 1
    ija[1 : rows + 1] = rows + 1 + np.cumsum(counts)
    ija[rows + 1 : size] = col_ids[off]
    a[rows + 1 : size] = values[off]

    return YaleStorage._from_arrays(shape, dtype, ija, a, ndnz, options=options)


def _off_diagonal_coords(
    storage: YaleStorage,
) -> tuple[NDArray[np.int64], NDArray[np.int64], NDArray[Any]]:
    rows = storage.rows
    size = storage.size
    ia = storage._ija[: rows + 1].astype(np.int64)
    row_ids = np.repeat(np.arange(rows, dtype=np.int64), np.diff(ia))
    col_ids = storage._ija[rows + 1 : size].astype(np.int64)
    return row_ids, col_ids, storage._a[rows + 1 : size]


def transpose(source: YaleStorage) -> YaleStorage:
    """Return the transpose of ``source`` as a new storage.

    Source columns become result rows; a stable sort on (new row, new column)
    re-buckets the entries and restores sorted columns within each row.
    """
    rows, cols = source.shape
    src_rows, src_cols, values = _off_diagonal_coords(source)

    order = np.lexsort((src_rows, src_cols))
    new_rows = src_cols[order]
    new_cols = src_rows[order]
    new_values = values[order]

    k = min(rows, cols)
    diag = np.arange(k, dtype=np.int64)

    return _assemble(
        (cols, rows),
        source.dtype,
        np.concatenate([diag, new_rows]),
        np.concatenate([diag, new_cols]),
        np.concatenate([source._a[:k], new_values]),
        options=source.options,
    )


# =============================================================================
# Legacy (row-pointer, column-index, value) import
# =============================================================================


def _validate_legacy(
    ia: NDArray[Any],
    ja: NDArray[Any],
    values: NDArray[Any],
    rows: int,
    cols: int,
) -> None:
    if ia.ndim != 1 or ja.ndim != 1 or values.ndim != 1:
        raise LegacyFormatError(_LEGACY_NDIM_ERROR)
    if ia.dtype.kind not in "iu" or ja.dtype.kind not in "iu":
        raise LegacyFormatError(
            _LEGACY_INDEX_KIND_ERROR.format(ia=ia.dtype, ja=ja.dtype)
        )
    if ia.size != rows + 1:
        raise LegacyFormatError(
            _LEGACY_IA_LEN_ERROR.format(expected=rows + 1, actual=ia.size)
        )
    if int(ia[0]) != 0:
        raise LegacyFormatError(_LEGACY_IA_START_ERROR.format(start=int(ia[0])))
    if np.any(np.diff(ia.astype(np.int64)) < 0):
        raise LegacyFormatError(_LEGACY_IA_MONOTONE_ERROR)
    if not (int(ia[-1]) == ja.size == values.size):
        raise LegacyFormatError(
            _LEGACY_NNZ_ERROR.format(end=int(ia[-1]), n_ja=ja.size, n_a=values.size)
        )
    if ja.size and (int(ja.min()) < 0 or int(ja.max()) >= cols):
        raise LegacyFormatError(_LEGACY_COLUMN_ERROR.format(cols=cols))


def import_legacy(
    ia: ArrayLike,
    ja: ArrayLike,
    a: ArrayLike,
    shape: tuple[int, int],
    *,
    element_type: ElementType | DTypeLike | None = None,
    options: StorageOptions | None = None,
) -> YaleStorage:
    """Convert a classic (row-pointer, column-index, value) triple to new Yale.

    Entries on the diagonal move to the diagonal slots; off-diagonal entries
    are sorted by column within each row. Used at load time only.

    Args:
        ia: Row pointers, length rows + 1, starting at 0.
        ja: Column index of each entry.
        a: Value of each entry.
        shape: (rows, cols).
        element_type: Result element type. Defaults to the dtype of ``a`` when
            it is a numpy array, otherwise to ``options.default_element_type``.
        options: Storage options. With ``strict`` (the default) duplicate
            coordinates raise; otherwise they are summed with a warning.

    Raises:
        LegacyFormatError: If the triple is malformed or, in strict mode,
            contains duplicate coordinates.

    Returns:
        New storage holding the imported matrix.
    """
    opts = options or DEFAULT_OPTIONS
    rows, cols = _normalize_shape(shape)

    ia_arr = np.asarray(ia)
    ja_arr = np.asarray(ja)
    values = np.asarray(a)
    if ja_arr.size == 0:
        ja_arr = ja_arr.astype(np.int64)
    _validate_legacy(ia_arr, ja_arr, values, rows, cols)

    if element_type is None:
        element_type = (
            values.dtype if isinstance(a, np.ndarray) else opts.default_element_type
        )
    dtype = resolve_element_type(element_type)
    values = values.astype(dtype)

    row_ids = np.repeat(
        np.arange(rows, dtype=np.int64), np.diff(ia_arr.astype(np.int64))
    )
    col_ids = ja_arr.astype(np.int64)

    order = np.lexsort((col_ids, row_ids))
    row_ids = row_ids[order]
    col_ids = col_ids[order]
    values = values[order]

    duplicate = (row_ids[1:] == row_ids[:-1]) & (col_ids[1:] == col_ids[:-1])
    n_dup = int(np.count_nonzero(duplicate))
    if n_dup:
        first = int(np.flatnonzero(duplicate)[0])
        if opts.strict:
            raise LegacyFormatError(
                _LEGACY_DUPLICATE_ERROR.format(
                    count=n_dup, row=int(row_ids[first]), col=int(col_ids[first])
                )
            )
        warnings.warn(
            _LEGACY_DUPLICATE_WARNING.format(count=n_dup),
            DuplicateEntryWarning,
            stacklevel=2,
        )
        starts = np.flatnonzero(np.concatenate([[True], ~duplicate]))
        values = np.add.reduceat(values, starts).astype(dtype)
        row_ids = row_ids[starts]
        col_ids = col_ids[starts]

    return _assemble((rows, cols), dtype, row_ids, col_ids, values, options=opts)


# =============================================================================
# Dense / scipy.sparse interop
# =============================================================================


def from_dense(
    array: ArrayLike,
    *,
    element_type: ElementType | DTypeLike | None = None,
    options: StorageOptions | None = None,
) -> YaleStorage:
    """Build a storage from a dense 2D array, storing every nonzero entry.

    Without ``element_type``, numpy arrays keep their dtype and nested Python
    sequences use ``options.default_element_type``.
    """
    if element_type is None:
        element_type = (
            array.dtype
            if isinstance(array, np.ndarray)
            else (options or DEFAULT_OPTIONS).default_element_type
        )
    dense = np.asarray(array)
    if dense.ndim != 2:
        raise_invariant_violation(_DENSE_NDIM_ERROR.format(ndim=dense.ndim))
    rows, cols = dense.shape

    row_ids, col_ids = np.nonzero(dense != 0)
    ia = np.zeros(rows + 1, dtype=np.int64)
    ia[1:] = np.cumsum(np.bincount(row_ids, minlength=rows))
    return import_legacy(
        ia,
        col_ids,
        dense[row_ids, col_ids],
        (rows, cols),
        element_type=element_type,
        options=options,
    )


def from_csr(
    matrix: Any,
    *,
    element_type: ElementType | DTypeLike | None = None,
    options: StorageOptions | None = None,
) -> YaleStorage:
    """Build a storage from a ``scipy.sparse`` matrix (any format).

    Duplicate entries are summed first, matching scipy's own semantics.

    Raises:
        ElementTypeError: If ``element_type`` is object, which scipy cannot
            produce or hold.
    """
    if element_type is not None and resolve_element_type(element_type).kind == "O":
        raise ElementTypeError(_SCIPY_OBJECT_ERROR)
    csr = csr_matrix(matrix, copy=True)
    csr.sum_duplicates()
    return import_legacy(
        csr.indptr,
        csr.indices,
        csr.data,
        csr.shape,
        element_type=csr.dtype if element_type is None else element_type,
        options=options,
    )


def to_csr(storage: YaleStorage) -> csr_matrix:
    """Export a storage as a ``scipy.sparse.csr_matrix``.

    Zero diagonal slots are not exported; explicit off-diagonal zeros are.

    Raises:
        ElementTypeError: If the storage holds boxed (object) values.
    """
    if storage.dtype.kind == "O":
        raise ElementTypeError(_SCIPY_OBJECT_ERROR)
    rows, cols = storage.shape
    k = min(rows, cols)
    diag_vals = storage._a[:k]
    keep = np.flatnonzero(diag_vals != 0)

    off_rows, off_cols, off_vals = _off_diagonal_coords(storage)
    coo = coo_matrix(
        (
            np.concatenate([diag_vals[keep], off_vals]),
            (np.concatenate([keep, off_rows]), np.concatenate([keep, off_cols])),
        ),
        shape=storage.shape,
        dtype=storage.dtype,
    )
    return coo.tocsr()
