# src/yale_engine/yale_core.py
"""New-Yale sparse storage: backing arrays, capacity management and accessors.

Layout (``rows`` = number of matrix rows, ``size`` = occupied prefix length):

    A   (values, element dtype, length = capacity)
        [0, rows)        diagonal, always materialized
        rows             sentinel zero
        [rows+1, size)   off-diagonal values, row-major, sorted by column

    IJA (indices, unsigned dtype, length = capacity)
        [0, rows]        IA: row i owns positions [IA[i], IA[i+1])
        [rows+1, size)   JA: column index of the matching A slot

Invariants after every public operation:
    1. IA[0] == rows + 1 and IA[rows] == size.
    2. Columns within a row are strictly increasing and never equal the row.
    3. size <= capacity.
    4. ndnz == size - rows - 1.
    5. A[rows] == 0; structurally absent entries read as zero.

Mutation is single-writer. Array views handed out by :meth:`YaleStorage.row_view`
are invalidated by any insertion; the inspection properties (``ia``, ``ja``,
``a``, ...) return copies.
"""

from __future__ import annotations

import operator
import warnings
from collections.abc import Sequence
from enum import StrEnum
from typing import TYPE_CHECKING, Any

import numpy as np

from .config import DEFAULT_OPTIONS, StorageOptions
from .dtypes import (
    ElementType,
    element_type_tag,
    resolve_element_type,
    smallest_index_dtype,
    zero_of,
)
from .errors import (
    CapacityClampWarning,
    raise_capacity_exceeded,
    raise_index_out_of_bounds,
    raise_invariant_violation,
    raise_unsupported,
)
from .search import NOT_FOUND, find_exact, find_insertion_point

if TYPE_CHECKING:
    from numpy.typing import DTypeLike, NDArray


# Error / message constants -------------------------------------------------

_DIM_ERROR = "yale storage only supports 2D matrices; got shape {shape}"
_NEGATIVE_SHAPE_ERROR = "shape must be non-negative; got {shape}"
_INDEX_HINT_ERROR = (
    "index type {hint} cannot address shape {shape} (needs values up to {needed})"
)
_INSERT_POS_ERROR = (
    "insertion position {pos} is before the start of the off-diagonal region "
    "({start})"
)
_INSERT_PAST_END_ERROR = "insertion position {pos} is past the occupied size {size}"
_INSERT_VALUES_LEN_ERROR = "got {n_values} values for {n_columns} columns"
_CLAMP_WARNING = (
    "requested capacity {requested} exceeds the maximum {maximum} for shape "
    "{shape}; clamping"
)


class SetResult(StrEnum):
    """Outcome of a single-element write.

    Callers batching several writes use it to know whether row-header offsets
    after the written row moved.
    """

    REPLACED = "r"
    INSERTED = "i"


# Shape helpers -------------------------------------------------------------


def max_capacity_for_shape(rows: int, cols: int) -> int:
    """Largest useful capacity: every diagonal slot, the sentinel, every off-diagonal."""
    return rows * cols - min(rows, cols) + rows + 1


def minimum_capacity_for_shape(rows: int, cols: int) -> int:
    """Smallest capacity a new storage is created with."""
    return min(2 * rows + 1, max_capacity_for_shape(rows, cols))


def index_dtype_for_shape(rows: int, cols: int) -> np.dtype[Any]:
    """Narrowest unsigned dtype holding every column index and row offset."""
    return smallest_index_dtype(max(rows, cols, max_capacity_for_shape(rows, cols)))


def _normalize_shape(shape: Sequence[int]) -> tuple[int, int]:
    dims = tuple(operator.index(n) for n in shape)
    if len(dims) != 2:
        raise_invariant_violation(_DIM_ERROR.format(shape=dims))
    if dims[0] < 0 or dims[1] < 0:
        raise ValueError(_NEGATIVE_SHAPE_ERROR.format(shape=dims))
    return dims[0], dims[1]


# Storage -------------------------------------------------------------------


class YaleStorage:
    """Mutable sparse matrix in new-Yale layout.

    The element type and index type are resolved once, at construction, and
    never change; use :func:`yale_engine.structure_ops.copy_with_type` for a
    converted copy.
    """

    def __init__(
        self,
        shape: Sequence[int],
        element_type: ElementType | DTypeLike | None = None,
        capacity: int | None = None,
        *,
        index_type: DTypeLike | None = None,
        options: StorageOptions | None = None,
    ) -> None:
        """
        Allocate and initialize an empty storage.

        Args:
            shape: (rows, cols).
            element_type: Value representation (ElementType or numpy dtype-like).
                None selects ``options.default_element_type``.
            capacity: Requested initial capacity; clamped into
                [minimum_capacity, max_capacity]. None selects the minimum.
            index_type: Optional index dtype hint. Must be unsigned and wide
                enough for the shape; None derives the narrowest one.
            options: Behavioral options (growth factor, strictness).

        Raises:
            InvariantViolationError: If shape is not 2D or the index hint is
                too narrow.
            ValueError: If shape has negative extents.
            ElementTypeError: If the element type is unsupported.
        """
        self._initialize(shape, element_type, capacity, index_type, options)

    def _initialize(
        self,
        shape: Sequence[int],
        element_type: ElementType | DTypeLike | None,
        capacity: int | None,
        index_type: DTypeLike | None,
        options: StorageOptions | None,
    ) -> None:
        # Entered from __init__ or create(); warnings below use stacklevel=4.
        self.options = options or DEFAULT_OPTIONS
        self.shape = _normalize_shape(shape)
        rows, cols = self.shape

        self.dtype = resolve_element_type(
            self.options.default_element_type if element_type is None else element_type
        )
        self.max_capacity = max_capacity_for_shape(rows, cols)
        self.minimum_capacity = minimum_capacity_for_shape(rows, cols)
        self.index_type = self._resolve_index_type(index_type)

        self.capacity = self._clamp_capacity(capacity)
        self._ija: NDArray[np.unsignedinteger] = np.zeros(
            self.capacity, dtype=self.index_type
        )
        self._a: NDArray[Any] = np.zeros(self.capacity, dtype=self.dtype)
        self.ndnz = 0
        self.init_empty()

    @classmethod
    def _from_arrays(
        cls,
        shape: tuple[int, int],
        dtype: np.dtype[Any],
        ija: NDArray[np.unsignedinteger],
        a: NDArray[Any],
        ndnz: int,
        *,
        options: StorageOptions | None = None,
    ) -> YaleStorage:
        """Wrap fully built arrays without re-initializing them.

        Used by the structure operations, which assemble IJA and A themselves.
        The arrays are adopted, not copied.
        """
        storage = cls.__new__(cls)
        storage.options = options or DEFAULT_OPTIONS
        storage.shape = shape
        storage.dtype = dtype
        storage.max_capacity = max_capacity_for_shape(*shape)
        storage.minimum_capacity = minimum_capacity_for_shape(*shape)
        storage.index_type = ija.dtype
        storage.capacity = int(ija.size)
        storage._ija = ija
        storage._a = a
        storage.ndnz = int(ndnz)
        return storage

    def _resolve_index_type(self, hint: DTypeLike | None) -> np.dtype[Any]:
        rows, cols = self.shape
        derived = index_dtype_for_shape(rows, cols)
        if hint is None:
            return derived
        hinted = np.dtype(hint)
        needed = max(rows, cols, self.max_capacity)
        if hinted.kind != "u" or np.iinfo(hinted).max < needed:
            raise_invariant_violation(
                _INDEX_HINT_ERROR.format(hint=hinted, shape=self.shape, needed=needed)
            )
        return hinted

    def _clamp_capacity(self, requested: int | None) -> int:
        if requested is None:
            return self.minimum_capacity
        requested = operator.index(requested)
        if requested < self.minimum_capacity:
            return self.minimum_capacity
        if requested > self.max_capacity:
            if self.options.warn_on_clamp:
                warnings.warn(
                    _CLAMP_WARNING.format(
                        requested=requested,
                        maximum=self.max_capacity,
                        shape=self.shape,
                    ),
                    CapacityClampWarning,
                    stacklevel=4,
                )
            return self.max_capacity
        return requested

    # ------------------------------------------------------------------
    # Shape / bookkeeping
    # ------------------------------------------------------------------

    @property
    def rows(self) -> int:
        """Number of matrix rows."""
        return self.shape[0]

    @property
    def cols(self) -> int:
        """Number of matrix columns."""
        return self.shape[1]

    @property
    def ndim(self) -> int:
        """Always 2."""
        return 2

    @property
    def size(self) -> int:
        """Occupied prefix length of both arrays (``IA[rows]``)."""
        return int(self._ija[self.rows])

    @property
    def element_type(self) -> ElementType:
        """Element type tag of the value array."""
        return element_type_tag(self.dtype)

    @property
    def growth_factor(self) -> float:
        """Capacity growth factor applied on resize."""
        return float(self.options.growth_factor)

    @property
    def zero(self) -> Any:
        """A freshly synthesized zero of the element type."""
        return zero_of(self.dtype)

    def init_empty(self) -> None:
        """Reset to the empty matrix: empty rows, zero diagonal and sentinel."""
        rows = self.rows
        self._ija[: rows + 1] = rows + 1
        self._a[: rows + 1] = self.zero
        self.ndnz = 0

    def __repr__(self) -> str:
        return (
            f"YaleStorage(shape={self.shape}, element_type={self.element_type.value}, "
            f"index_type={self.index_type.name}, ndnz={self.ndnz}, "
            f"capacity={self.capacity})"
        )

    # ------------------------------------------------------------------
    # Inspection views (copies of the occupied prefix)
    # ------------------------------------------------------------------

    @property
    def ija(self) -> NDArray[np.unsignedinteger]:
        """IA followed by JA."""
        return self._ija[: self.size].copy()

    @property
    def ia(self) -> NDArray[np.unsignedinteger]:
        """Row start offsets, length rows + 1."""
        return self._ija[: self.rows + 1].copy()

    @property
    def ja(self) -> NDArray[np.unsignedinteger]:
        """Column indices of the off-diagonal entries."""
        return self._ija[self.rows + 1 : self.size].copy()

    @property
    def a(self) -> NDArray[Any]:
        """Diagonal, sentinel and off-diagonal values."""
        return self._a[: self.size].copy()

    @property
    def d(self) -> NDArray[Any]:
        """Diagonal values."""
        return self._a[: self.rows].copy()

    @property
    def lu(self) -> NDArray[Any]:
        """Off-diagonal values."""
        return self._a[self.rows + 1 : self.size].copy()

    def row_range(self, row: int) -> tuple[int, int]:
        """Half-open position range ``[IA[row], IA[row+1])`` of a row."""
        return int(self._ija[row]), int(self._ija[row + 1])

    def row_view(self, row: int) -> tuple[NDArray[np.unsignedinteger], NDArray[Any]]:
        """Views of a row's off-diagonal columns and values.

        The views alias internal storage and are invalid after any insertion.
        """
        start, end = self.row_range(row)
        return self._ija[start:end], self._a[start:end]

    def check_invariants(self) -> None:
        """Verify the structural invariants.

        Raises:
            InvariantViolationError: On the first violated invariant.
        """
        rows, cols = self.shape
        if self._ija.size != self.capacity or self._a.size != self.capacity:
            raise_invariant_violation("array lengths differ from capacity")
        ia = self._ija[: rows + 1].astype(np.int64)
        size = int(ia[-1])
        if int(ia[0]) != rows + 1:
            raise_invariant_violation(f"IA[0] == {int(ia[0])}, expected {rows + 1}")
        if np.any(np.diff(ia) < 0):
            raise_invariant_violation("row start offsets decrease")
        if size > self.capacity:
            raise_invariant_violation(f"size {size} exceeds capacity {self.capacity}")
        if self.ndnz != size - rows - 1:
            raise_invariant_violation(
                f"ndnz {self.ndnz} does not match size {size} for {rows} rows"
            )
        for i in range(rows):
            columns = self._ija[ia[i] : ia[i + 1]].astype(np.int64)
            if columns.size == 0:
                continue
            if np.any(np.diff(columns) <= 0):
                raise_invariant_violation(f"row {i} columns are not strictly increasing")
            if np.any(columns == i):
                raise_invariant_violation(f"row {i} stores its diagonal off-diagonal")
            if int(columns[-1]) >= cols:
                raise_invariant_violation(f"row {i} has a column outside the matrix")
        if self._a[rows] != 0:
            raise_invariant_violation("sentinel slot is not zero")

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    def _check_bounds(self, row: int, col: int) -> tuple[int, int]:
        row = operator.index(row)
        col = operator.index(col)
        if not (0 <= row < self.rows and 0 <= col < self.cols):
            raise_index_out_of_bounds(row, col, self.shape)
        return row, col

    def get(self, row: int, col: int) -> Any:
        """Return the value at (row, col); structurally absent entries are zero."""
        row, col = self._check_bounds(row, col)
        if row == col:
            return self._a[row]

        start, end = self.row_range(row)
        if start == end:
            return self.zero

        pos = find_exact(self._ija, start, end, col)
        if pos == NOT_FOUND:
            return self.zero
        return self._a[pos]

    def set(self, row: int, col: int, value: Any) -> SetResult:
        """Write the value at (row, col), inserting a new entry if needed.

        Args:
            row: Row index.
            col: Column index.
            value: Value convertible to the element type.

        Returns:
            SetResult.REPLACED when an existing slot (or the diagonal) was
            overwritten, SetResult.INSERTED when a new entry was added.

        Raises:
            IndexOutOfBoundsError: If (row, col) is outside the matrix.
            CapacityExceededError: If the insertion cannot fit.
        """
        row, col = self._check_bounds(row, col)
        if row == col:
            self._a[row] = value
            return SetResult.REPLACED

        start, end = self.row_range(row)
        pos, found = find_insertion_point(self._ija, start, end, col)
        if found:
            self._a[pos] = value
            return SetResult.REPLACED

        result = self._insert_at(pos, [col], [value])
        self._bump_row_starts(row, 1)
        self.ndnz += 1
        return result

    def __getitem__(self, key: tuple[int, int]) -> Any:
        row, col = self._unpack_key(key)
        return self.get(row, col)

    def __setitem__(self, key: tuple[int, int], value: Any) -> None:
        row, col = self._unpack_key(key)
        self.set(row, col, value)

    @staticmethod
    def _unpack_key(key: Any) -> tuple[int, int]:
        if not isinstance(key, tuple) or len(key) != 2:
            raise TypeError("yale storage is indexed with a (row, col) pair")
        if isinstance(key[0], slice) or isinstance(key[1], slice):
            raise_unsupported("slicing by coordinate ranges")
        return key[0], key[1]

    def get_slice(self, rows: slice, cols: slice) -> None:
        """Range slicing is not implemented for yale storage.

        Raises:
            UnsupportedOperationError: Always.
        """
        raise_unsupported("slicing by coordinate ranges")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, YaleStorage):
            return NotImplemented
        if other.shape != self.shape:
            return False
        from .structure_ops import equals

        return equals(self, other)

    __hash__ = None  # type: ignore[assignment]

    def copy(self) -> YaleStorage:
        """Deep copy with the same element type."""
        from .structure_ops import copy_with_type

        return copy_with_type(self, self.dtype)

    def astype(self, element_type: ElementType | DTypeLike) -> YaleStorage:
        """Deep copy converted to another element type."""
        from .structure_ops import copy_with_type

        return copy_with_type(self, element_type)

    def to_dense(self) -> NDArray[Any]:
        """Materialize the matrix as a dense numpy array."""
        rows, cols = self.shape
        out = np.zeros(self.shape, dtype=self.dtype)
        k = min(rows, cols)
        diag = np.arange(k)
        out[diag, diag] = self._a[:k]

        ia = self._ija[: rows + 1].astype(np.int64)
        row_ids = np.repeat(np.arange(rows), np.diff(ia))
        out[row_ids, self._ija[rows + 1 : self.size].astype(np.int64)] = self._a[
            rows + 1 : self.size
        ]
        return out

    def to_csr(self) -> Any:
        """Export as a ``scipy.sparse.csr_matrix``."""
        from .structure_ops import to_csr

        return to_csr(self)

    # ------------------------------------------------------------------
    # Insertion engine / capacity manager
    # ------------------------------------------------------------------

    def _convert_values(self, values: Sequence[Any] | None, n: int) -> NDArray[Any]:
        converted = np.zeros(n, dtype=self.dtype)
        if values is None:
            return converted
        if len(values) != n:
            raise_invariant_violation(
                _INSERT_VALUES_LEN_ERROR.format(n_values=len(values), n_columns=n)
            )
        for i, value in enumerate(values):
            converted[i] = value
        return converted

    def _insert_at(
        self,
        pos: int,
        columns: Sequence[int],
        values: Sequence[Any] | None = None,
        *,
        structure_only: bool = False,
    ) -> SetResult:
        """Insert (column, value) pairs at ``pos``, shifting the tail right.

        The caller must bump the row starts after the affected row and update
        ``ndnz``. ``values=None`` inserts zero placeholders.

        Raises:
            InvariantViolationError: If ``pos`` lies in the diagonal/header
                region or past the occupied size.
            CapacityExceededError: If growth beyond max_capacity is required.
        """
        rows = self.rows
        if pos < rows + 1:
            raise_invariant_violation(_INSERT_POS_ERROR.format(pos=pos, start=rows + 1))
        size = self.size
        if pos > size:
            raise_invariant_violation(_INSERT_PAST_END_ERROR.format(pos=pos, size=size))

        n = len(columns)
        new_columns = np.asarray(columns, dtype=self.index_type)
        new_values = self._convert_values(values, n)

        if size + n > self.capacity:
            self._grow(
                size,
                n,
                gap_at=pos,
                gap_columns=new_columns,
                gap_values=new_values,
                structure_only=structure_only,
            )
            return SetResult.INSERTED

        # Slice assignment handles the overlapping tail-to-head shift.
        self._ija[pos + n : size + n] = self._ija[pos:size]
        self._a[pos + n : size + n] = self._a[pos:size]
        self._ija[pos : pos + n] = new_columns
        self._a[pos : pos + n] = new_values
        return SetResult.INSERTED

    def _bump_row_starts(self, row: int, count: int) -> None:
        """Add ``count`` to IA[row+1 .. rows] after inserting into ``row``."""
        self._ija[row + 1 : self.rows + 1] += count

    def _grow(
        self,
        current_size: int,
        extra: int,
        *,
        gap_at: int | None = None,
        gap_columns: NDArray[np.unsignedinteger] | None = None,
        gap_values: NDArray[Any] | None = None,
        structure_only: bool = False,
    ) -> None:
        """Reallocate both arrays with room for ``extra`` more entries.

        With ``gap_at`` set, the new arrays are built with ``extra`` slots
        opened at that position and filled from ``gap_columns``/``gap_values``.
        Both arrays are swapped onto the instance only once fully populated.

        Raises:
            CapacityExceededError: If current_size + extra > max_capacity. The
                instance is left untouched.
        """
        required = current_size + extra
        if required > self.max_capacity:
            raise_capacity_exceeded(
                size=current_size,
                extra=extra,
                max_capacity=self.max_capacity,
                shape=self.shape,
            )

        new_capacity = min(int(self.capacity * self.growth_factor), self.max_capacity)
        new_capacity = max(new_capacity, required)

        new_ija = np.zeros(new_capacity, dtype=self.index_type)
        new_a = np.zeros(new_capacity, dtype=self.dtype)

        if gap_at is None:
            new_ija[:current_size] = self._ija[:current_size]
            if not structure_only:
                new_a[:current_size] = self._a[:current_size]
        else:
            new_ija[:gap_at] = self._ija[:gap_at]
            new_ija[gap_at + extra : required] = self._ija[gap_at:current_size]
            if gap_columns is not None:
                new_ija[gap_at : gap_at + extra] = gap_columns
            if not structure_only:
                new_a[:gap_at] = self._a[:gap_at]
                new_a[gap_at + extra : required] = self._a[gap_at:current_size]
                if gap_values is not None:
                    new_a[gap_at : gap_at + extra] = gap_values

        self._ija, self._a, self.capacity = new_ija, new_a, new_capacity


# Functional interface ------------------------------------------------------


def create(
    element_type: ElementType | DTypeLike | None,
    rows: int,
    cols: int,
    initial_capacity: int | None = None,
    *,
    index_type: DTypeLike | None = None,
    options: StorageOptions | None = None,
) -> YaleStorage:
    """Create an empty yale storage of the given shape and element type.

    ``element_type=None`` selects ``options.default_element_type``.
    """
    storage = YaleStorage.__new__(YaleStorage)
    storage._initialize(
        (rows, cols), element_type, initial_capacity, index_type, options
    )
    return storage


def init_empty(storage: YaleStorage) -> None:
    """Reset ``storage`` to the empty matrix."""
    storage.init_empty()


def get(storage: YaleStorage, row: int, col: int) -> Any:
    """Return the value of ``storage`` at (row, col)."""
    return storage.get(row, col)


def set(storage: YaleStorage, row: int, col: int, value: Any) -> SetResult:  # noqa: A001
    """Write ``value`` at (row, col) of ``storage``."""
    return storage.set(row, col, value)
