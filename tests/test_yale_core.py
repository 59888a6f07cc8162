# tests/test_yale_core.py
"""Unit tests for yale_engine.yale_core.

This module verifies:
- Construction: capacity clamping, index type derivation and hints, shapes.
- Accessors: round trip, zero default, idempotent replace, SetResult values.
- The worked 3x3 layout example.
- Growth: data survives reallocation; growth factor is honored; the maximum
  capacity is enforced without touching the arrays.
- Insertion engine preconditions.
- Slicing and other unsupported operations.
"""

from __future__ import annotations

from fractions import Fraction

import numpy as np
import pytest

from yale_engine import StorageOptions
from yale_engine.dtypes import ElementType
from yale_engine.errors import (
    CapacityClampWarning,
    CapacityExceededError,
    ElementTypeError,
    IndexOutOfBoundsError,
    InvariantViolationError,
    UnsupportedOperationError,
)
from yale_engine.structure_ops import equals
from yale_engine.yale_core import (
    SetResult,
    YaleStorage,
    create,
    get,
    index_dtype_for_shape,
    init_empty,
    max_capacity_for_shape,
    minimum_capacity_for_shape,
    set,  # noqa: A004
)

# -------------------------------------------------------------------
# Construction
# -------------------------------------------------------------------


def test_create_empty_layout() -> None:
    """A fresh storage has empty rows, zero diagonal and sentinel."""
    m = create(ElementType.FLOAT64, 3, 4)
    assert m.shape == (3, 4)
    assert m.ndim == 2
    assert m.size == 4
    assert m.ndnz == 0
    assert m.ia.tolist() == [4, 4, 4, 4]
    assert m.ja.size == 0
    assert m.a.tolist() == [0.0, 0.0, 0.0, 0.0]
    m.check_invariants()


def test_capacity_bounds() -> None:
    """Capacity bounds follow the shape."""
    assert max_capacity_for_shape(3, 3) == 10
    assert max_capacity_for_shape(2, 5) == 11
    assert minimum_capacity_for_shape(3, 3) == 7
    assert minimum_capacity_for_shape(1, 1) == 2


def test_capacity_is_clamped() -> None:
    """Requests below the minimum are raised; above the maximum are clamped."""
    assert create("float64", 3, 3, 1).capacity == 7
    assert create("float64", 3, 3, 9).capacity == 9
    assert create("float64", 3, 3, 1000).capacity == 10


def test_capacity_clamp_warns_when_enabled() -> None:
    """warn_on_clamp emits a CapacityClampWarning."""
    opts = StorageOptions(warn_on_clamp=True)
    with pytest.warns(CapacityClampWarning, match="clamping"):
        m = create("float64", 2, 2, 100, options=opts)
    assert m.capacity == m.max_capacity


def test_capacity_clamp_warning_points_at_caller() -> None:
    """The clamp warning is attributed to the calling line, for both entry points."""
    opts = StorageOptions(warn_on_clamp=True)
    with pytest.warns(CapacityClampWarning) as record:
        create("float64", 2, 2, 100, options=opts)
    assert record[0].filename == __file__

    with pytest.warns(CapacityClampWarning) as record:
        YaleStorage((2, 2), "float64", 100, options=opts)
    assert record[0].filename == __file__


def test_index_type_is_derived_from_shape() -> None:
    """The narrowest unsigned index type that can address the matrix is used."""
    assert create("float64", 10, 10).index_type == np.uint8
    assert create("float64", 300, 2).index_type == np.uint16
    assert index_dtype_for_shape(1000, 1000) == np.uint32


def test_index_type_hint() -> None:
    """Wider hints are accepted; narrow or signed hints are rejected."""
    assert create("float64", 4, 4, index_type=np.uint64).index_type == np.uint64
    with pytest.raises(InvariantViolationError):
        create("float64", 300, 300, index_type=np.uint8)
    with pytest.raises(InvariantViolationError):
        create("float64", 4, 4, index_type=np.int32)


def test_non_2d_shape_is_rejected() -> None:
    """Only 2D shapes are supported."""
    with pytest.raises(InvariantViolationError, match="2D"):
        YaleStorage((2, 2, 2))
    with pytest.raises(ValueError, match="non-negative"):
        YaleStorage((-1, 2))


def test_unsupported_element_type() -> None:
    """Unknown element types are rejected at construction."""
    with pytest.raises(ElementTypeError):
        create("bool", 2, 2)


def test_default_element_type() -> None:
    """Without an element type, the options' default is used."""
    assert YaleStorage((2, 2)).element_type is ElementType.FLOAT64
    opts = StorageOptions(default_element_type="int32")
    m = create(None, 2, 2, options=opts)
    assert m.element_type is ElementType.INT32
    assert YaleStorage((2, 2), options=opts).dtype == np.int32
    assert create(ElementType.COMPLEX128, 2, 2, options=opts).dtype == np.complex128


# -------------------------------------------------------------------
# Accessors
# -------------------------------------------------------------------


def test_worked_3x3_layout(scenario_3x3: YaleStorage) -> None:
    """The diagonal, row headers and off-diagonal region match the layout."""
    m = scenario_3x3
    assert m.d.tolist() == [1.0, 0.0, 0.0]
    assert m.ia.tolist() == [4, 5, 5, 6]
    assert m.ja.tolist() == [2, 1]
    assert m.lu.tolist() == [2.0, 3.0]
    assert m.ija.tolist() == [4, 5, 5, 6, 2, 1]
    assert m.a.tolist() == [1.0, 0.0, 0.0, 0.0, 2.0, 3.0]
    assert m.ndnz == 2
    m.check_invariants()


def test_diagonal_and_off_diagonal_scenario() -> None:
    """A 3x3 matrix reads back its entries and is independent of build order."""
    m = create(ElementType.FLOAT64, 3, 3)
    for i, value in enumerate([1.0, 2.0, 3.0]):
        m.set(i, i, value)
    m.set(0, 2, 5.0)
    m.set(1, 0, 7.0)

    assert m.get(0, 2) == 5.0
    assert m.get(2, 0) == 0.0
    assert m.d.tolist() == [1.0, 2.0, 3.0]
    assert m.ia.tolist() == [4, 5, 6, 6]
    assert m.ja.tolist() == [2, 0]
    assert m.lu.tolist() == [5.0, 7.0]

    reverse = create(ElementType.FLOAT64, 3, 3)
    reverse.set(2, 2, 3.0)
    reverse.set(1, 0, 7.0)
    reverse.set(1, 1, 2.0)
    reverse.set(0, 2, 5.0)
    reverse.set(0, 0, 1.0)

    assert equals(m, reverse)
    assert reverse.ija.tolist() == m.ija.tolist()
    assert reverse.a.tolist() == m.a.tolist()


@pytest.mark.parametrize(("row", "col"), [(0, 0), (0, 3), (2, 1), (3, 0), (1, 2)])
def test_set_then_get_round_trip(row: int, col: int) -> None:
    """get returns exactly what set wrote."""
    m = create("float64", 4, 4)
    m.set(row, col, 7.5)
    assert m.get(row, col) == 7.5
    m.check_invariants()


def test_absent_entries_read_as_zero(scenario_3x3: YaleStorage) -> None:
    """Structurally absent entries read as the element type's zero."""
    m = scenario_3x3
    for row, col in [(1, 0), (1, 2), (2, 0), (0, 1), (1, 1)]:
        value = m.get(row, col)
        assert value == 0
        assert isinstance(value, np.float64)


def test_get_returns_a_value_not_a_reference(scenario_3x3: YaleStorage) -> None:
    """Mutating storage afterwards does not change a value already read."""
    m = scenario_3x3
    before = m.get(1, 0)
    m.set(1, 0, 9.0)
    assert before == 0.0


def test_set_results() -> None:
    """Diagonal and existing slots replace; new positions insert."""
    m = create("int64", 3, 3)
    assert m.set(1, 1, 4) is SetResult.REPLACED
    assert m.set(1, 2, 5) is SetResult.INSERTED
    assert m.set(1, 2, 6) is SetResult.REPLACED
    assert m.set(1, 0, 7) is SetResult.INSERTED
    assert m.ja.tolist() == [0, 2]
    assert m.get(1, 2) == 6


def test_replace_is_idempotent(scenario_3x3: YaleStorage) -> None:
    """Writing the same value twice leaves ndnz and size unchanged."""
    m = scenario_3x3
    m.set(2, 1, 8.0)
    ndnz, size = m.ndnz, m.size
    m.set(2, 1, 8.0)
    assert (m.ndnz, m.size) == (ndnz, size)
    assert m.get(2, 1) == 8.0


def test_insert_keeps_rows_sorted() -> None:
    """Columns inserted out of order end up strictly increasing."""
    m = create("float64", 2, 6)
    for col in [5, 1, 3, 2, 4]:
        m.set(0, col, float(col))
    m.set(1, 0, -1.0)
    assert m.ja.tolist() == [1, 2, 3, 4, 5, 0]
    assert m.ia.tolist() == [3, 8, 9]
    m.check_invariants()


def test_out_of_bounds_access() -> None:
    """Coordinates outside the matrix raise IndexOutOfBoundsError."""
    m = create("float64", 2, 3)
    with pytest.raises(IndexOutOfBoundsError):
        m.get(2, 0)
    with pytest.raises(IndexError):
        m.set(0, 3, 1.0)
    with pytest.raises(IndexOutOfBoundsError):
        m.get(-1, 0)


def test_item_access(scenario_3x3: YaleStorage) -> None:
    """Subscripting with (row, col) pairs maps to get/set."""
    m = scenario_3x3
    m[1, 2] = 4.0
    assert m[1, 2] == 4.0
    assert m[0, 2] == 2.0


def test_functional_interface() -> None:
    """Module-level get/set/init_empty delegate to the storage."""
    m = create("int32", 2, 2)
    assert set(m, 0, 1, 3) is SetResult.INSERTED
    assert get(m, 0, 1) == 3
    init_empty(m)
    assert m.ndnz == 0
    assert get(m, 0, 1) == 0
    m.check_invariants()


def test_rectangular_tall_matrix() -> None:
    """Rows beyond the column count have no diagonal slot in use."""
    m = create("float64", 4, 2)
    m.set(3, 1, 2.0)
    m.set(2, 0, 1.0)
    m.set(1, 1, 5.0)
    assert m.get(3, 1) == 2.0
    assert m.get(2, 0) == 1.0
    assert m.get(1, 1) == 5.0
    assert np.array_equal(
        m.to_dense(), np.array([[0, 0], [0, 5], [1, 0], [0, 2]], dtype=float)
    )
    m.check_invariants()


def test_object_element_type_keeps_exact_values() -> None:
    """Boxed storage keeps arbitrary precision values."""
    m = create(ElementType.OBJECT, 2, 2)
    m.set(0, 1, Fraction(1, 3))
    m.set(1, 1, 10**30)
    assert m.get(0, 1) == Fraction(1, 3)
    assert m.get(1, 1) == 10**30
    assert m.get(1, 0) == 0


# -------------------------------------------------------------------
# Growth
# -------------------------------------------------------------------


def test_growth_preserves_data() -> None:
    """Filling a matrix past its initial capacity keeps every value."""
    n = 6
    m = create("float64", n, n)
    initial = m.capacity
    expected = np.zeros((n, n))
    for i in range(n):
        for j in range(n):
            value = float(i * n + j + 1)
            m.set(i, j, value)
            expected[i, j] = value
    assert m.capacity > initial
    assert m.capacity == m.max_capacity
    assert m.size == m.max_capacity
    assert np.array_equal(m.to_dense(), expected)
    m.check_invariants()


def test_growth_factor_is_applied() -> None:
    """A resize multiplies capacity by the growth factor."""
    m = create("float64", 10, 10, options=StorageOptions(growth_factor=2.0))
    assert m.capacity == 21
    for col in range(1, 10):
        m.set(0, col, 1.0)
    for col in range(2, 4):
        m.set(1, col, 1.0)
    assert m.size == 22
    assert m.capacity == 42


def test_capacity_exceeded_leaves_storage_untouched() -> None:
    """Growth beyond the maximum fails and leaves the arrays as they were."""
    m = create("float64", 3, 3)
    before_ija = m._ija.copy()
    with pytest.raises(CapacityExceededError):
        m._grow(m.size, m.max_capacity)
    assert np.array_equal(m._ija, before_ija)
    m.check_invariants()


def test_insert_before_header_region_is_rejected(scenario_3x3: YaleStorage) -> None:
    """Insertion positions inside the diagonal/header region are a violation."""
    with pytest.raises(InvariantViolationError, match="off-diagonal region"):
        scenario_3x3._insert_at(2, [1], [1.0])


def test_insert_past_size_is_rejected(scenario_3x3: YaleStorage) -> None:
    """Insertion positions past the occupied prefix are a violation."""
    with pytest.raises(InvariantViolationError, match="past the occupied size"):
        scenario_3x3._insert_at(scenario_3x3.size + 1, [1], [1.0])


def test_failed_conversion_does_not_mutate() -> None:
    """A value that cannot be converted leaves the storage unchanged."""
    m = create("float64", 3, 3)
    with pytest.raises((TypeError, ValueError)):
        m.set(0, 1, "not a number")
    assert m.ndnz == 0
    m.check_invariants()


# -------------------------------------------------------------------
# Unsupported operations / misc
# -------------------------------------------------------------------


def test_slicing_is_unsupported(scenario_3x3: YaleStorage) -> None:
    """Range slicing raises UnsupportedOperationError."""
    with pytest.raises(UnsupportedOperationError, match="not supported"):
        _ = scenario_3x3[0:2, 1]
    with pytest.raises(NotImplementedError):
        scenario_3x3[0, :] = 1.0
    with pytest.raises(UnsupportedOperationError):
        scenario_3x3.get_slice(slice(0, 2), slice(0, 2))


def test_single_index_key_is_a_type_error(scenario_3x3: YaleStorage) -> None:
    """Keys must be (row, col) pairs."""
    with pytest.raises(TypeError):
        _ = scenario_3x3[0]


def test_check_invariants_detects_corruption(scenario_3x3: YaleStorage) -> None:
    """check_invariants flags unsorted columns and a dirty sentinel."""
    m = scenario_3x3.copy()
    m._a[m.rows] = 1.0
    with pytest.raises(InvariantViolationError, match="sentinel"):
        m.check_invariants()

    m = create("float64", 1, 4)
    m.set(0, 1, 1.0)
    m.set(0, 2, 1.0)
    m._ija[2], m._ija[3] = 2, 1
    with pytest.raises(InvariantViolationError, match="strictly increasing"):
        m.check_invariants()


def test_inspection_views_are_copies(scenario_3x3: YaleStorage) -> None:
    """Mutating an inspection view does not affect the storage."""
    ja = scenario_3x3.ja
    ja[0] = 0
    assert scenario_3x3.ja.tolist() == [2, 1]


def test_storage_is_unhashable(scenario_3x3: YaleStorage) -> None:
    """Mutable storage defines equality and is therefore unhashable."""
    with pytest.raises(TypeError):
        hash(scenario_3x3)


def test_repr_mentions_shape_and_type(scenario_3x3: YaleStorage) -> None:
    """repr names the shape and element type."""
    text = repr(scenario_3x3)
    assert "(3, 3)" in text
    assert "float64" in text
