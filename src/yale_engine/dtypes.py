# src/yale_engine/dtypes.py
"""Element-type and index-type resolution for yale storage.

Element types are resolved once, at construction, into a numpy dtype; index
types are the narrowest unsigned numpy integer able to address the storage.
Nothing downstream re-interprets the arrays per call.
"""

from __future__ import annotations

from enum import StrEnum
from typing import TYPE_CHECKING, Any, Final

import numpy as np

from .errors import ElementTypeError

if TYPE_CHECKING:
    from numpy.typing import DTypeLike


_UNSUPPORTED_ELEMENT_TYPE_ERROR = (
    "Unsupported element type {dtype!r}; expected one of {allowed}"
)
_INDEX_TOO_LARGE_ERROR = "No unsigned index type can represent {value}"


class ElementType(StrEnum):
    """Tags for the value representations yale storage supports.

    ``OBJECT`` stores generic boxed Python values, which is how arbitrary
    precision numbers (``int``, ``fractions.Fraction``, ``decimal.Decimal``)
    are kept.
    """

    INT8 = "int8"
    INT16 = "int16"
    INT32 = "int32"
    INT64 = "int64"
    FLOAT32 = "float32"
    FLOAT64 = "float64"
    COMPLEX64 = "complex64"
    COMPLEX128 = "complex128"
    OBJECT = "object"


_SUPPORTED: Final[frozenset[np.dtype[Any]]] = frozenset(
    np.dtype(tag.value) for tag in ElementType
)

INDEX_DTYPES: Final[tuple[np.dtype[Any], ...]] = (
    np.dtype(np.uint8),
    np.dtype(np.uint16),
    np.dtype(np.uint32),
    np.dtype(np.uint64),
)


def resolve_element_type(element_type: ElementType | DTypeLike) -> np.dtype[Any]:
    """Resolve an element type tag or dtype-like into a supported numpy dtype.

    Args:
        element_type: An ElementType, a dtype name, a numpy dtype or a scalar type.

    Raises:
        ElementTypeError: If the dtype is not a supported element type.

    Returns:
        The numpy dtype used for the value array.
    """
    try:
        dtype = np.dtype(
            element_type.value
            if isinstance(element_type, ElementType)
            else element_type
        )
    except TypeError as exc:
        msg = _UNSUPPORTED_ELEMENT_TYPE_ERROR.format(
            dtype=element_type, allowed=[t.value for t in ElementType]
        )
        raise ElementTypeError(msg) from exc

    if dtype not in _SUPPORTED:
        msg = _UNSUPPORTED_ELEMENT_TYPE_ERROR.format(
            dtype=element_type, allowed=[t.value for t in ElementType]
        )
        raise ElementTypeError(msg)
    return dtype


def element_type_tag(dtype: np.dtype[Any]) -> ElementType:
    """Return the ElementType tag for a resolved dtype."""
    return ElementType(np.dtype(dtype).name)


def zero_of(dtype: np.dtype[Any]) -> Any:
    """Synthesize a zero of the given element type.

    Boxed (object) storage uses the Python integer ``0``, which compares equal
    to the zero of every numeric type.
    """
    if dtype.kind == "O":
        return 0
    return dtype.type(0)


def smallest_index_dtype(max_value: int) -> np.dtype[Any]:
    """Return the narrowest unsigned integer dtype holding ``max_value``.

    Args:
        max_value: Largest index or offset that must be representable.

    Raises:
        OverflowError: If even uint64 is too narrow.

    Returns:
        Unsigned numpy integer dtype.
    """
    for dtype in INDEX_DTYPES:
        if max_value <= np.iinfo(dtype).max:
            return dtype
    raise OverflowError(_INDEX_TOO_LARGE_ERROR.format(value=max_value))


def common_element_type(*dtypes: np.dtype[Any]) -> np.dtype[Any]:
    """Return the element type both operands of a binary operation cast to."""
    return resolve_element_type(np.result_type(*dtypes))
