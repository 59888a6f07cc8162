# src/yale_engine/errors.py
"""Error and warning types for yale_engine.

This module centralizes:
- a machine-readable ErrorCode for every failure class,
- explicit error classes that also derive from the matching builtin, so callers
  can catch either the yale_engine type or the familiar Python one, and
- small ``raise_*`` helpers producing standardized messages.

Error kinds:
- CapacityExceededError: growth would exceed the matrix's maximum capacity.
  The operation aborts and the storage keeps its last consistent arrays.
- InvariantViolationError: a programming error in calling code (insertion into
  the header region, non-2D shapes, corrupted structure). Never silently fixed.
- UnsupportedOperationError: a feature that is intentionally not implemented.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Final

_CAPACITY_EXCEEDED_MSG: Final[str] = (
    "insertion of {extra} entries at size {size} exceeds maximum yale matrix "
    "size {max_capacity} for shape {shape}"
)
_INVARIANT_MSG: Final[str] = "Yale invariant violated: {detail}"
_UNSUPPORTED_MSG: Final[str] = "{operation} is not supported for yale storage"
_INDEX_OOB_MSG: Final[str] = "index ({row}, {col}) is out of bounds for shape {shape}"


class ErrorCode(StrEnum):
    """Machine-readable classification for yale_engine failures."""

    CAPACITY_EXCEEDED = "capacity_exceeded"
    INVARIANT_VIOLATION = "invariant_violation"
    UNSUPPORTED_OPERATION = "unsupported_operation"
    SHAPE_MISMATCH = "shape_mismatch"
    INDEX_OUT_OF_BOUNDS = "index_out_of_bounds"
    INVALID_LEGACY_FORMAT = "invalid_legacy_format"
    UNSUPPORTED_ELEMENT_TYPE = "unsupported_element_type"
    INVALID_SETTINGS = "invalid_settings"


class YaleEngineError(Exception):
    """Base exception for yale_engine errors."""

    default_code: ErrorCode | None = None

    def __init__(self, message: str, *, code: ErrorCode | None = None) -> None:
        """
        Initialize a YaleEngineError.

        Args:
            message: Human-readable error message.
            code: Optional machine-readable error code; defaults to the
                class's ``default_code``.
        """
        super().__init__(message)
        self.code: ErrorCode | None = code if code is not None else self.default_code


class CapacityExceededError(YaleEngineError, MemoryError):
    """Raised when a resize would exceed the maximum capacity of a matrix."""

    default_code = ErrorCode.CAPACITY_EXCEEDED


class InvariantViolationError(YaleEngineError, RuntimeError):
    """Raised when calling code breaks a structural precondition."""

    default_code = ErrorCode.INVARIANT_VIOLATION


class UnsupportedOperationError(YaleEngineError, NotImplementedError):
    """Raised for operations yale storage deliberately does not implement."""

    default_code = ErrorCode.UNSUPPORTED_OPERATION


class ShapeMismatchError(YaleEngineError, ValueError):
    """Raised when operand shapes are incompatible."""

    default_code = ErrorCode.SHAPE_MISMATCH


class IndexOutOfBoundsError(YaleEngineError, IndexError):
    """Raised when coordinates fall outside the matrix."""

    default_code = ErrorCode.INDEX_OUT_OF_BOUNDS


class LegacyFormatError(YaleEngineError, ValueError):
    """Raised when a (row-pointer, column-index, value) triple is malformed."""

    default_code = ErrorCode.INVALID_LEGACY_FORMAT


class ElementTypeError(YaleEngineError, TypeError):
    """Raised when an element type cannot be stored."""

    default_code = ErrorCode.UNSUPPORTED_ELEMENT_TYPE


class EngineSettingsError(YaleEngineError, ValueError):
    """Raised when engine settings cannot be loaded or validated."""

    default_code = ErrorCode.INVALID_SETTINGS


class YaleEngineWarning(RuntimeWarning):
    """Base warning category for recoverable yale_engine conditions."""


class DuplicateEntryWarning(YaleEngineWarning):
    """Emitted when a legacy import sums duplicate coordinates."""


class CapacityClampWarning(YaleEngineWarning):
    """Emitted when a requested capacity is clamped to the maximum."""


def raise_capacity_exceeded(
    *,
    size: int,
    extra: int,
    max_capacity: int,
    shape: tuple[int, int],
) -> None:
    """Raise a standardized CapacityExceededError.

    Args:
        size: Occupied size at the time of the request.
        extra: Number of additional entries requested.
        max_capacity: Largest capacity the matrix may have.
        shape: Matrix shape (for the message).

    Raises:
        CapacityExceededError: Always.
    """
    msg = _CAPACITY_EXCEEDED_MSG.format(
        extra=extra, size=size, max_capacity=max_capacity, shape=shape
    )
    raise CapacityExceededError(msg)


def raise_invariant_violation(detail: str) -> None:
    """Raise a standardized InvariantViolationError.

    Args:
        detail: Description of the broken precondition.

    Raises:
        InvariantViolationError: Always.
    """
    raise InvariantViolationError(_INVARIANT_MSG.format(detail=detail))


def raise_unsupported(operation: str) -> None:
    """Raise a standardized UnsupportedOperationError.

    Args:
        operation: Name of the unsupported operation.

    Raises:
        UnsupportedOperationError: Always.
    """
    raise UnsupportedOperationError(_UNSUPPORTED_MSG.format(operation=operation))


def raise_index_out_of_bounds(row: int, col: int, shape: tuple[int, int]) -> None:
    """Raise a standardized IndexOutOfBoundsError.

    Args:
        row: Requested row.
        col: Requested column.
        shape: Matrix shape.

    Raises:
        IndexOutOfBoundsError: Always.
    """
    raise IndexOutOfBoundsError(_INDEX_OOB_MSG.format(row=row, col=col, shape=shape))


def raise_shape_mismatch(*, operation: str, left: object, right: object) -> None:
    """Raise a standardized ShapeMismatchError.

    Args:
        operation: Operation that received the operands.
        left: Left operand shape (or expected shape).
        right: Right operand shape (or observed shape).

    Raises:
        ShapeMismatchError: Always.
    """
    msg = f"{operation}: incompatible shapes {left!r} and {right!r}."
    raise ShapeMismatchError(msg)
