"""yale_engine new-Yale sparse matrix storage package."""

from __future__ import annotations

from .config import (
    DEFAULT_OPTIONS,
    GROWTH_FACTOR,
    StorageOptions,
    YaleEngineSettings,
    load_settings,
)
from .dtypes import ElementType
from .errors import (
    CapacityClampWarning,
    CapacityExceededError,
    DuplicateEntryWarning,
    ElementTypeError,
    EngineSettingsError,
    ErrorCode,
    IndexOutOfBoundsError,
    InvariantViolationError,
    LegacyFormatError,
    ShapeMismatchError,
    UnsupportedOperationError,
    YaleEngineError,
    YaleEngineWarning,
)
from .sparse_multiply import multiply
from .structure_ops import (
    combine,
    copy_with_type,
    equals,
    from_csr,
    from_dense,
    import_legacy,
    merge_structure,
    to_csr,
    transpose,
)
from .yale_core import SetResult, YaleStorage, create, get, init_empty, set  # noqa: A004

__all__ = [
    "DEFAULT_OPTIONS",
    "GROWTH_FACTOR",
    "CapacityClampWarning",
    "CapacityExceededError",
    "DuplicateEntryWarning",
    "ElementType",
    "ElementTypeError",
    "EngineSettingsError",
    "ErrorCode",
    "IndexOutOfBoundsError",
    "InvariantViolationError",
    "LegacyFormatError",
    "SetResult",
    "ShapeMismatchError",
    "StorageOptions",
    "UnsupportedOperationError",
    "YaleEngineError",
    "YaleEngineSettings",
    "YaleEngineWarning",
    "YaleStorage",
    "combine",
    "copy_with_type",
    "create",
    "equals",
    "from_csr",
    "from_dense",
    "get",
    "import_legacy",
    "init_empty",
    "load_settings",
    "merge_structure",
    "multiply",
    "set",
    "to_csr",
    "transpose",
]

__version__ = "0.1.0"
