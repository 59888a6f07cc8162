# src/yale_engine/search.py
"""Binary search primitives over one row of a yale index array.

Both searches operate on the half-open range ``ija[left:right]`` of column
indices belonging to a single row, which is strictly increasing by invariant,
and return absolute positions into ``ija``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Final

import numpy as np

if TYPE_CHECKING:
    from numpy.typing import NDArray

NOT_FOUND: Final[int] = -1


def find_insertion_point(
    ija: NDArray[np.unsignedinteger],
    left: int,
    right: int,
    key: int,
) -> tuple[int, bool]:
    """Locate ``key`` in a sorted row, or where it would be inserted.

    Args:
        ija: Index array.
        left: First position of the row.
        right: One past the last position of the row.
        key: Column index to look for.

    Returns:
        Tuple ``(position, found)``. When ``found`` is False, inserting ``key``
        at ``position`` keeps the row sorted; ``left <= position <= right``.
    """
    if left >= right:
        return left, False
    row = ija[left:right]
    offset = int(np.searchsorted(row, key, side="left"))
    pos = left + offset
    found = offset < row.size and int(row[offset]) == key
    return pos, found


def find_exact(
    ija: NDArray[np.unsignedinteger],
    left: int,
    right: int,
    key: int,
) -> int:
    """Return the position of ``key`` in a sorted row, or ``NOT_FOUND``."""
    pos, found = find_insertion_point(ija, left, right, key)
    return pos if found else NOT_FOUND
