from __future__ import annotations

from collections.abc import Sequence
from typing import TypeVar

MAX_ENTRIES_PER_PUT = 10

T = TypeVar("T")


def partition(items: Sequence[T], *, size: int = MAX_ENTRIES_PER_PUT) -> list[list[T]]:
    """Split ``items`` into consecutive batches of at most ``size`` elements.

    Batch ``i`` holds ``items[i * size:(i + 1) * size]``; only the last batch may
    be partial and an empty input yields no batches.
    """
    if size <= 0:
        raise ValueError("size must be > 0")

    return [list(items[start:start + size]) for start in range(0, len(items), size)]
