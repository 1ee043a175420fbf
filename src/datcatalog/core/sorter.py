"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/sorter.py
Pure sorting logic for buckets and bucket keys, with no dependencies outside core.
Keys are ordered the way people read them ("disk2" before "disk10").
"""
import re
from functools import lru_cache
from typing import Iterable, List, Tuple

from datcatalog.core.models import DatItem, HashType

# Pre-compiled regex pattern (performance optimization)
_PATTERN_DIGITS = re.compile(r'(\d+)')


@lru_cache(maxsize=8192)
def natural_key(value: str) -> Tuple:
    """
    Sort key for natural (human) ordering.

    Splitting on digit runs always yields text at even positions and numbers at odd
    positions, so the parts compare without mixing types. The raw string breaks ties
    ("007" vs "7", "A" vs "a") so the order is total.

    Examples:
        "Game 2" < "Game 10"
        "disk1.chd" < "disk01.chd" < "disk2.chd"
    """
    parts = _PATTERN_DIGITS.split(value.lower())
    converted = tuple(int(part) if index % 2 else part for index, part in enumerate(parts))
    return converted, value


class Sorter:
    """
    Canonical ordering of items inside a bucket.
    Sorting priority (applied lexicographically):
    1. Variant kind (ItemType declaration order)
    2. Item name, natural order
    3. Hashes, weakest to strongest, lowercase
    4. Source index (lower catalog index first)
    5. Machine name, natural order
    The sort is stable, so fully tied items keep their relative order.
    """

    @staticmethod
    def item_sort_key(item: DatItem) -> Tuple:
        hashes = tuple((item.get_hash(t) or "").lower() for t in HashType.exact_tiers())
        return (
            item.item_type.sort_index,
            natural_key(item.name or ""),
            hashes,
            item.source.index,
            natural_key(item.machine.name or ""),
        )

    @staticmethod
    def sort_items(items: Iterable[DatItem]) -> List[DatItem]:
        """Returns a new list in canonical order; None entries are dropped."""
        return sorted((i for i in items if i is not None), key=Sorter.item_sort_key)

    @staticmethod
    def sort_keys(keys: Iterable[str]) -> List[str]:
        return sorted((k for k in keys if k is not None), key=natural_key)
