"""
Core catalog engine: item model, bucket store, bucketing and merge.

This package contains the foundation of datcatalog:
- Models: DatItem variants, Machine, Source, Header and the bucketing enums
- ItemCatalog: key → item list store with incremental statistics
- HashTierSelectorImpl: strongest hash every eligible item carries
- MergerImpl + Sorter: canonical in-bucket order and duplicate merge policy
- KeyLockTable: per-key locks sharded by xxHash64

All components are pure Python and take no part in reading or writing DAT files.
"""

from .models import (
    DatItem, HashedItem, Rom, Disk, Media, Blank, Machine, Source, Header,
    ItemType, ItemStatus, DupeType, MachineType, HashType, ItemKey, MergeMode,
    ITEM_REGISTRY, item_from_dict, items_equal, blank_item)
from .statistics import ItemStatistics
from .hash_tier import HashTierSelectorImpl
from .sorter import Sorter, natural_key
from .merger import MergerImpl
from .locks import KeyLockTable
from .catalog import ItemCatalog

__all__ = [
    "DatItem",
    "HashedItem",
    "Rom",
    "Disk",
    "Media",
    "Blank",
    "Machine",
    "Source",
    "Header",
    "ItemType",
    "ItemStatus",
    "DupeType",
    "MachineType",
    "HashType",
    "ItemKey",
    "MergeMode",
    "ITEM_REGISTRY",
    "item_from_dict",
    "items_equal",
    "blank_item",
    "ItemStatistics",
    "HashTierSelectorImpl",
    "Sorter",
    "natural_key",
    "MergerImpl",
    "KeyLockTable",
    "ItemCatalog",
]
