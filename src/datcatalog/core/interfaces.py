"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

interfaces.py

Defines core interfaces (Protocols) used throughout the catalog engine.
These protocols enforce structural typing using Python's `typing.Protocol` so stores,
selectors and mergers can be swapped without touching the catalog itself.

Key Components:
---------------
- CatalogStore: Minimal persistence contract the bucket store is built on.
- HashTierSelector: Picks the strongest hash every eligible item carries.
- Merger: Detects and flags duplicates inside one bucket.
"""

from typing import Protocol, List, TYPE_CHECKING
from datcatalog.core.models import DatItem, ItemKey

if TYPE_CHECKING:
    from datcatalog.core.statistics import ItemStatistics


class CatalogStore(Protocol):
    """
    Persistence collaborator behind the bucket store.

    fetch() and replace() must be atomic per key; no cross-key transactions are needed.
    Implementations raise StoreUnavailableError when the backend cannot be reached.
    """

    def ensure_key(self, key: str) -> bool:
        """Creates the key if missing. Returns True if it already existed."""
        ...

    def fetch(self, key: str) -> List[DatItem]:
        """Items stored under the key in insertion order; empty list for unknown keys."""
        ...

    def replace(self, key: str, items: List[DatItem]) -> None:
        """Replaces the items stored under the key, creating the key if needed."""
        ...

    def delete_key(self, key: str) -> None:
        """Deletes the key and its items. Unknown keys are ignored."""
        ...

    def all_keys(self) -> List[str]:
        """Every key currently known to the store."""
        ...

    def close(self) -> None:
        ...


class HashTierSelector(Protocol):
    """Interface for choosing the default hash bucketing mode."""

    def select(self, stats: "ItemStatistics") -> ItemKey:
        """
        Args:
            stats: Live statistics of the catalog.

        Returns:
            The strongest hash key carried by every eligible item, CRC otherwise.
        """
        ...


class Merger(Protocol):
    """Interface for duplicate detection inside a single bucket."""

    def merge(self, items: List[DatItem]) -> List[DatItem]:
        """
        Flags duplicates in the given (already sorted) items.

        Args:
            items: Items of one bucket in canonical order.

        Returns:
            The same items in the same order; duplicates carry remove=True.
        """
        ...
