"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

store/memory.py
In-process persistence collaborator: a dict of key → item list.
"""
import threading
from typing import Dict, List

from datcatalog.core.interfaces import CatalogStore
from datcatalog.core.models import DatItem
from datcatalog.errors import StoreUnavailableError


class MemoryStore(CatalogStore):
    """
    Keeps buckets in memory. Every call runs under one internal lock, which makes
    fetch() and replace() atomic per key. fetch() returns a new list holding the
    stored item objects.
    """

    def __init__(self):
        self._buckets: Dict[str, List[DatItem]] = {}
        self._lock = threading.Lock()
        self._closed = False

    def _check_open(self) -> None:
        if self._closed:
            raise StoreUnavailableError("Memory store is closed")

    def ensure_key(self, key: str) -> bool:
        with self._lock:
            self._check_open()
            if key in self._buckets:
                return True
            self._buckets[key] = []
            return False

    def fetch(self, key: str) -> List[DatItem]:
        with self._lock:
            self._check_open()
            return list(self._buckets.get(key, []))

    def replace(self, key: str, items: List[DatItem]) -> None:
        with self._lock:
            self._check_open()
            self._buckets[key] = list(items)

    def delete_key(self, key: str) -> None:
        with self._lock:
            self._check_open()
            self._buckets.pop(key, None)

    def all_keys(self) -> List[str]:
        with self._lock:
            self._check_open()
            return list(self._buckets.keys())

    def close(self) -> None:
        with self._lock:
            self._closed = True
            self._buckets.clear()

    def __repr__(self):
        return f"<MemoryStore keys={len(self._buckets)}>"
