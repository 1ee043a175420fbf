"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/statistics.py
Incremental statistics for a catalog.

Every mutation of the bucket store is mirrored here by a matching add/remove call,
so the counters always equal a from-scratch recount of the stored items.
All counters are guarded by one dedicated lock that is never held while a
per-key lock is requested.
"""
import threading
from collections import Counter
from typing import Dict, Iterable, Optional, Tuple

from datcatalog.core.models import DatItem, HashedItem, HashType, ItemStatus, ItemType, Rom
from datcatalog.utils.convert_utils import ConvertUtils


class ItemStatistics:
    """
    Running counts over every stored item (removed-flagged items included).

    Tracks:
    - total and per-ItemType counts
    - total size of non-Nodump Roms
    - hash presence per HashType on non-Nodump hash-bearing items
    - per-ItemStatus counts and the removed-flag count
    - number of distinct machines
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._reset_counters()

    def _reset_counters(self) -> None:
        self.total_count: int = 0
        self.removed_count: int = 0
        self.total_size: int = 0
        self.type_counts: Counter = Counter()
        self.hash_counts: Counter = Counter()
        self.status_counts: Counter = Counter()
        self._machines: Counter = Counter()

    # ----- mutation -----

    def add_item(self, item: Optional[DatItem]) -> None:
        if item is None:
            return
        with self._lock:
            self._apply(item, 1)

    def remove_item(self, item: Optional[DatItem]) -> None:
        if item is None:
            return
        with self._lock:
            self._apply(item, -1)

    def add_items(self, items: Iterable[DatItem]) -> None:
        with self._lock:
            for item in items:
                if item is not None:
                    self._apply(item, 1)

    def remove_items(self, items: Iterable[DatItem]) -> None:
        with self._lock:
            for item in items:
                if item is not None:
                    self._apply(item, -1)

    def _apply(self, item: DatItem, sign: int) -> None:
        self.total_count += sign
        if item.remove:
            self.removed_count += sign

        self.type_counts[item.item_type] += sign

        machine_name = item.machine.name
        self._machines[machine_name] += sign
        if self._machines[machine_name] == 0:
            del self._machines[machine_name]

        if not isinstance(item, HashedItem):
            return

        if item.status is not None:
            self.status_counts[item.status] += sign

        if item.status == ItemStatus.NODUMP:
            return

        if isinstance(item, Rom):
            self.total_size += sign * (item.size or 0)

        for hash_type in item.hash_fields:
            if item.get_hash(hash_type):
                self.hash_counts[hash_type] += sign

    def add_statistics(self, other: "ItemStatistics") -> None:
        """Folds the counters of another aggregator into this one."""
        with other._lock:
            counters = (other.total_count, other.removed_count, other.total_size,
                        Counter(other.type_counts), Counter(other.hash_counts),
                        Counter(other.status_counts), Counter(other._machines))
        with self._lock:
            total, removed, size, types, hashes, statuses, machines = counters
            self.total_count += total
            self.removed_count += removed
            self.total_size += size
            self.type_counts.update(types)
            self.hash_counts.update(hashes)
            self.status_counts.update(statuses)
            self._machines.update(machines)

    def reset(self) -> None:
        with self._lock:
            self._reset_counters()

    def load(self, other: "ItemStatistics") -> None:
        """Replaces every counter with the values of another aggregator."""
        self.reset()
        self.add_statistics(other)

    # ----- queries -----

    @property
    def game_count(self) -> int:
        with self._lock:
            return sum(1 for name, count in self._machines.items() if name is not None and count > 0)

    @property
    def eligible_hash_count(self) -> int:
        """Hash-bearing items expected to carry hashes (Rom + Disk + Media − Nodump)."""
        with self._lock:
            return self._eligible()

    def _eligible(self) -> int:
        hashed = (self.type_counts[ItemType.ROM] + self.type_counts[ItemType.DISK]
                  + self.type_counts[ItemType.MEDIA])
        return hashed - self.status_counts[ItemStatus.NODUMP]

    def count(self, item_type: ItemType) -> int:
        with self._lock:
            return self.type_counts[item_type]

    def hash_count(self, hash_type: HashType) -> int:
        with self._lock:
            return self.hash_counts[hash_type]

    def status_count(self, status: ItemStatus) -> int:
        with self._lock:
            return self.status_counts[status]

    def snapshot(self) -> Dict[str, int]:
        """Consistent copy of every counter as a flat dict."""
        with self._lock:
            data = {
                "total": self.total_count,
                "removed": self.removed_count,
                "total_size": self.total_size,
                "game_count": sum(1 for name, c in self._machines.items() if name is not None and c > 0),
                "eligible": self._eligible(),
            }
            for item_type in ItemType:
                data[f"type_{item_type.value}"] = self.type_counts[item_type]
            for hash_type in HashType:
                data[f"hash_{hash_type.value}"] = self.hash_counts[hash_type]
            for status in ItemStatus:
                data[f"status_{status.value}"] = self.status_counts[status]
            return data

    def compare(self, other: "ItemStatistics") -> Dict[str, Tuple[int, int]]:
        """Counters that differ, as {name: (this value, other value)}."""
        mine = self.snapshot()
        theirs = other.snapshot()
        return {name: (mine[name], theirs[name]) for name in mine if mine[name] != theirs[name]}

    def summary(self) -> str:
        data = self.snapshot()
        lines = [
            "📊 Catalog Statistics:",
            f"Items: {data['total']} (removed: {data['removed']})",
            f"Machines: {data['game_count']}",
            f"Total size: {ConvertUtils.bytes_to_human(data['total_size'])}\n",
            "Items by type:",
        ]
        for item_type in ItemType:
            count = data[f"type_{item_type.value}"]
            if count:
                lines.append(f"  {item_type.value}: {count}")

        lines.append("Hashes:")
        for hash_type in HashType:
            lines.append(f"  {hash_type.value}: {data[f'hash_{hash_type.value}']}")

        lines.append("Status:")
        for status in ItemStatus:
            lines.append(f"  {status.value}: {data[f'status_{status.value}']}")

        return "\n".join(lines)

    def __repr__(self):
        return f"<ItemStatistics total={self.total_count}, removed={self.removed_count}>"
