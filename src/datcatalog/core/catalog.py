"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/catalog.py
Bucket store and bucketing engine for DAT catalog items.

PIPELINE
--------
parsers → add/add_range/add_machine → bucket_by (relocate) → sort/merge per key
        → sorted_keys + filtered_items(key) → writers

CONCURRENCY
-----------
• Catalog-wide passes run one task per key on a bounded ThreadPoolExecutor
• Each key is guarded by a lock from KeyLockTable (xxHash64 of the key string)
• No task ever holds two key locks: relocation writes the source bucket under the
  source lock, then appends movers to each destination under that destination's lock
• Statistics use their own lock, only ever taken while at most one key lock is held
• stopped_flag is checked before each key, never in the middle of one
• A failing key is logged and recorded in failed_keys; the pass goes on.
  StoreUnavailableError is not isolated and aborts the pass

ERRORS
------
Mutating calls propagate StoreUnavailableError. Read-only queries (keys,
sorted_keys, contains_key, filtered_items) log it and return an empty result.
"""
import logging
import threading
import warnings
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from datcatalog.config import CatalogConfig
from datcatalog.core.hash_tier import HashTierSelectorImpl
from datcatalog.core.interfaces import CatalogStore, HashTierSelector, Merger
from datcatalog.core.locks import KeyLockTable
from datcatalog.core.merger import MergerImpl
from datcatalog.core.models import (
    DatItem, Header, ItemKey, ItemType, Machine, MergeMode, Source, blank_item)
from datcatalog.core.sorter import Sorter
from datcatalog.core.statistics import ItemStatistics
from datcatalog.errors import StatisticsMismatchWarning, StoreUnavailableError

logger = logging.getLogger(__name__)


def _same_stored_item(left: DatItem, right: DatItem) -> bool:
    """True for the same object or an identical serialized copy of it."""
    return left is right or left.to_dict() == right.to_dict()


class ItemCatalog:
    """
    Key → ordered item list mapping with incremental statistics.

    Attributes:
        store: Persistence collaborator holding the buckets
        statistics: Running counters, consistent with every mutation
        header: Header record reported by the parser
        bucketed_by: Current bucketing mode (ItemKey.NULL until bucket_by runs)
        merged_by: Merge mode applied by the last merge pass
        failed_keys: Keys skipped because of an error during the last pass
    """

    def __init__(
        self,
        store: Optional[CatalogStore] = None,
        config: Optional[CatalogConfig] = None,
        selector: Optional[HashTierSelector] = None,
        merger: Optional[Merger] = None,
    ):
        self.config = config or CatalogConfig()
        self.store = store if store is not None else self.config.create_store()
        self.statistics = ItemStatistics()
        self.header = Header()
        self.bucketed_by = ItemKey.NULL
        self.merged_by = MergeMode.NONE
        self.failed_keys: List[str] = []

        self._selector = selector or HashTierSelectorImpl()
        self._merger = merger or MergerImpl()
        self._locks = KeyLockTable(self.config.lock_shards)
        self._state_lock = threading.Lock()
        self._key_context: Tuple[bool, bool] = (
            self.config.normalize_case, self.config.ignore_source_context)

    # =============================
    # Keys
    # =============================

    @property
    def keys(self) -> List[str]:
        """All bucket keys in store order; empty if the store is unavailable."""
        try:
            return self.store.all_keys()
        except StoreUnavailableError as e:
            logger.error(f"Cannot list catalog keys: {e}")
            return []

    @property
    def sorted_keys(self) -> List[str]:
        """All bucket keys in natural order."""
        return Sorter.sort_keys(self.keys)

    def ensure_key(self, key: str) -> bool:
        """Creates the bucket if missing. Returns True if it already existed."""
        with self._locks.lock_for(key):
            return self.store.ensure_key(key)

    def contains_key(self, key: Optional[str]) -> bool:
        if key is None:
            return False
        return key in self.keys

    # =============================
    # Adding items
    # =============================

    def add(self, key: str, item: Optional[DatItem]) -> None:
        """Appends an item to the bucket, creating the bucket if needed."""
        with self._locks.lock_for(key):
            self.store.ensure_key(key)
            if item is None:
                return
            items = self.store.fetch(key)
            items.append(item)
            self.store.replace(key, items)
            self.statistics.add_item(item)

    def add_range(self, key: str, items: Iterable[DatItem]) -> None:
        """Appends several items to the bucket in order."""
        new_items = [i for i in items if i is not None]
        if not new_items:
            return
        with self._locks.lock_for(key):
            self.store.ensure_key(key)
            current = self.store.fetch(key)
            self.store.replace(key, current + new_items)
            self.statistics.add_items(new_items)

    def add_machine(self, machine: Machine, source: Source, items: Iterable[DatItem] = ()) -> int:
        """
        Adds the content items of one machine, each with its own copy of the machine
        and source. A machine without items is kept as a single Blank item.

        Returns:
            Number of items added.
        """
        prepared: List[DatItem] = []
        for item in items:
            if item is None:
                continue
            item.machine = machine.clone()
            item.source = source.clone()
            prepared.append(item)

        if not prepared:
            prepared.append(blank_item(machine, source))

        mode = self.bucketed_by if self.bucketed_by != ItemKey.NULL else ItemKey.MACHINE
        normalize_case, ignore_source_context = self._key_context

        grouped: Dict[str, List[DatItem]] = {}
        for item in prepared:
            key = item.get_key(mode, normalize_case, ignore_source_context)
            grouped.setdefault(key, []).append(item)

        for key, key_items in grouped.items():
            self.add_range(key, key_items)
        return len(prepared)

    def set_header(self, header: Header) -> None:
        self.header = header

    # =============================
    # Reading items
    # =============================

    def get_items(self, key: str) -> List[DatItem]:
        """Every stored item of the bucket, removed-flagged ones included."""
        with self._locks.lock_for(key):
            return self.store.fetch(key)

    def filtered_items(self, key: str) -> List[DatItem]:
        """
        Items writers should emit for the key: not removed and with a machine name.
        Empty if the store is unavailable.
        """
        try:
            with self._locks.lock_for(key):
                items = self.store.fetch(key)
        except StoreUnavailableError as e:
            logger.error(f"Cannot read items for key '{key}': {e}")
            return []

        return [i for i in items if i is not None and not i.remove and i.machine.name is not None]

    def contains(self, key: Optional[str], item: DatItem) -> bool:
        """True if the bucket holds this item or one equal to it."""
        if key is None or not self.contains_key(key):
            return False
        return any(_same_stored_item(item, other) or item.equals(other) for other in self.get_items(key))

    # =============================
    # Removing items
    # =============================

    def remove(self, key: str, item: DatItem) -> bool:
        """
        Removes the first occurrence of the item from the bucket.
        Matches the same object first, then an identical serialized copy, then any equal item.
        """
        with self._locks.lock_for(key):
            if key not in self.store.all_keys():
                return False

            items = self.store.fetch(key)
            serialized = item.to_dict()
            matchers = (
                lambda other: other is item,
                lambda other: other.to_dict() == serialized,
                item.equals,
            )
            for matches in matchers:
                index = next((i for i, other in enumerate(items) if matches(other)), None)
                if index is not None:
                    break
            else:
                return False

            removed = items.pop(index)
            self.store.replace(key, items)
            self.statistics.remove_item(removed)
            return True

    def remove_key(self, key: str) -> bool:
        """Deletes the bucket and all of its items."""
        with self._locks.lock_for(key):
            if key not in self.store.all_keys():
                return False
            self.statistics.remove_items(self.store.fetch(key))
            self.store.delete_key(key)
            return True

    def reset(self, key: str) -> bool:
        """Empties the bucket but keeps the key."""
        with self._locks.lock_for(key):
            if key not in self.store.all_keys():
                return False
            self.statistics.remove_items(self.store.fetch(key))
            self.store.replace(key, [])
            return True

    def clear_empty(self) -> None:
        """Drops buckets that hold nothing but Blank items."""
        for key in self.store.all_keys():
            with self._locks.lock_for(key):
                items = self.store.fetch(key)
                if any(i is not None and i.item_type != ItemType.BLANK for i in items):
                    continue
                self.statistics.remove_items(items)
                self.store.delete_key(key)

    def clear_marked(self) -> None:
        """Physically drops every item flagged for removal."""
        for key in self.store.all_keys():
            with self._locks.lock_for(key):
                items = self.store.fetch(key)
                marked = [i for i in items if i is not None and i.remove]
                if not marked:
                    continue
                self.statistics.remove_items(marked)
                kept = [i for i in items if i is not None and not i.remove]
                if kept:
                    self.store.replace(key, kept)
                else:
                    self.store.delete_key(key)

    # =============================
    # Bucketing and merging
    # =============================

    def get_best_available(self) -> ItemKey:
        """Strongest hash every eligible item carries; recomputed on each call."""
        return self._selector.select(self.statistics)

    def bucket_by(
        self,
        bucket_by: ItemKey,
        merge: MergeMode = MergeMode.NONE,
        normalize_case: Optional[bool] = None,
        ignore_source_context: Optional[bool] = None,
        stopped_flag: Optional[Callable[[], bool]] = None,
        progress_callback: Optional[Callable[[str, int, object], None]] = None,
    ) -> None:
        """
        Re-keys every item by the given mode, then sorts and optionally merges each bucket.

        Args:
            bucket_by: Bucketing mode; ItemKey.NULL keeps the current buckets
            merge: Deduplication mode applied after relocation
            normalize_case: Lowercase hash keys (config default when None)
            ignore_source_context: Machine keys without the source index (config default when None)
            stopped_flag: Returns True when the pass should stop (checked between keys)
            progress_callback: (stage, processed keys, total keys)
        """
        if normalize_case is None:
            normalize_case = self.config.normalize_case
        if ignore_source_context is None:
            ignore_source_context = self.config.ignore_source_context
        context = (normalize_case, ignore_source_context)

        keys = self.store.all_keys()
        if not keys:
            return

        self.failed_keys = []

        if bucket_by != ItemKey.NULL and (bucket_by != self.bucketed_by or context != self._key_context):
            logger.info(f"Organizing items by {bucket_by.display_name}")
            completed = self._run_per_key(
                keys,
                lambda key: self._relocate_key(key, bucket_by, normalize_case, ignore_source_context),
                "Relocating",
                stopped_flag,
                progress_callback,
            )
            if not completed:
                logger.info("Bucketing cancelled")
                return

            self.bucketed_by = bucket_by
            self._key_context = context
            # A new bucketing invalidates any previous merge
            self.merged_by = MergeMode.NONE

        keys = self.store.all_keys()
        if self.merged_by != merge:
            logger.info(f"Deduping items by {merge.value}")
            do_merge = MergerImpl.should_merge(merge, self.bucketed_by)
            completed = self._run_per_key(
                keys,
                lambda key: self._sort_key(key, do_merge),
                "Merging" if do_merge else "Sorting",
                stopped_flag,
                progress_callback,
            )
            if completed:
                self.merged_by = merge
        else:
            self._run_per_key(
                keys,
                lambda key: self._sort_key(key, False),
                "Sorting",
                stopped_flag,
                progress_callback,
            )

    def bucket_by_best_available(self, merge: MergeMode = MergeMode.NONE, **kwargs) -> ItemKey:
        """Buckets by the hash tier chosen from the live population and returns it."""
        mode = self.get_best_available()
        self.bucket_by(mode, merge, **kwargs)
        return mode

    def _run_per_key(
        self,
        keys: List[str],
        func: Callable[[str], None],
        stage: str,
        stopped_flag: Optional[Callable[[], bool]],
        progress_callback: Optional[Callable[[str, int, object], None]],
    ) -> bool:
        """
        Runs func for every key on the worker pool.
        Returns False if the pass was cancelled before every key was processed.
        """
        if stopped_flag and stopped_flag():
            return False

        def task(key: str) -> bool:
            if stopped_flag and stopped_flag():
                return False
            try:
                func(key)
            except StoreUnavailableError:
                raise
            except Exception:
                logger.exception(f"Error processing key '{key}' during {stage.lower()}, skipping")
                with self._state_lock:
                    self.failed_keys.append(key)
            return True

        total = len(keys)
        processed = 0
        cancelled = False

        with ThreadPoolExecutor(max_workers=self.config.max_workers,
                                thread_name_prefix="datcatalog") as executor:
            futures = [executor.submit(task, key) for key in keys]
            for future in as_completed(futures):
                if not future.result():
                    cancelled = True
                processed += 1
                if progress_callback:
                    progress_callback(stage, processed, total)

        if self.failed_keys:
            logger.warning(f"{stage}: skipped {len(self.failed_keys)} key(s) due to errors")
        return not cancelled

    def _relocate_key(self, key: str, mode: ItemKey, normalize_case: bool, ignore_source_context: bool) -> None:
        """Moves items whose key changed out of this bucket, keeping relative order."""
        moves: Dict[str, List[DatItem]] = {}

        with self._locks.lock_for(key):
            items = self.store.fetch(key)
            stay: List[DatItem] = []
            # All keys are computed before anything is written
            for item in items:
                if item is None:
                    continue
                new_key = item.get_key(mode, normalize_case, ignore_source_context)
                if new_key == key:
                    stay.append(item)
                else:
                    moves.setdefault(new_key, []).append(item)

            if not stay:
                self.store.delete_key(key)
            elif moves:
                self.store.replace(key, stay)

        for new_key, moved in moves.items():
            self._append(new_key, moved)

        if moves:
            logger.debug(f"Moved {sum(len(m) for m in moves.values())} item(s) out of '{key}'")

    def _append(self, key: str, items: List[DatItem]) -> None:
        """Appends already-counted items to a bucket (no statistics change)."""
        with self._locks.lock_for(key):
            self.store.ensure_key(key)
            current = self.store.fetch(key)
            self.store.replace(key, current + items)

    def _sort_key(self, key: str, do_merge: bool) -> None:
        """Sorts one bucket into canonical order and merges it if requested."""
        with self._locks.lock_for(key):
            items = self.store.fetch(key)
            sorted_items = Sorter.sort_items(items)

            if do_merge:
                # Merge on copies; the stored bucket is only replaced on success
                merged = self._merger.merge([item.clone() for item in sorted_items])
                self.statistics.remove_items(sorted_items)
                self.statistics.add_items(merged)
                # Filled hashes can move survivors; store in canonical order
                sorted_items = Sorter.sort_items(merged)

            self.store.replace(key, sorted_items)

    # =============================
    # Duplicate lookup
    # =============================

    def get_duplicates(self, item: DatItem, sorted: bool = False) -> List[DatItem]:
        """
        Finds stored duplicates of the item and flags them for removal.

        Args:
            item: Item to match
            sorted: True if the catalog is already bucketed appropriately

        Returns:
            The matched items, now carrying remove=True.
        """
        if self.statistics.total_count == 0:
            return []

        key = self._sort_and_get_key(item, sorted)
        with self._locks.lock_for(key):
            if key not in self.store.all_keys():
                return []

            found: List[DatItem] = []
            left: List[DatItem] = []
            for other in self.store.fetch(key):
                if other.remove or not item.equals(other):
                    left.append(other)
                    continue
                self.statistics.remove_item(other)
                other.remove = True
                self.statistics.add_item(other)
                found.append(other)

            if found:
                self.store.replace(key, found + left)
            return found

    def has_duplicates(self, item: DatItem, sorted: bool = False) -> bool:
        """True if any stored item equals the given one."""
        if self.statistics.total_count == 0:
            return False

        key = self._sort_and_get_key(item, sorted)
        if not self.contains_key(key):
            return False
        return any(item.equals(other) for other in self.get_items(key))

    def _sort_and_get_key(self, item: DatItem, sorted: bool) -> str:
        if not sorted:
            self.bucket_by(self.get_best_available(), MergeMode.NONE)
        normalize_case, ignore_source_context = self._key_context
        return item.get_key(self.bucketed_by, normalize_case, ignore_source_context)

    # =============================
    # Statistics
    # =============================

    def recalculate_stats(self) -> Dict[str, Tuple[int, int]]:
        """
        Rebuilds statistics from the stored items.

        A disagreement with the incremental counters is reported with a
        StatisticsMismatchWarning and the rebuilt counters are adopted.

        Returns:
            {counter: (incremental, rebuilt)} for every counter that differed.
        """
        rebuilt = ItemStatistics()
        for key in self.store.all_keys():
            with self._locks.lock_for(key):
                rebuilt.add_items(self.store.fetch(key))

        differences = self.statistics.compare(rebuilt)
        if differences:
            message = ", ".join(f"{name}: {old} → {new}" for name, (old, new) in sorted(differences.items()))
            logger.warning(f"Catalog statistics were out of sync and have been rebuilt ({message})")
            warnings.warn(StatisticsMismatchWarning(f"Statistics mismatch: {message}"), stacklevel=2)
            self.statistics.load(rebuilt)
        return differences

    def reset_statistics(self) -> None:
        self.statistics.reset()

    def close(self) -> None:
        self.store.close()

    def __repr__(self):
        return f"<ItemCatalog bucketed_by={self.bucketed_by!r}, merged_by={self.merged_by!r}>"
