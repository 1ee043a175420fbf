"""
Unified command orchestrator for catalog normalization.
This is the SINGLE entry point for the select-tier → bucket → merge pipeline,
used by any front end that feeds parsed items in and hands buckets to writers.
"""
import logging
from typing import Callable, Iterator, List, Optional, Tuple

from datcatalog.config import CatalogConfig
from datcatalog.core.catalog import ItemCatalog
from datcatalog.core.models import DatItem, ItemKey, MergeMode
from datcatalog.core.statistics import ItemStatistics
from datcatalog.errors import CatalogError

logger = logging.getLogger(__name__)


class NormalizeCommand:
    """
    Orchestrates the normalization workflow:
    1. Pick the bucketing mode (configured, explicit, or strongest common hash)
    2. Relocate items and sort/merge every bucket with progress/cancellation support
    3. Drop items flagged for removal when requested

    Usage:
        command = NormalizeCommand(catalog, CatalogConfig(merge="full"))
        keys, stats = command.execute(
            progress_callback=progress_printer,
            stopped_flag=signal_handler_check
        )
        for key, items in command.iter_output():
            writer.write(key, items)
    """

    def __init__(self, catalog: ItemCatalog, config: Optional[CatalogConfig] = None):
        self.catalog = catalog
        self.config = config or catalog.config
        self.bucketed_by: Optional[ItemKey] = None

    def execute(
            self,
            bucket_by: Optional[ItemKey] = None,
            merge: Optional[MergeMode] = None,
            clear_marked: bool = False,
            progress_callback: Optional[Callable[[str, int, Optional[int]], None]] = None,
            stopped_flag: Optional[Callable[[], bool]] = None
    ) -> Tuple[List[str], ItemStatistics]:
        """
        Execute normalization.

        Args:
            bucket_by: Bucketing mode; falls back to the config, then to the best available hash
            merge: Merge mode; falls back to the config
            clear_marked: Physically drop merged duplicates afterwards
            progress_callback: (stage: str, current: int, total: Optional[int]) -> None
            stopped_flag: () -> bool (returns True if operation should stop)

        Returns:
            Tuple of (sorted_keys, statistics)

        Raises:
            CatalogError: If the catalog holds no items
            StoreUnavailableError: If the store fails during the pass
        """
        if self.catalog.statistics.total_count == 0:
            raise CatalogError("No items in catalog to normalize")

        mode = bucket_by or self.config.bucket_by or self.catalog.get_best_available()
        merge = merge or self.config.merge
        logger.info(f"Normalizing {self.catalog.statistics.total_count} items "
                    f"(bucket by {mode.display_name}, merge {merge.value})")

        self.catalog.bucket_by(
            mode,
            merge,
            normalize_case=self.config.normalize_case,
            ignore_source_context=self.config.ignore_source_context,
            stopped_flag=stopped_flag,
            progress_callback=progress_callback,
        )
        self.bucketed_by = mode

        if clear_marked and not (stopped_flag and stopped_flag()):
            self.catalog.clear_marked()

        return self.catalog.sorted_keys, self.catalog.statistics

    def iter_output(self) -> Iterator[Tuple[str, List[DatItem]]]:
        """Yields (key, writable items) in natural key order, skipping keys with nothing to write."""
        if self.bucketed_by is None:
            raise RuntimeError("Execute command first before reading output")
        for key in self.catalog.sorted_keys:
            items = self.catalog.filtered_items(key)
            if items:
                yield key, items
