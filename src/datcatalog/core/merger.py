"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/merger.py
Duplicate detection and merge policy for a single bucket.

POLICY
------
• The first-encountered item of a duplicate set survives
• Later duplicates are flagged remove=True and kept for auditing
• Empty attributes on the survivor are filled from the duplicate; populated
  attributes are never overwritten (earliest non-null wins)
• A survivor that gains hashes is compared again with the other survivors, so no
  two survivors are left equal
• Both items get a DupeType: INTERNAL when they come from the same source file,
  EXTERNAL otherwise, qualified with ALL (same machine and name) or HASH
"""
import logging
from typing import List

from datcatalog.core.interfaces import Merger
from datcatalog.core.models import DatItem, DupeType, ItemKey, MergeMode

logger = logging.getLogger(__name__)


class MergerImpl(Merger):
    """
    Pairwise duplicate scan over a bucket.
    Each item is compared against the survivors found so far, so the result does
    not depend on the input being sorted; sorting only makes it deterministic.
    """

    def merge(self, items: List[DatItem]) -> List[DatItem]:
        survivors: List[DatItem] = []
        merged = 0

        for item in items:
            if item is None or item.remove:
                continue

            for index, survivor in enumerate(survivors):
                if survivor.equals(item):
                    self._absorb(survivor, item)
                    merged += 1 + self._collapse(survivors, index)
                    break
            else:
                survivors.append(item)

        if merged:
            logger.debug(f"Merged {merged} duplicate(s) into {len(survivors)} survivor(s)")
        return items

    @staticmethod
    def _absorb(survivor: DatItem, duplicate: DatItem) -> None:
        dupe_type = survivor.get_duplicate_status(duplicate)
        survivor.fill_missing(duplicate)
        if survivor.dupe_type == DupeType.NONE:
            survivor.dupe_type = dupe_type
        duplicate.dupe_type = dupe_type
        duplicate.remove = True

    def _collapse(self, survivors: List[DatItem], index: int) -> int:
        """
        Re-checks a survivor whose hashes were just filled against the other survivors.
        The earlier survivor of each new match absorbs the later one; repeats until stable.

        Returns:
            Number of survivors absorbed.
        """
        absorbed = 0
        changed = True
        while changed:
            changed = False
            current = survivors[index]
            for other_index, other in enumerate(survivors):
                if other_index == index or not current.equals(other):
                    continue
                keep, drop = sorted((index, other_index))
                self._absorb(survivors[keep], survivors[drop])
                del survivors[drop]
                index = keep
                absorbed += 1
                changed = True
                break
        return absorbed

    @staticmethod
    def should_merge(merge: MergeMode, bucketed_by: ItemKey) -> bool:
        """GAME merges only inside machine buckets; FULL merges everywhere."""
        if merge == MergeMode.FULL:
            return True
        return merge == MergeMode.GAME and bucketed_by == ItemKey.MACHINE
