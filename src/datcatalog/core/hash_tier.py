"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/hash_tier.py
Chooses the hash used for default bucketing.

Picking a hash that some eligible items lack would split true duplicates across
buckets, so the selector walks from the strongest tier to the weakest and keeps the
first one every eligible item (Rom, Disk, Media that is not Nodump) carries.
The result depends on the live population and is never cached.
"""
from typing import List

from datcatalog.core.interfaces import HashTierSelector
from datcatalog.core.models import ItemKey
from datcatalog.core.statistics import ItemStatistics


class HashTierSelectorImpl(HashTierSelector):

    # Strongest first; CRC is the fallback and never needs to qualify
    TIERS: List[ItemKey] = [ItemKey.SHA512, ItemKey.SHA384, ItemKey.SHA256, ItemKey.SHA1, ItemKey.MD5]

    def select(self, stats: ItemStatistics) -> ItemKey:
        snapshot = stats.snapshot()
        eligible = snapshot["eligible"]
        for tier in self.TIERS:
            if snapshot[f"hash_{tier.hash_type.value}"] == eligible:
                return tier
        return ItemKey.CRC
