"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/locks.py
Per-key mutual exclusion for the bucket store.

Keys are mapped onto a fixed table of re-entrant locks through their xxHash64 digest,
so two equal key strings always share a lock whatever object they are, and unrelated
keys rarely contend. Callers never hold two key locks at once.
"""
import threading
from typing import List

import xxhash


class KeyLockTable:
    """Fixed-size table of RLocks indexed by a stable hash of the key."""

    DEFAULT_SHARDS = 64

    def __init__(self, shards: int = DEFAULT_SHARDS):
        if shards < 1:
            raise ValueError("Lock table needs at least one shard")
        self._locks: List[threading.RLock] = [threading.RLock() for _ in range(shards)]

    def shard_for(self, key: str) -> int:
        """Index of the lock guarding the key."""
        digest = xxhash.xxh64_intdigest(key.encode("utf-8"))
        return digest % len(self._locks)

    def lock_for(self, key: str) -> threading.RLock:
        return self._locks[self.shard_for(key)]

    def __len__(self) -> int:
        return len(self._locks)
