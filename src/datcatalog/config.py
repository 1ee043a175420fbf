"""
DTO for catalog engine settings with built-in validation.
Interface-agnostic: filled from code or from a TOML file.
"""
import os
from dataclasses import dataclass, field, fields
from typing import Any, Dict, Optional

try:
    import tomllib  # Python 3.11+
except ImportError:
    import tomli as tomllib  # Python < 3.11: pip install tomli

from datcatalog.aliases import resolve_item_key, resolve_merge_mode
from datcatalog.core.interfaces import CatalogStore
from datcatalog.core.models import ItemKey, MergeMode


def _default_workers() -> int:
    return min(32, (os.cpu_count() or 1) + 4)


@dataclass
class CatalogConfig:
    """Settings for ItemCatalog and NormalizeCommand, validated on creation."""
    max_workers: int = field(default_factory=_default_workers)
    lock_shards: int = 64
    normalize_case: bool = True
    ignore_source_context: bool = True
    store_path: Optional[str] = None
    bucket_by: Optional[ItemKey] = None  # None → strongest hash every item carries
    merge: MergeMode = MergeMode.NONE

    def __post_init__(self):
        """Validate parameters immediately after creation."""
        if self.max_workers < 1:
            raise ValueError("max_workers must be at least 1")

        if self.lock_shards < 1:
            raise ValueError("lock_shards must be at least 1")

        if self.store_path is not None and not str(self.store_path).strip():
            raise ValueError("store_path cannot be blank")

        if self.bucket_by is not None:
            self.bucket_by = resolve_item_key(self.bucket_by)
        self.merge = resolve_merge_mode(self.merge)

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> 'CatalogConfig':
        """Builds a config from plain values; unknown settings are rejected."""
        known = {f.name for f in fields(CatalogConfig)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown catalog settings: {', '.join(unknown)}")
        return CatalogConfig(**data)

    @staticmethod
    def from_toml(path: str) -> 'CatalogConfig':
        """
        Loads settings from a TOML file.
        Reads [tool.datcatalog] (pyproject.toml style), else [datcatalog], else the top level.
        """
        with open(path, "rb") as f:
            data = tomllib.load(f)

        if "tool" in data and "datcatalog" in data["tool"]:
            section = data["tool"]["datcatalog"]
        else:
            section = data.get("datcatalog", data)
        return CatalogConfig.from_dict(dict(section))

    def create_store(self) -> CatalogStore:
        """SQLite store when store_path is set, in-memory store otherwise."""
        from datcatalog.store import MemoryStore, SqliteStore

        if self.store_path:
            return SqliteStore(self.store_path)
        return MemoryStore()
