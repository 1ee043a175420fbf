"""
datcatalog: catalog engine for DAT files of software and game preservation sets.

Core features:
- One canonical item model for every DAT format (Rom, Disk, Media and 28 descriptive kinds)
- Bucketing by machine or by the strongest hash every item carries
- Game and full deduplication with explicit first-non-null merge policy
- Incremental statistics with on-demand consistency check
- In-memory or SQLite-backed bucket storage
"""
from pathlib import Path

# Get version
try:
    from importlib.metadata import version as _version
    __version__ = _version("datcatalog")
except Exception:
    try:
        import tomllib  # Python 3.11+
    except ImportError:
        import tomli as tomllib  # Python < 3.11: pip install tomli

    with open(Path(__file__).resolve().parents[2] / "pyproject.toml", "rb") as f:
        __version__ = tomllib.load(f)["project"]["version"]

# Public API — only what users should import directly
from datcatalog.core import (
    ItemCatalog, ItemStatistics, DatItem, Rom, Disk, Media, Machine, Source, Header,
    ItemType, ItemStatus, DupeType, ItemKey, MergeMode)
from datcatalog.config import CatalogConfig
from datcatalog.commands import NormalizeCommand
from datcatalog.errors import CatalogError, StoreUnavailableError, StatisticsMismatchWarning
from datcatalog.store import MemoryStore, SqliteStore

__all__ = [
    "ItemCatalog",
    "ItemStatistics",
    "DatItem",
    "Rom",
    "Disk",
    "Media",
    "Machine",
    "Source",
    "Header",
    "ItemType",
    "ItemStatus",
    "DupeType",
    "ItemKey",
    "MergeMode",
    "CatalogConfig",
    "NormalizeCommand",
    "CatalogError",
    "StoreUnavailableError",
    "StatisticsMismatchWarning",
    "MemoryStore",
    "SqliteStore",
    "__version__",
]
