"""
Persistence collaborators for the bucket store.

- MemoryStore: dict-backed, the default
- SqliteStore: SQLite-backed, parameterized statements, items stored as JSON
"""

from .memory import MemoryStore
from .sqlite import SqliteStore

__all__ = ["MemoryStore", "SqliteStore"]
