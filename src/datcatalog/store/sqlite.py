"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

store/sqlite.py
SQLite-backed persistence collaborator for catalogs that do not fit in memory.

SCHEMA
------
keys  (key TEXT PRIMARY KEY)
items (key TEXT, position INTEGER, item TEXT)   item = JSON of DatItem.to_dict()

Every statement is parameterized; keys and item content never become part of
the SQL text. replace() runs in a single transaction so it is atomic per key.
"""
import json
import logging
import sqlite3
import threading
from typing import List

from datcatalog.core.interfaces import CatalogStore
from datcatalog.core.models import DatItem, item_from_dict
from datcatalog.errors import StoreUnavailableError

logger = logging.getLogger(__name__)

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS keys (
        key       TEXT     NOT NULL PRIMARY KEY
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS items (
        key       TEXT     NOT NULL,
        position  INTEGER  NOT NULL,
        item      TEXT     NOT NULL,
        PRIMARY KEY (key, position)
    )
    """,
)


class SqliteStore(CatalogStore):
    """
    Stores buckets in an SQLite database file (":memory:" for a private in-memory DB).
    A single connection is shared between worker threads behind an internal lock.
    """

    def __init__(self, path: str = ":memory:"):
        self.path = path
        self._lock = threading.Lock()
        self._closed = False
        try:
            self._conn = sqlite3.connect(path, check_same_thread=False)
            with self._conn:
                for statement in _SCHEMA:
                    self._conn.execute(statement)
        except sqlite3.Error as e:
            logger.error(f"Cannot open catalog database {path}: {e}")
            raise StoreUnavailableError(f"Cannot open catalog database {path}: {e}") from e
        logger.debug(f"Opened catalog database: {path}")

    def _check_open(self) -> None:
        if self._closed:
            raise StoreUnavailableError(f"Catalog database {self.path} is closed")

    def ensure_key(self, key: str) -> bool:
        with self._lock:
            self._check_open()
            try:
                with self._conn:
                    cursor = self._conn.execute("INSERT OR IGNORE INTO keys (key) VALUES (?)", (key,))
                    return cursor.rowcount == 0
            except sqlite3.Error as e:
                raise StoreUnavailableError(f"Failed to ensure key '{key}': {e}") from e

    def fetch(self, key: str) -> List[DatItem]:
        with self._lock:
            self._check_open()
            try:
                rows = self._conn.execute(
                    "SELECT item FROM items WHERE key = ? ORDER BY position", (key,)
                ).fetchall()
            except sqlite3.Error as e:
                raise StoreUnavailableError(f"Failed to fetch key '{key}': {e}") from e
        return [item_from_dict(json.loads(row[0])) for row in rows]

    def replace(self, key: str, items: List[DatItem]) -> None:
        payload = [(key, position, json.dumps(item.to_dict())) for position, item in enumerate(items)]
        with self._lock:
            self._check_open()
            try:
                with self._conn:
                    self._conn.execute("INSERT OR IGNORE INTO keys (key) VALUES (?)", (key,))
                    self._conn.execute("DELETE FROM items WHERE key = ?", (key,))
                    self._conn.executemany(
                        "INSERT INTO items (key, position, item) VALUES (?, ?, ?)", payload)
            except sqlite3.Error as e:
                raise StoreUnavailableError(f"Failed to replace key '{key}': {e}") from e

    def delete_key(self, key: str) -> None:
        with self._lock:
            self._check_open()
            try:
                with self._conn:
                    self._conn.execute("DELETE FROM items WHERE key = ?", (key,))
                    self._conn.execute("DELETE FROM keys WHERE key = ?", (key,))
            except sqlite3.Error as e:
                raise StoreUnavailableError(f"Failed to delete key '{key}': {e}") from e

    def all_keys(self) -> List[str]:
        with self._lock:
            self._check_open()
            try:
                rows = self._conn.execute("SELECT key FROM keys ORDER BY rowid").fetchall()
            except sqlite3.Error as e:
                raise StoreUnavailableError(f"Failed to list keys: {e}") from e
        return [row[0] for row in rows]

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._conn.close()
        logger.debug(f"Closed catalog database: {self.path}")

    def __repr__(self):
        return f"<SqliteStore path={self.path}>"
