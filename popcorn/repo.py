# popcorn/repo.py
import os
import sqlite3
import logging
from contextlib import contextmanager
from typing import Dict, Optional

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS kv (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
);
"""

# --- Exceptions ---
class RepoError(Exception):
    pass


def _check_capacity(key: str, value: str, max_value_bytes: Optional[int]) -> None:
    if max_value_bytes is not None and len(value.encode("utf-8")) > max_value_bytes:
        raise RepoError(f"value for '{key}' exceeds storage capacity ({max_value_bytes} bytes)")


# --- SQLite key-value store ---
class SqliteKVStore:
    """Durable string store keyed by name. One connection per call."""

    def __init__(self, db_path: str, max_value_bytes: Optional[int] = None):
        self.db_path = db_path
        self.max_value_bytes = max_value_bytes
        parent = os.path.dirname(db_path)
        if parent:
            os.makedirs(parent, exist_ok=True)
        with self.conn() as c:
            c.executescript(SCHEMA)

    @contextmanager
    def conn(self):
        try:
            con = sqlite3.connect(self.db_path)
        except sqlite3.Error as e:
            raise RepoError(f"cannot open {self.db_path}: {e}") from e
        con.row_factory = sqlite3.Row
        try:
            yield con
            con.commit()
        finally:
            con.close()

    def get(self, key: str) -> Optional[str]:
        with self.conn() as c:
            r = c.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
            return r["value"] if r else None

    def set(self, key: str, value: str) -> None:
        _check_capacity(key, value, self.max_value_bytes)
        try:
            with self.conn() as c:
                c.execute("INSERT INTO kv (key, value) VALUES (?, ?) "
                          "ON CONFLICT(key) DO UPDATE SET value = excluded.value", (key, value))
        except sqlite3.Error as e:
            logger.error("kv write failed for key=%s: %s", key, e)
            raise RepoError(str(e)) from e

    def delete(self, key: str) -> None:
        with self.conn() as c:
            c.execute("DELETE FROM kv WHERE key = ?", (key,))


# --- In-memory store (tests) ---
class InMemoryKVStore:
    def __init__(self, max_value_bytes: Optional[int] = None):
        self._data: Dict[str, str] = {}
        self.max_value_bytes = max_value_bytes

    def get(self, key: str): return self._data.get(key)

    def set(self, key: str, value: str):
        _check_capacity(key, value, self.max_value_bytes)
        self._data[key] = value

    def delete(self, key: str): self._data.pop(key, None)
