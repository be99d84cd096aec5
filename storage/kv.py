"""
Durable client-side storage: a small SQLite-backed string key/value table.
Plays the role browser localStorage plays for a web client.
"""

import os
import sqlite3
import threading
import time
from typing import Optional

# noinspection SqlResolve
SQL_CREATE = """
CREATE TABLE IF NOT EXISTS client_storage (
    key TEXT PRIMARY KEY,
    value TEXT,
    timestamp REAL
);
"""


class KeyValueStore:
    def __init__(self, path: Optional[str] = None):
        """Open (or create) the store.

        :param path: SQLite file path or None for in-memory. Parent directories are created.
        """
        self.path = path or ':memory:'
        if self.path != ':memory:':
            parent = os.path.dirname(os.path.abspath(self.path))
            os.makedirs(parent, exist_ok=True)
        self.conn = sqlite3.connect(self.path, check_same_thread=False)
        self._lock = threading.RLock()
        self._init_db()

    def _init_db(self):
        with self._lock:
            cur = self.conn.cursor()
            cur.executescript(SQL_CREATE)
            self.conn.commit()

    def close(self):
        with self._lock:
            if self.conn is not None:
                try:
                    self.conn.close()
                finally:
                    self.conn = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    # noinspection SqlResolve
    def get(self, key: str) -> Optional[str]:
        with self._lock:
            cur = self.conn.cursor()
            cur.execute('SELECT value FROM client_storage WHERE key = ?', (key,))
            row = cur.fetchone()
        return row[0] if row else None

    # noinspection SqlResolve
    def set(self, key: str, value: str):
        with self._lock:
            cur = self.conn.cursor()
            cur.execute('REPLACE INTO client_storage(key, value, timestamp) VALUES (?, ?, ?)', (key, value, time.time()))
            self.conn.commit()

    # noinspection SqlResolve
    def delete(self, key: str) -> int:
        """Delete a key. Returns number of rows deleted."""
        with self._lock:
            cur = self.conn.cursor()
            cur.execute('DELETE FROM client_storage WHERE key = ?', (key,))
            self.conn.commit()
            return cur.rowcount


__all__ = ["KeyValueStore"]
