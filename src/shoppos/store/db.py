"""Record store: string-keyed JSON values in SQLite with a read cache"""

import json
import logging
import sqlite3
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger(__name__)

DB_PATH = Path.cwd() / "shop_pos.db"

PRODUCTS_KEY = "products"
SALES_KEY = "sales"
CUSTOMERS_KEY = "customers"
SETTINGS_KEY = "settings"
DATASET_KEYS = (PRODUCTS_KEY, SALES_KEY, CUSTOMERS_KEY, SETTINGS_KEY)

_MISSING = object()


class RecordStore:
    """Key-value record store.

    Every operation is a coroutine so callers run as sequential steps on one
    event loop. I/O failures never raise: ``get`` falls back to the default and
    writes return ``False``.
    """

    def __init__(self, db_path: Optional[Path] = None):
        self.db_path = Path(db_path) if db_path else DB_PATH
        self._conn: Optional[sqlite3.Connection] = None
        self._cache: dict[str, Any] = {}
        self._init_db()

    @property
    def conn(self) -> sqlite3.Connection:
        if self._conn is None:
            self._conn = sqlite3.connect(str(self.db_path))
            self._conn.row_factory = sqlite3.Row
        return self._conn

    @property
    def path(self) -> Path:
        return self.db_path

    def _init_db(self):
        """Create the records table"""
        self.conn.executescript("""
            CREATE TABLE IF NOT EXISTS records (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at TEXT DEFAULT (datetime('now', 'localtime'))
            );
        """)
        self.conn.commit()

    def close(self):
        if self._conn:
            self._conn.close()
            self._conn = None
        self._cache.clear()

    # ── cache ──

    def clear_cache(self):
        self._cache.clear()

    # ── reads ──

    async def get(self, key: str, default: Any = None) -> Any:
        """Read a value, from cache when possible.

        Args:
            key: record key, e.g. "products"
            default: returned when the key is missing or the read fails

        Returns:
            the decoded JSON value or ``default``
        """
        cached = self._cache.get(key, _MISSING)
        if cached is not _MISSING:
            return cached

        try:
            row = self.conn.execute(
                "SELECT value FROM records WHERE key = ?", (key,)
            ).fetchone()
            if row is None:
                return default
            result = json.loads(row["value"])
        except (sqlite3.Error, json.JSONDecodeError) as e:
            logger.error("Error getting %s from storage: %s", key, e)
            return default

        self._cache[key] = result
        return result

    def keys(self) -> list[str]:
        rows = self.conn.execute("SELECT key FROM records ORDER BY key").fetchall()
        return [r["key"] for r in rows]

    # ── writes ──

    async def set(self, key: str, value: Any) -> bool:
        """Write a value. Returns ``False`` on failure."""
        try:
            serialized = json.dumps(value, ensure_ascii=False)
            self.conn.execute("""
                INSERT INTO records (key, value) VALUES (?, ?)
                ON CONFLICT(key) DO UPDATE SET
                    value = excluded.value,
                    updated_at = datetime('now', 'localtime')
            """, (key, serialized))
            self.conn.commit()
        except (sqlite3.Error, TypeError, ValueError) as e:
            logger.error("Error setting %s in storage: %s", key, e)
            self._rollback()
            self._cache.pop(key, None)
            return False

        # cache what was stored, not the caller's object
        self._cache[key] = json.loads(serialized)
        return True

    async def set_many(self, values: dict[str, Any]) -> bool:
        """Write several keys in one transaction, all or nothing.

        The whole cache is dropped afterwards, since this replaces the dataset.
        """
        try:
            rows = [
                (key, json.dumps(value, ensure_ascii=False))
                for key, value in values.items()
            ]
            with self.conn:
                self.conn.executemany("""
                    INSERT INTO records (key, value) VALUES (?, ?)
                    ON CONFLICT(key) DO UPDATE SET
                        value = excluded.value,
                        updated_at = datetime('now', 'localtime')
                """, rows)
        except (sqlite3.Error, TypeError, ValueError) as e:
            logger.error("Error writing %s to storage: %s", ", ".join(values), e)
            return False
        finally:
            self._cache.clear()
        return True

    async def delete(self, key: str) -> bool:
        try:
            self.conn.execute("DELETE FROM records WHERE key = ?", (key,))
            self.conn.commit()
        except sqlite3.Error as e:
            logger.error("Error deleting %s from storage: %s", key, e)
            self._rollback()
            return False
        self._cache.pop(key, None)
        return True

    async def clear(self) -> bool:
        try:
            self.conn.execute("DELETE FROM records")
            self.conn.commit()
        except sqlite3.Error as e:
            logger.error("Error clearing storage: %s", e)
            self._rollback()
            return False
        self._cache.clear()
        return True

    def _rollback(self):
        try:
            self.conn.rollback()
        except sqlite3.Error:
            logger.exception("Rollback failed")
