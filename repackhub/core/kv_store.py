"""
SQLite-backed key-value store with per-key expiry and metadata.

Holds resolved decrypt results. Values and metadata are stored as JSON text;
expired rows are dropped lazily on read and list.
"""

from __future__ import annotations

import json
import sqlite3
import time
from pathlib import Path
from threading import RLock
from typing import Any, Callable, Dict, List, Optional


class SqliteKVStore:
    def __init__(self, data_dir: Optional[Path] = None, db_path: Optional[str] = None,
                 clock: Callable[[], float] = time.time):
        self._lock = RLock()
        self._clock = clock
        if db_path is None:
            path = Path(data_dir or ".") / "repackhub.db"
            path.parent.mkdir(parents=True, exist_ok=True)
            db_path = str(path)
        self._db_path = db_path
        self._conn = sqlite3.connect(db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        with self._conn:
            if db_path != ":memory:":
                self._conn.execute("PRAGMA journal_mode=WAL;")
            self._conn.execute("PRAGMA synchronous=NORMAL;")
        self._migrate()

    @property
    def db_path(self) -> str:
        return self._db_path

    def _migrate(self) -> None:
        with self._lock, self._conn:
            self._conn.execute(
                """
                CREATE TABLE IF NOT EXISTS kv (
                  key TEXT PRIMARY KEY,
                  value_json TEXT NOT NULL,
                  metadata_json TEXT,
                  expires_at REAL
                )
                """
            )

    def _expired(self, row: sqlite3.Row, now: float) -> bool:
        return row["expires_at"] is not None and now >= float(row["expires_at"])

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            row = self._conn.execute(
                "SELECT value_json, expires_at FROM kv WHERE key=?", (key,)
            ).fetchone()
            if not row:
                return None
            if self._expired(row, self._clock()):
                with self._conn:
                    self._conn.execute("DELETE FROM kv WHERE key=?", (key,))
                return None
            return json.loads(row["value_json"])

    def get_with_metadata(self, key: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            row = self._conn.execute(
                "SELECT value_json, metadata_json, expires_at FROM kv WHERE key=?", (key,)
            ).fetchone()
            if not row or self._expired(row, self._clock()):
                return None
            return {
                "value": json.loads(row["value_json"]),
                "metadata": json.loads(row["metadata_json"]) if row["metadata_json"] else None,
            }

    def put(self, key: str, value: Any, expiration_ttl: Optional[float] = None,
            metadata: Optional[Dict[str, Any]] = None) -> None:
        expires_at = self._clock() + float(expiration_ttl) if expiration_ttl else None
        with self._lock, self._conn:
            self._conn.execute(
                """
                INSERT INTO kv(key, value_json, metadata_json, expires_at) VALUES (?,?,?,?)
                ON CONFLICT(key) DO UPDATE SET
                  value_json=excluded.value_json,
                  metadata_json=excluded.metadata_json,
                  expires_at=excluded.expires_at
                """,
                (key, json.dumps(value), json.dumps(metadata) if metadata is not None else None, expires_at),
            )

    def delete(self, key: str) -> bool:
        with self._lock, self._conn:
            cur = self._conn.execute("DELETE FROM kv WHERE key=?", (key,))
            return cur.rowcount > 0

    def list(self, prefix: str = "") -> List[str]:
        """Live keys starting with prefix, in key order."""
        escaped = prefix.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        now = self._clock()
        with self._lock, self._conn:
            self._conn.execute(
                "DELETE FROM kv WHERE expires_at IS NOT NULL AND expires_at <= ?", (now,)
            )
            rows = self._conn.execute(
                "SELECT key FROM kv WHERE key LIKE ? ESCAPE '\\' ORDER BY key", (escaped + "%",)
            ).fetchall()
        return [row["key"] for row in rows]

    def close(self) -> None:
        with self._lock:
            self._conn.close()
