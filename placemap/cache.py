"""SQLite cache for places provider responses."""
from __future__ import annotations

import hashlib
import json
import sqlite3
from datetime import datetime, timezone
from typing import Any, Dict, Optional


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat()


def make_request_cache_key(url: str, params: Dict[str, str]) -> str:
    payload = json.dumps(params, sort_keys=True, separators=(",", ":"))
    raw = f"{url}|{payload}".encode("utf-8")
    return hashlib.sha256(raw).hexdigest()


class Cache:
    def __init__(self, db_path: str, ttl_seconds: Optional[float] = None) -> None:
        self.db_path = db_path
        self.ttl_seconds = ttl_seconds
        self.conn = sqlite3.connect(self.db_path)
        self.conn.row_factory = sqlite3.Row
        self._configure_conn()
        self._init_db()

    def _configure_conn(self) -> None:
        cur = self.conn.cursor()
        try:
            cur.execute("PRAGMA journal_mode=WAL")
            cur.fetchone()
        except sqlite3.DatabaseError:
            pass

    def _init_db(self) -> None:
        cur = self.conn.cursor()
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS places_response_cache (
                key TEXT PRIMARY KEY,
                response_json TEXT,
                created_at TEXT
            )
            """
        )
        self.conn.commit()

    def close(self) -> None:
        self.conn.commit()
        self.conn.close()

    def __enter__(self) -> "Cache":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    def get_response(self, key: str, now: Optional[datetime] = None) -> Optional[Dict[str, Any]]:
        cur = self.conn.cursor()
        cur.execute(
            "SELECT response_json, created_at FROM places_response_cache WHERE key = ?", (key,)
        )
        row = cur.fetchone()
        if not row:
            return None
        if self.ttl_seconds is not None:
            created = datetime.fromisoformat(row["created_at"])
            age = ((now or datetime.now(timezone.utc)) - created).total_seconds()
            if age > self.ttl_seconds:
                return None
        return json.loads(row["response_json"])

    def set_response(self, key: str, response: Dict[str, Any]) -> None:
        cur = self.conn.cursor()
        cur.execute(
            """
            INSERT OR REPLACE INTO places_response_cache (key, response_json, created_at)
            VALUES (?, ?, ?)
            """,
            (key, json.dumps(response), utc_now_iso()),
        )
        self.conn.commit()
