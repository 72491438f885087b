"""SQLite-backed key-value storage for the credential record."""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Optional


class SQLiteStore:
    """Simple key-value store using a single table keyed by ``key``."""

    def __init__(self, db_path: str) -> None:
        self._db_path = Path(db_path)
        if self._db_path.parent and not self._db_path.parent.exists():
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        return conn

    def _ensure_schema(self) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS gateway_records (
                    key TEXT PRIMARY KEY,
                    data TEXT NOT NULL
                )
                """
            )

    def put(self, key: str, value: str) -> None:
        if not key:
            raise ValueError("Record key must be provided")

        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO gateway_records (key, data)
                VALUES (?, ?)
                ON CONFLICT(key) DO UPDATE SET data = excluded.data
                """,
                (key, value),
            )

    def get(self, key: str) -> Optional[str]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT data FROM gateway_records WHERE key = ?",
                (key,),
            ).fetchone()
        if not row:
            return None
        return row["data"]


__all__ = ["SQLiteStore"]
