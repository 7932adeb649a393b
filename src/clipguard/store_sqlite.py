"""Persistent rule store and audit log backed by SQLite.

Usage:
    store = SqliteStore(db_path="~/.clipguard/clipguard.db")
    manager = ConfigManager(store)          # loads or seeds the rule set
    monitor = Monitor(source, manager, sink=store)

The rule set is stored as one JSON document (single row, id = 1).
Every changed redaction the monitor sees is appended to ``logs``.
"""

from __future__ import annotations
import json
import sqlite3
import threading
from pathlib import Path
from typing import Any

from .config import loads, dumps
from .errors import (
    AuditSinkError,
    ConfigError,
    CorruptData,
    NotFound,
    StoreReadError,
    StoreWriteError,
)
from .types import RuleSet


_SCHEMA = """
CREATE TABLE IF NOT EXISTS config (
    id INTEGER PRIMARY KEY CHECK (id = 1),
    data TEXT NOT NULL,
    created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
    updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
);
CREATE TABLE IF NOT EXISTS logs (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    timestamp DATETIME DEFAULT CURRENT_TIMESTAMP,
    original_text TEXT NOT NULL,
    filtered_text TEXT NOT NULL,
    detections TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_logs_timestamp ON logs(timestamp DESC);
"""


class SqliteStore:
    """Rule-set persistence plus the filter log."""

    __slots__ = ("_db", "_lock", "path")

    def __init__(self, *, db_path: str | Path = "clipguard.db") -> None:
        self.path = Path(db_path).expanduser()
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._db = sqlite3.connect(str(self.path), check_same_thread=False)
        self._db.executescript(_SCHEMA)
        # One connection shared by the monitor thread and request handlers
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Rule set
    # ------------------------------------------------------------------

    def load_rule_set(self) -> RuleSet:
        try:
            with self._lock:
                row = self._db.execute("SELECT data FROM config WHERE id = 1").fetchone()
        except sqlite3.Error as exc:
            raise StoreReadError(f"failed to load config: {exc}") from exc
        if row is None:
            raise NotFound("no config row")
        try:
            return loads(row[0])
        except ConfigError as exc:
            raise CorruptData(f"stored config is unusable: {exc}") from exc

    def save_rule_set(self, rules: RuleSet) -> None:
        data = dumps(rules)
        try:
            with self._lock:
                self._db.execute(
                    "INSERT INTO config (id, data) VALUES (1, ?) "
                    "ON CONFLICT(id) DO UPDATE SET data = excluded.data, "
                    "updated_at = CURRENT_TIMESTAMP",
                    (data,),
                )
                self._db.commit()
        except sqlite3.Error as exc:
            raise StoreWriteError(f"failed to save config: {exc}") from exc

    # ------------------------------------------------------------------
    # Audit log
    # ------------------------------------------------------------------

    def record(self, original: str, filtered: str, kinds: list[str]) -> None:
        try:
            with self._lock:
                self._db.execute(
                    "INSERT INTO logs (original_text, filtered_text, detections) VALUES (?, ?, ?)",
                    (original, filtered, json.dumps(list(kinds))),
                )
                self._db.commit()
        except sqlite3.Error as exc:
            raise AuditSinkError(f"failed to add log: {exc}") from exc

    def list_logs(self, page: int = 1, page_size: int = 20) -> list[dict[str, Any]]:
        """Newest first."""
        page = max(page, 1)
        page_size = max(page_size, 1)
        with self._lock:
            rows = self._db.execute(
                "SELECT id, timestamp, original_text, filtered_text, detections "
                "FROM logs ORDER BY timestamp DESC, id DESC LIMIT ? OFFSET ?",
                (page_size, (page - 1) * page_size),
            ).fetchall()
        return [
            {
                "id": rid,
                "timestamp": ts,
                "original": original,
                "filtered": filtered,
                "detections": json.loads(detections),
            }
            for rid, ts, original, filtered, detections in rows
        ]

    def count_logs(self) -> int:
        with self._lock:
            return self._db.execute("SELECT COUNT(*) FROM logs").fetchone()[0]

    def clear_logs(self) -> None:
        with self._lock:
            self._db.execute("DELETE FROM logs")
            self._db.commit()

    def close(self) -> None:
        with self._lock:
            self._db.close()
