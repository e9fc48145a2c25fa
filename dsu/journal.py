from __future__ import annotations

import os
import sqlite3
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from .settings import settings


def utc_now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def _resolve_db_path() -> str:
    """Return a file path usable by sqlite.

    Relative paths are taken from the stack directory. If the configured
    path is a directory, the journal file is placed inside it.
    """

    p = os.path.abspath(os.path.join(settings.stack_dir, settings.journal_path))

    if os.path.isdir(p):
        p = os.path.join(p, "journal.db")

    parent = os.path.dirname(p)
    if parent and not os.path.exists(parent):
        os.makedirs(parent, exist_ok=True)

    return p


def connect() -> sqlite3.Connection:
    conn = sqlite3.connect(_resolve_db_path())
    conn.row_factory = sqlite3.Row
    return conn


def init_db() -> None:
    """Create tables if they do not exist."""
    with connect() as conn:
        conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS runs (
              id INTEGER PRIMARY KEY AUTOINCREMENT,
              from_version TEXT NOT NULL,
              to_version TEXT NOT NULL,
              status TEXT NOT NULL, -- running|completed|cancelled|failed
              started_at TEXT NOT NULL,
              finished_at TEXT
            );

            CREATE TABLE IF NOT EXISTS events (
              id INTEGER PRIMARY KEY AUTOINCREMENT,
              ts TEXT NOT NULL,
              level TEXT NOT NULL,
              run_id INTEGER,
              step TEXT,
              message TEXT NOT NULL
            );

            CREATE INDEX IF NOT EXISTS idx_events_ts ON events(ts);
            """
        )


def log_event(level: str, message: str, step: str | None = None, run_id: int | None = None) -> None:
    level = level.upper()
    with connect() as conn:
        conn.execute(
            "INSERT INTO events (ts, level, run_id, step, message) VALUES (?, ?, ?, ?, ?)",
            (utc_now(), level, run_id, step, message),
        )
    if settings.echo:
        prefix = "" if level == "INFO" else f"{level}: "
        print(f"{prefix}{message}")


@dataclass(frozen=True)
class RunRow:
    id: int
    from_version: str
    to_version: str
    status: str
    started_at: str
    finished_at: str | None


def start_run(from_version: str, to_version: str) -> RunRow:
    with connect() as conn:
        cur = conn.execute(
            "INSERT INTO runs (from_version, to_version, status, started_at) VALUES (?, ?, ?, ?)",
            (from_version, to_version, "running", utc_now()),
        )
        row = conn.execute("SELECT * FROM runs WHERE id=?", (cur.lastrowid,)).fetchone()
        return RunRow(**dict(row))


def finish_run(run_id: int, status: str) -> None:
    with connect() as conn:
        conn.execute("UPDATE runs SET status=?, finished_at=? WHERE id=?", (status, utc_now(), run_id))


def get_run(run_id: int) -> RunRow | None:
    with connect() as conn:
        row = conn.execute("SELECT * FROM runs WHERE id=?", (run_id,)).fetchone()
        return RunRow(**dict(row)) if row else None


def latest_events(limit: int = 100) -> list[dict[str, Any]]:
    with connect() as conn:
        rows = conn.execute("SELECT * FROM events ORDER BY id DESC LIMIT ?", (limit,)).fetchall()
        return [dict(r) for r in rows]
