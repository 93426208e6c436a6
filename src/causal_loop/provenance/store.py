from __future__ import annotations

import json
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List


def _connect(db_path: Path) -> sqlite3.Connection:
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(db_path))
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS provenance (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            ts TEXT NOT NULL,
            event TEXT NOT NULL,
            payload TEXT
        )
        """
    )
    return conn


def log_event(db_path: Path, event: str, payload: Dict[str, Any] | None = None) -> None:
    """Append an event such as `analysis_completed` with a JSON payload."""
    conn = _connect(db_path)
    try:
        conn.execute(
            "INSERT INTO provenance (ts, event, payload) VALUES (?, ?, ?)",
            (
                datetime.now(timezone.utc).isoformat(),
                event,
                json.dumps(payload or {}),
            ),
        )
        conn.commit()
    finally:
        conn.close()


def recent_events(db_path: Path, limit: int = 20) -> List[Dict[str, Any]]:
    """Most recent events first."""
    if not db_path.exists():
        return []
    conn = _connect(db_path)
    try:
        rows = conn.execute(
            "SELECT ts, event, payload FROM provenance ORDER BY id DESC LIMIT ?",
            (limit,),
        ).fetchall()
    finally:
        conn.close()
    return [{"ts": ts, "event": event, "payload": json.loads(payload or "{}")} for ts, event, payload in rows]
