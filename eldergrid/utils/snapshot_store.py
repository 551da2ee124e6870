# eldergrid/utils/snapshot_store.py
import json
import logging
import sqlite3
from pathlib import Path
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from eldergrid.utils.schema_validator import OfflineSnapshot, ValidationError

logger = logging.getLogger(__name__)

DB_PATH = Path(__file__).resolve().parent.parent / "eldergrid.db"
KEEP_SNAPSHOTS = 50


def init_db(db_path: Path = DB_PATH) -> None:
    db_path = Path(db_path)
    db_path.parent.mkdir(parents=True, exist_ok=True)
    with sqlite3.connect(db_path) as conn:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS offline_snapshots (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                created_at TEXT NOT NULL,
                payload TEXT NOT NULL
            )
            """
        )
        conn.commit()


def save_offline_snapshot(data: Dict[str, Any], db_path: Path = DB_PATH) -> int:
    """Insert a dashboard snapshot; the newest row wins on load."""
    init_db(db_path)
    created_at = datetime.now(timezone.utc).isoformat()
    snapshot = OfflineSnapshot.parse_obj({**data, "last_updated": created_at})
    payload = json.dumps(snapshot.dict(), default=str)
    with sqlite3.connect(db_path) as conn:
        cur = conn.execute(
            "INSERT INTO offline_snapshots (created_at, payload) VALUES (?, ?)",
            (created_at, payload),
        )
        conn.execute(
            "DELETE FROM offline_snapshots WHERE id NOT IN "
            "(SELECT id FROM offline_snapshots ORDER BY id DESC LIMIT ?)",
            (KEEP_SNAPSHOTS,),
        )
        conn.commit()
    logger.debug("Saved offline snapshot at %s", created_at)
    return int(cur.lastrowid)


def load_offline_snapshot(db_path: Path = DB_PATH) -> Optional[OfflineSnapshot]:
    """Most recent snapshot, or None if there is none or it is unreadable."""
    init_db(db_path)
    with sqlite3.connect(db_path) as conn:
        row = conn.execute(
            "SELECT payload FROM offline_snapshots ORDER BY id DESC LIMIT 1"
        ).fetchone()
    if not row:
        return None
    try:
        snapshot = OfflineSnapshot.parse_obj(json.loads(row[0]))
    except (ValueError, ValidationError) as e:
        logger.warning("Discarding unreadable offline snapshot: %s", e)
        return None
    logger.info("Loaded offline data from %s", snapshot.last_updated)
    return snapshot

