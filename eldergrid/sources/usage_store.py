# eldergrid/sources/usage_store.py
from __future__ import annotations

import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol

import requests

from eldergrid.utils.env import Settings
from eldergrid.utils.schema_validator import (
    ApplianceLog,
    CustomThreshold,
    ValidationError,
    normalize_appliance,
)

logger = logging.getLogger(__name__)

DB_PATH = Path(__file__).resolve().parent.parent / "eldergrid.db"


class StoreError(RuntimeError):
    pass


class UsageStore(Protocol):
    def fetch_recent_logs(self, user_id: str, limit: int) -> List[ApplianceLog]:
        ...

    def insert_logs(self, logs: List[ApplianceLog]) -> int:
        ...

    def has_logs(self, user_id: str) -> bool:
        ...

    def fetch_custom_thresholds(self, user_id: str) -> Dict[str, int]:
        ...

    def upsert_custom_threshold(self, threshold: CustomThreshold) -> None:
        ...


def _rows_to_logs(rows: List[Dict[str, Any]]) -> List[ApplianceLog]:
    logs = []
    for row in rows:
        try:
            logs.append(ApplianceLog.from_row(row))
        except ValidationError as e:
            logger.warning("Skipping malformed appliance log %s: %s", row.get("id"), e)
    return logs


# ============================================================
# SQLite (local demo / tests)
# ============================================================
class SQLiteUsageStore:
    def __init__(self, db_path: str | Path = DB_PATH):
        self.db_path = Path(db_path)
        self.init_db()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def init_db(self) -> None:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS appliance_logs (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id TEXT NOT NULL,
                    appliance TEXT NOT NULL,
                    usage_minutes INTEGER NOT NULL,
                    timestamp TEXT NOT NULL
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS custom_thresholds (
                    user_id TEXT NOT NULL,
                    appliance TEXT NOT NULL,
                    minutes INTEGER NOT NULL,
                    updated_at TEXT NOT NULL,
                    UNIQUE (user_id, appliance)
                )
                """
            )
            conn.commit()

    def fetch_recent_logs(self, user_id: str, limit: int) -> List[ApplianceLog]:
        """Newest first."""
        try:
            with self._connect() as conn:
                cur = conn.execute(
                    "SELECT id, user_id, appliance, usage_minutes, timestamp FROM appliance_logs "
                    "WHERE user_id = ? ORDER BY timestamp DESC, id DESC LIMIT ?",
                    (user_id, int(limit)),
                )
                rows = [dict(r) for r in cur.fetchall()]
        except sqlite3.Error as e:
            raise StoreError(f"Failed to read appliance logs: {e}")
        return _rows_to_logs(rows)

    def insert_logs(self, logs: List[ApplianceLog]) -> int:
        rows = [log.to_row() for log in logs]
        try:
            with self._connect() as conn:
                conn.executemany(
                    "INSERT INTO appliance_logs (user_id, appliance, usage_minutes, timestamp) "
                    "VALUES (:user_id, :appliance, :usage_minutes, :timestamp)",
                    rows,
                )
                conn.commit()
        except sqlite3.Error as e:
            raise StoreError(f"Failed to save appliance logs: {e}")
        return len(rows)

    def has_logs(self, user_id: str) -> bool:
        try:
            with self._connect() as conn:
                row = conn.execute("SELECT 1 FROM appliance_logs WHERE user_id = ? LIMIT 1", (user_id,)).fetchone()
        except sqlite3.Error as e:
            raise StoreError(f"Failed to read appliance logs: {e}")
        return row is not None

    def fetch_custom_thresholds(self, user_id: str) -> Dict[str, int]:
        try:
            with self._connect() as conn:
                cur = conn.execute("SELECT appliance, minutes FROM custom_thresholds WHERE user_id = ?", (user_id,))
                return {normalize_appliance(r["appliance"]): int(r["minutes"]) for r in cur.fetchall()}
        except sqlite3.Error as e:
            raise StoreError(f"Failed to read custom thresholds: {e}")

    def upsert_custom_threshold(self, threshold: CustomThreshold) -> None:
        updated_at = datetime.now(timezone.utc).isoformat()
        try:
            with self._connect() as conn:
                conn.execute(
                    """
                    INSERT INTO custom_thresholds (user_id, appliance, minutes, updated_at)
                    VALUES (?, ?, ?, ?)
                    ON CONFLICT (user_id, appliance)
                    DO UPDATE SET minutes = excluded.minutes, updated_at = excluded.updated_at
                    """,
                    (threshold.user_id, threshold.appliance_name, threshold.minutes, updated_at),
                )
                conn.commit()
        except sqlite3.Error as e:
            raise StoreError(f"Failed to save threshold for {threshold.appliance_name}: {e}")


# ============================================================
# Supabase (PostgREST over HTTPS)
# ============================================================
class SupabaseUsageStore:
    def __init__(self, url: str, api_key: str, timeout: float = 15, session: Optional[requests.Session] = None):
        self.base_url = url.rstrip("/") + "/rest/v1"
        self.api_key = api_key
        self.timeout = timeout
        self.session = session or requests.Session()

    def _headers(self, prefer: Optional[str] = None) -> Dict[str, str]:
        h = {
            "apikey": self.api_key,
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        if prefer:
            h["Prefer"] = prefer
        return h

    def _request(self, method: str, table: str, params=None, json=None, prefer=None):
        url = f"{self.base_url}/{table}"
        try:
            r = self.session.request(
                method, url, params=params, json=json, headers=self._headers(prefer), timeout=self.timeout
            )
        except requests.RequestException as e:
            raise StoreError(f"Supabase {method} {table} failed: {type(e).__name__}: {e}") from e
        if r.status_code >= 300:
            raise StoreError(f"Supabase {method} {table} failed ({r.status_code}): {r.text}")
        if not r.content:
            return None
        try:
            return r.json()
        except ValueError:
            raise StoreError(f"Supabase {method} {table} returned invalid JSON")

    def _select(self, table: str, params) -> List[Dict[str, Any]]:
        rows = self._request("GET", table, params=params)
        if rows is None:
            return []
        if not isinstance(rows, list) or not all(isinstance(r, dict) for r in rows):
            raise StoreError(f"Supabase GET {table} returned an unexpected payload")
        return rows

    def fetch_recent_logs(self, user_id: str, limit: int) -> List[ApplianceLog]:
        rows = self._select(
            "appliance_logs",
            {"select": "*", "user_id": f"eq.{user_id}", "order": "timestamp.desc", "limit": int(limit)},
        )
        return _rows_to_logs(rows)

    def insert_logs(self, logs: List[ApplianceLog]) -> int:
        rows = [log.to_row() for log in logs]
        if rows:
            self._request("POST", "appliance_logs", json=rows, prefer="return=minimal")
        return len(rows)

    def has_logs(self, user_id: str) -> bool:
        rows = self._select("appliance_logs", {"select": "id", "user_id": f"eq.{user_id}", "limit": 1})
        return bool(rows)

    def fetch_custom_thresholds(self, user_id: str) -> Dict[str, int]:
        rows = self._select("custom_thresholds", {"select": "appliance,minutes", "user_id": f"eq.{user_id}"})
        out: Dict[str, int] = {}
        for row in rows:
            name = normalize_appliance(row.get("appliance"))
            if not name:
                continue
            try:
                out[name] = int(row.get("minutes") or 0)
            except (TypeError, ValueError) as e:
                raise StoreError(f"Malformed custom threshold for {name}: {row.get('minutes')!r}") from e
        return out

    def upsert_custom_threshold(self, threshold: CustomThreshold) -> None:
        self._request(
            "POST",
            "custom_thresholds",
            params={"on_conflict": "user_id,appliance"},
            json=[threshold.to_row()],
            prefer="resolution=merge-duplicates,return=minimal",
        )


def build_usage_store(settings: Settings) -> UsageStore:
    if settings.store == "supabase":
        key = settings.supabase_service_role_key or settings.supabase_anon_key
        return SupabaseUsageStore(settings.supabase_url or "", key or "")
    return SQLiteUsageStore(settings.db_path or DB_PATH)
