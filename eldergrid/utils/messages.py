# eldergrid/utils/messages.py
from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional


def _parse_ts(ts: str | datetime) -> datetime:
    if isinstance(ts, datetime):
        dt = ts
    else:
        dt = datetime.fromisoformat(str(ts).replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def format_last_sync(timestamp: str | datetime, now: Optional[datetime] = None) -> str:
    now = _parse_ts(now or datetime.now(timezone.utc))
    diff_minutes = int((now - _parse_ts(timestamp)).total_seconds() // 60)

    if diff_minutes < 1:
        return "Just now"
    if diff_minutes < 60:
        return f"{diff_minutes} minutes ago"
    diff_hours = diff_minutes // 60
    if diff_hours < 24:
        return f"{diff_hours} hours ago"
    return f"{diff_hours // 24} days ago"


def senior_friendly_error_message(
    is_offline: bool,
    has_api_error: bool,
    last_sync: str | datetime | None,
    now: Optional[datetime] = None,
) -> str:
    if is_offline:
        if last_sync:
            return (
                "You're currently offline, but don't worry - your last saved data from "
                f"{format_last_sync(last_sync, now)} is still visible."
            )
        return "You're currently offline. Please check your internet connection to see the latest data."

    if has_api_error:
        if last_sync:
            return (
                "Could not fetch new data right now, but don't worry - your last saved data from "
                f"{format_last_sync(last_sync, now)} is still visible."
            )
        return "Having trouble connecting to our servers. Please try again in a few moments."

    return ""
