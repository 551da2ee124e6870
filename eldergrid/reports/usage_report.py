# eldergrid/reports/usage_report.py
from __future__ import annotations

from typing import Iterable, Mapping, Optional

import pandas as pd

from eldergrid.utils.schema_validator import ApplianceLog, normalize_appliance

REPORT_COLUMNS = ["appliance", "sessions", "total_minutes", "avg_minutes", "gov_avg_minutes", "diff_pct"]


def logs_to_frame(logs: Iterable[ApplianceLog]) -> pd.DataFrame:
    rows = [
        {
            "appliance": log.appliance_name,
            "usage_minutes": log.usage_minutes,
            "timestamp": log.timestamp,
        }
        for log in logs
    ]
    return pd.DataFrame(rows, columns=["appliance", "usage_minutes", "timestamp"])


def usage_vs_average(logs: Iterable[ApplianceLog], gov_averages: Mapping[str, float]) -> pd.DataFrame:
    """
    Per-appliance session stats next to the government average.
    diff_pct > 0 means the household runs the appliance longer than the baseline;
    it is NaN when no (non-zero) baseline is known.
    """
    df = logs_to_frame(logs)
    if df.empty:
        return pd.DataFrame(columns=REPORT_COLUMNS)

    df["key"] = df["appliance"].map(normalize_appliance)
    grouped = (
        df.groupby("key")
        .agg(
            appliance=("appliance", "first"),
            sessions=("usage_minutes", "size"),
            total_minutes=("usage_minutes", "sum"),
            avg_minutes=("usage_minutes", "mean"),
        )
        .reset_index()
    )

    gov = {normalize_appliance(k): float(v) for k, v in gov_averages.items()}
    grouped["gov_avg_minutes"] = grouped["key"].map(gov)
    baseline = grouped["gov_avg_minutes"].where(grouped["gov_avg_minutes"] > 0)
    grouped["diff_pct"] = ((grouped["avg_minutes"] - baseline) / baseline * 100).round(1)
    grouped["avg_minutes"] = grouped["avg_minutes"].round(1)

    return grouped.sort_values("appliance").reset_index(drop=True)[REPORT_COLUMNS]


def overall_reduction_pct(report: pd.DataFrame) -> Optional[float]:
    """Percent below baseline across appliances that have one (negative = above)."""
    if report.empty:
        return None
    known = report[report["gov_avg_minutes"].fillna(0) > 0]
    if known.empty:
        return None
    expected = (known["gov_avg_minutes"] * known["sessions"]).sum()
    actual = known["total_minutes"].sum()
    return round(float((expected - actual) / expected * 100), 1)
