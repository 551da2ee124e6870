# eldergrid/detection/anomaly.py
from __future__ import annotations

from dataclasses import dataclass, asdict
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from eldergrid.detection.thresholds import EffectiveThreshold, Origin
from eldergrid.utils.schema_validator import ApplianceLog, normalize_appliance


def _fmt_minutes(x: float) -> str:
    return str(int(x)) if float(x).is_integer() else f"{x:.1f}"


@dataclass(frozen=True)
class Alert:
    appliance_name: str
    usage_minutes: int
    threshold_minutes: float
    threshold_origin: Origin
    timestamp: Optional[datetime] = None
    log_id: Optional[Union[int, str]] = None

    @property
    def message(self) -> str:
        return (
            f"{self.appliance_name}: {self.usage_minutes} min vs threshold "
            f"{_fmt_minutes(self.threshold_minutes)} min ({self.threshold_origin})"
        )

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["timestamp"] = self.timestamp.isoformat() if self.timestamp else None
        d["message"] = self.message
        return d


def evaluate(
    logs: Iterable[ApplianceLog] | None,
    thresholds: Mapping[str, EffectiveThreshold] | None,
) -> List[Alert]:
    """
    One alert per log entry whose usage is strictly above the resolved threshold.
    Order follows the input logs. Missing inputs mean no alerts.
    """
    if not logs or not thresholds:
        return []

    alerts: List[Alert] = []
    for log in logs:
        eff = thresholds.get(normalize_appliance(log.appliance_name))
        if eff is None:
            continue
        if log.usage_minutes > eff.threshold_minutes:
            alerts.append(
                Alert(
                    appliance_name=log.appliance_name,
                    usage_minutes=log.usage_minutes,
                    threshold_minutes=eff.threshold_minutes,
                    threshold_origin=eff.origin,
                    timestamp=log.timestamp,
                    log_id=log.id,
                )
            )
    return alerts
